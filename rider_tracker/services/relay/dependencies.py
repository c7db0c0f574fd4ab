# rider_tracker/services/relay/dependencies.py
"""
Зависимости FastAPI для relay.
Компоненты создаются в lifespan и хранятся в app.state.
"""

from fastapi import Request

from rider_tracker.core.riders import RiderStore
from rider_tracker.infra.database import DatabaseManager
from rider_tracker.services.relay.service import TrackingRelay


def get_db(request: Request) -> DatabaseManager:
    return request.app.state.db


def get_store(request: Request) -> RiderStore:
    return request.app.state.store


def get_relay(request: Request) -> TrackingRelay:
    return request.app.state.relay
