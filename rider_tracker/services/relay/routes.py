# rider_tracker/services/relay/routes.py
"""
HTTP API курьеров и геолокации.
Все ответы в конверте {"success": bool, "data" | "error": ...}.
"""

import time
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.encoders import jsonable_encoder

from rider_tracker.common.exceptions import InvalidPayloadError, RiderNotFoundError
from rider_tracker.config import settings
from rider_tracker.core.riders import RiderStore
from rider_tracker.services.relay.dependencies import get_relay, get_store
from rider_tracker.services.relay.service import TrackingRelay
from rider_tracker.shared.models.common import success_body
from rider_tracker.shared.models.relay_dto import LocationUpdatePayload, RiderAuthRequest

router = APIRouter(prefix="/api", tags=["Riders"])


@router.get("/riders")
async def list_riders(store: RiderStore = Depends(get_store)) -> dict[str, Any]:
    riders = await store.list_riders()
    return success_body(jsonable_encoder(riders))


@router.post("/riders/auth")
async def auth_rider(
    request: RiderAuthRequest,
    store: RiderStore = Depends(get_store),
) -> dict[str, Any]:
    """Вход курьера по номеру телефона (без пароля)."""
    if not request.phone:
        raise InvalidPayloadError("Phone number required")

    rider = await store.get_rider_by_phone(request.phone)
    if rider is None:
        raise RiderNotFoundError()
    return success_body(jsonable_encoder(rider))


@router.get("/riders/{rider_id}")
async def get_rider(rider_id: int, store: RiderStore = Depends(get_store)) -> dict[str, Any]:
    rider = await store.get_rider(rider_id)
    if rider is None:
        raise RiderNotFoundError()
    return success_body(jsonable_encoder(rider))


@router.get("/riders/{rider_id}/locations")
async def get_rider_locations(
    rider_id: int,
    start_time: Optional[float] = Query(default=None, alias="startTime"),
    end_time: Optional[float] = Query(default=None, alias="endTime"),
    store: RiderStore = Depends(get_store),
) -> dict[str, Any]:
    """
    История курьера за окно в секундах эпохи.
    Каждая граница по умолчанию отсчитывается от текущего момента:
    start = now - HISTORY_WINDOW_SECONDS, end = now.
    """
    now = time.time()
    if start_time is None:
        start_time = now - settings.retention.HISTORY_WINDOW_SECONDS
    if end_time is None:
        end_time = now

    samples = await store.get_location_history(rider_id, start_time, end_time)
    return success_body(jsonable_encoder(samples))


@router.get("/locations/latest")
async def get_latest_locations(store: RiderStore = Depends(get_store)) -> dict[str, Any]:
    """Последняя точка каждого активного курьера."""
    latest = await store.get_latest_locations_for_active_riders()
    return success_body(jsonable_encoder(latest))


@router.post("/locations")
async def submit_location(
    payload: LocationUpdatePayload,
    relay: TrackingRelay = Depends(get_relay),
) -> dict[str, Any]:
    """Точка от клиента без постоянного канала. Рассылается наблюдателям."""
    location_id = await relay.submit_location(payload)
    return success_body({"id": location_id})
