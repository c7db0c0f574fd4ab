# rider_tracker/shared/models/__init__.py
"""
Pydantic-модели запросов, ответов и событий.
"""

from rider_tracker.shared.models.common import HealthStatus, error_body, success_body
from rider_tracker.shared.models.relay_dto import (
    RelayFrame,
    RiderConnectPayload,
    RiderDisconnectPayload,
    LocationUpdatePayload,
    LocationBroadcast,
    RiderStatusBroadcast,
    RiderAuthRequest,
)

__all__ = [
    "HealthStatus",
    "error_body",
    "success_body",
    "RelayFrame",
    "RiderConnectPayload",
    "RiderDisconnectPayload",
    "LocationUpdatePayload",
    "LocationBroadcast",
    "RiderStatusBroadcast",
    "RiderAuthRequest",
]
