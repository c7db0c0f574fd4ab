# rider_tracker/shared/models/relay_dto.py
"""
DTO событий постоянного канала и запросов HTTP API.
Имена полей на проводе - camelCase (riderId, riderName).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from rider_tracker.common.constants import RiderStatus


class CamelModel(BaseModel):
    """База для моделей с camelCase на проводе."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        """Словарь для отправки клиенту."""
        return self.model_dump(mode="json", by_alias=True)


class RelayFrame(BaseModel):
    """Кадр постоянного канала: {"event": "...", "data": {...}}."""

    event: str
    data: dict[str, Any] = Field(default_factory=dict)


# === ВХОДЯЩИЕ СОБЫТИЯ ===

class RiderConnectPayload(CamelModel):
    """rider-connect."""
    rider_id: int
    rider_name: Optional[str] = None


class RiderDisconnectPayload(CamelModel):
    """rider-disconnect."""
    rider_id: int


class LocationUpdatePayload(CamelModel):
    """
    location-update (WS) и тело POST /api/locations.

    Обязательные поля объявлены Optional: их отсутствие проверяет relay,
    чтобы вернуть ошибку в общем конверте.
    """
    rider_id: Optional[int] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    accuracy: Optional[float] = None
    speed: Optional[float] = None
    heading: Optional[float] = None

    @property
    def missing_required(self) -> list[str]:
        """Незаполненные обязательные поля (в wire-именах)."""
        return [
            name
            for name, value in (
                ("riderId", self.rider_id),
                ("latitude", self.latitude),
                ("longitude", self.longitude),
            )
            if value is None
        ]


class RiderAuthRequest(BaseModel):
    """Тело POST /api/riders/auth."""
    phone: Optional[str] = None


# === ИСХОДЯЩИЕ СОБЫТИЯ ===

class LocationBroadcast(CamelModel):
    """Обогащённое обновление геолокации для наблюдателей."""
    rider_id: int
    rider_name: Optional[str] = None
    latitude: float
    longitude: float
    accuracy: Optional[float] = None
    speed: Optional[float] = None
    heading: Optional[float] = None
    timestamp: datetime


class RiderStatusBroadcast(CamelModel):
    """Смена присутствия курьера."""
    rider_id: int
    rider_name: Optional[str] = None
    status: RiderStatus
    timestamp: datetime
