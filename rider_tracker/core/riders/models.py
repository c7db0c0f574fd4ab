# rider_tracker/core/riders/models.py
"""
Модели данных курьеров и истории геолокации.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field

from rider_tracker.common.constants import RiderStatus


def utcnow() -> datetime:
    """Текущее время в UTC (timezone-aware)."""
    return datetime.now(timezone.utc)


class Rider(BaseModel):
    """Профиль курьера."""

    id: int = Field(..., description="Идентификатор курьера")
    name: str = Field(..., description="Отображаемое имя")
    phone: str = Field(..., description="Номер телефона (вторичный ключ поиска)")
    email: str = Field("", description="Email")
    status: RiderStatus = Field(RiderStatus.INACTIVE, description="Статус присутствия")
    created_at: datetime = Field(default_factory=utcnow, description="Дата создания")
    updated_at: datetime = Field(default_factory=utcnow, description="Дата обновления")

    class Config:
        from_attributes = True

    @property
    def is_active(self) -> bool:
        """Подключён ли курьер."""
        return self.status == RiderStatus.ACTIVE


class LocationSample(BaseModel):
    """Одна точка геолокации курьера. Неизменяема после записи."""

    id: int = Field(..., description="Идентификатор точки (монотонно растёт)")
    rider_id: int = Field(..., description="ID курьера")
    latitude: float = Field(..., description="Широта")
    longitude: float = Field(..., description="Долгота")
    accuracy: Optional[float] = Field(None, description="Точность (метры)")
    speed: Optional[float] = Field(None, description="Скорость")
    heading: Optional[float] = Field(None, description="Направление (градусы)")
    timestamp: datetime = Field(..., description="Время фиксации на сервере")

    class Config:
        from_attributes = True
        frozen = True


class LatestLocation(LocationSample):
    """Последняя точка активного курьера вместе с его профилем."""

    name: str = Field(..., description="Имя курьера")
    phone: str = Field(..., description="Телефон курьера")
    status: RiderStatus = Field(..., description="Статус курьера")


class RiderCreateDTO(BaseModel):
    """DTO для создания курьера."""

    name: str
    phone: str
    email: str = ""
    status: RiderStatus = RiderStatus.INACTIVE


class LocationCreateDTO(BaseModel):
    """DTO для записи точки геолокации."""

    rider_id: int
    latitude: float
    longitude: float
    accuracy: Optional[float] = None
    speed: Optional[float] = None
    heading: Optional[float] = None
    timestamp: datetime = Field(default_factory=utcnow)


# Курьеры, которыми заполняется пустое хранилище
DEFAULT_RIDERS: tuple[RiderCreateDTO, ...] = (
    RiderCreateDTO(name="John Doe", phone="9876543210", email="john@example.com", status=RiderStatus.ACTIVE),
    RiderCreateDTO(name="Jagdish Suthar", phone="7023204168", email="jks@gmail.com", status=RiderStatus.ACTIVE),
    RiderCreateDTO(name="Mike Johnson", phone="9876543212", email="mike@example.com", status=RiderStatus.INACTIVE),
)
