# rider_tracker/services/relay/service.py
"""
Бизнес-логика relay: приём событий курьеров, запись в хранилище,
учёт присутствия и рассылка наблюдателям.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError

from rider_tracker.common.constants import RelayEvent, RiderStatus, TypeMsg
from rider_tracker.common.exceptions import InvalidPayloadError, PersistenceError, RiderTrackerError
from rider_tracker.common.logger import log_error, log_info, log_warning
from rider_tracker.core.presence import PresenceEntry, PresenceRegistry
from rider_tracker.core.riders import RiderStore
from rider_tracker.services.relay.broadcaster import ObserverBroadcaster
from rider_tracker.shared.models.relay_dto import (
    LocationBroadcast,
    LocationUpdatePayload,
    RelayFrame,
    RiderConnectPayload,
    RiderDisconnectPayload,
    RiderStatusBroadcast,
)


REQUIRED_LOCATION_FIELDS_MESSAGE = "riderId, latitude, and longitude are required"


class TrackingRelay:
    """
    Relay геолокации.

    Ответственности:
    - Подключение/отключение курьеров (реестр присутствия + статус в БД)
    - Приём точек по WebSocket и HTTP
    - Рассылка rider-status и location-update наблюдателям

    Шаги (реестр, статус, рассылка) выполняются последовательно без отката:
    сбой записи статуса логируется и не отменяет остальные шаги.
    """

    def __init__(
        self,
        store: RiderStore,
        registry: PresenceRegistry,
        broadcaster: ObserverBroadcaster,
    ) -> None:
        self._store = store
        self._registry = registry
        self._broadcaster = broadcaster

        # Статистика
        self._locations_accepted = 0
        self._locations_dropped = 0

    @property
    def registry(self) -> PresenceRegistry:
        """Реестр присутствия."""
        return self._registry

    # =========================================================================
    # ПОСТОЯННЫЙ КАНАЛ
    # =========================================================================

    async def dispatch(self, connection_id: str, frame: dict[str, Any]) -> None:
        """
        Обработать кадр от курьера.

        Кадры:
        - {"event": "rider-connect", "data": {"riderId": 2, "riderName": "..."}}
        - {"event": "location-update", "data": {"riderId": 2, "latitude": .., "longitude": ..}}
        - {"event": "rider-disconnect", "data": {"riderId": 2}}

        Некорректные кадры логируются и отбрасываются, клиенту ничего не отправляется.
        """
        try:
            parsed = RelayFrame.model_validate(frame)
            match parsed.event:
                case RelayEvent.RIDER_CONNECT:
                    await self.handle_rider_connect(
                        connection_id,
                        RiderConnectPayload.model_validate(parsed.data),
                    )
                case RelayEvent.LOCATION_UPDATE:
                    await self.handle_location_update(
                        LocationUpdatePayload.model_validate(parsed.data),
                    )
                case RelayEvent.RIDER_DISCONNECT:
                    await self.handle_rider_disconnect(
                        RiderDisconnectPayload.model_validate(parsed.data),
                    )
                case _:
                    await log_warning(f"Неизвестное событие от {connection_id}: {parsed.event}")
        except ValidationError as e:
            await log_warning(
                f"Некорректный кадр от {connection_id}: {e.error_count()} ошибок",
                extra={"frame": frame},
            )

    async def handle_rider_connect(self, connection_id: str, payload: RiderConnectPayload) -> PresenceEntry:
        """Курьер подключился: реестр, статус active, рассылка."""
        entry = self._registry.connect(payload.rider_id, payload.rider_name, connection_id)
        await log_info(f"Курьер подключён: {payload.rider_name} (ID: {payload.rider_id})", type_msg=TypeMsg.INFO)

        await self._update_status(payload.rider_id, RiderStatus.ACTIVE)
        await self._broadcast_status(payload.rider_id, payload.rider_name, RiderStatus.ACTIVE)
        return entry

    async def handle_location_update(self, payload: LocationUpdatePayload) -> int | None:
        """
        Точка из постоянного канала.

        Ошибки логируются, событие отбрасывается.

        Returns:
            ID записанной точки или None
        """
        try:
            return await self._ingest_location(payload)
        except RiderTrackerError as e:
            self._locations_dropped += 1
            await log_error(
                f"Ошибка обработки location-update: {e.message}",
                extra={"rider_id": payload.rider_id},
            )
            return None

    async def handle_rider_disconnect(self, payload: RiderDisconnectPayload) -> bool:
        """
        Явное отключение курьера.

        Returns:
            True если курьер был в реестре
        """
        entry = self._registry.disconnect(payload.rider_id)
        if entry is None:
            return False

        await log_info(f"Курьер отключился: {entry.rider_name} (ID: {entry.rider_id})", type_msg=TypeMsg.INFO)
        await self._mark_inactive(entry)
        return True

    async def handle_connection_closed(self, connection_id: str) -> bool:
        """
        Обрыв соединения без rider-disconnect.
        Обрабатывается только первая запись с этим соединением.

        Returns:
            True если соединение принадлежало курьеру
        """
        entry = self._registry.find_by_handle(connection_id)
        if entry is None:
            return False

        self._registry.disconnect(entry.rider_id)
        await log_info(
            f"Курьер {entry.rider_name} (ID: {entry.rider_id}) неожиданно отключился",
            type_msg=TypeMsg.WARNING,
        )
        await self._mark_inactive(entry)
        return True

    # =========================================================================
    # HTTP
    # =========================================================================

    async def submit_location(self, payload: LocationUpdatePayload) -> int:
        """
        Точка из POST /api/locations.

        Raises:
            InvalidPayloadError: нет riderId, latitude или longitude
            PersistenceError: ошибка записи

        Returns:
            ID записанной точки
        """
        return await self._ingest_location(payload)

    def get_stats(self) -> dict[str, Any]:
        """Получить статистику relay."""
        return {
            "connected_riders": len(self._registry),
            "locations_accepted": self._locations_accepted,
            "locations_dropped": self._locations_dropped,
            **self._broadcaster.get_stats(),
        }

    # =========================================================================
    # ВНУТРЕННЕЕ
    # =========================================================================

    async def _ingest_location(self, payload: LocationUpdatePayload) -> int:
        """Проверка, запись с серверным временем, обогащение и рассылка."""
        if payload.missing_required:
            raise InvalidPayloadError(REQUIRED_LOCATION_FIELDS_MESSAGE)

        timestamp = datetime.now(timezone.utc)
        location_id = await self._store.insert_location(
            rider_id=payload.rider_id,
            latitude=payload.latitude,
            longitude=payload.longitude,
            accuracy=payload.accuracy,
            speed=payload.speed,
            heading=payload.heading,
            timestamp=timestamp,
        )
        self._locations_accepted += 1

        rider = await self._store.get_rider(payload.rider_id)

        await self._broadcaster.broadcast(
            RelayEvent.LOCATION_UPDATE.value,
            LocationBroadcast(
                rider_id=payload.rider_id,
                rider_name=rider.name if rider else None,
                latitude=payload.latitude,
                longitude=payload.longitude,
                accuracy=payload.accuracy,
                speed=payload.speed,
                heading=payload.heading,
                timestamp=timestamp,
            ).to_wire(),
        )

        await log_info(
            f"Геолокация курьера {payload.rider_id}: {payload.latitude}, {payload.longitude}",
            type_msg=TypeMsg.DEBUG,
        )
        return location_id

    async def _mark_inactive(self, entry: PresenceEntry) -> None:
        """Статус inactive и рассылка для удалённой записи реестра."""
        await self._update_status(entry.rider_id, RiderStatus.INACTIVE)
        await self._broadcast_status(entry.rider_id, entry.rider_name, RiderStatus.INACTIVE)

    async def _update_status(self, rider_id: int, status: RiderStatus) -> None:
        """Запись статуса; сбой логируется и не прерывает обработку события."""
        try:
            await self._store.set_rider_status(rider_id, status)
        except PersistenceError as e:
            await log_error(f"Статус {status} курьера {rider_id} не сохранён: {e.message}")

    async def _broadcast_status(self, rider_id: int, rider_name: str | None, status: RiderStatus) -> None:
        """Разослать rider-status."""
        await self._broadcaster.broadcast(
            RelayEvent.RIDER_STATUS.value,
            RiderStatusBroadcast(
                rider_id=rider_id,
                rider_name=rider_name,
                status=status,
                timestamp=datetime.now(timezone.utc),
            ).to_wire(),
        )
