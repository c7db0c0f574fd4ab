# rider_tracker/core/riders/store.py
"""
Хранилище профилей курьеров и истории геолокации.
Координирует репозитории и реализует контракт, которым пользуется relay.
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone
from typing import Optional

from rider_tracker.common.constants import RiderStatus, TypeMsg
from rider_tracker.common.exceptions import InvalidPayloadError, PersistenceError
from rider_tracker.common.logger import log_error, log_info, log_warning
from rider_tracker.core.riders.models import (
    DEFAULT_RIDERS,
    LatestLocation,
    LocationCreateDTO,
    LocationSample,
    Rider,
    utcnow,
)
from rider_tracker.core.riders.repository import LocationRepository, RiderRepository
from rider_tracker.core.riders.snapshot import Snapshot, import_snapshot, load_snapshot
from rider_tracker.infra.database import DatabaseManager


_MIN_DATETIME = datetime.min.replace(tzinfo=timezone.utc)
_MAX_DATETIME = datetime.max.replace(tzinfo=timezone.utc)


def epoch_to_datetime(value: int | float) -> datetime:
    """
    Секунды Unix-эпохи в aware datetime (UTC).
    Конечные значения за пределами диапазона datetime прижимаются к его границам.

    Raises:
        InvalidPayloadError: NaN или бесконечность
    """
    if isinstance(value, float) and not math.isfinite(value):
        raise InvalidPayloadError("startTime and endTime must be finite numbers")
    try:
        return datetime.fromtimestamp(value, tz=timezone.utc)
    except (OverflowError, ValueError, OSError):
        return _MAX_DATETIME if value > 0 else _MIN_DATETIME


class RiderStore:
    """
    Хранилище курьеров и их точек.

    Все изменения записываются в БД до возврата из метода.
    """

    def __init__(
        self,
        db: DatabaseManager,
        rider_repo: Optional[RiderRepository] = None,
        location_repo: Optional[LocationRepository] = None,
    ) -> None:
        """
        Args:
            db: Менеджер базы данных
            rider_repo: Репозиторий курьеров (по умолчанию поверх db)
            location_repo: Репозиторий точек (по умолчанию поверх db)
        """
        self._db = db
        self._riders = rider_repo or RiderRepository(db)
        self._locations = location_repo or LocationRepository(db)

    # =========================================================================
    # КУРЬЕРЫ
    # =========================================================================

    async def list_riders(self) -> list[Rider]:
        """Все курьеры в порядке добавления, без фильтрации."""
        return await self._riders.list_all()

    async def get_rider(self, rider_id: int) -> Optional[Rider]:
        """Курьер по ID или None."""
        return await self._riders.get_by_id(rider_id)

    async def get_rider_by_phone(self, phone: str) -> Optional[Rider]:
        """Курьер по телефону или None (при дублях - первый)."""
        return await self._riders.get_by_phone(phone)

    async def set_rider_status(self, rider_id: int, status: RiderStatus) -> None:
        """
        Устанавливает статус курьера.
        Неизвестный ID молча игнорируется.
        """
        updated = await self._riders.update_status(rider_id, status)
        if not updated:
            await log_info(
                f"Статус {status} не установлен: курьер {rider_id} не найден",
                type_msg=TypeMsg.DEBUG,
            )

    # =========================================================================
    # ГЕОЛОКАЦИЯ
    # =========================================================================

    async def insert_location(
        self,
        rider_id: int,
        latitude: float,
        longitude: float,
        accuracy: Optional[float] = None,
        speed: Optional[float] = None,
        heading: Optional[float] = None,
        timestamp: Optional[datetime] = None,
    ) -> int:
        """
        Записывает точку. Диапазоны координат и существование курьера не проверяются.

        Returns:
            Назначенный ID точки
        """
        dto = LocationCreateDTO(
            rider_id=rider_id,
            latitude=latitude,
            longitude=longitude,
            accuracy=accuracy,
            speed=speed,
            heading=heading,
            timestamp=timestamp or utcnow(),
        )
        return await self._locations.insert(dto)

    async def get_location_history(
        self,
        rider_id: int,
        start_time: int | float,
        end_time: int | float,
    ) -> list[LocationSample]:
        """
        История курьера за окно [start_time, end_time] в секундах эпохи,
        по возрастанию времени. Пустое окно - пустой список.
        """
        start = epoch_to_datetime(start_time)
        end = epoch_to_datetime(end_time)
        if start > end:
            return []
        return await self._locations.get_history(rider_id, start, end)

    async def get_latest_locations_for_active_riders(self) -> list[LatestLocation]:
        """Последняя точка каждого активного курьера, у которого есть точки."""
        return await self._locations.get_latest_for_active_riders()

    async def prune_older_than(self, horizon_days: int) -> int:
        """
        Удаляет точки старше now - horizon_days.

        Returns:
            Количество удалённых точек
        """
        cutoff = datetime.now(timezone.utc) - timedelta(days=horizon_days)
        return await self._locations.delete_older_than(cutoff)

    # =========================================================================
    # ИНИЦИАЛИЗАЦИЯ И СНИМКИ
    # =========================================================================

    async def seed_default_riders(self) -> int:
        """
        Заполняет пустое хранилище демонстрационными курьерами.

        Returns:
            Количество созданных курьеров
        """
        if await self._riders.count() > 0:
            return 0

        for dto in DEFAULT_RIDERS:
            await self._riders.create(dto)

        await log_info(f"Создано демонстрационных курьеров: {len(DEFAULT_RIDERS)}", type_msg=TypeMsg.INFO)
        return len(DEFAULT_RIDERS)

    async def import_snapshot(self, snapshot: Snapshot) -> tuple[int, int]:
        """Загружает снимок в хранилище (см. snapshot.import_snapshot)."""
        riders_count, locations_count = await import_snapshot(self._db, snapshot)
        await log_info(
            f"Импортирован снимок: курьеров {riders_count}, точек {locations_count}",
            type_msg=TypeMsg.INFO,
        )
        return riders_count, locations_count

    async def export_snapshot(self) -> Snapshot:
        """Полный снимок хранилища."""
        return Snapshot(
            riders=await self._riders.list_all(),
            locations=await self._locations.list_all(),
        )


async def bootstrap_store(store: RiderStore, snapshot_path: Optional[str] = None) -> None:
    """
    Подготавливает хранилище при старте.

    Пустая БД заполняется из снимка (если задан), а при его отсутствии
    или повреждении - демонстрационными курьерами. Ошибки логируются
    и не останавливают процесс.
    """
    try:
        if snapshot_path and not await store.list_riders():
            try:
                await store.import_snapshot(load_snapshot(snapshot_path))
            except PersistenceError as e:
                await log_warning(f"Снимок отброшен, используется набор по умолчанию: {e}")

        await store.seed_default_riders()
    except PersistenceError as e:
        await log_error(f"Не удалось подготовить хранилище: {e}")
