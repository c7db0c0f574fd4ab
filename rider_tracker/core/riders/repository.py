# rider_tracker/core/riders/repository.py
"""
Репозитории курьеров и истории геолокации.
Реализуют паттерн Repository поверх PostgreSQL.

Любая ошибка драйвера логируется и пробрасывается как PersistenceError.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from rider_tracker.common.constants import RiderStatus, TypeMsg
from rider_tracker.common.exceptions import PersistenceError
from rider_tracker.common.logger import log_error, log_info
from rider_tracker.core.riders.models import (
    LatestLocation,
    LocationCreateDTO,
    LocationSample,
    Rider,
    RiderCreateDTO,
)
from rider_tracker.infra.database import DatabaseManager, parse_affected_rows


_RIDER_COLUMNS = "id, name, phone, email, status, created_at, updated_at"
_LOCATION_COLUMNS = "id, rider_id, latitude, longitude, accuracy, speed, heading, timestamp"


def _row_to_rider(row: Mapping[str, Any]) -> Rider:
    """Преобразует строку БД в модель курьера."""
    return Rider(
        id=row["id"],
        name=row["name"],
        phone=row["phone"],
        email=row["email"],
        status=RiderStatus(row["status"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_location(row: Mapping[str, Any]) -> LocationSample:
    """Преобразует строку БД в точку геолокации."""
    return LocationSample(
        id=row["id"],
        rider_id=row["rider_id"],
        latitude=row["latitude"],
        longitude=row["longitude"],
        accuracy=row["accuracy"],
        speed=row["speed"],
        heading=row["heading"],
        timestamp=row["timestamp"],
    )


class RiderRepository:
    """Репозиторий профилей курьеров."""

    def __init__(self, db: DatabaseManager) -> None:
        """
        Args:
            db: Менеджер базы данных (Dependency Injection)
        """
        self._db = db

    async def list_all(self) -> list[Rider]:
        """Все курьеры в порядке добавления."""
        try:
            rows = await self._db.fetch(
                f"SELECT {_RIDER_COLUMNS} FROM riders ORDER BY id"
            )
            return [_row_to_rider(row) for row in rows]
        except Exception as e:
            await log_error(f"Ошибка получения списка курьеров: {e}")
            raise PersistenceError(str(e)) from e

    async def get_by_id(self, rider_id: int) -> Optional[Rider]:
        """
        Получает курьера по ID.

        Returns:
            Курьер или None
        """
        try:
            row = await self._db.fetchrow(
                f"SELECT {_RIDER_COLUMNS} FROM riders WHERE id = $1",
                rider_id,
            )
            return _row_to_rider(row) if row is not None else None
        except Exception as e:
            await log_error(f"Ошибка получения курьера {rider_id}: {e}")
            raise PersistenceError(str(e)) from e

    async def get_by_phone(self, phone: str) -> Optional[Rider]:
        """
        Получает курьера по номеру телефона.
        Телефон не уникален: при дублях побеждает курьер с меньшим ID.
        """
        try:
            row = await self._db.fetchrow(
                f"""
                SELECT {_RIDER_COLUMNS}
                FROM riders
                WHERE phone = $1
                ORDER BY id
                LIMIT 1
                """,
                phone,
            )
            return _row_to_rider(row) if row is not None else None
        except Exception as e:
            await log_error(f"Ошибка поиска курьера по телефону: {e}")
            raise PersistenceError(str(e)) from e

    async def update_status(self, rider_id: int, status: RiderStatus) -> bool:
        """
        Обновляет статус курьера.

        updated_at никогда не уменьшается, даже при сдвиге часов.

        Returns:
            True если курьер найден и обновлён
        """
        try:
            result = await self._db.execute(
                """
                UPDATE riders
                SET status = $2, updated_at = GREATEST(updated_at, $3)
                WHERE id = $1
                """,
                rider_id,
                status.value,
                datetime.now(timezone.utc),
            )
            return parse_affected_rows(result) > 0
        except Exception as e:
            await log_error(f"Ошибка обновления статуса курьера {rider_id}: {e}")
            raise PersistenceError(str(e)) from e

    async def create(self, dto: RiderCreateDTO) -> Rider:
        """Создаёт курьера, ID назначает БД."""
        try:
            now = datetime.now(timezone.utc)
            row = await self._db.fetchrow(
                f"""
                INSERT INTO riders (name, phone, email, status, created_at, updated_at)
                VALUES ($1, $2, $3, $4, $5, $5)
                RETURNING {_RIDER_COLUMNS}
                """,
                dto.name,
                dto.phone,
                dto.email,
                dto.status.value,
                now,
            )
            await log_info(f"Курьер {row['id']} ({dto.name}) создан", type_msg=TypeMsg.DEBUG)
            return _row_to_rider(row)
        except Exception as e:
            await log_error(f"Ошибка создания курьера {dto.name}: {e}")
            raise PersistenceError(str(e)) from e

    async def count(self) -> int:
        """Количество курьеров."""
        try:
            return int(await self._db.fetchval("SELECT COUNT(*) FROM riders"))
        except Exception as e:
            await log_error(f"Ошибка подсчёта курьеров: {e}")
            raise PersistenceError(str(e)) from e


class LocationRepository:
    """Репозиторий истории геолокации."""

    def __init__(self, db: DatabaseManager) -> None:
        """
        Args:
            db: Менеджер базы данных (Dependency Injection)
        """
        self._db = db

    async def insert(self, dto: LocationCreateDTO) -> int:
        """
        Записывает точку геолокации.

        Returns:
            Назначенный ID (identity-колонка, не переиспользуется)
        """
        try:
            location_id = await self._db.fetchval(
                """
                INSERT INTO locations (rider_id, latitude, longitude, accuracy, speed, heading, timestamp)
                VALUES ($1, $2, $3, $4, $5, $6, $7)
                RETURNING id
                """,
                dto.rider_id,
                dto.latitude,
                dto.longitude,
                dto.accuracy,
                dto.speed,
                dto.heading,
                dto.timestamp,
            )
            return int(location_id)
        except Exception as e:
            await log_error(f"Ошибка записи геолокации курьера {dto.rider_id}: {e}")
            raise PersistenceError(str(e)) from e

    async def get_history(
        self,
        rider_id: int,
        start: datetime,
        end: datetime,
    ) -> list[LocationSample]:
        """
        История точек курьера в окне [start, end] (обе границы включительно),
        по возрастанию времени.
        """
        try:
            rows = await self._db.fetch(
                f"""
                SELECT {_LOCATION_COLUMNS}
                FROM locations
                WHERE rider_id = $1 AND timestamp >= $2 AND timestamp <= $3
                ORDER BY timestamp ASC, id ASC
                """,
                rider_id,
                start,
                end,
            )
            return [_row_to_location(row) for row in rows]
        except Exception as e:
            await log_error(f"Ошибка получения истории курьера {rider_id}: {e}")
            raise PersistenceError(str(e)) from e

    async def get_latest_for_active_riders(self) -> list[LatestLocation]:
        """
        Последняя точка каждого активного курьера.
        Курьеры без точек в выборку не попадают.
        """
        try:
            rows = await self._db.fetch(
                """
                SELECT DISTINCT ON (l.rider_id)
                       l.id, l.rider_id, l.latitude, l.longitude, l.accuracy,
                       l.speed, l.heading, l.timestamp,
                       r.name, r.phone, r.status
                FROM locations l
                JOIN riders r ON r.id = l.rider_id
                WHERE r.status = $1
                ORDER BY l.rider_id, l.timestamp DESC, l.id DESC
                """,
                RiderStatus.ACTIVE.value,
            )
            return [
                LatestLocation(
                    **_row_to_location(row).model_dump(),
                    name=row["name"],
                    phone=row["phone"],
                    status=RiderStatus(row["status"]),
                )
                for row in rows
            ]
        except Exception as e:
            await log_error(f"Ошибка получения последних точек: {e}")
            raise PersistenceError(str(e)) from e

    async def delete_older_than(self, cutoff: datetime) -> int:
        """
        Удаляет точки строго старше cutoff.

        Returns:
            Количество удалённых точек
        """
        try:
            result = await self._db.execute(
                "DELETE FROM locations WHERE timestamp < $1",
                cutoff,
            )
            return parse_affected_rows(result)
        except Exception as e:
            await log_error(f"Ошибка очистки старых точек: {e}")
            raise PersistenceError(str(e)) from e

    async def list_all(self) -> list[LocationSample]:
        """Все точки по возрастанию ID (для экспорта)."""
        try:
            rows = await self._db.fetch(
                f"SELECT {_LOCATION_COLUMNS} FROM locations ORDER BY id"
            )
            return [_row_to_location(row) for row in rows]
        except Exception as e:
            await log_error(f"Ошибка выгрузки истории: {e}")
            raise PersistenceError(str(e)) from e
