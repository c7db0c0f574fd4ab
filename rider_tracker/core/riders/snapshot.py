# rider_tracker/core/riders/snapshot.py
"""
Снимок хранилища в виде одного JSON-документа.

Формат: {"riders": [...], "locations": [...]} - тот же, что у плоского
файла database.json. Используется для импорта старых данных и бэкапов.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from rider_tracker.common.exceptions import PersistenceError
from rider_tracker.core.riders.models import LocationSample, Rider
from rider_tracker.infra.database import DatabaseManager, parse_affected_rows


class Snapshot(BaseModel):
    """Полный снимок хранилища."""

    riders: list[Rider] = Field(default_factory=list)
    locations: list[LocationSample] = Field(default_factory=list)


def _ensure_aware(value: datetime) -> datetime:
    """Наивное время считается UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def load_snapshot(path: Path | str) -> Snapshot:
    """
    Читает и валидирует снимок.

    Raises:
        PersistenceError: файл не читается или содержимое некорректно
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
        return Snapshot.model_validate(raw)
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        raise PersistenceError(f"Некорректный снимок {path}: {e}") from e


def dump_snapshot(snapshot: Snapshot, path: Path | str) -> None:
    """
    Записывает снимок целиком.

    Raises:
        PersistenceError: ошибка записи
    """
    try:
        Path(path).write_text(snapshot.model_dump_json(indent=2), encoding="utf-8")
    except OSError as e:
        raise PersistenceError(f"Не удалось записать снимок {path}: {e}") from e


async def import_snapshot(db: DatabaseManager, snapshot: Snapshot) -> tuple[int, int]:
    """
    Загружает снимок в БД одной транзакцией с сохранением исходных ID.
    Существующие ID пропускаются, последовательности сдвигаются за максимум.

    Returns:
        (импортировано курьеров, импортировано точек)
    """
    try:
        async with db.transaction() as conn:
            riders_count = 0
            for rider in snapshot.riders:
                status = await conn.execute(
                    """
                    INSERT INTO riders (id, name, phone, email, status, created_at, updated_at)
                    VALUES ($1, $2, $3, $4, $5, $6, $7)
                    ON CONFLICT (id) DO NOTHING
                    """,
                    rider.id,
                    rider.name,
                    rider.phone,
                    rider.email,
                    rider.status.value,
                    _ensure_aware(rider.created_at),
                    _ensure_aware(rider.updated_at),
                )
                riders_count += parse_affected_rows(status)

            locations_count = 0
            for sample in snapshot.locations:
                status = await conn.execute(
                    """
                    INSERT INTO locations (id, rider_id, latitude, longitude, accuracy, speed, heading, timestamp)
                    OVERRIDING SYSTEM VALUE
                    VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
                    ON CONFLICT (id) DO NOTHING
                    """,
                    sample.id,
                    sample.rider_id,
                    sample.latitude,
                    sample.longitude,
                    sample.accuracy,
                    sample.speed,
                    sample.heading,
                    _ensure_aware(sample.timestamp),
                )
                locations_count += parse_affected_rows(status)

            for table in ("riders", "locations"):
                await conn.execute(
                    f"""
                    SELECT setval(pg_get_serial_sequence('{table}', 'id'), COALESCE(MAX(id), 0) + 1, false)
                    FROM {table}
                    """
                )
    except Exception as e:
        raise PersistenceError(f"Ошибка импорта снимка: {e}") from e

    return riders_count, locations_count
