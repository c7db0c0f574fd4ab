# tests/core/test_snapshot.py
"""
Тесты для снимков хранилища (формат database.json).
"""

from __future__ import annotations

import json
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from rider_tracker.common.exceptions import PersistenceError
from rider_tracker.core.riders.models import LocationSample, Rider
from rider_tracker.core.riders.snapshot import (
    Snapshot,
    dump_snapshot,
    import_snapshot,
    load_snapshot,
)


@pytest.fixture
def snapshot_data() -> dict[str, Any]:
    """Снимок в формате плоского файла."""
    return {
        "riders": [
            {
                "id": 1,
                "name": "John Doe",
                "phone": "9876543210",
                "email": "john@example.com",
                "status": "active",
                "created_at": "2024-06-01T09:00:00",
                "updated_at": "2024-06-01T09:00:00",
            },
        ],
        "locations": [
            {
                "id": 3,
                "rider_id": 1,
                "latitude": 40.7128,
                "longitude": -74.006,
                "accuracy": None,
                "speed": None,
                "heading": None,
                "timestamp": "2024-06-01T10:00:00Z",
            },
        ],
    }


@pytest.fixture
def tx_conn() -> AsyncMock:
    """Соединение внутри транзакции."""
    conn = AsyncMock()
    conn.execute.return_value = "INSERT 0 1"
    return conn


@pytest.fixture
def tx_db(tx_conn: AsyncMock) -> MagicMock:
    """Мок БД с транзакцией, отдающей tx_conn."""
    db = MagicMock()

    @asynccontextmanager
    async def transaction():
        yield tx_conn

    db.transaction = transaction
    return db


class TestLoadSnapshot:
    """Тесты чтения снимка."""

    def test_load_valid(self, tmp_path: Path, snapshot_data: dict[str, Any]) -> None:
        """Проверяет чтение корректного снимка."""
        path = tmp_path / "database.json"
        path.write_text(json.dumps(snapshot_data))

        snapshot = load_snapshot(path)

        assert snapshot.riders[0].name == "John Doe"
        assert snapshot.locations[0].rider_id == 1
        assert snapshot.locations[0].timestamp.tzinfo is not None

    def test_load_missing_file(self, tmp_path: Path) -> None:
        """Проверяет отсутствующий файл."""
        with pytest.raises(PersistenceError):
            load_snapshot(tmp_path / "absent.json")

    def test_load_invalid_json(self, tmp_path: Path) -> None:
        """Проверяет повреждённый JSON."""
        path = tmp_path / "database.json"
        path.write_text('{"riders": [')

        with pytest.raises(PersistenceError):
            load_snapshot(path)

    def test_load_invalid_shape(self, tmp_path: Path) -> None:
        """Проверяет JSON неверной структуры."""
        path = tmp_path / "database.json"
        path.write_text(json.dumps({"riders": [{"id": "x"}]}))

        with pytest.raises(PersistenceError):
            load_snapshot(path)

    def test_dump_writes_document(self, tmp_path: Path, snapshot_data: dict[str, Any]) -> None:
        """Проверяет, что снимок записывается одним документом."""
        path = tmp_path / "out.json"
        snapshot = Snapshot.model_validate(snapshot_data)

        dump_snapshot(snapshot, path)

        raw = json.loads(path.read_text(encoding="utf-8"))
        assert set(raw) == {"riders", "locations"}
        assert raw["locations"][0]["id"] == 3


class TestImportSnapshot:
    """Тесты импорта снимка в БД."""

    @pytest.mark.asyncio
    async def test_import_counts_and_sequences(
        self,
        tx_db: MagicMock,
        tx_conn: AsyncMock,
        snapshot_data: dict[str, Any],
    ) -> None:
        """Проверяет импорт с сохранением ID и сдвигом последовательностей."""
        # Arrange
        snapshot = Snapshot.model_validate(snapshot_data)

        # Act
        riders_count, locations_count = await import_snapshot(tx_db, snapshot)

        # Assert
        assert (riders_count, locations_count) == (1, 1)
        queries = [c.args[0] for c in tx_conn.execute.await_args_list]
        assert "OVERRIDING SYSTEM VALUE" in queries[1]
        assert sum("setval" in q for q in queries) == 2

        rider_args = tx_conn.execute.await_args_list[0].args
        assert rider_args[1] == 1
        # Наивное время из файла считается UTC
        assert rider_args[6] == datetime(2024, 6, 1, 9, 0, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_import_skips_existing_ids(
        self,
        tx_db: MagicMock,
        tx_conn: AsyncMock,
    ) -> None:
        """Проверяет, что конфликтующие ID не учитываются."""
        tx_conn.execute.return_value = "INSERT 0 0"
        snapshot = Snapshot(
            riders=[Rider(id=1, name="John Doe", phone="1")],
            locations=[LocationSample(
                id=1, rider_id=1, latitude=0.0, longitude=0.0,
                timestamp=datetime.now(timezone.utc),
            )],
        )

        assert await import_snapshot(tx_db, snapshot) == (0, 0)

    @pytest.mark.asyncio
    async def test_import_error_wrapped(
        self,
        tx_db: MagicMock,
        tx_conn: AsyncMock,
    ) -> None:
        """Проверяет, что ошибка БД превращается в PersistenceError."""
        tx_conn.execute.side_effect = Exception("violates check constraint")
        snapshot = Snapshot(riders=[Rider(id=1, name="John Doe", phone="1")])

        with pytest.raises(PersistenceError, match="check constraint"):
            await import_snapshot(tx_db, snapshot)
