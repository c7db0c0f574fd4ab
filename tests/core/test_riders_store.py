# tests/core/test_riders_store.py
"""
Тесты для хранилища курьеров и начальной загрузки.
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from rider_tracker.common.constants import RiderStatus
from rider_tracker.common.exceptions import InvalidPayloadError, PersistenceError
from rider_tracker.core.riders import Rider, RiderStore, bootstrap_store
from rider_tracker.core.riders.models import DEFAULT_RIDERS, LocationSample


@pytest.fixture
def rider_repo() -> AsyncMock:
    """Мок репозитория курьеров."""
    repo = AsyncMock()
    repo.count.return_value = 0
    repo.list_all.return_value = []
    return repo


@pytest.fixture
def location_repo() -> AsyncMock:
    """Мок репозитория точек."""
    repo = AsyncMock()
    repo.insert.return_value = 1
    repo.list_all.return_value = []
    return repo


@pytest.fixture
def store(mock_db: MagicMock, rider_repo: AsyncMock, location_repo: AsyncMock) -> RiderStore:
    """Хранилище поверх моков репозиториев."""
    return RiderStore(mock_db, rider_repo=rider_repo, location_repo=location_repo)


class TestRiderStoreRiders:
    """Тесты операций с профилями курьеров."""

    @pytest.mark.asyncio
    async def test_get_rider_delegates(
        self,
        store: RiderStore,
        rider_repo: AsyncMock,
        sample_rider: Rider,
    ) -> None:
        """Проверяет получение курьера по ID."""
        rider_repo.get_by_id.return_value = sample_rider

        rider = await store.get_rider(2)

        assert rider is sample_rider
        rider_repo.get_by_id.assert_awaited_once_with(2)

    @pytest.mark.asyncio
    async def test_set_status_unknown_rider_is_noop(
        self,
        store: RiderStore,
        rider_repo: AsyncMock,
    ) -> None:
        """Проверяет, что неизвестный ID не вызывает ошибки."""
        rider_repo.update_status.return_value = False

        await store.set_rider_status(999, RiderStatus.ACTIVE)

        rider_repo.update_status.assert_awaited_once_with(999, RiderStatus.ACTIVE)

    @pytest.mark.asyncio
    async def test_set_status_propagates_persistence_error(
        self,
        store: RiderStore,
        rider_repo: AsyncMock,
    ) -> None:
        """Проверяет, что ошибка записи статуса пробрасывается."""
        rider_repo.update_status.side_effect = PersistenceError("disk full")

        with pytest.raises(PersistenceError):
            await store.set_rider_status(2, RiderStatus.INACTIVE)


class TestRiderStoreLocations:
    """Тесты операций с геолокацией."""

    @pytest.mark.asyncio
    async def test_insert_location_uses_given_timestamp(
        self,
        store: RiderStore,
        location_repo: AsyncMock,
    ) -> None:
        """Проверяет, что переданное время сохраняется как есть."""
        # Arrange
        ts = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
        location_repo.insert.return_value = 7

        # Act
        location_id = await store.insert_location(2, 26.9, 75.8, accuracy=3.0, timestamp=ts)

        # Assert
        assert location_id == 7
        dto = location_repo.insert.call_args[0][0]
        assert dto.rider_id == 2
        assert dto.accuracy == 3.0
        assert dto.speed is None
        assert dto.timestamp == ts

    @pytest.mark.asyncio
    async def test_insert_location_defaults_to_now(
        self,
        store: RiderStore,
        location_repo: AsyncMock,
    ) -> None:
        """Проверяет серверное время по умолчанию."""
        before = datetime.now(timezone.utc)

        await store.insert_location(2, 0.0, 0.0)

        dto = location_repo.insert.call_args[0][0]
        assert before <= dto.timestamp <= datetime.now(timezone.utc)

    @pytest.mark.asyncio
    async def test_history_converts_epoch_seconds(
        self,
        store: RiderStore,
        location_repo: AsyncMock,
    ) -> None:
        """Проверяет перевод границ окна из секунд эпохи."""
        location_repo.get_history.return_value = []

        await store.get_location_history(2, 1717200000, 1717286400)

        rider_id, start, end = location_repo.get_history.call_args[0]
        assert rider_id == 2
        assert start == datetime(2024, 6, 1, tzinfo=timezone.utc)
        assert end == datetime(2024, 6, 2, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_history_empty_window(
        self,
        store: RiderStore,
        location_repo: AsyncMock,
    ) -> None:
        """Проверяет, что start > end даёт пустой список без запроса."""
        samples = await store.get_location_history(2, 200, 100)

        assert samples == []
        location_repo.get_history.assert_not_called()

    @pytest.mark.asyncio
    async def test_history_clamps_out_of_range_bounds(
        self,
        store: RiderStore,
        location_repo: AsyncMock,
    ) -> None:
        """Проверяет прижатие границ за пределами диапазона дат."""
        location_repo.get_history.return_value = []

        await store.get_location_history(2, -1e13, 1e15)

        _, start, end = location_repo.get_history.call_args[0]
        assert start == datetime.min.replace(tzinfo=timezone.utc)
        assert end == datetime.max.replace(tzinfo=timezone.utc)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("start_time, end_time", [
        (float("nan"), 100),
        (100, float("inf")),
    ])
    async def test_history_rejects_non_finite_bounds(
        self,
        store: RiderStore,
        location_repo: AsyncMock,
        start_time: float,
        end_time: float,
    ) -> None:
        """Проверяет ошибку для NaN и бесконечности."""
        with pytest.raises(InvalidPayloadError):
            await store.get_location_history(2, start_time, end_time)

        location_repo.get_history.assert_not_called()

    @pytest.mark.asyncio
    async def test_prune_cutoff(
        self,
        store: RiderStore,
        location_repo: AsyncMock,
    ) -> None:
        """Проверяет вычисление границы очистки."""
        # Arrange
        location_repo.delete_older_than.return_value = 5
        expected = datetime.now(timezone.utc) - timedelta(days=30)

        # Act
        removed = await store.prune_older_than(30)

        # Assert
        assert removed == 5
        cutoff = location_repo.delete_older_than.call_args[0][0]
        assert abs((cutoff - expected).total_seconds()) < 5


class TestSeedAndBootstrap:
    """Тесты начального заполнения хранилища."""

    @pytest.mark.asyncio
    async def test_seed_empty_store(
        self,
        store: RiderStore,
        rider_repo: AsyncMock,
    ) -> None:
        """Проверяет создание демонстрационных курьеров в пустом хранилище."""
        rider_repo.count.return_value = 0

        created = await store.seed_default_riders()

        assert created == 3
        names = [c.args[0].name for c in rider_repo.create.await_args_list]
        assert names == ["John Doe", "Jagdish Suthar", "Mike Johnson"]

    @pytest.mark.asyncio
    async def test_seed_skipped_when_not_empty(
        self,
        store: RiderStore,
        rider_repo: AsyncMock,
    ) -> None:
        """Проверяет, что непустое хранилище не заполняется."""
        rider_repo.count.return_value = 1

        created = await store.seed_default_riders()

        assert created == 0
        rider_repo.create.assert_not_called()

    def test_default_riders(self) -> None:
        """Проверяет набор демонстрационных курьеров."""
        jagdish = DEFAULT_RIDERS[1]
        assert jagdish.phone == "7023204168"
        assert [r.status for r in DEFAULT_RIDERS] == [
            RiderStatus.ACTIVE,
            RiderStatus.ACTIVE,
            RiderStatus.INACTIVE,
        ]

    @pytest.mark.asyncio
    async def test_bootstrap_malformed_snapshot_falls_back_to_seed(
        self,
        store: RiderStore,
        rider_repo: AsyncMock,
        tmp_path: Path,
    ) -> None:
        """Проверяет, что повреждённый снимок заменяется набором по умолчанию."""
        # Arrange
        broken = tmp_path / "database.json"
        broken.write_text("{not json")

        # Act
        with patch("rider_tracker.core.riders.store.import_snapshot", new_callable=AsyncMock) as mock_import:
            await bootstrap_store(store, str(broken))

        # Assert
        mock_import.assert_not_called()
        assert rider_repo.create.await_count == 3

    @pytest.mark.asyncio
    async def test_bootstrap_imports_snapshot_into_empty_store(
        self,
        store: RiderStore,
        rider_repo: AsyncMock,
        tmp_path: Path,
    ) -> None:
        """Проверяет импорт снимка в пустую БД."""
        # Arrange
        snapshot_file = tmp_path / "database.json"
        snapshot_file.write_text(json.dumps({
            "riders": [{
                "id": 5,
                "name": "Imported",
                "phone": "111",
                "email": "",
                "status": "inactive",
                "created_at": "2024-01-01T00:00:00Z",
                "updated_at": "2024-01-01T00:00:00Z",
            }],
            "locations": [],
        }))
        # После импорта хранилище уже не пустое
        rider_repo.count.return_value = 1

        # Act
        with patch(
            "rider_tracker.core.riders.store.import_snapshot",
            new_callable=AsyncMock,
            return_value=(1, 0),
        ) as mock_import:
            await bootstrap_store(store, str(snapshot_file))

        # Assert
        mock_import.assert_awaited_once()
        snapshot = mock_import.call_args[0][1]
        assert snapshot.riders[0].id == 5
        rider_repo.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_bootstrap_never_raises(
        self,
        store: RiderStore,
        rider_repo: AsyncMock,
    ) -> None:
        """Проверяет, что ошибка БД при старте только логируется."""
        rider_repo.count.side_effect = PersistenceError("db down")

        with patch("rider_tracker.core.riders.store.log_error", new_callable=AsyncMock) as mock_log:
            await bootstrap_store(store)

        mock_log.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_export_snapshot(
        self,
        store: RiderStore,
        rider_repo: AsyncMock,
        location_repo: AsyncMock,
        sample_rider: Rider,
        sample_location_row: dict,
    ) -> None:
        """Проверяет выгрузку снимка."""
        rider_repo.list_all.return_value = [sample_rider]
        location_repo.list_all.return_value = [LocationSample(**sample_location_row)]

        snapshot = await store.export_snapshot()

        assert [r.id for r in snapshot.riders] == [2]
        assert [loc.id for loc in snapshot.locations] == [10]
