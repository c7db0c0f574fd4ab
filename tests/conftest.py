# tests/conftest.py
"""
Общие фикстуры и настройки для тестов.
"""

from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

# Устанавливаем переменные окружения перед импортом модулей
os.environ.setdefault("DB_PASSWORD", "test_password")
os.environ.setdefault("ENVIRONMENT", "test")

from rider_tracker.common.constants import RiderStatus
from rider_tracker.core.riders import Rider, RiderStore
from rider_tracker.core.presence import PresenceRegistry


# =============================================================================
# ФИКСТУРЫ КОНФИГУРАЦИИ
# =============================================================================

@pytest.fixture(scope="session")
def project_root() -> Path:
    """Корневая директория проекта."""
    return Path(__file__).parent.parent


@pytest.fixture(scope="session")
def config_path(project_root: Path) -> Path:
    """Путь к файлу конфигурации."""
    return project_root / "config" / "config.json"


@pytest.fixture
def mock_config() -> dict[str, Any]:
    """Мок конфигурации для тестов."""
    return {
        "_comment_system": "Системные настройки",
        "PROJECT_NAME": "rider_tracker_test",
        "VERSION": "1.0.0-test",
        "DEBUG": True,
        "ENVIRONMENT": "test",
        "HOST": "127.0.0.1",
        "PORT": 3100,
        "CORS_ORIGINS": ["http://localhost:5173"],
        "LOG_LEVEL": "DEBUG",
        "LOG_FORMAT": "json",
        "LOG_TO_FILE": False,
        "LOG_FILE_PATH": "logs/test.log",
        "LOG_MAX_BYTES": 1024,
        "DB_HOST": "db.test",
        "DB_PORT": 5433,
        "DB_NAME": "rider_tracker_test",
        "DB_USER": "tracker",
        "DB_PASSWORD": "secret",
        "DB_MIN_POOL_SIZE": 2,
        "DB_MAX_POOL_SIZE": 5,
        "DB_COMMAND_TIMEOUT": 30,
        "DB_RETRY_ATTEMPTS": 2,
        "DB_RETRY_DELAY": 0.5,
        "SNAPSHOT_IMPORT_PATH": None,
        "RETENTION_DAYS": 7,
        "SWEEP_INTERVAL_SECONDS": 3600,
        "HISTORY_WINDOW_SECONDS": 600,
    }


@pytest.fixture
def temp_config_file(tmp_path: Path, mock_config: dict[str, Any]) -> Path:
    """Создаёт временный файл конфигурации."""
    config_file = tmp_path / "config.json"
    config_file.write_text(json.dumps(mock_config, ensure_ascii=False, indent=2))
    return config_file


# =============================================================================
# ФИКСТУРЫ ИНФРАСТРУКТУРЫ (МОКИ)
# =============================================================================

@pytest.fixture
def mock_db() -> MagicMock:
    """Мок менеджера базы данных."""
    db = MagicMock()
    db.fetchrow = AsyncMock(return_value=None)
    db.fetch = AsyncMock(return_value=[])
    db.execute = AsyncMock(return_value="UPDATE 1")
    db.fetchval = AsyncMock(return_value=None)
    db.health_check = AsyncMock(return_value=True)
    return db


@pytest.fixture
def mock_store() -> AsyncMock:
    """Мок хранилища курьеров."""
    store = AsyncMock(spec=RiderStore)
    store.insert_location.return_value = 1
    store.get_rider.return_value = None
    store.list_riders.return_value = []
    store.get_location_history.return_value = []
    store.get_latest_locations_for_active_riders.return_value = []
    return store


@pytest.fixture
def mock_broadcaster() -> MagicMock:
    """Мок рассылки наблюдателям."""
    broadcaster = MagicMock()
    broadcaster.broadcast = AsyncMock(return_value=0)
    broadcaster.get_stats = MagicMock(return_value={
        "active_observers": 0,
        "total_observers_ever": 0,
        "total_messages_sent": 0,
    })
    return broadcaster


@pytest.fixture
def registry() -> PresenceRegistry:
    """Пустой реестр присутствия."""
    return PresenceRegistry()


# =============================================================================
# ФИКСТУРЫ МОДЕЛЕЙ
# =============================================================================

@pytest.fixture
def sample_rider_row() -> dict[str, Any]:
    """Строка курьера из БД."""
    return {
        "id": 2,
        "name": "Jagdish Suthar",
        "phone": "7023204168",
        "email": "jks@gmail.com",
        "status": RiderStatus.ACTIVE.value,
        "created_at": datetime(2024, 6, 1, 9, 0, tzinfo=timezone.utc),
        "updated_at": datetime(2024, 6, 1, 9, 0, tzinfo=timezone.utc),
    }


@pytest.fixture
def sample_location_row() -> dict[str, Any]:
    """Строка точки геолокации из БД."""
    return {
        "id": 10,
        "rider_id": 2,
        "latitude": 26.9124,
        "longitude": 75.7873,
        "accuracy": 5.0,
        "speed": None,
        "heading": None,
        "timestamp": datetime(2024, 6, 1, 10, 0, tzinfo=timezone.utc),
    }


@pytest.fixture
def sample_rider(sample_rider_row: dict[str, Any]) -> Rider:
    """Курьер Jagdish Suthar."""
    return Rider(**sample_rider_row)
