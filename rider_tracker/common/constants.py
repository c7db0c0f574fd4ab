# rider_tracker/common/constants.py
"""
Общие константы и перечисления.
"""

from enum import Enum


class TypeMsg(str, Enum):
    """Типы сообщений для логирования."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class RiderStatus(str, Enum):
    """Статусы курьера."""
    ACTIVE = "active"
    INACTIVE = "inactive"

    def __str__(self) -> str:
        return self.value


class RelayEvent(str, Enum):
    """Имена событий постоянного канала."""
    RIDER_CONNECT = "rider-connect"
    RIDER_DISCONNECT = "rider-disconnect"
    LOCATION_UPDATE = "location-update"
    RIDER_STATUS = "rider-status"

    def __str__(self) -> str:
        return self.value


# Окно истории по умолчанию (секунды)
DEFAULT_HISTORY_WINDOW_SECONDS = 24 * 60 * 60

# Горизонт хранения точек (дни)
DEFAULT_RETENTION_DAYS = 30

# Период запуска очистки (секунды)
DEFAULT_SWEEP_INTERVAL_SECONDS = 24 * 60 * 60
