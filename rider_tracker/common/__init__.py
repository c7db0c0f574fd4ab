# rider_tracker/common/__init__.py
"""
Общие утилиты, константы, ошибки и логгер.
"""

from rider_tracker.common.logger import get_logger, log_info, log_error, log_warning, log_debug
from rider_tracker.common.constants import TypeMsg, RiderStatus, RelayEvent
from rider_tracker.common.exceptions import (
    RiderTrackerError,
    InvalidPayloadError,
    RiderNotFoundError,
    PersistenceError,
)

__all__ = [
    "get_logger",
    "log_info",
    "log_error",
    "log_warning",
    "log_debug",
    "TypeMsg",
    "RiderStatus",
    "RelayEvent",
    "RiderTrackerError",
    "InvalidPayloadError",
    "RiderNotFoundError",
    "PersistenceError",
]
