# rider_tracker/common/exceptions.py
"""
Иерархия ошибок приложения.
Каждая ошибка знает HTTP-статус, с которым она уходит клиенту.
"""

from __future__ import annotations


class RiderTrackerError(Exception):
    """Базовая ошибка приложения."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidPayloadError(RiderTrackerError):
    """Отсутствуют обязательные поля запроса или события."""

    status_code = 400


class RiderNotFoundError(RiderTrackerError):
    """Курьер не найден."""

    status_code = 404

    def __init__(self, message: str = "Rider not found") -> None:
        super().__init__(message)


class PersistenceError(RiderTrackerError):
    """Ошибка чтения или записи хранилища."""

    status_code = 500
