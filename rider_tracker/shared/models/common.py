# rider_tracker/shared/models/common.py
"""
Общие модели HTTP API.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


def success_body(data: Any) -> dict[str, Any]:
    """Тело успешного ответа: {"success": true, "data": ...}."""
    return {"success": True, "data": data}


def error_body(message: str) -> dict[str, Any]:
    """Тело ответа с ошибкой: {"success": false, "error": ...}."""
    return {"success": False, "error": message}


class HealthStatus(BaseModel):
    """Статус здоровья сервиса."""

    service: str
    status: str = "healthy"  # healthy, degraded
    version: str | None = None
    dependencies: dict[str, str] = Field(default_factory=dict)
