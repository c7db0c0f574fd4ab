#!/usr/bin/env python3
"""
Entrypoint для Rider Tracker relay.

Запуск:
    python entrypoints/entrypoint_relay.py

Порт по умолчанию: 3000
"""

import sys
from pathlib import Path

# Добавляем корневую директорию проекта в путь
project_root = Path(__file__).parent.parent.resolve()
sys.path.insert(0, str(project_root))

import uvicorn

from rider_tracker.config import settings


def main() -> None:
    """Запустить relay."""
    uvicorn.run(
        "rider_tracker.services.relay.app:app",
        host=settings.server.HOST,
        port=settings.server.PORT,
        reload=settings.system.DEBUG,
        log_level=settings.logging.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
