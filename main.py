#!/usr/bin/env python3
# main.py
"""
Главная точка входа Rider Tracker.
Запускает relay или служебные команды в зависимости от аргументов.
"""

from __future__ import annotations

import asyncio
import sys

from rider_tracker.config import settings
from rider_tracker.common.logger import setup_logging, log_info, log_error
from rider_tracker.common.constants import TypeMsg
from rider_tracker.core.riders import RiderStore
from rider_tracker.core.riders.snapshot import dump_snapshot
from rider_tracker.infra.database import DatabaseManager, init_db, close_db
from rider_tracker.worker.retention import RetentionSweeper


MODES = ("relay", "sweep", "export")


async def run_relay() -> None:
    """
    Запускает HTTP/WebSocket relay.
    По SIGINT/SIGTERM uvicorn перестаёт принимать соединения,
    дожидается текущих запросов и выполняет shutdown lifespan.
    """
    import uvicorn

    await log_info(
        f"Запуск Rider Tracker на {settings.server.HOST}:{settings.server.PORT}...",
        type_msg=TypeMsg.INFO,
    )

    config = uvicorn.Config(
        "rider_tracker.services.relay.app:app",
        host=settings.server.HOST,
        port=settings.server.PORT,
        reload=settings.system.DEBUG,
        log_level="debug" if settings.system.DEBUG else "info",
    )

    server = uvicorn.Server(config)
    try:
        await server.serve()
    except asyncio.CancelledError:
        await log_info("Rider Tracker: graceful shutdown", type_msg=TypeMsg.DEBUG)
        await server.shutdown()


async def run_sweep() -> None:
    """Один проход очистки истории."""
    db = DatabaseManager()
    await init_db(db)
    try:
        sweeper = RetentionSweeper(RiderStore(db), retention_days=settings.retention.RETENTION_DAYS)
        removed = await sweeper.run_once()
        await log_info(f"Очистка завершена, удалено точек: {removed}", type_msg=TypeMsg.INFO)
    finally:
        await close_db(db)


async def run_export(path: str) -> None:
    """Выгружает хранилище в JSON-снимок."""
    db = DatabaseManager()
    await init_db(db)
    try:
        snapshot = await RiderStore(db).export_snapshot()
        dump_snapshot(snapshot, path)
        await log_info(
            f"Снимок записан в {path}: курьеров {len(snapshot.riders)}, точек {len(snapshot.locations)}",
            type_msg=TypeMsg.INFO,
        )
    finally:
        await close_db(db)


async def main(mode: str = "relay", argument: str | None = None) -> None:
    """
    Главная функция запуска.

    Args:
        mode: relay, sweep или export
        argument: путь к снимку для export
    """
    setup_logging()

    try:
        match mode:
            case "sweep":
                await run_sweep()
            case "export":
                await run_export(argument or "database.json")
            case _:
                await run_relay()
    except Exception as e:
        await log_error(f"Критическая ошибка в режиме {mode}: {e}", exc_info=True)
        raise


def print_usage() -> None:
    """Выводит справку по использованию."""
    print(f"""
Rider Tracker v{settings.system.VERSION} - relay геолокации курьеров

Использование:
    python main.py [mode] [path]

Режимы:
    relay                  - HTTP API + WebSocket (:{settings.server.PORT}), по умолчанию
    sweep                  - один проход очистки истории старше {settings.retention.RETENTION_DAYS} дн.
    export [path]          - выгрузить хранилище в JSON-снимок (database.json)

Примеры:
    python main.py
    python main.py sweep
    python main.py export backup.json
    """)


if __name__ == "__main__":
    mode = "relay"
    argument = None

    if len(sys.argv) > 1:
        arg = sys.argv[1].lower()
        if arg in ("--help", "-h"):
            print_usage()
            sys.exit(0)
        elif arg in MODES:
            mode = arg
            argument = sys.argv[2] if len(sys.argv) > 2 else None
        else:
            print(f"Ошибка: неизвестный режим '{arg}'")
            print_usage()
            sys.exit(1)

    try:
        asyncio.run(main(mode, argument))
    except KeyboardInterrupt:
        pass
