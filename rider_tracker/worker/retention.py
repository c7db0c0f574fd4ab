# rider_tracker/worker/retention.py
"""
Периодическая очистка истории геолокации.
"""

from __future__ import annotations

import asyncio
from typing import Optional

from rider_tracker.common.constants import (
    DEFAULT_RETENTION_DAYS,
    DEFAULT_SWEEP_INTERVAL_SECONDS,
    TypeMsg,
)
from rider_tracker.common.logger import log_error, log_info
from rider_tracker.core.riders import RiderStore


class RetentionSweeper:
    """
    Фоновая задача: раз в interval_seconds удаляет точки
    старше retention_days. Ошибка одного прохода не останавливает цикл.
    """

    def __init__(
        self,
        store: RiderStore,
        retention_days: int = DEFAULT_RETENTION_DAYS,
        interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
    ) -> None:
        """
        Args:
            store: Хранилище курьеров
            retention_days: Горизонт хранения (дни)
            interval_seconds: Период между проходами
        """
        self._store = store
        self._retention_days = retention_days
        self._interval = interval_seconds
        self._task: Optional[asyncio.Task] = None
        self._running = False

    @property
    def name(self) -> str:
        return "retention_sweeper"

    @property
    def is_running(self) -> bool:
        return self._running

    async def run_once(self) -> int:
        """
        Один проход очистки.

        Returns:
            Количество удалённых точек (0 при ошибке)
        """
        try:
            removed = await self._store.prune_older_than(self._retention_days)
        except Exception as e:
            await log_error(f"Ошибка очистки истории: {e}")
            return 0

        if removed:
            await log_info(
                f"Удалено точек старше {self._retention_days} дн.: {removed}",
                type_msg=TypeMsg.INFO,
            )
        return removed

    async def start(self) -> None:
        """Запускает фоновый цикл."""
        if self._running:
            return

        self._running = True
        self._task = asyncio.create_task(self._loop())
        await log_info(
            f"Воркер {self.name} запущен (интервал {self._interval} с, хранение {self._retention_days} дн.)",
            type_msg=TypeMsg.INFO,
        )

    async def stop(self) -> None:
        """Останавливает фоновый цикл."""
        if not self._running:
            return

        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        await log_info(f"Воркер {self.name} остановлен", type_msg=TypeMsg.INFO)

    async def _loop(self) -> None:
        while self._running:
            await self.run_once()
            await asyncio.sleep(self._interval)
