# rider_tracker/services/relay/broadcaster.py
"""
Менеджер WebSocket соединений наблюдателей.
Рассылает события всем подключённым панелям администратора.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from fastapi import WebSocket

from rider_tracker.common.constants import TypeMsg
from rider_tracker.common.logger import log_info


@dataclass
class ObserverConnection:
    """Информация о соединении наблюдателя."""
    websocket: WebSocket
    connection_id: str
    connected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class ObserverBroadcaster:
    """
    Рассылка событий наблюдателям.

    - Без подтверждений и повторов
    - Соединение, на котором отправка упала, отключается
    """

    def __init__(self) -> None:
        # connection_id -> ObserverConnection
        self._observers: dict[str, ObserverConnection] = {}

        # Для статистики
        self._total_connections: int = 0
        self._total_messages_sent: int = 0

    @property
    def active_connections(self) -> int:
        """Количество подключённых наблюдателей."""
        return len(self._observers)

    async def connect(self, websocket: WebSocket, connection_id: str) -> None:
        """Принять соединение наблюдателя."""
        await websocket.accept()
        self._observers[connection_id] = ObserverConnection(
            websocket=websocket,
            connection_id=connection_id,
        )
        self._total_connections += 1
        await log_info(f"Наблюдатель подключён: {connection_id}", type_msg=TypeMsg.DEBUG)

    async def disconnect(self, connection_id: str) -> None:
        """Отключить наблюдателя."""
        if self._observers.pop(connection_id, None) is not None:
            await log_info(f"Наблюдатель отключён: {connection_id}", type_msg=TypeMsg.DEBUG)

    async def broadcast(self, event: str, data: dict[str, Any]) -> int:
        """
        Отправить событие всем наблюдателям.

        Returns:
            Количество успешно отправленных сообщений
        """
        message = {"event": event, "data": data}
        sent_count = 0
        failed: list[str] = []

        # Копия: отправка может уступить управление и список изменится
        for connection_id, conn in list(self._observers.items()):
            try:
                await conn.websocket.send_json(message)
                sent_count += 1
                self._total_messages_sent += 1
            except Exception:
                failed.append(connection_id)

        for connection_id in failed:
            await self.disconnect(connection_id)

        return sent_count

    def get_stats(self) -> dict[str, Any]:
        """Получить статистику."""
        return {
            "active_observers": len(self._observers),
            "total_observers_ever": self._total_connections,
            "total_messages_sent": self._total_messages_sent,
        }
