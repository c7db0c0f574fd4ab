# rider_tracker/core/presence/registry.py
"""
Реестр присутствия курьеров.
Хранит в памяти процесса, какие курьеры сейчас подключены и через какое соединение.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterator


@dataclass
class PresenceEntry:
    """Информация о подключённом курьере."""
    rider_id: int
    rider_name: str | None
    connection_id: str
    connected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class PresenceRegistry:
    """
    Реестр присутствия: rider_id -> PresenceEntry.

    Ровно одна запись на курьера, повторное подключение перезаписывает прежнюю.
    Методы не содержат await, поэтому на одном event loop изменения атомарны.
    """

    def __init__(self) -> None:
        self._entries: dict[int, PresenceEntry] = {}

    def connect(self, rider_id: int, rider_name: str | None, connection_id: str) -> PresenceEntry:
        """Регистрирует (или перезаписывает) присутствие курьера."""
        entry = PresenceEntry(
            rider_id=rider_id,
            rider_name=rider_name,
            connection_id=connection_id,
        )
        self._entries[rider_id] = entry
        return entry

    def disconnect(self, rider_id: int) -> PresenceEntry | None:
        """Удаляет запись курьера и возвращает её (или None)."""
        return self._entries.pop(rider_id, None)

    def find_by_handle(self, connection_id: str) -> PresenceEntry | None:
        """Первая запись с указанным соединением."""
        for entry in self._entries.values():
            if entry.connection_id == connection_id:
                return entry
        return None

    def get(self, rider_id: int) -> PresenceEntry | None:
        """Запись курьера или None."""
        return self._entries.get(rider_id)

    def entries(self) -> list[PresenceEntry]:
        """Копия всех записей."""
        return list(self._entries.values())

    def __contains__(self, rider_id: object) -> bool:
        return rider_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[PresenceEntry]:
        return iter(self.entries())
