# rider_tracker/core/presence/__init__.py
"""
Присутствие курьеров (in-memory).
"""

from rider_tracker.core.presence.registry import PresenceEntry, PresenceRegistry

__all__ = ["PresenceEntry", "PresenceRegistry"]
