# rider_tracker/core/__init__.py
"""
Доменный слой: курьеры, история геолокации, присутствие.
"""

from rider_tracker.core.riders import Rider, LocationSample, LatestLocation, RiderStore
from rider_tracker.core.presence import PresenceEntry, PresenceRegistry

__all__ = [
    "Rider",
    "LocationSample",
    "LatestLocation",
    "RiderStore",
    "PresenceEntry",
    "PresenceRegistry",
]
