# rider_tracker/core/riders/__init__.py
"""
Домен курьеров.
Модели, репозитории и хранилище профилей и истории геолокации.
"""

from rider_tracker.core.riders.models import Rider, LocationSample, LatestLocation
from rider_tracker.core.riders.repository import RiderRepository, LocationRepository
from rider_tracker.core.riders.store import RiderStore, bootstrap_store

__all__ = [
    "Rider",
    "LocationSample",
    "LatestLocation",
    "RiderRepository",
    "LocationRepository",
    "RiderStore",
    "bootstrap_store",
]
