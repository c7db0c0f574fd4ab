# rider_tracker/services/relay/__init__.py
"""
Relay геолокации: HTTP API, постоянный канал курьеров и рассылка наблюдателям.
"""

from rider_tracker.services.relay.broadcaster import ObserverBroadcaster
from rider_tracker.services.relay.service import TrackingRelay

__all__ = ["ObserverBroadcaster", "TrackingRelay"]
