# rider_tracker/worker/__init__.py
"""
Фоновые воркеры.
"""

from rider_tracker.worker.retention import RetentionSweeper

__all__ = ["RetentionSweeper"]
