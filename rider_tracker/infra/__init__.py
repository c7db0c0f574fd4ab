# rider_tracker/infra/__init__.py
"""
Инфраструктурный слой.
Работа с PostgreSQL.
"""

from rider_tracker.infra.database import DatabaseManager, init_db, close_db

__all__ = [
    "DatabaseManager",
    "init_db",
    "close_db",
]
