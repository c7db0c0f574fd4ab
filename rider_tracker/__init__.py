"""
Rider Tracker - relay геолокации курьеров.

Приём координат по WebSocket и HTTP, учёт присутствия курьеров
и рассылка обновлений в панели наблюдателей.
"""

__version__ = "1.0.0"
