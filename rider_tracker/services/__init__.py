# rider_tracker/services/__init__.py
"""
Сервисы приложения.
"""
