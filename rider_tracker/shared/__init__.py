# rider_tracker/shared/__init__.py
"""
Общие DTO HTTP API и постоянного канала.
"""
