"""
Core module initialization.
Exports configuration, logging utilities and the error taxonomy.
"""

from order_engine.core.config import (
    get_settings,
    get_restaurant_settings,
    Settings,
    RestaurantSettings,
    EnvironmentMode,
)
from order_engine.core.exceptions import OrderEngineError

__all__ = [
    "get_settings",
    "get_restaurant_settings",
    "Settings",
    "RestaurantSettings",
    "EnvironmentMode",
    "OrderEngineError",
]
