"""
Address Validator Factory

Provides a single entry point for obtaining an address validator.
Automatically selects Mock or Google Maps based on ENV_MODE configuration.

Usage:
    from order_engine.services.geo import get_address_validator

    validator = get_address_validator()
    result = await validator.validate_address_for_delivery(
        "12 Quai du Port", "13002"
    )

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from functools import lru_cache

from order_engine.core.config import get_settings
from order_engine.services.geo.base import (
    BaseAddressValidator,
    AddressValidationResult,
    haversine_km,
)
from order_engine.services.geo.mock import MockAddressValidator
from order_engine.services.geo.google import GoogleAddressValidator

logger = logging.getLogger(__name__)


@lru_cache()
def get_address_validator() -> BaseAddressValidator:
    """
    Get the configured address validator instance.

    Returns:
        BaseAddressValidator: Configured validator instance

    Raises:
        ValueError: If production mode but Google API key not configured
    """
    settings = get_settings()

    if settings.is_development:
        logger.info("Address Validator: Using MockAddressValidator (development mode)")
        return MockAddressValidator()
    else:
        logger.info(
            f"Address Validator: Using GoogleAddressValidator "
            f"({settings.env_mode.value} mode)"
        )
        return GoogleAddressValidator()


def reset_address_validator() -> None:
    """
    Clear the cached validator instance.

    Useful for testing or when configuration changes at runtime.
    """
    get_address_validator.cache_clear()
    logger.debug("Address validator cache cleared")


__all__ = [
    "get_address_validator",
    "reset_address_validator",
    "BaseAddressValidator",
    "AddressValidationResult",
    "MockAddressValidator",
    "GoogleAddressValidator",
    "haversine_km",
]
