"""
Google Maps Address Validator

Production implementation using the Google Maps Geocoding API.
Used when ENV_MODE=production or ENV_MODE=staging.

Requirements:
    - GOOGLE_MAPS_API_KEY must be set in environment
    - Geocoding API must be enabled in Google Cloud Console

API Documentation:
    https://developers.google.com/maps/documentation/geocoding

Author: Khalil Bannouri
Version: 1.0.0
"""

import asyncio
import logging
from typing import Optional

import googlemaps
from googlemaps.exceptions import ApiError, Timeout, TransportError

from order_engine.core.config import get_settings
from order_engine.services.geo.base import BaseAddressValidator

logger = logging.getLogger(__name__)


class GoogleAddressValidator(BaseAddressValidator):
    """
    Geocodes addresses with Google Maps, restricted to France.

    The googlemaps client is synchronous; calls run in a worker thread
    so the event loop keeps serving other requests.

    Example:
        >>> validator = GoogleAddressValidator()
        >>> result = await validator.validate_address_for_delivery(
        ...     "12 Quai du Port", "13002"
        ... )
        >>> print(result.formatted_address)
        '12 Quai du Port, 13002 Marseille, France'
    """

    def __init__(self, client: Optional[googlemaps.Client] = None, **kwargs):
        """
        Initialize Google Maps client with API key.

        Raises:
            ValueError: If GOOGLE_MAPS_API_KEY is not configured
        """
        super().__init__(**kwargs)
        if client is None:
            settings = get_settings()
            if not settings.google_maps_api_key:
                raise ValueError(
                    "GOOGLE_MAPS_API_KEY is required for production mode. "
                    "Set it in your .env file or environment variables."
                )
            client = googlemaps.Client(key=settings.google_maps_api_key)
        self._client = client

        logger.info("GoogleAddressValidator initialized")

    @property
    def provider_name(self) -> str:
        """Return the provider name."""
        return "google"

    async def _geocode(self, query: str, **components) -> Optional[tuple[float, float, str]]:
        """
        Geocode a query. Provider failures are logged and reported as
        "not found".
        """
        try:
            results = await asyncio.to_thread(
                self._client.geocode,
                query,
                components={"country": "FR", **components},
            )
        except Timeout:
            logger.error("Google: API timeout")
            return None
        except ApiError as e:
            logger.error(f"Google: API error - {e}")
            return None
        except TransportError as e:
            logger.error(f"Google: Transport error - {e}")
            return None

        if not results:
            logger.info(f"Google: Nothing found for {query!r}")
            return None

        best = results[0]
        location = best.get("geometry", {}).get("location", {})
        lat, lng = location.get("lat"), location.get("lng")
        if lat is None or lng is None:
            return None
        return float(lat), float(lng), best.get("formatted_address", query)

    async def _locate_zip(self, zip_code: str) -> Optional[tuple[float, float, str]]:
        return await self._geocode(zip_code, postal_code=zip_code)

    async def _locate_address(
        self, address: str, zip_code: Optional[str]
    ) -> Optional[tuple[float, float, str]]:
        if zip_code:
            return await self._geocode(address, postal_code=zip_code)
        return await self._geocode(address)

    async def health_check(self) -> bool:
        """
        Verify Google Maps API connectivity.

        Makes a simple geocode request to verify credentials and connectivity.
        """
        located = await self._geocode("Marseille")
        if located:
            logger.debug("Google: Health check passed")
            return True
        return False
