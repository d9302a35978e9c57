"""
Address Validator Abstract Base Class

Defines the interface contract for delivery address validation.
Both MockAddressValidator and GoogleAddressValidator implement it.

An address is deliverable when it can be located and lies within the
configured delivery radius of the restaurant (straight-line distance).

Author: Khalil Bannouri
Version: 1.0.0
"""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from order_engine.core.config import get_settings

EARTH_RADIUS_KM = 6371.0


@dataclass
class AddressValidationResult:
    """
    Standardized result from address validation.

    Attributes:
        valid: Whether the address can be delivered to
        error: Customer-facing reason when not valid
        distance: Distance from the restaurant in km (when located)
        latitude: GPS latitude coordinate
        longitude: GPS longitude coordinate
        formatted_address: Standardized address, when the provider has one
    """
    valid: bool
    error: Optional[str] = None
    distance: Optional[float] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    formatted_address: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "valid": self.valid,
            "error": self.error,
            "distance": self.distance,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "formatted_address": self.formatted_address,
        }


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance between two points in kilometers."""
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


class BaseAddressValidator(ABC):
    """
    Abstract base class for address validators.

    Subclasses only have to locate things (``_locate_address``,
    ``_locate_zip``); the radius check is shared.

    Example:
        >>> validator = get_address_validator()
        >>> result = await validator.validate_address_for_delivery(
        ...     "12 Quai du Port", "13002"
        ... )
        >>> if result.valid:
        ...     print(f"{result.distance} km away")
    """

    MSG_ZIP_FORMAT = "Format de code postal invalide"
    MSG_ZIP_NOT_FOUND = "Code postal introuvable"
    MSG_ADDRESS_NOT_FOUND = "Adresse introuvable"
    MSG_OUT_OF_RANGE = "Livraison non disponible au-delà de {radius:g}km"

    def __init__(
        self,
        origin_lat: Optional[float] = None,
        origin_lng: Optional[float] = None,
        radius_km: Optional[float] = None,
    ):
        settings = get_settings()
        self.origin_lat = settings.restaurant_latitude if origin_lat is None else origin_lat
        self.origin_lng = settings.restaurant_longitude if origin_lng is None else origin_lng
        self.radius_km = settings.delivery_radius_km if radius_km is None else radius_km

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the name of the geocoding provider."""
        pass

    @abstractmethod
    async def _locate_zip(self, zip_code: str) -> Optional[tuple[float, float, str]]:
        """Coordinates and display name for a postal code, or None."""
        pass

    @abstractmethod
    async def _locate_address(
        self, address: str, zip_code: Optional[str]
    ) -> Optional[tuple[float, float, str]]:
        """Coordinates and formatted address for a street address, or None."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        pass

    def _within_radius(self, lat: float, lng: float, formatted: Optional[str]) -> AddressValidationResult:
        distance = round(haversine_km(self.origin_lat, self.origin_lng, lat, lng), 1)
        in_range = distance <= self.radius_km
        return AddressValidationResult(
            valid=in_range,
            error=None if in_range else self.MSG_OUT_OF_RANGE.format(radius=self.radius_km),
            distance=distance,
            latitude=lat,
            longitude=lng,
            formatted_address=formatted,
        )

    async def validate_zip_code_for_delivery(self, zip_code: str) -> AddressValidationResult:
        """Check a French postal code (5 digits) against the delivery radius."""
        zip_code = (zip_code or "").strip()
        if not (len(zip_code) == 5 and zip_code.isdigit()):
            return AddressValidationResult(valid=False, error=self.MSG_ZIP_FORMAT)

        located = await self._locate_zip(zip_code)
        if located is None:
            return AddressValidationResult(valid=False, error=self.MSG_ZIP_NOT_FOUND)

        lat, lng, name = located
        return self._within_radius(lat, lng, name)

    async def validate_address_for_delivery(
        self, address: str, zip_code: Optional[str] = None
    ) -> AddressValidationResult:
        """
        Locate a street address and check it against the delivery radius.

        Falls back to the postal code when the street cannot be located
        but a postal code was given.
        """
        if not address or not address.strip():
            return AddressValidationResult(valid=False, error=self.MSG_ADDRESS_NOT_FOUND)

        located = await self._locate_address(address.strip(), zip_code)
        if located is None:
            if zip_code:
                return await self.validate_zip_code_for_delivery(zip_code)
            return AddressValidationResult(valid=False, error=self.MSG_ADDRESS_NOT_FOUND)

        lat, lng, formatted = located
        return self._within_radius(lat, lng, formatted)
