"""Data types shared by the acquisition core and its adapters."""

import enum
from dataclasses import dataclass
from math import asin, cos, radians, sin, sqrt
from typing import List, Optional

from .errors import LocationError, GeocodeFailed

EARTH_RADIUS_METERS = 6_371_000


@dataclass(frozen=True)
class PositionReading:
    """
    A single raw reading from a position source.

    Attributes:
        latitude: Latitude in decimal degrees
        longitude: Longitude in decimal degrees
        horizontal_accuracy: Estimated error radius in meters (smaller is
            better, negative means the reading is invalid)
        timestamp: Time the reading was taken, epoch seconds
    """
    latitude: float
    longitude: float
    horizontal_accuracy: float
    timestamp: float

    @property
    def is_valid(self) -> bool:
        return self.horizontal_accuracy >= 0

    def distance_to(self, other: "PositionReading") -> float:
        """Great-circle distance to another reading in meters."""
        lat1 = radians(self.latitude)
        lon1 = radians(self.longitude)
        lat2 = radians(other.latitude)
        lon2 = radians(other.longitude)

        dlat = lat2 - lat1
        dlon = lon2 - lon1

        h = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
        return 2 * EARTH_RADIUS_METERS * asin(sqrt(h))


@dataclass(frozen=True)
class Address:
    """Structured address returned by an address resolver."""
    house_number: Optional[str] = None
    road: Optional[str] = None
    locality: Optional[str] = None
    administrative_area: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    display_name: Optional[str] = None

    def lines(self) -> List[str]:
        """
        Render the address as two lines.

        First line is house number and street, second line is locality,
        administrative area and postal code. Missing components are skipped.
        """
        line1 = " ".join(p for p in (self.house_number, self.road) if p)
        line2 = " ".join(
            p for p in (self.locality, self.administrative_area, self.postal_code) if p
        )
        return [line1, line2]

    def __str__(self) -> str:
        text = "\n".join(self.lines()).strip()
        return text or (self.display_name or "")


class AuthorizationStatus(enum.Enum):
    UNDETERMINED = "undetermined"
    DENIED = "denied"
    RESTRICTED = "restricted"
    AUTHORIZED = "authorized"


class StatusCase(enum.Enum):
    """Which message applies to the position part of a snapshot."""
    FOUND = "found"
    ERROR = "error"
    DENIED = "denied"
    SERVICES_DISABLED = "services_disabled"
    SEARCHING = "searching"
    IDLE = "idle"


class AddressCase(enum.Enum):
    """Which message applies to the address part of a snapshot."""
    NONE = "none"
    FOUND = "found"
    SEARCHING = "searching"
    ERROR = "error"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class Snapshot:
    """Point-in-time view of acquisition and geocode state for display."""
    best: Optional[PositionReading]
    address: Optional[Address]
    is_acquiring: bool
    is_geocode_in_flight: bool
    last_position_error: Optional[LocationError]
    last_geocode_error: Optional[GeocodeFailed]
    services_disabled: bool
    status: StatusCase
    address_status: AddressCase

    @property
    def has_position(self) -> bool:
        return self.best is not None

    @property
    def has_address(self) -> bool:
        return self.address is not None

    @property
    def coordinates(self) -> Optional[tuple]:
        if self.best is None:
            return None
        return (self.best.latitude, self.best.longitude)
