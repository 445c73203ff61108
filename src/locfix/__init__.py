"""Best-effort location fix acquisition with reverse geocoding."""

from .acquisition import AcquisitionStateMachine
from .errors import (
    LocationError,
    PositionUnavailable,
    PositionFailed,
    PositionDenied,
    AcquisitionTimedOut,
    GeocodeFailed,
)
from .geocode_controller import GeocodeController
from .models import (
    Address,
    AddressCase,
    AuthorizationStatus,
    PositionReading,
    Snapshot,
    StatusCase,
)
from .session import SessionController

__all__ = [
    "AcquisitionStateMachine",
    "Address",
    "AddressCase",
    "AuthorizationStatus",
    "GeocodeController",
    "PositionReading",
    "SessionController",
    "Snapshot",
    "StatusCase",
    "LocationError",
    "PositionUnavailable",
    "PositionFailed",
    "PositionDenied",
    "AcquisitionTimedOut",
    "GeocodeFailed",
]
