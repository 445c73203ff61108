"""Error kinds raised and recorded during location acquisition."""


class LocationError(Exception):
    """Base class for every acquisition and geocoding failure."""


class PositionUnavailable(LocationError):
    """The receiver has no fix right now. Transient, never surfaced."""


class PositionFailed(LocationError):
    """The position source failed. Ends the current session."""


class PositionDenied(PositionFailed):
    """The position source refused access to location data."""


class AcquisitionTimedOut(LocationError):
    """No reading was accepted before the acquisition deadline."""

    def __init__(self, timeout: float = 0.0):
        super().__init__(f"No position acquired within {timeout:.0f}s")
        self.timeout = timeout


class GeocodeFailed(LocationError):
    """Reverse geocoding did not produce an address. Non-fatal."""
