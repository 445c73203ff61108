"""Collaborators consumed by the acquisition core."""

from abc import ABC, abstractmethod
from typing import Callable, Optional

from .models import Address, AuthorizationStatus, PositionReading

ReadingCallback = Callable[[PositionReading], None]
FailureCallback = Callable[[Exception], None]


class PositionSource(ABC):
    """
    Produces position readings once started.

    Readings and failures are delivered through the callbacks registered with
    set_callbacks(), from whatever thread the source runs on.
    """

    def __init__(self):
        self.on_reading: Optional[ReadingCallback] = None
        self.on_failure: Optional[FailureCallback] = None

    def set_callbacks(self, on_reading: ReadingCallback, on_failure: FailureCallback):
        """Set callbacks for readings and failures."""
        self.on_reading = on_reading
        self.on_failure = on_failure

    @abstractmethod
    def start(self):
        """Begin delivering readings."""

    @abstractmethod
    def stop(self):
        """Stop delivering readings."""


class AddressResolver(ABC):
    """Reverse geocoder. Blocking; the core calls it off the caller's thread."""

    @abstractmethod
    def resolve(self, reading: PositionReading) -> Optional[Address]:
        """
        Resolve a reading to an address.

        Returns:
            The address, or None if there is no address at that position

        Raises:
            GeocodeFailed: if the lookup itself failed
        """


class PermissionAuthority(ABC):
    """Answers whether location data may be used."""

    @abstractmethod
    def authorization_status(self) -> AuthorizationStatus:
        """Current authorization state."""

    @abstractmethod
    def request_authorization(self):
        """Ask for authorization. The answer arrives later."""

    def services_enabled(self) -> bool:
        """Whether location services are switched on at all."""
        return True
