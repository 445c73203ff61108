"""Session controller: the caller-facing side of location acquisition."""

import logging
from typing import Callable, Optional

from .acquisition import AcquisitionStateMachine
from .errors import PositionDenied
from .geocode_controller import GeocodeController
from .interfaces import AddressResolver, PermissionAuthority, PositionSource
from .models import AddressCase, AuthorizationStatus, Snapshot, StatusCase
from .timers import TimerService

logger = logging.getLogger(__name__)


class SessionController:
    """
    Entry points for starting, stopping and observing acquisition.

    Wires an AcquisitionStateMachine to its position source, timer service
    and address resolver, checks permission before starting, and builds
    snapshots for display.

    Attributes:
        machine: The acquisition state machine
        geocoder: The single-flight geocode controller
        permissions: Permission authority consulted by toggle()
        services_denied: Set when toggle() was refused for lack of permission
        on_change: Called with a fresh snapshot after every state change
        on_services_denied: Called when toggle() is refused for lack of permission
    """

    def __init__(
        self,
        source: PositionSource,
        resolver: AddressResolver,
        timers: TimerService,
        permissions: PermissionAuthority,
        geocoder: Optional[GeocodeController] = None,
        **machine_options,
    ):
        self.permissions = permissions
        self.geocoder = geocoder or GeocodeController(resolver)
        self.machine = AcquisitionStateMachine(
            source, timers, self.geocoder, **machine_options
        )
        self.services_denied = False
        self.on_change: Optional[Callable[[Snapshot], None]] = None
        self.on_services_denied: Optional[Callable[[], None]] = None

        self.machine.on_change = self._changed
        self.geocoder.on_complete = self._changed

    def _changed(self):
        if self.on_change:
            self.on_change(self.snapshot())

    @property
    def is_acquiring(self) -> bool:
        return self.machine.is_acquiring

    def toggle(self):
        """Stop if acquiring, otherwise start once permission allows it."""
        if self.machine.is_acquiring:
            self.stop()
            return

        status = self.permissions.authorization_status()
        if status == AuthorizationStatus.UNDETERMINED:
            logger.info("Location authorization undetermined, requesting it")
            self.permissions.request_authorization()
            return
        if status in (AuthorizationStatus.DENIED, AuthorizationStatus.RESTRICTED):
            logger.warning(f"Location services not available ({status.value})")
            self.services_denied = True
            if self.on_services_denied:
                self.on_services_denied()
            self._changed()
            return

        self.services_denied = False
        self.start()

    def start(self):
        if not self.permissions.services_enabled():
            logger.warning("Location services disabled, not starting")
            self._changed()
            return
        self.machine.start()

    def stop(self):
        self.machine.stop()

    def snapshot(self) -> Snapshot:
        """Build a consistent view of the current state."""
        with self.machine.lock:
            best = self.machine.best
            position_error = self.machine.last_position_error
            is_acquiring = self.machine.is_acquiring
            address = self.geocoder.address
            geocode_error = self.geocoder.last_geocode_error
            in_flight = self.geocoder.in_flight
        disabled = self.services_denied or not self.permissions.services_enabled()

        if best is not None:
            status = StatusCase.FOUND
            if address is not None:
                address_status = AddressCase.FOUND
            elif in_flight:
                address_status = AddressCase.SEARCHING
            elif geocode_error is not None:
                address_status = AddressCase.ERROR
            else:
                address_status = AddressCase.NOT_FOUND
        else:
            address_status = AddressCase.NONE
            if position_error is not None:
                if isinstance(position_error, PositionDenied):
                    status = StatusCase.DENIED
                else:
                    status = StatusCase.ERROR
            elif disabled:
                status = StatusCase.SERVICES_DISABLED
            elif is_acquiring:
                status = StatusCase.SEARCHING
            else:
                status = StatusCase.IDLE

        return Snapshot(
            best=best,
            address=address,
            is_acquiring=is_acquiring,
            is_geocode_in_flight=in_flight,
            last_position_error=position_error,
            last_geocode_error=geocode_error,
            services_disabled=disabled,
            status=status,
            address_status=address_status,
        )
