"""Command line runner: acquire one fix from a Meshtastic node."""

import sys
import time
import signal
import logging
import threading
from typing import Optional

from .config import LOG_LEVEL, SERIAL_PORT, ACQUISITION_TIMEOUT_SECONDS
from .geocoding import NominatimResolver
from .meshtastic_source import MeshtasticPositionSource
from .models import Snapshot, StatusCase, AddressCase
from .permissions import ConfigPermissionAuthority
from .session import SessionController
from .timers import ThreadingTimerService

logger = logging.getLogger(__name__)

STATUS_MESSAGES = {
    StatusCase.ERROR: "Error getting location",
    StatusCase.DENIED: "Location services disabled",
    StatusCase.SERVICES_DISABLED: "Location services disabled",
    StatusCase.SEARCHING: "Searching...",
    StatusCase.IDLE: "Not acquiring",
}

ADDRESS_MESSAGES = {
    AddressCase.SEARCHING: "Searching for an address...",
    AddressCase.ERROR: "Error finding address",
    AddressCase.NOT_FOUND: "No address found",
}


def configure_logging():
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Set meshtastic loggers to WARNING to reduce noise (they use DEBUG by default)
    meshtastic_log_level = getattr(logging, LOG_LEVEL.upper(), logging.INFO)
    if meshtastic_log_level <= logging.INFO:
        meshtastic_log_level = logging.WARNING
    logging.getLogger("meshtastic").setLevel(meshtastic_log_level)


def describe(snapshot: Snapshot) -> str:
    """Render a snapshot as text for the console."""
    if not snapshot.has_position:
        return STATUS_MESSAGES[snapshot.status]

    best = snapshot.best
    lines = [f"{best.latitude:.8f}, {best.longitude:.8f} (±{best.horizontal_accuracy:.1f}m)"]
    if snapshot.address_status == AddressCase.FOUND:
        lines.append(str(snapshot.address))
    else:
        lines.append(ADDRESS_MESSAGES[snapshot.address_status])
    return "\n".join(lines)


class LocationFixer:
    """
    Runs a single acquisition session against a Meshtastic device.

    Components:
        - MeshtasticPositionSource: readings from the serial device
        - NominatimResolver: reverse geocoding
        - ThreadingTimerService: acquisition deadline
        - SessionController: acquisition and geocoding state
    """

    def __init__(self, port: str = SERIAL_PORT):
        self.source = MeshtasticPositionSource(port=port)
        self.permissions = ConfigPermissionAuthority()
        self.session = SessionController(
            source=self.source,
            resolver=NominatimResolver(),
            timers=ThreadingTimerService(),
            permissions=self.permissions,
        )
        self.session.on_change = self._on_change
        self.session.on_services_denied = self._on_services_denied
        # Authorization granted on request starts acquisition right away
        self.permissions.on_change = lambda status: self.session.toggle()
        self._done = threading.Event()

        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

    def _signal_handler(self, signum, frame):
        """Handle shutdown signals."""
        logger.info(f"Received signal {signum}, stopping acquisition...")
        self.session.stop()
        self._done.set()

    def _on_change(self, snapshot: Snapshot):
        logger.debug(f"State changed: {snapshot.status.value}/{snapshot.address_status.value}")

    def _on_services_denied(self):
        logger.error("Location Services Disabled: enable LOCATION_AUTHORIZATION in the .env file")
        self._done.set()

    def _finished(self) -> bool:
        snapshot = self.session.snapshot()
        if snapshot.is_acquiring:
            return False
        # Wait for the last lookup so the address is printed
        return not snapshot.is_geocode_in_flight

    def run(self, wait: float = ACQUISITION_TIMEOUT_SECONDS + 30) -> Snapshot:
        """Acquire a fix and return the final snapshot."""
        logger.info(f"Acquiring location from {self.source.port}")
        # Connect outside the session; a failure surfaces as PositionFailed
        # when the source is started without a connection
        if not self.source.connect():
            logger.error(f"Could not connect to {self.source.port}")
        self.session.toggle()

        deadline = time.time() + wait
        try:
            while not self._done.is_set() and time.time() < deadline:
                if self._finished():
                    break
                time.sleep(0.5)
        except KeyboardInterrupt:
            logger.info("Keyboard interrupt received")
        finally:
            self.session.stop()
            self.source.close()

        return self.session.snapshot()


def main(argv: Optional[list] = None):
    """Main entry point."""
    configure_logging()
    argv = sys.argv[1:] if argv is None else argv
    port = argv[0] if argv else SERIAL_PORT

    snapshot = LocationFixer(port=port).run()
    print(describe(snapshot))
    return 0 if snapshot.has_position else 1


if __name__ == "__main__":
    sys.exit(main())
