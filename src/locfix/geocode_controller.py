"""Single-flight reverse geocoding."""

import logging
import threading
from typing import Callable, Optional

from .errors import GeocodeFailed
from .interfaces import AddressResolver
from .models import Address, PositionReading

logger = logging.getLogger(__name__)

Runner = Callable[[Callable[[], None]], None]


def run_in_thread(job: Callable[[], None]):
    """Run job on a new daemon thread."""
    thread = threading.Thread(target=job, name="locfix-geocode", daemon=True)
    thread.start()


class GeocodeController:
    """
    Keeps at most one address lookup outstanding.

    The lookup runs through `runner` (a daemon thread by default) so it never
    blocks position updates. When it completes, the result or error is stored
    under `lock` in one step, `in_flight` drops back to False and, once the
    lock is released, `on_complete` is called whether or not acquisition is
    still running.

    Attributes:
        address: Last resolved address, if any
        last_geocode_error: Error from the last lookup, if it failed
        in_flight: True while a lookup is outstanding

    Note:
        Callers check `in_flight` before requesting a lookup. A request made
        while one is outstanding is dropped.
    """

    def __init__(
        self,
        resolver: AddressResolver,
        lock: Optional[threading.RLock] = None,
        runner: Runner = run_in_thread,
    ):
        self.resolver = resolver
        self.lock = lock or threading.RLock()
        self.runner = runner
        self.on_complete: Optional[Callable[[], None]] = None

        self.address: Optional[Address] = None
        self.last_geocode_error: Optional[GeocodeFailed] = None
        self.in_flight = False
        self._generation = 0

    def reset(self):
        """Forget any result and detach from an outstanding lookup."""
        with self.lock:
            self.address = None
            self.last_geocode_error = None
            self.in_flight = False
            self._generation += 1

    def request_lookup(self, reading: PositionReading):
        """Start resolving reading unless a lookup is already outstanding."""
        with self.lock:
            if self.in_flight:
                logger.debug("Geocode already in flight, dropping request")
                return
            self.in_flight = True
            generation = self._generation

        logger.info(f"Reverse geocoding ({reading.latitude:.6f}, {reading.longitude:.6f})")
        self.runner(lambda: self._lookup(reading, generation))

    def _lookup(self, reading: PositionReading, generation: int):
        address: Optional[Address] = None
        error: Optional[GeocodeFailed] = None
        try:
            address = self.resolver.resolve(reading)
        except GeocodeFailed as e:
            error = e
        except Exception as e:
            logger.error(f"Unexpected error in address resolver: {e}")
            error = GeocodeFailed(str(e))

        self._complete(generation, address, error)

    def _complete(
        self,
        generation: int,
        address: Optional[Address],
        error: Optional[GeocodeFailed],
    ):
        with self.lock:
            if generation != self._generation:
                logger.debug("Discarding geocode result from a previous session")
                return
            self.in_flight = False
            if error is None:
                self.address = address
                self.last_geocode_error = None
                if address is None:
                    logger.info("No address found")
                else:
                    logger.info(f"Geocoded address: {address}")
            else:
                self.address = None
                self.last_geocode_error = error
                logger.warning(f"Geocoding failed: {error}")

        if self.on_complete:
            self.on_complete()
