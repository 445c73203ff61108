"""Position acquisition state machine."""

import math
import time
import logging
import threading
from contextlib import contextmanager
from typing import Callable, Optional

from .config import (
    TARGET_ACCURACY_METERS,
    ACQUISITION_TIMEOUT_SECONDS,
    STALE_READING_SECONDS,
    STABLE_DISTANCE_METERS,
    STABLE_INTERVAL_SECONDS,
)
from .errors import (
    LocationError,
    PositionFailed,
    PositionUnavailable,
    AcquisitionTimedOut,
)
from .geocode_controller import GeocodeController
from .interfaces import PositionSource
from .models import PositionReading
from .timers import TimerHandle, TimerService

logger = logging.getLogger(__name__)


class AcquisitionStateMachine:
    """
    Decides what to do with each reading until a good enough fix is held.

    Acquisition runs Idle -> Acquiring -> Idle. While acquiring, every reading
    from the position source is filtered (stale, invalid), compared against
    the best reading so far and either replaces it or is dropped. Acquisition
    ends when a reading meets the target accuracy, when readings stop
    improving but stay in place (forced-stable completion), on a fatal
    position error, or when the deadline expires with nothing accepted.

    Every accepted reading requests an address lookup unless one is already
    in flight. An in-flight lookup is never cancelled or restarted, so the
    address may describe an earlier, less accurate reading.

    All event handlers take `lock`, which is shared with the geocode
    controller, so events from the source thread, the timer thread and the
    geocode thread are applied one at a time. `on_change` runs after the
    lock is released.

    Attributes:
        best: Most accurate reading accepted in this session
        last_position_error: Fatal error that ended the session, if any
        is_acquiring: True between start() and stop()
        deadline: Handle of the armed acquisition deadline
    """

    def __init__(
        self,
        source: PositionSource,
        timers: TimerService,
        geocoder: GeocodeController,
        target_accuracy: float = TARGET_ACCURACY_METERS,
        timeout: float = ACQUISITION_TIMEOUT_SECONDS,
        stale_after: float = STALE_READING_SECONDS,
        stable_distance: float = STABLE_DISTANCE_METERS,
        stable_interval: float = STABLE_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.source = source
        self.timers = timers
        self.geocoder = geocoder
        self.lock: threading.RLock = geocoder.lock
        self.target_accuracy = target_accuracy
        self.timeout = timeout
        self.stale_after = stale_after
        self.stable_distance = stable_distance
        self.stable_interval = stable_interval
        self.clock = clock
        self.on_change: Optional[Callable[[], None]] = None

        self.best: Optional[PositionReading] = None
        self.last_position_error: Optional[LocationError] = None
        self.is_acquiring = False
        self.deadline: Optional[TimerHandle] = None
        self._depth = 0
        self._changed = False

        self.source.set_callbacks(self.on_position_reading, self.on_position_failure)

    @contextmanager
    def _transition(self):
        """
        Hold the lock for one event and notify once it is released.

        Handlers nest (a reading can call stop()); only the outermost exit
        notifies, and never while the lock is held.
        """
        with self.lock:
            self._depth += 1
            try:
                yield
            finally:
                self._depth -= 1
                notify = self._depth == 0 and self._changed
                if notify:
                    self._changed = False
        if notify and self.on_change:
            self.on_change()

    def start(self):
        """Reset state and begin acquiring."""
        with self._transition():
            if self.is_acquiring:
                logger.debug("Acquisition already running, ignoring start")
                return

            self.best = None
            self.last_position_error = None
            self.geocoder.reset()

            logger.info(
                f"Starting acquisition (target {self.target_accuracy}m, timeout {self.timeout:.0f}s)"
            )
            self.is_acquiring = True
            self.deadline = self.timers.schedule(self.timeout, self.on_deadline)
            # The source may report a failure synchronously, stopping us again
            self.source.start()
            self._changed = True

    def stop(self):
        """Stop acquiring. Does nothing if already stopped."""
        with self._transition():
            if not self.is_acquiring:
                return

            self.source.stop()
            self.is_acquiring = False
            if self.deadline:
                self.timers.cancel(self.deadline)
                self.deadline = None
            logger.info("Acquisition stopped")
            self._changed = True

    def on_position_failure(self, err: Exception):
        """Handle a failure reported by the position source."""
        with self._transition():
            if isinstance(err, PositionUnavailable):
                logger.debug(f"Position temporarily unavailable: {err}")
                return
            if not self.is_acquiring:
                return

            if not isinstance(err, LocationError):
                err = PositionFailed(str(err))
            logger.error(f"Position source failed: {err}")
            self.last_position_error = err
            self.stop()

    def on_position_reading(self, reading: PositionReading):
        """Apply one reading from the position source."""
        with self._transition():
            if not self.is_acquiring:
                logger.debug("Reading received while idle, ignoring")
                return

            # Cached fix delivered on startup
            if reading.timestamp < self.clock() - self.stale_after:
                logger.debug(f"Ignoring stale reading from {reading.timestamp:.0f}")
                return

            if not reading.is_valid:
                logger.debug(f"Ignoring invalid reading (accuracy {reading.horizontal_accuracy})")
                return

            best = self.best
            distance = math.inf
            if best is not None:
                distance = best.distance_to(reading)

            if best is not None and reading.horizontal_accuracy >= best.horizontal_accuracy:
                if (
                    distance < self.stable_distance
                    and reading.timestamp - best.timestamp > self.stable_interval
                ):
                    logger.info(
                        f"Readings settled at {best.horizontal_accuracy}m, forcing completion"
                    )
                    self.stop()
                return

            self.last_position_error = None
            self.best = reading
            logger.info(
                f"Accepted reading ({reading.latitude:.6f}, {reading.longitude:.6f}) "
                f"accuracy {reading.horizontal_accuracy}m"
            )

            if reading.horizontal_accuracy <= self.target_accuracy:
                logger.info("Target accuracy reached")
                self.stop()

            if not self.geocoder.in_flight:
                self.geocoder.request_lookup(reading)

            self._changed = True

    def on_deadline(self, handle: Optional[TimerHandle] = None):
        """Give up if nothing was accepted before the deadline."""
        with self._transition():
            if handle is not None and handle is not self.deadline:
                logger.debug(f"Ignoring expired {handle}")
                return
            if not self.is_acquiring or self.best is not None:
                return

            logger.warning(f"Acquisition timed out after {self.timeout:.0f}s")
            self.last_position_error = AcquisitionTimedOut(self.timeout)
            self.stop()
