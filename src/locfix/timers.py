"""One-shot deadline timers."""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class TimerHandle:
    """Identifies one scheduled callback."""

    _counter = 0
    _counter_lock = threading.Lock()

    def __init__(self, delay: float):
        with TimerHandle._counter_lock:
            TimerHandle._counter += 1
            self.id = TimerHandle._counter
        self.delay = delay
        self.cancelled = False
        self._timer: Optional[threading.Timer] = None

    def __repr__(self) -> str:
        return f"TimerHandle(id={self.id}, delay={self.delay}, cancelled={self.cancelled})"


TimerCallback = Callable[[TimerHandle], None]


class TimerService(ABC):
    """Schedules one-shot callbacks."""

    @abstractmethod
    def schedule(self, delay: float, callback: TimerCallback) -> TimerHandle:
        """Run callback(handle) once after delay seconds."""

    @abstractmethod
    def cancel(self, handle: TimerHandle):
        """Cancel a scheduled callback. Safe to call more than once."""


class ThreadingTimerService(TimerService):
    """
    Timer service backed by threading.Timer.

    Each deadline gets its own daemon timer thread. Cancelling a timer that
    already fired is harmless; the callback may still be running or about to
    run, so receivers must check the handle they get against their own state.
    """

    def schedule(self, delay: float, callback: TimerCallback) -> TimerHandle:
        handle = TimerHandle(delay)

        def fire():
            if handle.cancelled:
                return
            try:
                callback(handle)
            except Exception as e:
                logger.error(f"Error in timer callback {handle}: {e}")

        timer = threading.Timer(delay, fire)
        timer.daemon = True
        handle._timer = timer
        timer.start()
        logger.debug(f"Scheduled {handle}")
        return handle

    def cancel(self, handle: TimerHandle):
        if handle.cancelled:
            return
        handle.cancelled = True
        if handle._timer:
            handle._timer.cancel()
        logger.debug(f"Cancelled {handle}")
