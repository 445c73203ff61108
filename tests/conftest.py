"""Shared fakes for acquisition tests."""

import threading

import pytest

from locfix.geocode_controller import GeocodeController
from locfix.interfaces import AddressResolver, PermissionAuthority, PositionSource
from locfix.models import Address, AuthorizationStatus, PositionReading
from locfix.timers import TimerHandle, TimerService

NOW = 1_000_000.0


class FakeSource(PositionSource):
    """Position source driven by the test."""

    def __init__(self):
        super().__init__()
        self.running = False
        self.start_count = 0
        self.stop_count = 0

    def start(self):
        self.running = True
        self.start_count += 1

    def stop(self):
        self.running = False
        self.stop_count += 1

    def emit(self, reading):
        self.on_reading(reading)

    def fail(self, error):
        self.on_failure(error)


class FakeTimers(TimerService):
    """Timer service whose deadlines fire only when the test says so."""

    def __init__(self):
        self.scheduled = []

    def schedule(self, delay, callback):
        handle = TimerHandle(delay)
        self.scheduled.append((handle, callback))
        return handle

    def cancel(self, handle):
        handle.cancelled = True

    @property
    def active(self):
        return [h for h, _ in self.scheduled if not h.cancelled]

    def fire(self, handle=None):
        for h, callback in self.scheduled:
            if handle is None or h is handle:
                callback(h)
                return


class ManualRunner:
    """Collects lookup jobs so the test decides when they complete."""

    def __init__(self):
        self.jobs = []

    def __call__(self, job):
        self.jobs.append(job)

    def run_next(self):
        self.jobs.pop(0)()


class FakeResolver(AddressResolver):
    def __init__(self):
        self.calls = []
        self.error = None

    def resolve(self, reading):
        self.calls.append(reading)
        if self.error:
            raise self.error
        return Address(road=f"Road {len(self.calls)}", locality="Bogota")


class FakePermissions(PermissionAuthority):
    def __init__(self, status=AuthorizationStatus.AUTHORIZED, enabled=True):
        self.status = status
        self.enabled = enabled
        self.requests = 0

    def authorization_status(self):
        return self.status

    def request_authorization(self):
        self.requests += 1

    def services_enabled(self):
        return self.enabled


def lock_is_free(lock) -> bool:
    """Whether another thread can take lock right now."""
    result = []

    def take():
        acquired = lock.acquire(timeout=1)
        if acquired:
            lock.release()
        result.append(acquired)

    thread = threading.Thread(target=take)
    thread.start()
    thread.join()
    return result[0]


def make_reading(accuracy, age=0.0, lat=4.6097, lon=-74.0817, timestamp=None):
    """Reading taken `age` seconds before NOW."""
    if timestamp is None:
        timestamp = NOW - age
    return PositionReading(
        latitude=lat,
        longitude=lon,
        horizontal_accuracy=accuracy,
        timestamp=timestamp,
    )


@pytest.fixture
def source():
    return FakeSource()


@pytest.fixture
def timers():
    return FakeTimers()


@pytest.fixture
def runner():
    return ManualRunner()


@pytest.fixture
def resolver():
    return FakeResolver()


@pytest.fixture
def geocoder(resolver, runner):
    return GeocodeController(resolver, runner=runner)


@pytest.fixture
def clock():
    """Mutable clock; set clock.now to move time."""
    class Clock:
        now = NOW

        def __call__(self):
            return self.now

    return Clock()

