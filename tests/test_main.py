"""Tests for the command line runner."""

import pytest
from unittest.mock import Mock, patch

from locfix import main as main_module
from locfix.errors import AcquisitionTimedOut, PositionFailed
from locfix.main import LocationFixer, describe
from locfix.models import (
    Address,
    AddressCase,
    AuthorizationStatus,
    PositionReading,
    Snapshot,
    StatusCase,
)

from conftest import FakeSource, FakeResolver


def snapshot(**overrides):
    values = dict(
        best=None,
        address=None,
        is_acquiring=False,
        is_geocode_in_flight=False,
        last_position_error=None,
        last_geocode_error=None,
        services_disabled=False,
        status=StatusCase.IDLE,
        address_status=AddressCase.NONE,
    )
    values.update(overrides)
    return Snapshot(**values)


def test_describe_idle():
    assert describe(snapshot()) == "Not acquiring"


def test_describe_error():
    snap = snapshot(status=StatusCase.ERROR, last_position_error=AcquisitionTimedOut(60))
    assert describe(snap) == "Error getting location"


def test_describe_found_with_address():
    """Test coordinates and address lines are printed."""
    snap = snapshot(
        best=PositionReading(4.6097, -74.0817, 6.0, 0.0),
        address=Address(road="Carrera 7", locality="Bogotá"),
        status=StatusCase.FOUND,
        address_status=AddressCase.FOUND,
    )
    assert describe(snap) == "4.60970000, -74.08170000 (±6.0m)\nCarrera 7\nBogotá"


def test_describe_found_without_address():
    snap = snapshot(
        best=PositionReading(4.6097, -74.0817, 6.0, 0.0),
        status=StatusCase.FOUND,
        address_status=AddressCase.NOT_FOUND,
    )
    assert describe(snap).endswith("No address found")


@pytest.fixture
def fixer():
    """Create LocationFixer wired to fakes instead of hardware and network."""
    fake_source = FakeSource()
    fake_source.port = "/dev/ttyTEST"
    fake_source.close = fake_source.stop
    fake_source.connect = Mock(return_value=True)
    with patch.object(main_module, "MeshtasticPositionSource", return_value=fake_source), \
            patch.object(main_module, "NominatimResolver", return_value=FakeResolver()), \
            patch.object(main_module.signal, "signal"):
        yield LocationFixer(port="/dev/ttyTEST")


def test_run_acquires_fix(fixer):
    """Test a full run with a reading arriving as soon as the source starts."""
    source = fixer.source
    original_start = source.start

    def start():
        original_start()
        now = main_module.time.time()
        source.emit(PositionReading(4.6097, -74.0817, 5.0, now))

    source.start = start
    fixer.permissions.status = AuthorizationStatus.AUTHORIZED

    result = fixer.run(wait=5)

    assert result.has_position
    assert result.best.horizontal_accuracy == 5.0
    assert result.has_address
    assert not result.is_acquiring


def test_run_denied(fixer):
    """Test a denied authorization ends the run without starting."""
    fixer.permissions.status = AuthorizationStatus.DENIED

    result = fixer.run(wait=5)

    assert not result.has_position
    assert result.status == StatusCase.SERVICES_DISABLED
    assert fixer.source.start_count == 0


def test_run_connects_before_starting(fixer):
    """Test the device is connected before the session starts the source."""
    source = fixer.source
    order = []
    source.connect.side_effect = lambda: order.append("connect") or True
    original_start = source.start
    source.start = lambda: order.append("start") or original_start()
    fixer.permissions.status = AuthorizationStatus.AUTHORIZED

    fixer.run(wait=0)

    assert order == ["connect", "start"]


def test_run_connect_failure_reports_error(fixer):
    """Test a device that cannot be opened ends the run with PositionFailed."""
    source = fixer.source
    source.connect.return_value = False
    source.start = lambda: source.fail(PositionFailed("Not connected"))
    fixer.permissions.status = AuthorizationStatus.AUTHORIZED

    result = fixer.run(wait=5)

    source.connect.assert_called_once()
    assert result.status == StatusCase.ERROR
    assert isinstance(result.last_position_error, PositionFailed)
    assert not result.is_acquiring
