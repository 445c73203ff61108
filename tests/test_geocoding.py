"""Tests for Nominatim reverse geocoding."""

import time

import pytest
import requests
from unittest.mock import Mock, patch

from locfix.errors import GeocodeFailed
from locfix.geocode_controller import GeocodeController
from locfix.geocoding import NominatimResolver
from locfix.models import Address, AddressCase, PositionReading
from locfix.session import SessionController

from conftest import FakePermissions, make_reading

BOGOTA_RESPONSE = {
    "display_name": "7-82, Carrera 7, Chapinero, Bogotá, Colombia",
    "address": {
        "house_number": "7-82",
        "road": "Carrera 7",
        "suburb": "Chapinero",
        "city": "Bogotá",
        "state": "Bogotá, Distrito Capital",
        "postcode": "110231",
        "country": "Colombia",
    },
}


@pytest.fixture
def resolver():
    """Create resolver."""
    return NominatimResolver()


def mock_response(status_code=200, payload=None, text=""):
    response = Mock()
    response.status_code = status_code
    response.json.return_value = payload
    response.text = text
    return response


@patch('locfix.geocoding.requests.get')
def test_resolve_success(mock_get, resolver):
    """Test successful reverse geocoding."""
    mock_get.return_value = mock_response(payload=BOGOTA_RESPONSE)

    address = resolver.resolve(make_reading(10))

    assert address == Address(
        house_number="7-82",
        road="Carrera 7",
        locality="Bogotá",
        administrative_area="Bogotá, Distrito Capital",
        postal_code="110231",
        country="Colombia",
        display_name=BOGOTA_RESPONSE["display_name"],
    )
    params = mock_get.call_args[1]["params"]
    assert params["lat"] == 4.6097
    assert params["lon"] == -74.0817
    assert params["format"] == "json"
    assert "User-Agent" in mock_get.call_args[1]["headers"]


@patch('locfix.geocoding.requests.get')
def test_resolve_api_error(mock_get, resolver):
    """Test non-200 responses raise GeocodeFailed."""
    mock_get.return_value = mock_response(status_code=500, text="Internal Server Error")

    with pytest.raises(GeocodeFailed, match="500"):
        resolver.resolve(make_reading(10))


@patch('locfix.geocoding.requests.get')
def test_resolve_timeout(mock_get, resolver):
    """Test timeout handling."""
    mock_get.side_effect = requests.exceptions.Timeout()

    with pytest.raises(GeocodeFailed, match="timeout"):
        resolver.resolve(make_reading(10))


@patch('locfix.geocoding.requests.get')
def test_resolve_connection_error(mock_get, resolver):
    """Test connection error handling."""
    mock_get.side_effect = requests.exceptions.ConnectionError()

    with pytest.raises(GeocodeFailed, match="connection"):
        resolver.resolve(make_reading(10))


@patch('locfix.geocoding.requests.get')
def test_resolve_unable_to_geocode(mock_get, resolver):
    """Test positions Nominatim cannot geocode give no address."""
    mock_get.return_value = mock_response(payload={"error": "Unable to geocode"})

    assert resolver.resolve(make_reading(10)) is None


@patch('locfix.geocoding.requests.get')
def test_resolve_without_components(mock_get, resolver):
    """Test replies without usable address parts give no address."""
    mock_get.return_value = mock_response(payload={"address": {}})

    assert resolver.resolve(make_reading(10)) is None


@patch('locfix.geocoding.requests.get')
def test_resolve_unexpected_payload(mock_get, resolver):
    """Test a non-object JSON reply raises GeocodeFailed."""
    mock_get.return_value = mock_response(payload=["unexpected"])

    with pytest.raises(GeocodeFailed):
        resolver.resolve(make_reading(10))


@patch('locfix.geocoding.requests.get')
def test_unable_to_geocode_reported_as_not_found(mock_get, source, timers, runner):
    """Test a position without address shows "not found", not an error."""
    mock_get.return_value = mock_response(payload={"error": "Unable to geocode"})
    geocoder = GeocodeController(NominatimResolver(), runner=runner)
    session = SessionController(
        source=source,
        resolver=geocoder.resolver,
        timers=timers,
        permissions=FakePermissions(),
        geocoder=geocoder,
        target_accuracy=10,
    )

    session.toggle()
    source.emit(PositionReading(4.6097, -74.0817, 20.0, time.time()))
    runner.run_next()

    snap = session.snapshot()
    assert snap.address_status == AddressCase.NOT_FOUND
    assert snap.last_geocode_error is None
    assert snap.is_acquiring


@patch('locfix.geocoding.requests.get')
def test_resolve_malformed_json(mock_get, resolver):
    """Test invalid JSON raises GeocodeFailed."""
    response = mock_response()
    response.json.side_effect = ValueError("Expecting value")
    mock_get.return_value = response

    with pytest.raises(GeocodeFailed):
        resolver.resolve(make_reading(10))


def test_parse_address_fallbacks():
    """Test locality and road fallbacks."""
    address = NominatimResolver.parse_address({
        "address": {"pedestrian": "Calle 85", "town": "Chía", "region": "Cundinamarca"},
    })

    assert address.road == "Calle 85"
    assert address.locality == "Chía"
    assert address.administrative_area == "Cundinamarca"


def test_parse_address_empty():
    """Test responses without components give no address."""
    assert NominatimResolver.parse_address({"address": {}}) is None
    assert NominatimResolver.parse_address({}) is None
