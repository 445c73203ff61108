"""Reverse geocoding using OSM Nominatim API."""

import time
import logging
import threading
import requests
from typing import Dict, Any, Optional

from .config import (
    NOMINATIM_API_URL,
    NOMINATIM_RATE_LIMIT_SECONDS,
    NOMINATIM_TIMEOUT,
    NOMINATIM_LANGUAGE,
    USER_AGENT,
)
from .errors import GeocodeFailed
from .interfaces import AddressResolver
from .models import Address, PositionReading

logger = logging.getLogger(__name__)


class NominatimResolver(AddressResolver):
    """Address resolver backed by the Nominatim reverse endpoint."""

    def __init__(
        self,
        api_url: str = NOMINATIM_API_URL,
        language: str = NOMINATIM_LANGUAGE,
        timeout: float = NOMINATIM_TIMEOUT,
    ):
        self.api_url = api_url
        self.language = language
        self.timeout = timeout
        self.last_request_time = 0.0
        self._rate_lock = threading.Lock()

    def resolve(self, reading: PositionReading) -> Optional[Address]:
        """
        Reverse geocode a reading to a structured address.

        Args:
            reading: Position to resolve

        Returns:
            Address built from the Nominatim address details, or None if
            Nominatim has no address for the position

        Raises:
            GeocodeFailed: on timeout, connection error, API error or a
                malformed response

        Note:
            Respects Nominatim rate limiting (max 1 request per second).
        """
        lat, lon = reading.latitude, reading.longitude

        # Rate limiting
        with self._rate_lock:
            now = time.time()
            time_since_last = now - self.last_request_time
            if time_since_last < NOMINATIM_RATE_LIMIT_SECONDS:
                sleep_time = NOMINATIM_RATE_LIMIT_SECONDS - time_since_last
                logger.debug(f"Geocoding rate limiting: sleeping {sleep_time:.1f}s")
                time.sleep(sleep_time)
            self.last_request_time = time.time()

        params = {
            "lat": lat,
            "lon": lon,
            "format": "json",
            "addressdetails": 1,
            "accept-language": self.language,
        }

        logger.debug(f"Reverse geocoding: ({lat}, {lon})")

        try:
            response = requests.get(
                self.api_url,
                params=params,
                timeout=self.timeout,
                headers={"User-Agent": USER_AGENT},
            )
        except requests.exceptions.Timeout:
            logger.debug("Geocoding API timeout")
            raise GeocodeFailed("Geocoding API timeout")
        except requests.exceptions.ConnectionError:
            logger.debug("Geocoding API connection error")
            raise GeocodeFailed("Geocoding API connection error (no internet?)")
        except requests.exceptions.RequestException as e:
            logger.debug(f"Geocoding request failed: {e}")
            raise GeocodeFailed(f"Geocoding request failed: {e}")

        if response.status_code != 200:
            logger.debug(f"Geocoding API error {response.status_code}: {response.text[:100]}")
            raise GeocodeFailed(f"Geocoding API error {response.status_code}")

        try:
            data = response.json()
        except ValueError:
            raise GeocodeFailed("Malformed geocoding response")
        if not isinstance(data, dict):
            raise GeocodeFailed("Malformed geocoding response")

        if "error" in data:
            # Nominatim answers 200 with {"error": "Unable to geocode"} over the sea
            logger.debug(f"No address for ({lat}, {lon}): {data['error']}")
            return None

        address = self.parse_address(data)
        if address is None:
            logger.debug("No address components found")
            return None

        logger.debug(f"Geocoded address: {address}")
        return address

    @staticmethod
    def parse_address(data: Dict[str, Any]) -> Optional[Address]:
        """
        Build an Address from a Nominatim reverse response.

        Returns:
            Address, or None if the response has no usable components
        """
        details = data.get("address", {}) or {}

        road = (
            details.get("road") or
            details.get("pedestrian") or
            details.get("footway") or
            details.get("path")
        )
        locality = (
            details.get("city") or
            details.get("town") or
            details.get("village") or
            details.get("municipality") or
            details.get("suburb")
        )
        admin = details.get("state") or details.get("region") or details.get("county")

        address = Address(
            house_number=details.get("house_number"),
            road=road,
            locality=locality,
            administrative_area=admin,
            postal_code=details.get("postcode"),
            country=details.get("country"),
            display_name=data.get("display_name"),
        )
        if not any((address.road, address.locality, address.administrative_area,
                    address.country, address.display_name)):
            return None
        return address
