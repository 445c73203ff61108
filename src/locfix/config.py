"""Configuration management."""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables
# Try to load from standard locations
env_paths = [
    Path("/var/lib/locfix/.env"),  # Production location
    Path(".env"),  # Current directory
    Path(__file__).parent.parent.parent / ".env",  # Project root
]
for env_path in env_paths:
    if env_path.exists():
        load_dotenv(env_path)
        break
else:
    # Fallback: try default load_dotenv() behavior
    load_dotenv()

# Serial port of the Meshtastic node providing GPS readings
SERIAL_PORT = os.getenv("SERIAL_PORT", "/dev/ttyACM0")

# Node whose positions are tracked (e.g. "!9e7878a4"); empty means the local node
NODE_ID = os.getenv("NODE_ID", "")

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Acquisition policy
# TARGET_ACCURACY_METERS: stop as soon as a reading is at least this accurate
# ACQUISITION_TIMEOUT_SECONDS: give up if no reading was accepted by then
# STALE_READING_SECONDS: readings older than this are cached fixes, ignore them
# STABLE_DISTANCE_METERS / STABLE_INTERVAL_SECONDS: a reading closer than this
# to the best one, and this much newer, means the receiver has settled
TARGET_ACCURACY_METERS = float(os.getenv("TARGET_ACCURACY_METERS", "10"))
ACQUISITION_TIMEOUT_SECONDS = float(os.getenv("ACQUISITION_TIMEOUT_SECONDS", "60"))
STALE_READING_SECONDS = float(os.getenv("STALE_READING_SECONDS", "5"))
STABLE_DISTANCE_METERS = float(os.getenv("STABLE_DISTANCE_METERS", "1"))
STABLE_INTERVAL_SECONDS = float(os.getenv("STABLE_INTERVAL_SECONDS", "10"))

# Accuracy estimation for Meshtastic position packets
# Horizontal accuracy = HDOP * UERE (user equivalent range error)
GPS_UERE_METERS = float(os.getenv("GPS_UERE_METERS", "5"))
# Used when a packet carries no dilution of precision at all
UNKNOWN_ACCURACY_METERS = float(os.getenv("UNKNOWN_ACCURACY_METERS", "100"))

# Permission state
# LOCATION_AUTHORIZATION: undetermined | denied | restricted | authorized
LOCATION_SERVICES_ENABLED = os.getenv("LOCATION_SERVICES_ENABLED", "true").lower() == "true"
LOCATION_AUTHORIZATION = os.getenv("LOCATION_AUTHORIZATION", "undetermined").lower()

# Nominatim reverse geocoding API
NOMINATIM_API_URL = os.getenv("NOMINATIM_API_URL", "https://nominatim.openstreetmap.org/reverse")
NOMINATIM_RATE_LIMIT_SECONDS = 1  # Nominatim requires max 1 request per second
NOMINATIM_TIMEOUT = 5  # seconds
NOMINATIM_LANGUAGE = os.getenv("NOMINATIM_LANGUAGE", "en")

# Project information
PROJECT_NAME = "locfix"
USER_AGENT = "locfix/0.1"  # Required by Nominatim
