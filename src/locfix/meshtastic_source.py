"""Position readings from a Meshtastic node using meshtastic-python library."""

import logging
import time
from typing import Optional, Dict, Any

try:
    import meshtastic.serial_interface
    from pubsub import pub
    MESHTASTIC_AVAILABLE = True
except ImportError:
    MESHTASTIC_AVAILABLE = False
    pub = None

from .config import SERIAL_PORT, NODE_ID, GPS_UERE_METERS, UNKNOWN_ACCURACY_METERS
from .errors import PositionFailed, PositionUnavailable
from .interfaces import PositionSource
from .models import PositionReading

logger = logging.getLogger(__name__)


def format_node_id(from_node) -> str:
    """Convert a node number or id to the !12345678 form."""
    if isinstance(from_node, int):
        return f"!{from_node:08x}"
    node_id = str(from_node)
    if not node_id.startswith("!") and len(node_id) > 0:
        node_id = f"!{node_id}"
    return node_id


def estimate_accuracy(position: Dict[str, Any], uere: float = GPS_UERE_METERS) -> float:
    """
    Estimate horizontal accuracy in meters from a decoded position.

    Meshtastic reports dilution of precision in hundredths. HDOP is
    preferred, PDOP is an upper bound when HDOP is missing.
    """
    dop = position.get("HDOP") or position.get("PDOP")
    if dop:
        return dop / 100.0 * uere
    return UNKNOWN_ACCURACY_METERS


class MeshtasticPositionSource(PositionSource):
    """
    Position source fed by a USB-attached Meshtastic device.

    Connects with meshtastic-python, subscribes to decoded position packets
    and turns those from the tracked node into PositionReading objects.
    Packets without coordinates are reported as PositionUnavailable; losing
    the serial connection is reported as PositionFailed.

    Attributes:
        port: Serial port path (e.g., "/dev/ttyACM0")
        node_id: Node to track, or empty for the locally attached node
        interface: meshtastic SerialInterface object
        running: Flag indicating if the source is delivering readings
    """

    def __init__(self, port: str = SERIAL_PORT, node_id: str = NODE_ID):
        if not MESHTASTIC_AVAILABLE:
            raise ImportError(
                "meshtastic library not available. Install with: pip install locfix[meshtastic]"
            )
        super().__init__()
        self.port = port
        self.node_id = node_id
        self.interface: Optional[meshtastic.serial_interface.SerialInterface] = None
        self.running = False
        self._tracked_node: Optional[str] = None

    def connect(self) -> bool:
        """Connect to Meshtastic device."""
        try:
            if self.interface:
                try:
                    _ = self.interface.getMyNodeInfo()
                    return True
                except Exception:
                    # Connection lost, need to reconnect
                    self.interface = None

            logger.info(f"Connecting to Meshtastic device at {self.port}...")
            self.interface = meshtastic.serial_interface.SerialInterface(
                devPath=self.port,
                noProto=False,
                connectNow=True,
            )
            logger.info(f"Connected to Meshtastic device at {self.port}")
            self._tracked_node = self._resolve_tracked_node()
            return True
        except Exception as e:
            logger.error(f"Failed to connect to {self.port}: {e}")
            self.interface = None
            return False

    def _resolve_tracked_node(self) -> Optional[str]:
        if self.node_id:
            return format_node_id(self.node_id)
        try:
            node_num = self.interface.myInfo.my_node_num
            return format_node_id(node_num)
        except Exception as e:
            logger.debug(f"Could not determine local node number: {e}")
            return None

    def disconnect(self):
        """Disconnect from Meshtastic device."""
        if self.interface:
            try:
                self.interface.close()
                logger.info("Disconnected from Meshtastic device")
            except Exception as e:
                logger.debug(f"Error closing interface: {e}")
            finally:
                self.interface = None

    def start(self):
        """
        Start delivering readings.

        Only subscribes to the pubsub topics; connect() must have succeeded
        first, since opening the serial interface blocks through the device
        handshake.
        """
        if self.running:
            return

        if not self.interface:
            self._fail(PositionFailed(f"Not connected to Meshtastic device at {self.port}"))
            return

        self.running = True
        pub.subscribe(self._on_receive_position, "meshtastic.receive.position")
        pub.subscribe(self._on_connection_lost, "meshtastic.connection.lost")
        logger.info(f"Meshtastic position source started (tracking {self._tracked_node or 'any node'})")

    def stop(self):
        """
        Stop delivering readings.

        The serial connection stays open so the next start() is fast; this may
        be called from inside a pubsub callback, where closing the interface
        would join the thread we are running on. Use close() to disconnect.
        """
        if not self.running:
            return
        self.running = False
        if pub:
            pub.unsubscribe(self._on_receive_position, "meshtastic.receive.position")
            pub.unsubscribe(self._on_connection_lost, "meshtastic.connection.lost")
        logger.info("Meshtastic position source stopped")

    def close(self):
        """Stop and disconnect from the device."""
        self.stop()
        self.disconnect()

    def _fail(self, error: Exception):
        if self.on_failure:
            self.on_failure(error)

    def _on_connection_lost(self, interface, topic=None):
        """Handle loss of the serial connection."""
        if not self.running:
            return
        logger.error("Meshtastic connection lost")
        self._fail(PositionFailed("Meshtastic connection lost"))

    def _on_receive_position(self, packet, interface):
        """Handle received position update from Meshtastic."""
        if not self.running or not self.on_reading:
            return

        try:
            decoded = packet.get("decoded", {})
            position_data = decoded.get("position", {})
            from_node = packet.get("from")

            if not from_node:
                return

            node_id = format_node_id(from_node)
            if self._tracked_node and node_id != self._tracked_node:
                return

            reading = self.reading_from_position(position_data, packet.get("rxTime"), time.time())
            if reading is None:
                self._fail(PositionUnavailable(f"No coordinates in position from {node_id}"))
                return

            logger.debug(
                f"Position from {node_id}: {reading.latitude}, {reading.longitude} "
                f"(±{reading.horizontal_accuracy:.1f}m)"
            )
            self.on_reading(reading)

        except Exception as e:
            logger.error(f"Error processing position message: {e}")

    @staticmethod
    def reading_from_position(
        position: Dict[str, Any],
        rx_time=None,
        received_at: Optional[float] = None,
    ) -> Optional[PositionReading]:
        """
        Convert a decoded Meshtastic position to a PositionReading.

        The timestamp is the host arrival time, moved back by the age of the
        fix as measured on the node (rxTime - time). Both node times come from
        the same clock, so drift between node and host does not matter.

        Args:
            position: Decoded position payload
            rx_time: Node receive time of the packet
            received_at: Host arrival time, defaults to now

        Returns:
            PositionReading, or None if the position has no coordinates
        """
        # Meshtastic uses integer coordinates (1e-7 degrees)
        lat_i = position.get("latitudeI")
        lon_i = position.get("longitudeI")
        if lat_i is None or lon_i is None:
            return None

        if received_at is None:
            received_at = time.time()
        fix_time = position.get("time")
        fix_age = 0.0
        if fix_time and rx_time:
            fix_age = max(0.0, float(rx_time) - float(fix_time))

        return PositionReading(
            latitude=lat_i / 1e7,
            longitude=lon_i / 1e7,
            horizontal_accuracy=estimate_accuracy(position),
            timestamp=received_at - fix_age,
        )
