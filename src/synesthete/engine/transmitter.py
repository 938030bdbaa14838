import socket
import struct

from synesthete.config import UDP_IP, UDP_PORT_ENGINE
from synesthete.engine.analyzer import AnalysisSnapshot
from synesthete.logging_utils import log_event

# tick + 4 bands, beat, beat intensity, dominant note, intensity, high energy + r, g, b
PACKET_FORMAT = "!I12f"


def pack_snapshot(snap: AnalysisSnapshot) -> bytes:
    return struct.pack(
        PACKET_FORMAT,
        snap.tick,
        snap.low,
        snap.low_mid,
        snap.mid,
        snap.high,
        1.0 if snap.beat else 0.0,
        snap.beat_intensity,
        float(snap.dominant_note),
        snap.intensity,
        1.0 if snap.high_energy else 0.0,
        *snap.color,
    )


class NetworkTransmitter:
    def __init__(self, ip: str = UDP_IP, port: int = UDP_PORT_ENGINE):
        self.dest = (ip, port)
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)

    def send(self, snap: AnalysisSnapshot) -> None:
        try:
            self.sock.sendto(pack_snapshot(snap), self.dest)
        except (OSError, struct.error) as e:
            log_event("WARN", "Transmitter", "Send error", error=e)

    def close(self) -> None:
        """Closes the UDP socket."""
        self.sock.close()
