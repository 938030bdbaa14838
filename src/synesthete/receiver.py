import errno
import socket
import struct

from synesthete.config import UDP_IP, UDP_PORT_ENGINE
from synesthete.engine.transmitter import PACKET_FORMAT
from synesthete.logging_utils import log_event


def unpack_snapshot(data: bytes) -> dict:
    """Decode one engine packet into the renderer-facing dictionary."""
    u = struct.unpack(PACKET_FORMAT, data)
    return {
        "tick": u[0],
        "low": u[1],
        "lowMid": u[2],
        "mid": u[3],
        "high": u[4],
        "beat": u[5] > 0.5,  # Convert float to bool
        "beatIntensity": u[6],
        "dominantNote": int(round(u[7])),
        "intensity": u[8],
        "highEnergy": u[9] > 0.5,
        "color": (u[10], u[11], u[12]),
    }


class SnapshotReceiver:
    def __init__(self, ip: str = UDP_IP, port: int = UDP_PORT_ENGINE):
        """
        Renderer-side UDP receiver for engine snapshots.
        The packet format is !I12f (52 bytes).
        """
        self.ip = ip
        self.port = port
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self.sock.setblocking(False)
        self.packet_size = struct.calcsize(PACKET_FORMAT)

        # Internal state to hold the latest data
        self.latest_data = {
            "tick": 0,
            "low": 0.0,
            "lowMid": 0.0,
            "mid": 0.0,
            "high": 0.0,
            "beat": False,
            "beatIntensity": 0.0,
            "dominantNote": 0,
            "intensity": 0.0,
            "highEnergy": False,
            "color": (0.0, 0.0, 0.0),
        }
        self._is_bound = False

    def bind(self) -> None:
        """Binds the socket to the address. Call this once before receiving."""
        self.sock.bind((self.ip, self.port))
        self._is_bound = True
        log_event("INFO", "Receiver", "Bound", address=f"{self.ip}:{self.port}")

    def get_latest(self) -> dict:
        """
        Non-blocking fetch. Drains the UDP buffer to get the MOST RECENT packet.
        Returns the data dictionary (unchanged if nothing new arrived).
        """
        if not self._is_bound:
            self.bind()

        # Loop until the buffer is empty so queued packets don't cause visual lag
        while True:
            try:
                data, _ = self.sock.recvfrom(self.packet_size)
            except OSError as e:
                if e.errno not in (errno.EAGAIN, errno.EWOULDBLOCK):
                    log_event("WARN", "Receiver", "Socket error", error=e)
                break
            if len(data) == self.packet_size:
                self.latest_data = unpack_snapshot(data)

        return self.latest_data

    def close(self) -> None:
        """Closes the socket."""
        self.sock.close()
