import json
import queue
import socket
import threading

from synesthete.config import UDP_IP, UDP_PORT_COMMANDS
from synesthete.logging_utils import log_event


class CommandListener:
    def __init__(self, ip: str = UDP_IP, port: int = UDP_PORT_COMMANDS):
        """Receives JSON control messages on a background thread.

        Updates are only queued here. The tick loop calls :meth:`drain` between
        ticks, so a mode switch never lands halfway through an analysis tick.
        """
        self.pending: queue.Queue[tuple[str, object]] = queue.Queue()
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self.sock.bind((ip, port))
        self.address = self.sock.getsockname()
        self.running = True
        self.thread = threading.Thread(target=self._listen, daemon=True)
        self.thread.start()

    def _listen(self) -> None:
        """Listens for parameter updates from the controls."""
        self.sock.settimeout(0.1)  # Allow thread to exit gracefully
        while self.running:
            try:
                msg, _ = self.sock.recvfrom(1024)
            except socket.timeout:
                continue
            except OSError:
                break  # socket closed
            try:
                updates = json.loads(msg.decode())
            except (UnicodeDecodeError, json.JSONDecodeError) as e:
                log_event("WARN", "Commands", "Dropped malformed command", error=e)
                continue
            if not isinstance(updates, dict):
                log_event("WARN", "Commands", "Dropped non-object command", payload=updates)
                continue
            for k, v in updates.items():
                self.pending.put((k, v))

    def drain(self) -> list[tuple[str, object]]:
        """Everything received since the last call, oldest first."""
        items = []
        while True:
            try:
                items.append(self.pending.get_nowait())
            except queue.Empty:
                return items

    def close(self) -> None:
        """Stops the listener thread and closes the socket."""
        self.running = False
        self.sock.close()
