"""Downstream sink: one TCP connection to a logstash-style line receiver.

Specified as ``tcp://<host>:<port>``. Every runner thread writes to the same
connection, so writes are serialized here: one frame per sendall(), under a
lock, so frames from different streams never interleave mid-line.

No buffering, no retry, no reconnect. A failed write is the caller's problem.
"""

from __future__ import annotations

import socket
import threading
from typing import Any, Callable
from urllib.parse import urlsplit

from logmux.observability.logging import get_logger

Dialer = Callable[[tuple[str, int]], Any]


def _get_logger():
    return get_logger(__name__)


class LogstashSink:
    """A configured sink target plus, once opened, its connection."""

    def __init__(self, raw: str, host: str, port: int) -> None:
        self.raw = raw
        self.host = host
        self.port = port
        self._conn: Any = None
        self._lock = threading.Lock()

    @classmethod
    def parse(cls, raw: str) -> LogstashSink:
        """Validate a ``tcp://host:port`` target. Raises ValueError."""
        parts = urlsplit(raw)
        if parts.scheme != "tcp":
            raise ValueError(f"logstash target {raw!r} must use the tcp:// scheme")
        try:
            port = parts.port
        except ValueError as err:
            raise ValueError(f"logstash target {raw!r} has an invalid port") from err
        if not parts.hostname or port is None:
            raise ValueError(f"logstash target {raw!r} must be tcp://<hostname>:<port>")
        return cls(raw=raw, host=parts.hostname, port=port)

    @property
    def address(self) -> tuple[str, int]:
        return (self.host, self.port)

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def open(self, dial: Dialer = socket.create_connection) -> None:
        """Connect to the target. Connection errors propagate."""
        self._conn = dial(self.address)
        _get_logger().info("sink.connected", target=self.raw)

    def write(self, data: bytes) -> None:
        """Send one frame in full, atomically with respect to other writers."""
        with self._lock:
            if self._conn is None:
                raise RuntimeError(f"sink {self.raw} is not open")
            self._conn.sendall(data)

    def close(self) -> None:
        """Drop the connection. Waits for an in-flight write to finish."""
        with self._lock:
            conn, self._conn = self._conn, None
        if conn is not None:
            conn.close()

    def __str__(self) -> str:
        return self.raw
