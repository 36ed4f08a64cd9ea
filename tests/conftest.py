"""Shared fixtures: a loopback TCP line collector and anonymous pipes."""

from __future__ import annotations

import os
import socket
import threading

import pytest

from logmux.observability.logging import shutdown_logging


class LineCollector:
    """A one-connection TCP server that records everything it receives."""

    def __init__(self) -> None:
        self._server = socket.create_server(("127.0.0.1", 0))
        host, port = self._server.getsockname()[:2]
        self.target = f"tcp://{host}:{port}"
        self._data = bytearray()
        self._done = threading.Event()
        self._arrived = threading.Condition()
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()

    def _serve(self) -> None:
        try:
            conn, _ = self._server.accept()
        except OSError:
            self._done.set()
            return
        with conn:
            while True:
                chunk = conn.recv(65536)
                if not chunk:
                    break
                with self._arrived:
                    self._data.extend(chunk)
                    self._arrived.notify_all()
        self._done.set()

    def wait_for_lines(self, count: int, timeout: float = 5.0) -> None:
        """Block until at least ``count`` newline-terminated frames arrived."""
        with self._arrived:
            ok = self._arrived.wait_for(lambda: self._data.count(b"\n") >= count, timeout)
        assert ok, f"expected {count} lines, got {bytes(self._data)!r}"

    def received(self, timeout: float = 5.0) -> bytes:
        """Wait for the client to hang up, then return every byte sent."""
        assert self._done.wait(timeout), "sink connection was never closed"
        return bytes(self._data)

    def close(self) -> None:
        self._server.close()


@pytest.fixture(autouse=True)
def _reset_logging():
    shutdown_logging()
    yield
    shutdown_logging()


@pytest.fixture()
def collector():
    c = LineCollector()
    yield c
    c.close()


class Pipe:
    """An anonymous pipe that remembers which ends are still ours to close."""

    def __init__(self) -> None:
        self.r, self.w = os.pipe()
        self._owned = {self.r, self.w}

    def close_writer(self) -> None:
        os.close(self.w)
        self._owned.discard(self.w)

    def hand_off_reader(self) -> int:
        """Give the read end to a stream, which closes it from now on."""
        self._owned.discard(self.r)
        return self.r

    def close(self) -> None:
        for fd in self._owned:
            os.close(fd)
        self._owned.clear()


@pytest.fixture()
def pipe():
    p = Pipe()
    yield p
    p.close()
