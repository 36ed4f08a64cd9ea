"""Mux: one sink, many streams, one runner thread per stream.

Termination policy:
    - every runner reports exactly one outcome on a shared queue;
    - EOFError means that stream is done for good; when all streams are
      done, run() returns normally;
    - any other outcome is fatal: run() raises it immediately.

On a fatal outcome the remaining runners are not stopped. They are daemon
threads blocked in a read and go away with the process.
"""

from __future__ import annotations

import queue
import threading
from collections.abc import Sequence

from logmux.observability.logging import get_logger
from logmux.runner import run_stream
from logmux.sink import LogstashSink
from logmux.streams import Stream


def _get_logger():
    return get_logger(__name__)


class Mux:
    """Everything one run of logmux needs: where lines come from and go to."""

    def __init__(self, sink: LogstashSink, streams: Sequence[Stream]) -> None:
        self.sink = sink
        self.streams = list(streams)

    def configure(self) -> None:
        """Open the sink, then every stream in order. First failure aborts."""
        if not self.sink.is_open:
            self.sink.open()
        for stream in self.streams:
            stream.open()
        _get_logger().info(
            "mux.configured",
            sink=self.sink.raw,
            streams=[s.raw for s in self.streams],
        )

    def start(self) -> queue.Queue:
        """Spawn one runner per stream; return the queue they report on."""
        # Room for every outcome, so no runner ever blocks on reporting.
        outcomes: queue.Queue = queue.Queue(maxsize=len(self.streams))
        single = len(self.streams) == 1
        for stream in self.streams:
            thread = threading.Thread(
                target=run_stream,
                args=(stream, self.sink, outcomes, single),
                name=f"logmux-{stream.tag}",
                daemon=True,
            )
            thread.start()
        return outcomes

    def wait(self, outcomes: queue.Queue) -> None:
        """Consume outcomes in delivery order until done or something fails."""
        remaining = len(self.streams)
        while remaining:
            outcome = outcomes.get()
            remaining -= 1
            if not isinstance(outcome, EOFError):
                raise outcome
        _get_logger().info("mux.completed", streams=len(self.streams))

    def run(self) -> None:
        """Configure, run every stream, and return once all have ended cleanly."""
        self.configure()
        self.wait(self.start())
