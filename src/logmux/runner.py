"""Per-stream runner: read a line, tag it, ship it, repeat.

Each stream gets its own thread running run_stream(). The loop only ends on
an exception from read_one():

    EOFError  - the stream is permanently finished (descriptor streams only;
                named pipes reopen on the next preread()).
    anything else - a read, reopen, or sink write failure.

Either way the exception is put on the shared outcome queue and the thread
exits. Deciding what that means for the whole run is Mux's job.
"""

from __future__ import annotations

import queue

from logmux.observability.logging import get_logger, stream_context
from logmux.sink import LogstashSink
from logmux.streams import Stream
from logmux.tagging import tag_line


def _get_logger():
    return get_logger(__name__)


def read_one(stream: Stream, sink: LogstashSink) -> None:
    """One iteration of the read → tag → write loop.

    Returns normally after a line was shipped, or after EOF on a stream
    that may be reopened. Raises on anything terminal.
    """
    stream.preread()
    line = stream.source.readline()

    write_error: OSError | None = None
    if line:
        frame = tag_line(line, stream.tag)
        if frame:
            try:
                sink.write(frame)
            except OSError as err:
                write_error = err

    # readline() hands back a final unterminated line before it hands back b"".
    if not line.endswith(b"\n"):
        stream.mark_closed()

    if write_error is not None:
        raise write_error


def run_stream(
    stream: Stream,
    sink: LogstashSink,
    outcomes: queue.Queue,
    single: bool = False,
) -> None:
    """Drive one stream until it ends, then report why on ``outcomes``.

    With a single stream the termination notice is left to the caller's
    fatal-error report. Everything logged while the stream runs carries its
    ``tag`` and ``stream``.
    """
    with stream_context(stream.tag, stream.raw):
        while True:
            try:
                read_one(stream, sink)
            except Exception as err:
                if not single:
                    _get_logger().warning("stream.ended", reason=str(err) or type(err).__name__)
                outcomes.put(err)
                return
