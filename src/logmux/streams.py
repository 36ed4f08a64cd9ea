"""Input log streams: inherited descriptors and named pipes.

A stream is specified as ``<specifier>:<tag>``. Integer specifiers name a
descriptor inherited from the parent process; anything else is a path to a
named pipe, created on demand.

    DescriptorStream - wraps an already-open fd. Once it hits EOF it is gone.
    NamedPipeStream  - wraps a FIFO path. Reopened after every EOF, so the
                       producer can restart without restarting logmux.

Both satisfy the Stream protocol: open() once at startup, preread() before
every read, mark_closed() on EOF.
"""

from __future__ import annotations

import io
import os
import re
import stat
from typing import BinaryIO, Protocol, runtime_checkable

from logmux.observability.logging import get_logger

_FD_SPEC = re.compile(r"[+-]?[0-9]+")

# Producers write in bursts; a large buffer keeps them from blocking on us.
READ_BUFFER_SIZE = 4 * 1024 * 1024

FIFO_MODE = 0o666


def _get_logger():
    return get_logger(__name__)


def new_buffered_reader(fd: int) -> BinaryIO:
    """Wrap a raw descriptor in a line-readable buffered reader."""
    return io.open(fd, "rb", buffering=READ_BUFFER_SIZE)


@runtime_checkable
class Stream(Protocol):
    """One incoming log stream."""

    @property
    def tag(self) -> str: ...

    @property
    def raw(self) -> str: ...

    @property
    def source(self) -> BinaryIO | None: ...

    def open(self) -> None: ...

    def preread(self) -> None: ...

    def mark_closed(self) -> None: ...


class BaseStream:
    """Shared state: the tag, the raw spec, and the current line source."""

    def __init__(self, tag: str, raw: str) -> None:
        self._tag = tag
        self._raw = raw
        self._source: BinaryIO | None = None

    @property
    def tag(self) -> str:
        """The label stamped on every line, e.g. ``nginx.access``."""
        return self._tag

    @property
    def raw(self) -> str:
        """The ``<specifier>:<tag>`` string this stream was built from."""
        return self._raw

    @property
    def source(self) -> BinaryIO | None:
        """The buffered reader, or None while the stream is closed."""
        return self._source

    def mark_closed(self) -> None:
        """Drop the current reader. The next preread() decides what happens."""
        source, self._source = self._source, None
        if source is not None:
            source.close()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._raw!r})"


class NamedPipeStream(BaseStream):
    """A FIFO at a filesystem path, reopened after each EOF."""

    def __init__(self, tag: str, raw: str, path: str) -> None:
        super().__init__(tag, raw)
        self.path = path

    def open(self) -> None:
        """Make sure a FIFO exists at the path.

        Creates one if nothing is there. Refuses to touch anything that
        isn't a FIFO. The read side is opened lazily by preread(), since
        opening a FIFO blocks until a writer shows up.
        """
        try:
            st = os.stat(self.path)
        except FileNotFoundError:
            os.mkfifo(self.path, FIFO_MODE)
            return
        if not stat.S_ISFIFO(st.st_mode):
            raise FileExistsError(f"not overwriting non-named pipe: {self.path}")

    def preread(self) -> None:
        if self._source is not None:
            return
        fd = os.open(self.path, os.O_RDONLY)
        self._source = new_buffered_reader(fd)
        _get_logger().info("stream.pipe_opened", path=self.path)


class DescriptorStream(BaseStream):
    """An anonymous pipe handed to us as a file descriptor. Not reopenable."""

    def __init__(self, tag: str, raw: str, fd: int) -> None:
        super().__init__(tag, raw)
        self.fd = fd

    def open(self) -> None:
        self._source = new_buffered_reader(self.fd)

    def preread(self) -> None:
        # Once closed there is nothing to reopen.
        if self._source is None:
            raise EOFError(f"descriptor {self.fd} is closed")


def parse_stream_spec(raw: str) -> Stream:
    """Parse ``<specifier>:<tag>`` into a stream.

    >>> parse_stream_spec("7:launch.log")
    DescriptorStream('7:launch.log')
    >>> parse_stream_spec("/var/log/x:nginx.access")
    NamedPipeStream('/var/log/x:nginx.access')
    """
    parts = raw.split(":")
    if len(parts) != 2:
        raise ValueError(
            f"Specified stream {raw} has wrong number of components ({len(parts)})"
        )
    specifier, tag = parts
    if not tag:
        raise ValueError(f"Specified stream {raw} has an empty tag")
    if _FD_SPEC.fullmatch(specifier):
        return DescriptorStream(tag=tag, raw=raw, fd=int(specifier))
    return NamedPipeStream(tag=tag, raw=raw, path=specifier)
