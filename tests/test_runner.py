"""Tests for the per-stream runner: read_one() iterations and run_stream()."""

from __future__ import annotations

import logging
import os
import queue
import threading

import pytest

from logmux.observability import get_logger
from logmux.runner import read_one, run_stream
from logmux.streams import BaseStream, DescriptorStream, NamedPipeStream

# =============================================================================
# Helpers
# =============================================================================


class RecordingSink:
    """Sink double: keeps frames in memory, optionally fails every write."""

    raw = "tcp://recording:0"

    def __init__(self, fail: Exception | None = None) -> None:
        self.frames: list[bytes] = []
        self.fail = fail

    def write(self, data: bytes) -> None:
        if self.fail is not None:
            raise self.fail
        self.frames.append(data)


class BrokenReader:
    """A source whose reads fail with an I/O error."""

    def readline(self) -> bytes:
        raise OSError(5, "Input/output error")

    def close(self) -> None:
        pass


class BrokenStream(BaseStream):
    def open(self) -> None:
        self._source = BrokenReader()

    def preread(self) -> None:
        pass


def _events(caplog, name: str) -> list[dict]:
    return [
        r.msg for r in caplog.records if isinstance(r.msg, dict) and r.msg.get("event") == name
    ]


def _descriptor(pipe, data: bytes, tag: str = "app") -> DescriptorStream:
    """A descriptor stream over ``pipe`` that will read ``data`` then EOF."""
    os.write(pipe.w, data)
    pipe.close_writer()
    fd = pipe.hand_off_reader()
    s = DescriptorStream(tag=tag, raw=f"{fd}:{tag}", fd=fd)
    s.open()
    return s


# =============================================================================
# read_one
# =============================================================================


class TestReadOne:
    def test_ships_tagged_line(self, pipe):
        s = _descriptor(pipe, b'{"msg":"boom"}\n')
        sink = RecordingSink()
        read_one(s, sink)
        assert sink.frames == [b'{"msg":"boom","tag":"app"}\n']
        assert s.source is not None
        s.mark_closed()

    def test_one_line_per_iteration(self, pipe):
        s = _descriptor(pipe, b"one\ntwo\n")
        sink = RecordingSink()
        read_one(s, sink)
        assert sink.frames == [b"app: one\n"]
        read_one(s, sink)
        assert sink.frames == [b"app: one\n", b"app: two\n"]
        s.mark_closed()

    def test_blank_line_is_not_written(self, pipe):
        s = _descriptor(pipe, b"   \n")
        sink = RecordingSink()
        read_one(s, sink)
        assert sink.frames == []
        assert s.source is not None
        s.mark_closed()

    def test_eof_marks_closed_without_raising(self, pipe):
        s = _descriptor(pipe, b"")
        sink = RecordingSink()
        read_one(s, sink)
        assert s.source is None
        assert sink.frames == []

    def test_final_partial_line_is_shipped_then_closed(self, pipe):
        s = _descriptor(pipe, b"no newline")
        sink = RecordingSink()
        read_one(s, sink)
        assert sink.frames == [b"app: no newline\n"]
        assert s.source is None

    def test_descriptor_eof_is_permanent(self, pipe):
        s = _descriptor(pipe, b"only\n")
        sink = RecordingSink()
        read_one(s, sink)
        read_one(s, sink)
        with pytest.raises(EOFError):
            read_one(s, sink)
        with pytest.raises(EOFError):
            read_one(s, sink)
        assert sink.frames == [b"app: only\n"]

    def test_write_failure_raises(self, pipe):
        s = _descriptor(pipe, b"line\nmore\n")
        sink = RecordingSink(fail=BrokenPipeError(32, "Broken pipe"))
        with pytest.raises(BrokenPipeError):
            read_one(s, sink)
        assert s.source is not None
        s.mark_closed()

    def test_write_failure_wins_over_eof(self, pipe):
        s = _descriptor(pipe, b"partial")
        sink = RecordingSink(fail=ConnectionResetError(104, "Connection reset"))
        with pytest.raises(ConnectionResetError):
            read_one(s, sink)
        # The EOF was still honored.
        assert s.source is None

    def test_read_error_raises(self):
        s = BrokenStream(tag="app", raw="broken:app")
        s.open()
        with pytest.raises(OSError, match="Input/output error"):
            read_one(s, RecordingSink())

    def test_named_pipe_reopen_failure_raises(self, tmp_path):
        path = tmp_path / "gone.fifo"
        s = NamedPipeStream(tag="app", raw="", path=str(path))
        with pytest.raises(FileNotFoundError):
            read_one(s, RecordingSink())

    def test_named_pipe_eof_is_recoverable(self, tmp_path):
        path = tmp_path / "app.fifo"
        s = NamedPipeStream(tag="app", raw="", path=str(path))
        s.open()
        sink = RecordingSink()

        def produce(data):
            with open(path, "wb") as f:
                f.write(data)

        for data in (b"first\n", b"second\n"):
            writer = threading.Thread(target=produce, args=(data,), daemon=True)
            writer.start()
            read_one(s, sink)
            writer.join(5)
            read_one(s, sink)  # EOF: closes, does not raise
            assert s.source is None

        assert sink.frames == [b"app: first\n", b"app: second\n"]


# =============================================================================
# run_stream
# =============================================================================


class TestRunStream:
    def test_reports_eof_after_draining(self, pipe):
        s = _descriptor(pipe, b"a\nb\n\nc")
        sink = RecordingSink()
        outcomes: queue.Queue = queue.Queue()
        run_stream(s, sink, outcomes, single=True)
        assert isinstance(outcomes.get_nowait(), EOFError)
        assert outcomes.empty()
        assert sink.frames == [b"app: a\n", b"app: b\n", b"app: c\n"]

    def test_reports_write_error(self, pipe):
        s = _descriptor(pipe, b"a\n")
        err = BrokenPipeError(32, "Broken pipe")
        outcomes: queue.Queue = queue.Queue()
        run_stream(s, RecordingSink(fail=err), outcomes, single=True)
        assert outcomes.get_nowait() is err
        s.mark_closed()

    def test_logs_termination_with_multiple_streams(self, pipe, caplog):
        caplog.set_level(logging.WARNING)
        s = _descriptor(pipe, b"", tag="launch.log")
        run_stream(s, RecordingSink(), queue.Queue(), single=False)
        ended = _events(caplog, "stream.ended")
        assert len(ended) == 1
        assert ended[0]["tag"] == "launch.log"
        assert ended[0]["stream"] == s.raw
        assert ended[0]["reason"].startswith("descriptor")

    def test_single_stream_termination_is_quiet(self, pipe, caplog):
        caplog.set_level(logging.WARNING)
        s = _descriptor(pipe, b"")
        run_stream(s, RecordingSink(), queue.Queue(), single=True)
        assert not _events(caplog, "stream.ended")

    def test_stream_context_ends_with_the_runner(self, pipe, caplog):
        caplog.set_level(logging.INFO)
        s = _descriptor(pipe, b"", tag="launch.log")
        run_stream(s, RecordingSink(), queue.Queue(), single=False)
        get_logger("logmux.test").info("after.run")
        assert "tag" not in _events(caplog, "after.run")[0]
