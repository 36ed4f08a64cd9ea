"""Run configuration: YAML file + env var overrides.

Priority: CLI > env var > YAML file > default.
Env vars:
    LOGMUX_LOGSTASH - sink target, tcp://<host>:<port>
    LOGMUX_CONFIG   - YAML file read when no path is passed

YAML shape:

    logstash: tcp://localhost:5000
    streams:
      - 6:app.error
      - /nginx/log/access_log:nginx.access
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from logmux.mux import Mux
from logmux.sink import LogstashSink
from logmux.streams import parse_stream_spec


@dataclass
class MuxConfig:
    logstash: str | None = None
    streams: list[str] = field(default_factory=list)

    @classmethod
    def load(cls, path: Path | None = None) -> MuxConfig:
        """Load from a YAML file (if any), then apply env overrides."""
        if path is None and os.environ.get("LOGMUX_CONFIG"):
            path = Path(os.environ["LOGMUX_CONFIG"])

        logstash: str | None = None
        streams: list[str] = []
        if path is not None:
            raw = yaml.safe_load(Path(path).read_text()) or {}
            if not isinstance(raw, dict):
                raise ValueError(f"config file {path} must contain a mapping")
            logstash = raw.get("logstash")
            if logstash is not None and not isinstance(logstash, str):
                raise ValueError(f"config file {path}: 'logstash' must be a string")
            streams = raw.get("streams") or []
            if not isinstance(streams, list) or not all(
                isinstance(s, str) for s in streams
            ):
                raise ValueError(f"config file {path}: 'streams' must be a list of strings")

        if os.environ.get("LOGMUX_LOGSTASH"):
            logstash = os.environ["LOGMUX_LOGSTASH"]

        return cls(logstash=logstash, streams=list(streams))

    def build(self) -> Mux:
        """Validate everything and build a Mux. Performs no I/O."""
        if not self.logstash:
            raise ValueError("require a --logstash parameter")
        if not self.streams:
            raise ValueError("need at least 1 stream for input; got 0")
        sink = LogstashSink.parse(self.logstash)
        streams = [parse_stream_spec(raw) for raw in self.streams]
        return Mux(sink=sink, streams=streams)
