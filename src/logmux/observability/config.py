"""Diagnostics settings, read from the environment.

Zero config gives JSON lines on stderr at INFO. stdout is never used: a
parent process may pass its own stdout to logmux as one of the streams.

    LOGMUX_LOG_LEVEL=INFO            DEBUG | INFO | WARNING | ERROR
    LOGMUX_LOG_FORMAT=json           json | console
    LOGMUX_LOG_DESTINATION=stderr    stderr | jsonl
    LOGMUX_LOG_PATH=<file>           appended to when the destination is jsonl
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field


@dataclass
class ObservabilityConfig:
    log_level: str = field(
        default_factory=lambda: os.environ.get("LOGMUX_LOG_LEVEL", "INFO")
    )

    log_format: str = field(
        default_factory=lambda: os.environ.get("LOGMUX_LOG_FORMAT", "json")
    )

    log_destination: str = field(
        default_factory=lambda: os.environ.get("LOGMUX_LOG_DESTINATION", "stderr")
    )

    log_path: str = field(
        default_factory=lambda: os.environ.get("LOGMUX_LOG_PATH", "logmux.jsonl")
    )
