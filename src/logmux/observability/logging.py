"""Structured diagnostics: structlog events rendered by one root handler.

Modules log named events with key=value fields:

    get_logger(__name__).warning("stream.ended", reason="EOF")

structlog hands every event to stdlib logging, so a single handler on the
root logger renders logmux's events and any third-party records alike, and
pytest's caplog sees the event dicts. Runner threads bind ``tag`` and
``stream`` with stream_context(), so everything a runner logs names its
stream without passing it around.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from logmux.observability.config import ObservabilityConfig

_MANAGED = "_logmux_managed"

_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Run for structlog events and for plain stdlib records.
_SHARED_PROCESSORS: list[Any] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.processors.TimeStamper(fmt="iso", utc=True),
]


def _configure_structlog() -> None:
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_SHARED_PROCESSORS,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def _renderer(log_format: str) -> Any:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    if log_format == "console":
        return structlog.dev.ConsoleRenderer(colors=False)
    raise ValueError(f"Unknown log format: {log_format!r}. Available: ['json', 'console']")


def _handler(config: ObservabilityConfig) -> logging.Handler:
    if config.log_destination == "stderr":
        return logging.StreamHandler(sys.stderr)
    if config.log_destination == "jsonl":
        path = Path(config.log_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        return logging.FileHandler(path, mode="a", encoding="utf-8")
    raise ValueError(
        f"Unknown log destination: {config.log_destination!r}. Available: ['stderr', 'jsonl']"
    )


def _detach() -> None:
    root = logging.getLogger()
    for handler in [h for h in root.handlers if getattr(h, _MANAGED, False)]:
        root.removeHandler(handler)
        handler.close()


def setup_logging(config: ObservabilityConfig) -> None:
    """Route diagnostics to the configured destination. Safe to call again.

    Raises ValueError for an unknown level, format or destination, before
    touching any handler.
    """
    level = config.log_level.upper()
    if level not in _LEVELS:
        raise ValueError(f"Unknown log level: {config.log_level!r}. Available: {list(_LEVELS)}")
    renderer = _renderer(config.log_format)

    handler = _handler(config)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=_SHARED_PROCESSORS,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )
    setattr(handler, _MANAGED, True)

    # Only replace our own handler; pytest caplog and friends stay attached.
    _detach()
    root = logging.getLogger()
    root.addHandler(handler)
    root.setLevel(level)
    _configure_structlog()


def shutdown_logging() -> None:
    """Detach and close the handler installed by setup_logging()."""
    _detach()


def get_logger(name: str) -> Any:
    """A structlog logger named ``name``, usable before and after setup."""
    if not structlog.is_configured():
        _configure_structlog()
    return structlog.get_logger(name)


@contextmanager
def stream_context(tag: str, raw: str) -> Iterator[None]:
    """Bind ``tag`` and ``stream`` to every event logged inside the block."""
    with structlog.contextvars.bound_contextvars(tag=tag, stream=raw):
        yield
