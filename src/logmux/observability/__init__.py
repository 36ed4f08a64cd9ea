"""logmux observability: structured diagnostics, never on stdout or the sink.

Public API:
    ObservabilityConfig  - env-var driven settings
    setup_logging(cfg)   - install the root handler (call once at startup)
    shutdown_logging()   - detach and close it
    get_logger(name)     - structlog logger, usable before and after setup
    stream_context(...)  - bind a stream's tag to everything logged inside
"""

from logmux.observability.config import ObservabilityConfig
from logmux.observability.logging import (
    get_logger,
    setup_logging,
    shutdown_logging,
    stream_context,
)

__all__ = [
    "ObservabilityConfig",
    "setup_logging",
    "shutdown_logging",
    "get_logger",
    "stream_context",
]
