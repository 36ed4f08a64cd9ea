"""logmux CLI -- mux several input log streams into one.

    logmux --logstash tcp://localhost:5000 \\
        6:app.error 7:launch.log \\
        /nginx/log/access_log:nginx.access
"""

from __future__ import annotations

from pathlib import Path

import typer

from logmux.cli._errors import handle_error
from logmux.config import MuxConfig
from logmux.observability import ObservabilityConfig, setup_logging, shutdown_logging

app = typer.Typer(
    name="logmux",
    help="Mux several input log streams into one logstash connection.",
    add_completion=False,
)


@app.command()
def run(
    streams: list[str] = typer.Argument(
        None,
        metavar="[SPECIFIER:TAG]...",
        help="Incoming streams: <fd>:<tag> or <path>:<tag>",
        show_default=False,
    ),
    logstash: str = typer.Option(
        None,
        "--logstash",
        envvar="LOGMUX_LOGSTASH",
        help="A URI for logstash in tcp://<hostname>:<port> format",
    ),
    config: Path = typer.Option(
        None,
        "--config",
        "-c",
        envvar="LOGMUX_CONFIG",
        help="YAML file with 'logstash' and 'streams' keys",
    ),
    log_level: str = typer.Option(
        None, "--log-level", help="Diagnostic log level (default: LOGMUX_LOG_LEVEL or INFO)"
    ),
) -> None:
    """Take one or more log streams and smash them together into one stream
    sent to a logstash server. Each incoming stream gets its own tag so the
    streams can be told apart downstream.

    \b
    Streams are <specifier>:<tag> pairs. An integer specifier is a file
    descriptor inherited from the parent process; anything else is the path
    of a named pipe, created if missing.

    Named pipes are reopened indefinitely. Descriptors are left closed as
    soon as they hit EOF. logmux exits 0 once every stream has ended, and
    exits non-zero on the first error that isn't an EOF.
    """
    obs = ObservabilityConfig()
    if log_level:
        obs.log_level = log_level

    try:
        setup_logging(obs)
        cfg = MuxConfig.load(config)
        if logstash:
            cfg.logstash = logstash
        cfg.streams.extend(streams or [])
        mux = cfg.build()
        mux.run()
    except Exception as err:
        handle_error(err)
    finally:
        shutdown_logging()


def main() -> None:
    """Entry point for the logmux CLI."""
    app()
