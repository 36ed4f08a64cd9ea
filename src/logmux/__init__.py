"""logmux: tag lines from many log streams and ship them to one TCP sink.

    from logmux import MuxConfig

    mux = MuxConfig(
        logstash="tcp://localhost:5000",
        streams=["6:app.error", "/var/run/nginx.fifo:nginx.access"],
    ).build()
    mux.run()
"""

from logmux.config import MuxConfig
from logmux.mux import Mux
from logmux.runner import read_one, run_stream
from logmux.sink import LogstashSink
from logmux.streams import (
    DescriptorStream,
    NamedPipeStream,
    Stream,
    parse_stream_spec,
)
from logmux.tagging import tag_line

__all__ = [
    "Mux",
    "MuxConfig",
    "LogstashSink",
    "Stream",
    "DescriptorStream",
    "NamedPipeStream",
    "parse_stream_spec",
    "read_one",
    "run_stream",
    "tag_line",
]
