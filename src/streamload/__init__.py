"""
streamload - concurrent pub/sub load generator with streaming latency statistics.
"""

from .config import RunConfig
from .errors import (
    ConfigError,
    ConnectError,
    InvalidDurationError,
    PayloadDecodeError,
    ProtocolError,
    StreamLoadError,
)
from .runner import LoadTestRunner

__version__ = "1.0.0"

__all__ = [
    "RunConfig",
    "ConfigError",
    "ConnectError",
    "InvalidDurationError",
    "PayloadDecodeError",
    "ProtocolError",
    "StreamLoadError",
    "LoadTestRunner",
]
