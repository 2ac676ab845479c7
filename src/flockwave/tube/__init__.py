"""Buffered, bidirectional byte streams over raw network connections for
scripting interactive protocols.
"""

from .errors import ConnectionFailedError, Error, ReadTimeoutError, StreamClosedError
from .protocols import StreamSink, Transport
from .remote import RemoteConnectionInfo, connect, open_remote, remote
from .transport import StreamTransport
from .tube import Tube, TubeStatistics
from .version import __version__, __version_info__

__all__ = (
    "__version__",
    "__version_info__",
    "connect",
    "open_remote",
    "remote",
    "ConnectionFailedError",
    "Error",
    "ReadTimeoutError",
    "RemoteConnectionInfo",
    "StreamClosedError",
    "StreamSink",
    "StreamTransport",
    "Transport",
    "Tube",
    "TubeStatistics",
)
