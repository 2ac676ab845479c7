"""Establishing connections to remote endpoints and wrapping them in tubes."""

from __future__ import annotations

import logging

from contextlib import asynccontextmanager
from dataclasses import dataclass
from ssl import SSLContext, create_default_context
from trio import (
    BrokenResourceError,
    TooSlowError,
    aclose_forcefully,
    fail_after,
    open_nursery,
    open_ssl_over_tcp_stream,
    open_tcp_stream,
)
from typing import AsyncIterator, Optional, TYPE_CHECKING
from urllib.parse import urlparse

from .constants import DEFAULT_CHUNK_SIZE, DEFAULT_CONNECT_TIMEOUT
from .errors import ConnectionFailedError
from .transport import StreamTransport
from .tube import Tube

if TYPE_CHECKING:
    from trio import Nursery
    from trio.abc import Stream

__all__ = ("RemoteConnectionInfo", "connect", "open_remote", "remote")

log = logging.getLogger(__name__)


@dataclass
class RemoteConnectionInfo:
    """Dataclass that holds the parameters required to connect to a remote
    TCP endpoint.
    """

    host: str
    port: int
    tls: bool = False

    @classmethod
    def create_from_uri(cls, uri: str, port: Optional[int] = None):
        """Creates a connection info object from a URI representation of the
        form::

            [tcp|tls|ssl://]<host>:<port>

        The port may be omitted from the URI if it is given explicitly.
        """
        if "://" not in uri:
            uri = "tcp://" + uri

        parts = urlparse(uri)
        if parts.scheme not in ("tcp", "tls", "ssl"):
            raise ValueError(f"Unsupported URI scheme: {parts.scheme!r}")
        if not parts.hostname:
            raise ValueError(f"No hostname in URI: {uri!r}")

        port = parts.port or port
        if port is None:
            raise ValueError(f"No port in URI: {uri!r}")

        return cls(host=parts.hostname, port=port, tls=parts.scheme != "tcp")


async def connect(
    host: str,
    port: int,
    *,
    tls: bool = False,
    ssl_context: Optional[SSLContext] = None,
    timeout: float = DEFAULT_CONNECT_TIMEOUT,
) -> Stream:
    """Opens a TCP connection to the given host and port, optionally
    wrapped in TLS.

    When TLS is requested, the function returns only after the TLS handshake
    has completed.

    Parameters:
        host: the hostname of the remote endpoint
        port: the port of the remote endpoint
        tls: whether to encrypt the connection with TLS
        ssl_context: the SSL context to use for TLS connections; ``None``
            means the default context of the ``ssl`` module
        timeout: timeout of the connection attempt, in seconds

    Raises:
        ConnectionFailedError: if the connection could not be established
    """
    try:
        with fail_after(timeout):
            if tls:
                context = ssl_context or create_default_context()
                stream = await open_ssl_over_tcp_stream(
                    host, port, ssl_context=context
                )
                try:
                    await stream.do_handshake()
                except BaseException:
                    await aclose_forcefully(stream)
                    raise
            else:
                stream = await open_tcp_stream(host, port)
    except TooSlowError:
        raise ConnectionFailedError(
            f"Timed out while connecting to {host}:{port}"
        ) from None
    except (BrokenResourceError, OSError) as ex:
        raise ConnectionFailedError(
            f"Failed to connect to {host}:{port}: {ex}"
        ) from ex

    log.info(f"Connected to {host}:{port}{' using TLS' if tls else ''}")
    return stream


def _create_tube(stream: Stream, chunk_size: int) -> tuple[Tube, StreamTransport]:
    tube = Tube()
    transport = StreamTransport(stream, tube, chunk_size=chunk_size)
    tube.bind(transport)
    return tube, transport


async def remote(
    nursery: Nursery,
    host: str,
    port: int,
    *,
    tls: bool = False,
    ssl_context: Optional[SSLContext] = None,
    timeout: float = DEFAULT_CONNECT_TIMEOUT,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> Tube:
    """Connects to the given host and port and returns a tube bound to the
    connection.

    The transport of the tube runs in the given nursery until the tube is
    closed.

    Raises:
        ConnectionFailedError: if the connection could not be established
    """
    stream = await connect(
        host, port, tls=tls, ssl_context=ssl_context, timeout=timeout
    )
    tube, transport = _create_tube(stream, chunk_size)
    await nursery.start(transport.run)
    return tube


@asynccontextmanager
async def open_remote(
    host: str,
    port: int,
    *,
    tls: bool = False,
    ssl_context: Optional[SSLContext] = None,
    timeout: float = DEFAULT_CONNECT_TIMEOUT,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> AsyncIterator[Tube]:
    """Async context manager that connects to the given host and port and
    yields a tube bound to the connection. The tube is closed when the
    context is exited.

    Exceptions raised in the body of the context are propagated as they
    are, not wrapped in an exception group.

    Example::

        async with open_remote("example.com", 80) as tube:
            tube.write(b"GET / HTTP/1.0\\r\\n\\r\\n")
            headers = await tube.recvuntil(b"\\r\\n\\r\\n")
            body = await tube.recvall()

    Raises:
        ConnectionFailedError: if the connection could not be established
    """
    stream = await connect(
        host, port, tls=tls, ssl_context=ssl_context, timeout=timeout
    )
    tube, transport = _create_tube(stream, chunk_size)

    try:
        async with open_nursery() as nursery:
            await nursery.start(transport.run)
            try:
                yield tube
            finally:
                tube.close()
    except BaseExceptionGroup as group:
        if len(group.exceptions) == 1:
            raise group.exceptions[0] from None
        raise
