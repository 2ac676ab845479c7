"""Transport that binds a Trio stream to a stream sink such as a tube."""

from __future__ import annotations

import logging

from math import inf
from trio import (
    BrokenResourceError,
    CancelScope,
    ClosedResourceError,
    TASK_STATUS_IGNORED,
    aclose_forcefully,
    open_memory_channel,
    open_nursery,
)
from typing import Optional, TYPE_CHECKING

from .constants import DEFAULT_CHUNK_SIZE
from .errors import StreamClosedError

if TYPE_CHECKING:
    from trio import MemoryReceiveChannel, MemorySendChannel
    from trio.abc import Stream

    from .protocols import StreamSink

__all__ = ("StreamTransport",)

log = logging.getLogger(__name__)


class StreamTransport:
    """Transport that reads chunks from a Trio stream and delivers them to a
    stream sink, and writes outbound data to the same stream.

    Writes are queued in an unbounded queue and sent by a background task,
    so `write()` never blocks. The transport does its work in `run()`, which
    must be running in a nursery for the whole lifetime of the connection.
    """

    _error: Optional[BaseException]
    """The exception that broke the connection, if any."""

    _outbox_rx: MemoryReceiveChannel
    _outbox_tx: MemorySendChannel

    def __init__(
        self, stream: Stream, sink: StreamSink, *, chunk_size: int = DEFAULT_CHUNK_SIZE
    ):
        """Constructor.

        Parameters:
            stream: the Trio stream to read from and write to
            sink: the object that receives the incoming chunks and the
                end-of-stream notification
            chunk_size: the maximum number of bytes to read from the stream
                in one step
        """
        self._stream = stream
        self._sink = sink
        self._chunk_size = chunk_size
        self._error = None
        self._outbox_tx, self._outbox_rx = open_memory_channel(inf)

    def close(self) -> None:
        """Requests the transport to close the connection after all the
        queued outbound data was sent. Calling it multiple times is allowed.
        """
        self._outbox_tx.close()

    def write(self, data: bytes) -> None:
        """Queues some bytes to be sent on the stream.

        Raises:
            StreamClosedError: if the transport was closed or the connection
                is broken
        """
        try:
            self._outbox_tx.send_nowait(data)
        except (BrokenResourceError, ClosedResourceError):
            raise StreamClosedError("cannot write to a closed transport") from None

    async def run(self, *, task_status=TASK_STATUS_IGNORED) -> None:
        """Runs the transport until it is closed with `close()`.

        The stream is closed and the end of the stream is signalled to the
        sink when this function returns, even if it is cancelled.
        """
        log.debug("Transport started")
        try:
            async with open_nursery() as nursery:
                nursery.start_soon(self._run_receiver)
                task_status.started()
                await self._run_sender()
                nursery.cancel_scope.cancel()
        finally:
            self._sink.feed_eof(self._error)
            with CancelScope(shield=True):
                await aclose_forcefully(self._stream)
            log.debug("Transport stopped")

    async def _run_receiver(self) -> None:
        try:
            while True:
                data = await self._stream.receive_some(self._chunk_size)
                if not data:
                    log.debug("Remote side closed the connection")
                    break
                self._sink.feed(data)
        except ClosedResourceError:
            log.debug("Connection closed locally")
        except BrokenResourceError as ex:
            log.warning(f"Connection broken while receiving: {ex}")
            self._error = ex

        self._sink.feed_eof(self._error)

    async def _run_sender(self) -> None:
        async with self._outbox_rx:
            async for data in self._outbox_rx:
                try:
                    await self._stream.send_all(data)
                except BrokenResourceError as ex:
                    log.warning(f"Connection broken while sending: {ex}")
                    if self._error is None:
                        self._error = ex
                    break
                except ClosedResourceError:
                    break
