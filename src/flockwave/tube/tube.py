"""Buffered bidirectional byte stream for scripting interactive protocols."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from trio import TooSlowError, fail_after
from trio.lowlevel import checkpoint
from typing import Iterator, Optional

from .buffer import ByteBuffer
from .errors import ReadTimeoutError, StreamClosedError
from .protocols import Transport
from .waiters import WaiterQueue

__all__ = ("Tube", "TubeStatistics")


@dataclass(frozen=True)
class TubeStatistics:
    """Snapshot of the internal state of a tube."""

    buffered_bytes: int
    """Number of bytes received but not consumed yet"""

    tasks_waiting: int
    """Number of tasks blocked in one of the read operations"""

    closed: bool
    """Whether the transport signalled the end of the stream"""


@contextmanager
def _read_timeout(timeout: Optional[float]) -> Iterator[None]:
    if timeout is None:
        yield
        return

    try:
        with fail_after(timeout):
            yield
    except TooSlowError:
        raise ReadTimeoutError(
            f"read operation did not complete in {timeout} seconds"
        ) from None


class Tube:
    """Buffered byte stream that converts chunks pushed by a transport into
    blocking reads of exact lengths, lines, delimited blocks or everything
    until the end of the stream.

    The tube implements the `StreamSink` interface; the transport feeds
    incoming chunks into it with `feed()` and signals the end of the stream
    with `feed_eof()`. Outbound data and close requests are forwarded to the
    transport bound to the tube.

    Only one task should read from a tube at any given time. Concurrent
    reads are not forbidden but any of them may consume the bytes that
    another one was waiting for.

    Reads other than `recvall()` and `recv()` wait for the data they need
    even after the end of the stream; use their ``timeout`` argument or a
    Trio cancel scope to bound them.
    """

    _buffer: ByteBuffer
    _closed: bool
    _error: Optional[BaseException]
    _transport: Optional[Transport]
    _waiters: WaiterQueue

    def __init__(self, transport: Optional[Transport] = None):
        """Constructor.

        Parameters:
            transport: the transport to forward writes and close requests
                to. May be ``None``; in this case it must be provided later
                with `bind()` before writing to the tube.
        """
        self._buffer = ByteBuffer()
        self._closed = False
        self._error = None
        self._transport = transport
        self._waiters = WaiterQueue()

    def bind(self, transport: Transport) -> None:
        """Binds the tube to the given transport."""
        if self._transport is not None:
            raise RuntimeError("tube is already bound to a transport")
        self._transport = transport

    @property
    def closed(self) -> bool:
        """Returns whether the transport has signalled the end of the stream.
        Data buffered before that point can still be read.
        """
        return self._closed

    @property
    def error(self) -> Optional[BaseException]:
        """Returns the exception that terminated the stream, or ``None`` if
        the stream is still open or ended cleanly.
        """
        return self._error

    def statistics(self) -> TubeStatistics:
        """Returns a snapshot of the internal state of the tube."""
        return TubeStatistics(
            buffered_bytes=len(self._buffer),
            tasks_waiting=len(self._waiters),
            closed=self._closed,
        )

    ####################################################################
    # Stream sink interface

    def feed(self, data: bytes) -> None:
        """Appends a chunk of incoming bytes to the buffer and wakes up all
        the blocked reads.

        Raises:
            StreamClosedError: if the end of the stream was already signalled
        """
        if self._closed:
            raise StreamClosedError("cannot feed data into a closed tube")
        self._buffer.append(data)
        self._waiters.broadcast()

    def feed_eof(self, error: Optional[BaseException] = None) -> None:
        """Marks the end of the stream and wakes up all the blocked reads.

        Only the first call closes the stream. A later call may still record
        an error if the stream ended cleanly before, e.g. when the remote
        side closed its half of the connection and a subsequent send failed.

        Parameters:
            error: the exception that terminated the stream, or ``None`` if
                the stream ended cleanly
        """
        if self._closed:
            if self._error is None:
                self._error = error
            return

        self._closed = True
        self._error = error
        self._waiters.broadcast()

    ####################################################################
    # Read operations

    async def recv(
        self, max_bytes: Optional[int] = None, *, timeout: Optional[float] = None
    ) -> bytes:
        """Returns some of the bytes that are available in the buffer, waiting
        for at least one byte if the buffer is empty.

        Parameters:
            max_bytes: the maximum number of bytes to return; ``None`` means
                no limit
            timeout: maximum number of seconds to wait; ``None`` means no
                limit

        Returns:
            at most ``max_bytes`` bytes; an empty bytes object if the stream
            has ended and all its bytes were consumed
        """
        if max_bytes is not None and max_bytes < 0:
            raise ValueError("max_bytes must not be negative")

        await checkpoint()
        with _read_timeout(timeout):
            while not self._buffer and not self._closed:
                await self._waiters.wait()

        available = len(self._buffer)
        return self._buffer.consume(
            available if max_bytes is None else min(max_bytes, available)
        )

    async def recvn(self, n: int, *, timeout: Optional[float] = None) -> bytes:
        """Reads exactly the given number of bytes.

        Waits until at least ``n`` bytes are available, even after the end
        of the stream.

        Parameters:
            n: the number of bytes to read
            timeout: maximum number of seconds to wait; ``None`` means no
                limit

        Raises:
            ReadTimeoutError: if ``n`` bytes did not arrive in time
        """
        if n < 0:
            raise ValueError("number of bytes to read must not be negative")

        await checkpoint()
        with _read_timeout(timeout):
            while len(self._buffer) < n:
                await self._waiters.wait()

        return self._buffer.consume(n)

    async def recvline(
        self, keepends: bool = True, *, timeout: Optional[float] = None
    ) -> bytes:
        """Reads a single line terminated by a newline (LF) character.

        Parameters:
            keepends: whether to keep the trailing newline character
            timeout: maximum number of seconds to wait; ``None`` means no
                limit
        """
        await checkpoint()
        with _read_timeout(timeout):
            while True:
                index = self._buffer.find(b"\n")
                if index >= 0:
                    break
                await self._waiters.wait()

        line = self._buffer.consume(index + 1)
        return line if keepends else line[:-1]

    async def recvuntil(
        self, delimiter: bytes, *, drop: bool = False, timeout: Optional[float] = None
    ) -> bytes:
        """Reads bytes until the first occurrence of the given delimiter.

        The delimiter is found even if it was split across several chunks
        when it arrived.

        Parameters:
            delimiter: the byte sequence to look for
            drop: whether to drop the delimiter from the returned bytes
            timeout: maximum number of seconds to wait; ``None`` means no
                limit

        Returns:
            the bytes up to and including the delimiter, unless ``drop`` is
            set
        """
        if not delimiter:
            raise ValueError("delimiter must not be empty")

        await checkpoint()
        with _read_timeout(timeout):
            while True:
                index = self._buffer.find(delimiter)
                if index >= 0:
                    break
                await self._waiters.wait()

        data = self._buffer.consume(index + len(delimiter))
        return data[:index] if drop else data

    async def recvall(self, *, timeout: Optional[float] = None) -> bytes:
        """Waits for the end of the stream and returns all the bytes that
        were not consumed yet.

        Subsequent calls return an empty bytes object.
        """
        await checkpoint()
        with _read_timeout(timeout):
            while not self._closed:
                await self._waiters.wait()

        return self._buffer.consume_all()

    def unrecv(self, data: bytes) -> None:
        """Puts some bytes back in front of the buffer so the next read
        operation returns them first.
        """
        self._buffer.push_back(data)
        self._waiters.broadcast()

    ####################################################################
    # Write operations

    def write(self, data: bytes) -> None:
        """Sends some bytes to the remote side without waiting for them to
        be delivered.

        Raises:
            StreamClosedError: if the tube has no transport or the transport
                was already closed
        """
        self._get_transport().write(bytes(data))

    send = write

    def sendline(self, data: bytes = b"") -> None:
        """Sends some bytes followed by a newline character."""
        self.write(bytes(data) + b"\n")

    async def sendafter(
        self, delimiter: bytes, data: bytes, *, timeout: Optional[float] = None
    ) -> bytes:
        """Waits for the given delimiter, then sends some bytes.

        Returns:
            the bytes received up to and including the delimiter
        """
        received = await self.recvuntil(delimiter, timeout=timeout)
        self.write(data)
        return received

    async def sendlineafter(
        self, delimiter: bytes, data: bytes, *, timeout: Optional[float] = None
    ) -> bytes:
        """Waits for the given delimiter, then sends some bytes followed by a
        newline character.

        Returns:
            the bytes received up to and including the delimiter
        """
        received = await self.recvuntil(delimiter, timeout=timeout)
        self.sendline(data)
        return received

    def close(self) -> None:
        """Requests the transport to shut down the connection.

        The tube becomes closed when the transport signals the end of the
        stream.
        """
        self._get_transport().close()

    def _get_transport(self) -> Transport:
        if self._transport is None:
            raise StreamClosedError("tube is not bound to a transport")
        return self._transport
