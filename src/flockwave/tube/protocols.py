"""Narrow interfaces between tubes and the transports that feed them."""

from typing import Optional, Protocol

__all__ = ("StreamSink", "Transport")


class StreamSink(Protocol):
    """Interface that a transport uses to deliver incoming data and the end
    of the stream to a consumer.
    """

    def feed(self, data: bytes) -> None:
        """Delivers a chunk of incoming bytes, in the order they arrived."""
        ...

    def feed_eof(self, error: Optional[BaseException] = None) -> None:
        """Signals that no more bytes will be delivered.

        Parameters:
            error: the exception that terminated the stream, or ``None`` if
                the stream ended cleanly
        """
        ...


class Transport(Protocol):
    """Interface that a tube uses to send data and to request shutdown."""

    def write(self, data: bytes) -> None:
        """Sends some bytes to the remote side without waiting for them to be
        delivered.

        Raises:
            StreamClosedError: if the transport was already closed
        """
        ...

    def close(self) -> None:
        """Requests the transport to shut down the connection once the data
        written so far was sent. Calling it multiple times is allowed.
        """
        ...
