"""Error classes for the tube module."""

__all__ = (
    "Error",
    "ConnectionFailedError",
    "ReadTimeoutError",
    "StreamClosedError",
)


class Error(RuntimeError):
    """Base class for all exceptions that are thrown from the tube module."""

    pass


class ConnectionFailedError(Error):
    """Error thrown when the connection to a remote endpoint could not be
    established, including failed TLS handshakes and connection timeouts.
    """

    pass


class ReadTimeoutError(Error):
    """Error thrown when a blocking read on a tube did not complete within
    the given timeout.
    """

    pass


class StreamClosedError(Error):
    """Error thrown when attempting to write to or feed a stream that has
    already been closed.
    """

    pass
