"""Byte accumulator that stores the unread part of an incoming byte stream."""

from typing import Optional

__all__ = ("ByteBuffer",)


class ByteBuffer:
    """Byte accumulator that holds the bytes received from a transport that
    were not consumed yet.

    The buffer consists of a backing byte region and a read offset into it.
    Bytes before the offset are already consumed; bytes after the offset are
    the unread region. Consumed bytes are discarded whenever a new chunk is
    appended, so the resident size of the buffer is bounded by the number of
    unread bytes plus the size of the last chunk.
    """

    _data: bytes
    """The backing byte region of the buffer."""

    _offset: int
    """Index of the first unread byte in the backing region."""

    def __init__(self):
        """Constructor.

        Creates an empty buffer.
        """
        self._data = b""
        self._offset = 0

    def __len__(self) -> int:
        return len(self._data) - self._offset

    @property
    def allocated(self) -> int:
        """Returns the size of the backing region, including the consumed
        bytes that were not compacted away yet.
        """
        return len(self._data)

    def append(self, chunk: bytes) -> None:
        """Appends a chunk of bytes to the end of the unread region.

        The unread region and the chunk are copied into a freshly sized
        region; bytes that were already consumed are dropped.

        Parameters:
            chunk: the bytes to append
        """
        self._data = self._data[self._offset :] + bytes(chunk)
        self._offset = 0

    def consume(self, n: int) -> bytes:
        """Consumes the given number of bytes from the start of the unread
        region.

        Parameters:
            n: the number of bytes to consume

        Returns:
            the consumed bytes

        Raises:
            ValueError: if ``n`` is negative or larger than the number of
                unread bytes
        """
        if n < 0 or n > len(self):
            raise ValueError(
                f"cannot consume {n} bytes, only {len(self)} bytes are available"
            )

        end = self._offset + n
        result = self._data[self._offset : end]
        self._offset = end
        return result

    def consume_all(self) -> bytes:
        """Consumes the entire unread region and returns it."""
        return self.consume(len(self))

    def find(self, sub: bytes) -> int:
        """Finds the first occurrence of the given byte sequence in the
        unread region.

        Returns:
            the index of the first occurrence relative to the start of the
            unread region, or -1 if the sequence is not in the buffer
        """
        index = self._data.find(sub, self._offset)
        return index - self._offset if index >= 0 else -1

    def peek(self, n: Optional[int] = None) -> bytes:
        """Returns the unread bytes (or the first ``n`` of them) without
        consuming them.
        """
        if n is None:
            return self._data[self._offset :]
        return self._data[self._offset : self._offset + n]

    def push_back(self, data: bytes) -> None:
        """Pushes some bytes back in front of the unread region so that they
        will be the first ones to be consumed.
        """
        self._data = bytes(data) + self._data[self._offset :]
        self._offset = 0
