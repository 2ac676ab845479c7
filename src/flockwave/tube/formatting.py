"""Formatting functions for displaying raw bytes received from a tube."""

__all__ = ("format_hexdump",)


_PRINTABLE = bytes([i if i >= 32 and i < 127 else 46 for i in range(256)])


def format_hexdump(data: bytes, offset: int = 0) -> list[str]:
    """Formats the given bytes as a canonical hex dump.

    Each line contains sixteen bytes: the offset of the first byte, two groups
    of eight bytes in hexadecimal notation and the printable representation
    of the bytes, where non-printable characters are replaced with dots.

    Parameters:
        data: the bytes to format
        offset: the offset of the first byte; useful when dumping a stream
            chunk by chunk

    Returns:
        the lines of the hex dump, without trailing newlines
    """
    lines = []
    for start in range(0, len(data), 16):
        row = data[start : start + 16]
        parts = [
            f"{offset + start:08x}  ",
            row[:8].hex(" "),
            "  ",
            row[8:].hex(" "),
        ]
        printable = row.translate(_PRINTABLE).decode("ascii")
        lines.append("".join(parts).ljust(60) + "|" + printable + "|")
    return lines
