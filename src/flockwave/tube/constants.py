"""Constants used in several places throughout the tube package."""

__all__ = ("DEFAULT_CHUNK_SIZE", "DEFAULT_CONNECT_TIMEOUT")


DEFAULT_CHUNK_SIZE: int = 4096
"""Maximum number of bytes that a transport reads from its stream in one go"""

DEFAULT_CONNECT_TIMEOUT: float = 10
"""Default timeout of connection attempts, in seconds"""
