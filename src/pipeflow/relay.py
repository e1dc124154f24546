"""Parent-side byte relays.

Used wherever the executor must see a sub-item's bytes itself instead of
letting two children talk directly: sequence buffering, diagnostic capture
and file endpoints.
"""

import os

from .errors import SinkWriteError, StreamReadError
from .settings import DEFAULT_CHUNK_SIZE

CHUNK_SIZE = DEFAULT_CHUNK_SIZE


def _read(fd: int, chunk_size: int) -> bytes:
    try:
        return os.read(fd, chunk_size)
    except OSError as e:
        raise StreamReadError(f"Read from fd {fd} failed: {e.strerror or e}") from e


def write_all(fd: int, data: bytes) -> None:
    """Write every byte of ``data`` to ``fd``, looping over partial writes.

    Raises:
        SinkWriteError: If the write fails (including a broken pipe)
    """
    view = memoryview(data)
    while view:
        try:
            written = os.write(fd, view)
        except OSError as e:
            raise SinkWriteError(f"Write to fd {fd} failed: {e.strerror or e}") from e
        view = view[written:]


def relay(source: int, *sinks: int, chunk_size: int = CHUNK_SIZE) -> int:
    """Copy ``source`` to every sink until end-of-stream.

    Args:
        source: Descriptor to read from
        sinks: Descriptors to write each chunk to, in order (tee)
        chunk_size: Maximum bytes per read

    Returns:
        Number of bytes read from ``source``
    """
    total = 0
    while True:
        chunk = _read(source, chunk_size)
        if not chunk:
            return total
        for sink in sinks:
            write_all(sink, chunk)
        total += len(chunk)


def drain(source: int, chunk_size: int = CHUNK_SIZE) -> bytes:
    """Read ``source`` to end-of-stream and return everything read."""
    chunks = []
    while True:
        chunk = _read(source, chunk_size)
        if not chunk:
            return b"".join(chunks)
        chunks.append(chunk)


__all__ = ["CHUNK_SIZE", "drain", "relay", "write_all"]
