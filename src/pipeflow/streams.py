"""Stream wiring: endpoints, stream pairs and descriptor ownership.

An endpoint is either the *default* standard stream of whichever process
uses it, or an explicit descriptor owned by the current process. Every
explicit descriptor the executor creates or is handed is tracked by a
``StreamWiring`` so it is closed exactly once, and so a forked worker can
drop every descriptor it did not ask for. A leaked write end keeps the
reader from ever seeing end-of-stream.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Dict, List, Optional

from .errors import FileOpenError

STDIN = 0
STDOUT = 1
STDERR = 2


class Endpoint:
    """An input or output byte-stream role."""

    __slots__ = ("fd", "_closed")

    def __init__(self, fd: Optional[int] = None):
        self.fd = fd
        self._closed = False

    @classmethod
    def default(cls) -> "Endpoint":
        return _DEFAULT

    @classmethod
    def attached(cls, fd: int) -> "Endpoint":
        if fd < 0:
            raise ValueError(f"Invalid descriptor: {fd}")
        return cls(fd)

    @property
    def is_default(self) -> bool:
        return self.fd is None

    @property
    def closed(self) -> bool:
        return self._closed

    def fileno(self, slot: int) -> int:
        """Descriptor to read or write; default endpoints resolve to ``slot``."""
        if self.fd is None:
            return slot
        if self._closed:
            raise ValueError(f"Endpoint on fd {self.fd} is closed")
        return self.fd

    def popen_arg(self) -> Optional[int]:
        """Value for Popen's stdin/stdout/stderr: None inherits the slot."""
        return None if self.fd is None else self.fileno(-1)

    def __repr__(self) -> str:
        if self.fd is None:
            return "Endpoint(default)"
        state = ", closed" if self._closed else ""
        return f"Endpoint(fd={self.fd}{state})"

    def _mark_closed(self) -> None:
        self._closed = True


_DEFAULT = Endpoint()


@dataclass(frozen=True)
class StreamPair:
    """Anonymous unidirectional byte channel."""

    read: Endpoint
    write: Endpoint


class StreamWiring:
    """Creates, tracks and closes the explicit descriptors of one process."""

    def __init__(self):
        self._owned: Dict[int, Endpoint] = {}

    @property
    def open_descriptors(self) -> List[int]:
        return sorted(self._owned)

    def adopt(self, *endpoints: Endpoint) -> None:
        """Take ownership of endpoints created elsewhere."""
        for endpoint in endpoints:
            if not endpoint.is_default and not endpoint.closed:
                self._owned[endpoint.fd] = endpoint

    def _track(self, fd: int) -> Endpoint:
        endpoint = Endpoint.attached(fd)
        self._owned[fd] = endpoint
        return endpoint

    def create_stream_pair(self) -> StreamPair:
        read_fd, write_fd = os.pipe()
        return StreamPair(read=self._track(read_fd), write=self._track(write_fd))

    def duplicate(self, endpoint: Endpoint) -> Endpoint:
        """Independent copy of ``endpoint``; default endpoints are shared."""
        if endpoint.is_default:
            return endpoint
        return self._track(os.dup(endpoint.fileno(-1)))

    def preserve(self, slot: int) -> Endpoint:
        """Tracked copy of a standard slot, taken before the slot is replaced."""
        return self._track(os.dup(slot))

    def open_file(self, path: str, flags: int, mode: int = 0o644) -> Endpoint:
        try:
            fd = os.open(path, flags, mode)
        except OSError as e:
            raise FileOpenError(f"Cannot open {path}: {e.strerror or e}") from e
        return self._track(fd)

    def close_if_explicit(self, endpoint: Endpoint) -> None:
        """Close an explicit endpoint once; no-op for default or closed ones."""
        if endpoint.is_default or endpoint.closed:
            return
        if self._owned.get(endpoint.fd) is endpoint:
            del self._owned[endpoint.fd]
        endpoint._mark_closed()
        os.close(endpoint.fd)

    def close_all_except(self, *keep: Endpoint) -> None:
        """Close every tracked endpoint not listed in ``keep``."""
        keep_ids = {id(endpoint) for endpoint in keep}
        for endpoint in list(self._owned.values()):
            if id(endpoint) not in keep_ids:
                self.close_if_explicit(endpoint)

    def _install(self, endpoint: Endpoint, slot: int) -> Endpoint:
        if endpoint.is_default:
            return endpoint
        fd = endpoint.fileno(slot)
        if fd == slot:
            # Already in place: the slot itself now holds it.
            self._owned.pop(fd, None)
            endpoint._mark_closed()
        else:
            os.dup2(fd, slot)
            self.close_if_explicit(endpoint)
        return Endpoint.default()

    def install_as_input(self, endpoint: Endpoint) -> Endpoint:
        """Replace this process's stdin with ``endpoint``."""
        return self._install(endpoint, STDIN)

    def install_as_output(self, endpoint: Endpoint) -> Endpoint:
        """Replace this process's stdout with ``endpoint``."""
        return self._install(endpoint, STDOUT)

    def install_as_diagnostic(self, endpoint: Endpoint) -> Endpoint:
        """Replace this process's stderr with ``endpoint``."""
        return self._install(endpoint, STDERR)


__all__ = [
    "STDERR",
    "STDIN",
    "STDOUT",
    "Endpoint",
    "StreamPair",
    "StreamWiring",
]
