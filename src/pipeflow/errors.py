"""Error taxonomy shared by the loader, the registry and the executor."""

from __future__ import annotations

from typing import Optional, Sequence


class FlowError(Exception):
    """Base class for every error pipeflow reports to the operator."""

    pass


class UnknownItemError(FlowError):
    """A name is absent from the registry."""

    def __init__(self, name: str, referrer: Optional[str] = None):
        self.name = name
        self.referrer = referrer
        if referrer:
            message = f"Item '{name}' referenced by '{referrer}' not found"
        else:
            message = f"Item '{name}' not found"
        super().__init__(message)


class CyclicReferenceError(FlowError):
    """Items reference each other in a loop."""

    def __init__(self, cycle: Sequence[str]):
        self.cycle = list(cycle)
        super().__init__(f"Cyclic reference: {' -> '.join(self.cycle)}")


class FlowSyntaxError(FlowError):
    """Malformed .flow text."""

    def __init__(self, message: str, line: Optional[int] = None):
        self.line = line
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(message)


class FlowFileError(FlowError):
    """The .flow file itself could not be read."""

    pass


class FlowConnectionError(FlowError):
    """An endpoint lacks the wiring its item needs."""

    pass


class SpawnError(FlowError):
    """Process creation failed."""

    pass


class ExecError(FlowError):
    """The command interpreter could not be started."""

    pass


class FileOpenError(FlowError):
    """A file endpoint could not be opened."""

    pass


class SinkWriteError(FlowError):
    """Writing to a stream or file failed."""

    pass


class StreamReadError(FlowError):
    """Reading from a stream or file failed."""

    pass


class BranchFailedError(FlowError):
    """A forked worker exited with a non-zero status.

    The worker has already reported its own diagnostic.
    """

    def __init__(self, name: str, status: int):
        self.name = name
        self.status = status
        super().__init__(f"Branch '{name}' failed with exit code {status}")


class CommandFailedError(FlowError):
    """A command exited non-zero while strict mode was on."""

    def __init__(self, name: str, status: int):
        self.name = name
        self.status = status
        super().__init__(f"Command '{name}' failed with exit code {status}")


__all__ = [
    "BranchFailedError",
    "CommandFailedError",
    "CyclicReferenceError",
    "ExecError",
    "FileOpenError",
    "FlowConnectionError",
    "FlowError",
    "FlowFileError",
    "FlowSyntaxError",
    "SinkWriteError",
    "SpawnError",
    "StreamReadError",
    "UnknownItemError",
]
