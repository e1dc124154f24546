"""Process spawning for command items.

Wraps subprocess.Popen with argument validation and with the descriptor
hand-off rule: once a child holds an endpoint, the parent closes its own
copy and never touches it again.
"""

from __future__ import annotations

import os
import subprocess
from collections.abc import Sequence
from typing import Any

from .errors import ExecError, SpawnError
from .settings import DEFAULT_SHELL
from .streams import Endpoint, StreamWiring

CommandArg = str | os.PathLike[str]


def _interpreter_argv(shell: CommandArg, command_line: str) -> list[str]:
    """Build ``[shell, "-c", command_line]``, rejecting blank parts."""
    if isinstance(shell, os.PathLike):
        shell = os.fspath(shell)
    if not isinstance(shell, str) or not isinstance(command_line, str):
        raise TypeError("Interpreter and command line must be strings")
    if not shell.strip():
        raise ValueError("No command interpreter configured")
    if not command_line.strip():
        raise ValueError("Command line is empty")
    return [shell, "-c", command_line]


def popen_argv(argv: Sequence[str], **kwargs: Any) -> subprocess.Popen[Any]:
    """Popen an argument vector; never goes through an extra shell layer."""
    return subprocess.Popen(list(argv), **kwargs)  # noqa: S603


def spawn(
    command_line: str,
    stdin: Endpoint,
    stdout: Endpoint,
    stderr: Endpoint,
    *,
    wiring: StreamWiring,
    shell: str = DEFAULT_SHELL,
) -> subprocess.Popen[bytes]:
    """Start ``<shell> -c <command_line>`` with the given endpoints.

    Explicit endpoints are installed into the child's standard slots; default
    ones are inherited unchanged. The parent's copies of explicit endpoints
    are closed whether or not the spawn succeeds.

    Args:
        command_line: Opaque command text for the interpreter
        stdin: Endpoint for the child's standard input
        stdout: Endpoint for the child's standard output
        stderr: Endpoint for the child's diagnostic stream
        wiring: Owner of the explicit endpoints
        shell: Command interpreter

    Returns:
        Popen handle for the running process

    Raises:
        ExecError: If the interpreter cannot be executed
        SpawnError: If the process cannot be created
    """
    try:
        return popen_argv(
            _interpreter_argv(shell, command_line),
            stdin=stdin.popen_arg(),
            stdout=stdout.popen_arg(),
            stderr=stderr.popen_arg(),
        )
    except (FileNotFoundError, PermissionError) as e:
        raise ExecError(f"Cannot execute {shell}: {e.strerror or e}") from e
    except (OSError, ValueError) as e:
        raise SpawnError(f"Failed to spawn '{command_line}': {e}") from e
    finally:
        for endpoint in (stdin, stdout, stderr):
            wiring.close_if_explicit(endpoint)


__all__ = ["popen_argv", "spawn"]
