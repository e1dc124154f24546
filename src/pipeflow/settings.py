"""Runtime settings for the executor."""

import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_SHELL = "/bin/sh"
DEFAULT_CHUNK_SIZE = 4096

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class FlowSettings:
    """Resolved executor settings."""

    shell: str = DEFAULT_SHELL
    chunk_size: int = DEFAULT_CHUNK_SIZE
    strict: bool = False
    verbose: bool = False


def _env_flag(name: str) -> Optional[bool]:
    value = os.environ.get(name)
    if value is None or not value.strip():
        return None
    return value.strip().lower() in _TRUE_VALUES


def _parse_chunk_size(value) -> int:
    try:
        size = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid chunk size: {value!r}") from None
    if size <= 0:
        raise ValueError(f"Chunk size must be positive, got {size}")
    return size


def resolve_settings(
    shell: Optional[str] = None,
    chunk_size: Optional[int] = None,
    strict: Optional[bool] = None,
    verbose: Optional[bool] = None,
) -> FlowSettings:
    """Resolve executor settings.

    Resolution order for each field:
    1. Explicit argument (CLI flag)
    2. $PIPEFLOW_SHELL / $PIPEFLOW_CHUNK_SIZE / $PIPEFLOW_STRICT / $PIPEFLOW_VERBOSE
    3. Built-in default

    Reads fresh from environment each time.

    Raises:
        ValueError: If the chunk size is not a positive integer
    """
    if shell is None:
        shell = os.environ.get("PIPEFLOW_SHELL") or DEFAULT_SHELL

    if chunk_size is None:
        env_chunk = os.environ.get("PIPEFLOW_CHUNK_SIZE")
        chunk_size = env_chunk if env_chunk else DEFAULT_CHUNK_SIZE
    chunk_size = _parse_chunk_size(chunk_size)

    if strict is None:
        strict = bool(_env_flag("PIPEFLOW_STRICT"))
    if verbose is None:
        verbose = bool(_env_flag("PIPEFLOW_VERBOSE"))

    return FlowSettings(
        shell=shell, chunk_size=chunk_size, strict=strict, verbose=verbose
    )
