"""Item models: the five kinds of named unit a flow graph is built from."""

from __future__ import annotations

from typing import Annotated, List, Literal, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field


class _Item(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)

    def references(self) -> Tuple[str, ...]:
        """Names of the items this one refers to, in declaration order."""
        return ()


class Command(_Item):
    """A single shell command (``node`` section)."""

    kind: Literal["node"] = "node"
    command_line: str = Field(min_length=1)


class Coupler(_Item):
    """Output of ``from_ref`` feeds the input of ``to_ref`` (``pipe`` section)."""

    kind: Literal["pipe"] = "pipe"
    from_ref: str
    to_ref: str

    def references(self) -> Tuple[str, ...]:
        return (self.from_ref, self.to_ref)


class Sequence(_Item):
    """Parts run in order against one input; outputs are concatenated."""

    kind: Literal["concatenate"] = "concatenate"
    parts: List[str] = Field(default_factory=list)

    def references(self) -> Tuple[str, ...]:
        return tuple(self.parts)


class DiagnosticCapture(_Item):
    """Route the target's diagnostic stream to this item's output."""

    kind: Literal["stderr"] = "stderr"
    target_ref: str

    def references(self) -> Tuple[str, ...]:
        return (self.target_ref,)


class FileEndpoint(_Item):
    """A file that acts as source or sink depending on how it is wired."""

    kind: Literal["file"] = "file"
    path: str


Item = Annotated[
    Union[Command, Coupler, Sequence, DiagnosticCapture, FileEndpoint],
    Field(discriminator="kind"),
]


__all__ = [
    "Command",
    "Coupler",
    "DiagnosticCapture",
    "FileEndpoint",
    "Item",
    "Sequence",
]
