"""Pydantic models for flow items."""

from .items import (
    Command,
    Coupler,
    DiagnosticCapture,
    FileEndpoint,
    Item,
    Sequence,
)

__all__ = [
    "Command",
    "Coupler",
    "DiagnosticCapture",
    "FileEndpoint",
    "Item",
    "Sequence",
]
