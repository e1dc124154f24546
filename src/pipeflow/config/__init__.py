"""Config layer: turning .flow text into an item registry."""

from .loader import load_flow, parse_flow

__all__ = ["load_flow", "parse_flow"]
