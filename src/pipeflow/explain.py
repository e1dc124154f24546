"""Human-readable rendering of an action's item tree."""

from __future__ import annotations

from typing import List, Tuple

from .models import Command, Coupler, DiagnosticCapture, FileEndpoint, Item, Sequence
from .registry import Registry


def describe_item(item: Item) -> str:
    """One-line summary of a single item."""
    if isinstance(item, Command):
        return f"node {item.name}: {item.command_line}"
    if isinstance(item, Coupler):
        return f"pipe {item.name}: {item.from_ref} | {item.to_ref}"
    if isinstance(item, Sequence):
        return f"concatenate {item.name}: {', '.join(item.parts) or '(no parts)'}"
    if isinstance(item, DiagnosticCapture):
        return f"stderr {item.name}: 2> of {item.target_ref}"
    if isinstance(item, FileEndpoint):
        return f"file {item.name}: {item.path}"
    raise TypeError(f"Unsupported item type: {type(item).__name__}")


def _children(item: Item) -> List[Tuple[str, str]]:
    if isinstance(item, Coupler):
        return [("from", item.from_ref), ("to", item.to_ref)]
    if isinstance(item, Sequence):
        return [(f"part_{i}", name) for i, name in enumerate(item.parts, start=1)]
    if isinstance(item, DiagnosticCapture):
        return [("node", item.target_ref)]
    return []


def explain_action(registry: Registry, action: str) -> str:
    """Render the tree of items reachable from ``action``.

    A composite item that appears more than once is expanded only the first
    time; later mentions read ``<label>: <name> (shown above)``.

    Raises:
        UnknownItemError: If the action is not in the registry
    """
    lines: List[str] = []
    expanded = set()
    stack: List[Tuple[int, str, Item]] = [(0, "", registry.resolve(action))]
    while stack:
        depth, label, item = stack.pop()
        prefix = "  " * depth + (f"{label}: " if label else "")
        children = _children(item)
        if children and item.name in expanded:
            lines.append(f"{prefix}{item.name} (shown above)")
            continue
        lines.append(prefix + describe_item(item))
        if children:
            expanded.add(item.name)
        for child_label, name in reversed(children):
            stack.append((depth + 1, child_label, registry.resolve(name)))
    return "\n".join(lines)


__all__ = ["describe_item", "explain_action"]
