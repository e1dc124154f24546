"""Item registry: an immutable, validated name -> item mapping."""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Union

from pydantic import TypeAdapter, ValidationError

from .errors import CyclicReferenceError, FlowSyntaxError, UnknownItemError
from .models import Item

_ITEM_ADAPTER: TypeAdapter = TypeAdapter(Item)


class Registry:
    """Resolved item graph.

    Built once by ``build_registry``; every reference is known to exist and
    the reference graph is known to be acyclic.
    """

    def __init__(self, items: Mapping[str, Item]):
        self._items = MappingProxyType(dict(items))

    def resolve(self, name: str) -> Item:
        try:
            return self._items[name]
        except KeyError:
            raise UnknownItemError(name) from None

    def names(self) -> List[str]:
        return list(self._items)

    def __contains__(self, name: object) -> bool:
        return name in self._items

    def __iter__(self) -> Iterator[Item]:
        return iter(self._items.values())

    def __len__(self) -> int:
        return len(self._items)


def _find_cycle(items: Mapping[str, Item]) -> List[str] | None:
    """Return one reference cycle as a list of names, or None.

    Iterative depth-first search.
    """
    done = set()
    for root in items:
        if root in done:
            continue
        path: List[str] = [root]
        on_path = {root}
        pending = [iter(items[root].references())]
        while pending:
            ref = next(pending[-1], None)
            if ref is None:
                pending.pop()
                finished = path.pop()
                on_path.discard(finished)
                done.add(finished)
                continue
            if ref in on_path:
                return path[path.index(ref):] + [ref]
            if ref in done:
                continue
            path.append(ref)
            on_path.add(ref)
            pending.append(iter(items[ref].references()))
    return None


def build_registry(items: Iterable[Union[Item, Dict[str, Any]]]) -> Registry:
    """Validate items and build a Registry.

    Args:
        items: Item models, or plain dicts carrying a ``kind`` discriminator

    Raises:
        FlowSyntaxError: If an item is malformed or two items share a name
        UnknownItemError: If an item references a name that does not exist
        CyclicReferenceError: If the reference graph contains a cycle
    """
    by_name: Dict[str, Item] = {}
    for raw in items:
        if isinstance(raw, dict):
            try:
                item = _ITEM_ADAPTER.validate_python(raw)
            except ValidationError as e:
                label = raw.get("name") or "<unnamed>"
                raise FlowSyntaxError(f"Invalid item '{label}': {e.errors()[0]['msg']}") from e
        else:
            item = raw
        if item.name in by_name:
            raise FlowSyntaxError(f"Duplicate item name: {item.name}")
        by_name[item.name] = item

    for item in by_name.values():
        for ref in item.references():
            if ref not in by_name:
                raise UnknownItemError(ref, referrer=item.name)

    cycle = _find_cycle(by_name)
    if cycle:
        raise CyclicReferenceError(cycle)

    return Registry(by_name)


__all__ = ["Registry", "build_registry"]
