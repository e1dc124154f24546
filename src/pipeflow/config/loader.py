"""Loader for the line-oriented .flow format.

A .flow file is a list of ``key=value`` lines grouped into sections. Each
section opens with ``<kind>=<name>`` and is closed by its terminating
attribute:

    node=<name>           command=<line>
    pipe=<name>           from=<ref>, then to=<ref>
    concatenate=<name>    part_<n>=<ref>... (closed by the next section)
    stderr=<name>         node=<ref>
    file=<name>           path=<path>

``error`` is accepted for ``stderr`` and ``input``/``output`` for ``path``.
Blank lines, ``#`` comments and lines without ``=`` are skipped; unknown keys
are ignored.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ..errors import FlowFileError, FlowSyntaxError
from ..registry import Registry, build_registry

SECTION_KINDS = {
    "node": "node",
    "pipe": "pipe",
    "concatenate": "concatenate",
    "stderr": "stderr",
    "error": "stderr",
    "file": "file",
}

FILE_PATH_KEYS = ("path", "input", "output")


class _Section:
    def __init__(self, kind: str, name: str, line: int):
        self.kind = kind
        self.name = name
        self.line = line
        self.attrs: Dict[str, Any] = {}
        if kind == "concatenate":
            self.attrs["parts"] = []

    def to_record(self) -> Dict[str, Any]:
        return {"kind": self.kind, "name": self.name, **self.attrs}


class _FlowParser:
    def __init__(self):
        self.records: List[Dict[str, Any]] = []
        self.seen: Dict[str, int] = {}
        self.current: Optional[_Section] = None

    def feed(self, lineno: int, raw: str) -> None:
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            return

        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip()
        section = self.current

        # Terminating and in-section attributes take priority over new sections
        if section is not None and self._attribute(section, key, value, lineno):
            return

        if key in SECTION_KINDS:
            self._close_open(lineno)
            self._open(SECTION_KINDS[key], value, lineno)

    def finish(self) -> List[Dict[str, Any]]:
        self._close_open(None)
        return self.records

    def _attribute(self, section: _Section, key: str, value: str, lineno: int) -> bool:
        kind = section.kind
        if kind == "node" and key == "command":
            section.attrs["command_line"] = value
            self._complete()
        elif kind == "pipe" and key == "from":
            section.attrs["from_ref"] = self._ref(value, lineno)
        elif kind == "pipe" and key == "to":
            if "from_ref" not in section.attrs:
                raise FlowSyntaxError(
                    f"pipe '{section.name}' has 'to' before 'from'", line=lineno
                )
            section.attrs["to_ref"] = self._ref(value, lineno)
            self._complete()
        elif kind == "concatenate" and key.startswith("part_"):
            section.attrs["parts"].append(self._ref(value, lineno))
        elif kind == "stderr" and key == "node":
            section.attrs["target_ref"] = self._ref(value, lineno)
            self._complete()
        elif kind == "file" and key in FILE_PATH_KEYS:
            if not value:
                raise FlowSyntaxError(
                    f"file '{section.name}' has an empty path", line=lineno
                )
            section.attrs["path"] = value
            self._complete()
        else:
            return False
        return True

    def _open(self, kind: str, name: str, lineno: int) -> None:
        if not name:
            raise FlowSyntaxError(f"{kind} section without a name", line=lineno)
        if name in self.seen:
            raise FlowSyntaxError(
                f"Duplicate item name '{name}' (first defined on line {self.seen[name]})",
                line=lineno,
            )
        self.seen[name] = lineno
        self.current = _Section(kind, name, lineno)

    def _complete(self) -> None:
        self.records.append(self.current.to_record())
        self.current = None

    def _close_open(self, lineno: Optional[int]) -> None:
        section = self.current
        if section is None:
            return
        if section.kind == "concatenate":
            self._complete()
            return
        missing = {
            "node": "command",
            "pipe": "to",
            "stderr": "node",
            "file": "path",
        }[section.kind]
        raise FlowSyntaxError(
            f"{section.kind} '{section.name}' (line {section.line}) is missing '{missing}'",
            line=lineno,
        )

    @staticmethod
    def _ref(value: str, lineno: int) -> str:
        if not value:
            raise FlowSyntaxError("Empty item reference", line=lineno)
        return value


def parse_flow(text: str) -> Registry:
    """Parse .flow text into a validated Registry.

    Args:
        text: Contents of a .flow file

    Returns:
        Registry holding every item declared in the text

    Raises:
        FlowSyntaxError: Incomplete section, duplicate or empty name
        UnknownItemError: A reference names an undeclared item
        CyclicReferenceError: Items reference each other in a loop
    """
    parser = _FlowParser()
    for lineno, line in enumerate(text.splitlines(), start=1):
        parser.feed(lineno, line)
    return build_registry(parser.finish())


def load_flow(path: Union[str, Path]) -> Registry:
    """Read and parse a .flow file."""
    flow_path = Path(path)
    try:
        text = flow_path.read_text()
    except OSError as e:
        raise FlowFileError(f"Cannot read flow file {flow_path}: {e.strerror or e}") from e
    return parse_flow(text)


__all__ = ["load_flow", "parse_flow"]
