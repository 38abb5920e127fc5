"""Syntactic extraction strategy interface."""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass

from devcanvas.core.types.common import ChunkKind


@dataclass(frozen=True)
class SymbolSpan:
    """A declaration located in a file.

    Line numbers are 1-based and inclusive, relative to the text handed to
    the strategy.
    """

    kind: ChunkKind
    name: str
    start_line: int
    end_line: int
    content: str
    base_types: tuple[str, ...] = ()
    parameters: tuple[str, ...] = ()

    def shifted(self, offset: int) -> "SymbolSpan":
        """Return a copy with line numbers moved down by ``offset``."""
        return SymbolSpan(
            kind=self.kind,
            name=self.name,
            start_line=self.start_line + offset,
            end_line=self.end_line + offset,
            content=self.content,
            base_types=self.base_types,
            parameters=self.parameters,
        )


class SyntacticStrategy(ABC):
    """Finds class, function and interface declarations in source text."""

    @abstractmethod
    def extract(self, content: str) -> list[SymbolSpan]:
        """Return declaration spans in source order."""


_GENERIC_ARGS = re.compile(r"<[^<>]*>")
_BASE_CLAUSE = re.compile(
    r"(?:\bextends\b|\bimplements\b|\bwith\b|:)\s*([^{=;]+)", re.DOTALL
)
_NAME_TOKEN = re.compile(r"[A-Za-z_][\w.]*")
_PAREN_GROUP = re.compile(r"\([^()]*\)")
_BASE_STOP_WORDS = frozenset({"extends", "implements", "with", "where", "public", "private"})


def split_parameters(raw: str | None, name_first: bool = False) -> tuple[str, ...]:
    """Split a raw parameter list into parameter names (best effort).

    Handles "name: Type" (TS, Python, Kotlin, Rust, Swift, Scala) and
    "Type name" (Java, C#, C). Go writes "name Type", so callers pass
    ``name_first=True`` for it.
    """
    if not raw:
        return ()
    raw = _GENERIC_ARGS.sub("", raw)
    names: list[str] = []
    for part in raw.split(","):
        part = part.split("=", 1)[0].strip()
        if not part:
            continue
        annotated = ":" in part
        if annotated:
            part = part.split(":", 1)[0].strip()
        tokens = _NAME_TOKEN.findall(part)
        if not tokens:
            continue
        names.append(tokens[0] if annotated or name_first else tokens[-1])
    return tuple(n for n in names if n not in ("self", "cls", "this"))


def parse_base_types(header: str, name: str) -> tuple[str, ...]:
    """Extract inherited or implemented type names from a declaration header."""
    idx = header.find(name)
    tail = header[idx + len(name):] if idx >= 0 else header
    tail = _GENERIC_ARGS.sub("", _GENERIC_ARGS.sub("", tail))
    # Constructor parameter lists (Kotlin, Scala, Dart) are not base types
    tail = _PAREN_GROUP.sub("", tail)
    bases: list[str] = []
    for clause in _BASE_CLAUSE.findall(tail):
        for token in _NAME_TOKEN.findall(clause):
            if token in _BASE_STOP_WORDS or token in bases:
                continue
            bases.append(token)
    return tuple(bases)
