"""Indentation-delimited declaration extraction (Python)."""

import re

from devcanvas.core.types.common import ChunkKind
from devcanvas.parsers.strategies.base import SymbolSpan, SyntacticStrategy, split_parameters

_DEF = re.compile(
    r"^(?P<indent>[ \t]*)(?:async[ \t]+)?def[ \t]+(?P<name>\w+)[ \t]*\((?P<params>[^)]*)\)",
    re.MULTILINE,
)
_CLASS = re.compile(
    r"^(?P<indent>[ \t]*)class[ \t]+(?P<name>\w+)[ \t]*(?:\((?P<bases>[^)]*)\))?[ \t]*:",
    re.MULTILINE,
)

# Bases that make a class a structural interface
_INTERFACE_BASES = frozenset({"Protocol", "typing.Protocol"})

# A multi-line header is abandoned after this many lines
_MAX_HEADER_LINES = 30


def _indent_width(line: str) -> int:
    return len(line.expandtabs(4)) - len(line.expandtabs(4).lstrip())


def _header_end(lines: list[str], start: int) -> int:
    """Last line of a declaration header whose brackets may span lines."""
    depth = 0
    for idx in range(start, min(len(lines), start + _MAX_HEADER_LINES)):
        for ch in lines[idx].split("#", 1)[0]:
            if ch in "([{":
                depth += 1
            elif ch in ")]}":
                depth -= 1
        if depth <= 0:
            return idx
    return start


def _open_triple_quote(line: str, open_quote: str | None) -> str | None:
    """Triple-quote delimiter still open after scanning ``line``."""
    i = 0
    while True:
        if open_quote is not None:
            close = line.find(open_quote, i)
            if close == -1:
                return open_quote
            i = close + 3
            open_quote = None
            continue
        found = [(line.find(q, i), q) for q in ('"""', "'''")]
        found = [(pos, q) for pos, q in found if pos != -1]
        if not found:
            return None
        pos, open_quote = min(found)
        i = pos + 3


def _parse_bases(raw: str | None) -> tuple[str, ...]:
    if not raw:
        return ()
    bases = []
    for part in raw.split(","):
        part = part.strip()
        if not part or "=" in part:
            continue
        bases.append(part.split("[", 1)[0].strip())
    return tuple(bases)


class IndentationStrategy(SyntacticStrategy):
    """Python declarations.

    The body of a ``def`` or ``class`` is every following line indented
    deeper than the declaration itself; blank lines inside the body are kept
    and trailing blank lines are trimmed. Decorators directly above the
    declaration belong to the span.
    """

    def extract(self, content: str) -> list[SymbolSpan]:
        lines = content.split("\n")
        spans: list[SymbolSpan] = []

        for regex, kind in ((_CLASS, ChunkKind.CLASS), (_DEF, ChunkKind.FUNCTION)):
            for match in regex.finditer(content):
                decl = content.count("\n", 0, match.start())
                span = self._span_for(lines, decl, match, kind)
                if span is not None:
                    spans.append(span)

        spans.sort(key=lambda span: (span.start_line, -span.end_line))
        return spans

    def _span_for(
        self, lines: list[str], decl: int, match: re.Match[str], kind: ChunkKind
    ) -> SymbolSpan | None:
        base_indent = _indent_width(lines[decl])
        header_end = _header_end(lines, decl)

        end = header_end
        open_quote: str | None = None
        for idx in range(header_end + 1, len(lines)):
            line = lines[idx]
            # Lines inside a triple-quoted string never end the body
            if open_quote is None:
                if not line.strip():
                    continue
                if _indent_width(line) <= base_indent:
                    break
            end = idx
            open_quote = _open_triple_quote(line, open_quote)

        # Without a colon there is no body at all (e.g. a truncated header)
        if end == header_end and ":" not in lines[header_end]:
            return None

        start = decl
        while start > 0 and lines[start - 1].strip().startswith("@"):
            start -= 1

        name = match.group("name")
        if kind is ChunkKind.CLASS:
            bases = _parse_bases(match.group("bases"))
            if _INTERFACE_BASES.intersection(bases):
                kind = ChunkKind.INTERFACE
            return SymbolSpan(
                kind=kind,
                name=name,
                start_line=start + 1,
                end_line=end + 1,
                content="\n".join(lines[start:end + 1]),
                base_types=bases,
            )

        return SymbolSpan(
            kind=kind,
            name=name,
            start_line=start + 1,
            end_line=end + 1,
            content="\n".join(lines[start:end + 1]),
            parameters=split_parameters(match.group("params")),
        )
