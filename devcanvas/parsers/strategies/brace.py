"""Brace-delimited declaration extraction.

# FILE_CONTEXT: Regex + brace-depth extraction for C-family languages
# ROLE: Locates class/function/interface bodies without a grammar
# CONSTRAINT: Braces inside string literals and comments never change depth
# LIMITATION: Declarations inside comments or strings may still be matched;
#             full language-accurate parsing is out of scope
"""

import re
from bisect import bisect_right
from dataclasses import dataclass

from devcanvas.core.types.common import ChunkKind, Language
from devcanvas.parsers.strategies.base import (
    SymbolSpan,
    SyntacticStrategy,
    parse_base_types,
    split_parameters,
)

# Words a permissive method regex can mistake for a name or return type
CONTROL_KEYWORDS = frozenset(
    {
        "if", "else", "elif", "for", "foreach", "while", "do", "switch",
        "case", "catch", "try", "finally", "return", "new", "throw",
        "function", "synchronized", "using", "lock", "fixed", "when",
        "match", "loop", "guard", "defer", "sizeof", "typeof", "await",
        "yield", "with", "super", "this", "unless",
    }
)

# Callees whose function-literal arguments look like method declarations
CALLBACK_HOSTS = frozenset(
    {
        "describe", "it", "test", "suite", "context", "beforeEach", "afterEach",
        "beforeAll", "afterAll", "expect", "setTimeout", "setInterval",
        "setImmediate", "requestAnimationFrame", "setState", "then", "forEach",
        "map", "filter", "reduce", "addEventListener", "on", "once",
        "useEffect", "useCallback", "useMemo", "runInAction", "addPostFrameCallback",
    }
)

# Parameter text that only appears in call arguments
_CALL_ARGUMENT = re.compile(r"[(\"'`]|=>|\bfunction\b")

# Longest declaration header scanned for the opening brace
_MAX_HEADER_CHARS = 600

# Tokens that may start a continuation line of a declaration header
_CONTINUATION = re.compile(
    r"(?:extends|implements|throws|where|with|:|,|\.|\)|->|\||&)"
)


@dataclass(frozen=True)
class DeclarationPattern:
    """One declaration form of a language.

    The regex must define a ``name`` group and may define ``params`` and
    ``rtype``. With ``body_follows`` only whitespace may separate the match
    from the opening brace (arrow functions). With ``reject_call_sites`` a match
    that reads as a call passing a callback (``it("x", function () {``) is
    skipped.
    """

    kind: ChunkKind
    regex: re.Pattern[str]
    body_follows: bool = False
    name_first_params: bool = False
    reject_call_sites: bool = False


def _p(kind: ChunkKind, pattern: str, **kwargs: bool) -> DeclarationPattern:
    return DeclarationPattern(kind, re.compile(pattern, re.MULTILINE), **kwargs)


_JS_ID = r"[A-Za-z_$][\w$]*"
_JS_MODS = r"(?:(?:export|default|declare|abstract)\s+)*"

_JS_PATTERNS = [
    _p(ChunkKind.CLASS, rf"^[ \t]*{_JS_MODS}class\s+(?P<name>{_JS_ID})"),
    _p(ChunkKind.INTERFACE, rf"^[ \t]*{_JS_MODS}interface\s+(?P<name>{_JS_ID})"),
    _p(
        ChunkKind.FUNCTION,
        rf"^[ \t]*{_JS_MODS}(?:async\s+)?function\s*\*?\s*(?P<name>{_JS_ID})"
        rf"\s*(?:<[^>]*>)?\s*\((?P<params>[^)]*)\)",
    ),
    _p(
        ChunkKind.FUNCTION,
        rf"^[ \t]*(?:export\s+)?(?:const|let|var)\s+(?P<name>{_JS_ID})\s*"
        rf"(?::[^=\n]+)?=\s*(?:async\s+)?(?:\((?P<params>[^)]*)\)|{_JS_ID})"
        rf"\s*(?::[^=\n]+)?=>",
        body_follows=True,
    ),
    _p(
        ChunkKind.FUNCTION,
        rf"^[ \t]+(?:(?:public|private|protected|static|readonly|async|override|get|set)\s+)*"
        rf"\*?(?P<name>{_JS_ID})\s*(?:<[^>]*>)?\s*\((?P<params>[^)]*)\)"
        rf"\s*(?::\s*(?:[^{{}};=\n]|\{{[^{{}}\n]*\}})+)?\{{",
        reject_call_sites=True,
    ),
]

_JAVA_MODS = r"(?:(?:public|protected|private|static|abstract|final|sealed|non-sealed|strictfp)\s+)*"

_JAVA_PATTERNS = [
    _p(ChunkKind.CLASS, rf"^[ \t]*{_JAVA_MODS}(?:class|enum|record)\s+(?P<name>\w+)"),
    _p(ChunkKind.INTERFACE, rf"^[ \t]*{_JAVA_MODS}@?interface\s+(?P<name>\w+)"),
    _p(
        ChunkKind.FUNCTION,
        r"^[ \t]+(?:(?:public|protected|private|static|abstract|final|synchronized|native|default)\s+)*"
        r"(?:<[^>]+>\s+)?(?:(?P<rtype>[\w.$]+(?:<[^>]*>)?(?:\[\])*)\s+)?"
        r"(?P<name>\w+)\s*\((?P<params>[^)]*)\)\s*(?:throws\s+[\w.,\s]+?)?\s*\{",
    ),
]

_KOTLIN_PATTERNS = [
    _p(
        ChunkKind.CLASS,
        r"^[ \t]*(?:(?:public|private|internal|protected|open|abstract|final|sealed|data|enum|inner|annotation|value)\s+)*"
        r"(?:class|object)\s+(?P<name>\w+)",
    ),
    _p(
        ChunkKind.INTERFACE,
        r"^[ \t]*(?:(?:public|private|internal|protected|sealed|fun)\s+)*interface\s+(?P<name>\w+)",
    ),
    _p(
        ChunkKind.FUNCTION,
        r"^[ \t]*(?:(?:public|private|internal|protected|open|override|abstract|final|suspend|inline|operator|infix|tailrec)\s+)*"
        r"fun\s+(?:<[^>]*>\s*)?(?:[\w.]+\.)?(?P<name>\w+)\s*\((?P<params>[^)]*)\)",
    ),
]

_CS_MODS = r"(?:(?:public|private|protected|internal|static|abstract|sealed|partial|readonly|unsafe|new|file)\s+)*"

_CSHARP_PATTERNS = [
    _p(ChunkKind.CLASS, rf"^[ \t]*{_CS_MODS}(?:class|struct|record|enum)\s+(?P<name>\w+)"),
    _p(ChunkKind.INTERFACE, rf"^[ \t]*{_CS_MODS}interface\s+(?P<name>\w+)"),
    _p(
        ChunkKind.FUNCTION,
        r"^[ \t]+(?:(?:public|private|protected|internal|static|virtual|override|abstract|async|sealed|extern|new|unsafe|partial)\s+)*"
        r"(?:(?P<rtype>[\w.]+(?:<[^>]*>)?(?:\[\])?\??)\s+)?(?P<name>\w+)\s*(?:<[^>]*>)?"
        r"\s*\((?P<params>[^)]*)\)\s*(?:where\s+[^{]+)?\{",
    ),
]

_GO_PATTERNS = [
    _p(
        ChunkKind.FUNCTION,
        r"^func\s+(?:\([^)]*\)\s*)?(?P<name>\w+)\s*(?:\[[^\]]*\])?\s*\((?P<params>[^)]*)\)",
        name_first_params=True,
    ),
    _p(ChunkKind.CLASS, r"^type\s+(?P<name>\w+)(?:\[[^\]]*\])?\s+struct\b"),
    _p(ChunkKind.INTERFACE, r"^type\s+(?P<name>\w+)(?:\[[^\]]*\])?\s+interface\b"),
]

_RS_VIS = r"(?:pub(?:\([^)]*\))?\s+)?"

_RUST_PATTERNS = [
    _p(
        ChunkKind.FUNCTION,
        rf"^[ \t]*{_RS_VIS}(?:(?:const|async|unsafe|extern(?:\s+\"[^\"]*\")?)\s+)*"
        r"fn\s+(?P<name>\w+)\s*(?:<[^>]*>)?\s*\((?P<params>[^)]*)\)",
    ),
    _p(ChunkKind.CLASS, rf"^[ \t]*{_RS_VIS}(?:struct|enum|union)\s+(?P<name>\w+)"),
    _p(
        ChunkKind.CLASS,
        r"^[ \t]*impl(?:\s*<[^>]*>)?\s+(?:[\w:]+(?:<[^>]*>)?\s+for\s+)?(?P<name>\w+)",
    ),
    _p(ChunkKind.INTERFACE, rf"^[ \t]*{_RS_VIS}(?:unsafe\s+)?trait\s+(?P<name>\w+)"),
]

_C_PATTERNS = [
    _p(
        ChunkKind.CLASS,
        r"^[ \t]*(?:template\s*<[^>]*>\s*)?(?:class|struct|union)\s+(?:[A-Z_][A-Z0-9_]*\s+)?(?P<name>\w+)",
    ),
    _p(
        ChunkKind.FUNCTION,
        r"^(?:(?:static|inline|extern|virtual|constexpr|const|unsigned|signed|struct)\s+)*"
        r"(?P<rtype>[\w:<>,*&]+)[ \t*&]+(?P<name>[\w:~]+)\s*\((?P<params>[^;{)]*)\)"
        r"\s*(?:const\s*)?(?:noexcept\s*)?(?:override\s*)?\{",
    ),
]

_PHP_PATTERNS = [
    _p(
        ChunkKind.CLASS,
        r"^[ \t]*(?:(?:abstract|final|readonly)\s+)*(?:class|trait|enum)\s+(?P<name>\w+)",
    ),
    _p(ChunkKind.INTERFACE, r"^[ \t]*interface\s+(?P<name>\w+)"),
    _p(
        ChunkKind.FUNCTION,
        r"^[ \t]*(?:(?:public|private|protected|static|abstract|final)\s+)*"
        r"function\s+&?(?P<name>\w+)\s*\((?P<params>[^)]*)\)",
    ),
]

_SWIFT_MODS = r"(?:(?:public|private|internal|fileprivate|open|final|static|class|override|mutating|@\w+)\s+)*"

_SWIFT_PATTERNS = [
    _p(
        ChunkKind.CLASS,
        rf"^[ \t]*{_SWIFT_MODS}(?:class|struct|enum|actor|extension)\s+(?P<name>\w+)",
    ),
    _p(ChunkKind.INTERFACE, rf"^[ \t]*{_SWIFT_MODS}protocol\s+(?P<name>\w+)"),
    _p(
        ChunkKind.FUNCTION,
        rf"^[ \t]*{_SWIFT_MODS}func\s+(?P<name>\w+)\s*(?:<[^>]*>)?\s*\((?P<params>[^)]*)\)",
    ),
]

_SCALA_PATTERNS = [
    _p(
        ChunkKind.CLASS,
        r"^[ \t]*(?:(?:abstract|final|sealed|case|implicit|private|protected)\s+)*(?:class|object)\s+(?P<name>\w+)",
    ),
    _p(
        ChunkKind.INTERFACE,
        r"^[ \t]*(?:(?:sealed|private|protected)\s+)*trait\s+(?P<name>\w+)",
    ),
    _p(
        ChunkKind.FUNCTION,
        r"^[ \t]*(?:(?:override|private|protected|final|implicit|inline)\s+)*"
        r"def\s+(?P<name>\w+)\s*(?:\[[^\]]*\])?\s*\((?P<params>[^)]*)\)",
    ),
]

_DART_PATTERNS = [
    _p(
        ChunkKind.CLASS,
        r"^[ \t]*(?:(?:abstract|base|final|sealed|interface)\s+)*(?:class|mixin|enum|extension)\s+(?P<name>\w+)",
    ),
    _p(
        ChunkKind.FUNCTION,
        r"^[ \t]*(?:(?:static|external|factory)\s+)*(?:(?P<rtype>[\w<>?,\[\]]+)\s+)?"
        r"(?P<name>\w+)\s*\((?P<params>[^)]*)\)\s*(?:async\s*\*?\s*)?\{",
        reject_call_sites=True,
    ),
]

BRACE_PATTERNS: dict[Language, list[DeclarationPattern]] = {
    Language.JAVASCRIPT: _JS_PATTERNS,
    Language.TYPESCRIPT: _JS_PATTERNS,
    Language.JAVA: _JAVA_PATTERNS,
    Language.KOTLIN: _KOTLIN_PATTERNS,
    Language.CSHARP: _CSHARP_PATTERNS,
    Language.GO: _GO_PATTERNS,
    Language.RUST: _RUST_PATTERNS,
    Language.C: _C_PATTERNS,
    Language.CPP: _C_PATTERNS,
    Language.PHP: _PHP_PATTERNS,
    Language.SWIFT: _SWIFT_PATTERNS,
    Language.SCALA: _SCALA_PATTERNS,
    Language.DART: _DART_PATTERNS,
}


def _skip_string(content: str, start: int) -> int:
    """Return the index just past the string literal opening at ``start``.

    Single- and double-quoted literals end at the line break; an unclosed
    quote (Rust lifetimes, apostrophes in text) is treated as a plain char.
    """
    quote = content[start]
    i = start + 1
    n = len(content)
    while i < n:
        ch = content[i]
        if ch == "\\":
            i += 2
            continue
        if ch == quote:
            return i + 1
        if ch == "\n" and quote != "`":
            return start + 1
        i += 1
    return start + 1


def find_matching_brace(content: str, open_idx: int) -> int | None:
    """Index of the brace closing the one at ``open_idx`` (None if unbalanced)."""
    depth = 0
    i = open_idx
    n = len(content)
    while i < n:
        ch = content[i]
        if ch in "\"'`":
            i = _skip_string(content, i)
            continue
        if ch == "/" and i + 1 < n:
            nxt = content[i + 1]
            if nxt == "/":
                newline = content.find("\n", i)
                if newline == -1:
                    return None
                i = newline + 1
                continue
            if nxt == "*":
                end = content.find("*/", i + 2)
                if end == -1:
                    return None
                i = end + 2
                continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return None


def find_body_open(content: str, pos: int, body_follows: bool = False) -> int | None:
    """Find the brace opening a declaration body that starts scanning at ``pos``.

    Stops at ``;`` or ``}``, at an expression body (``=`` not followed by a
    brace), and at a line break outside parentheses unless the next line
    opens the body or continues the header.
    """
    if pos > 0 and content[pos - 1] == "{":
        return pos - 1
    n = len(content)
    limit = min(n, pos + _MAX_HEADER_CHARS)
    paren_depth = 0
    i = pos
    while i < limit:
        ch = content[i]
        if ch == "{":
            return i
        if body_follows and not ch.isspace():
            return None
        if ch == "(":
            paren_depth += 1
        elif ch == ")":
            paren_depth = max(0, paren_depth - 1)
        elif paren_depth == 0:
            if ch in ";}":
                return None
            if ch == "=" and content[i + 1:i + 2] != ">":
                j = i + 1
                while j < n and content[j] in " \t":
                    j += 1
                return j if j < n and content[j] == "{" else None
            if ch == "\n":
                rest = content[i + 1:limit].lstrip()
                if not rest:
                    return None
                if rest[0] != "{" and not _CONTINUATION.match(rest):
                    return None
        i += 1
    return None


def _is_call_site(name: str, params: str | None) -> bool:
    return name in CALLBACK_HOSTS or bool(_CALL_ARGUMENT.search(params or ""))


def _is_annotation(line: str) -> bool:
    stripped = line.strip()
    if stripped.startswith("@") and not stripped.startswith("@interface"):
        return True
    if stripped.startswith("#["):
        return True
    return stripped.startswith("[") and stripped.endswith("]")


class BraceDepthStrategy(SyntacticStrategy):
    """Declaration regexes plus brace-depth counting for one language."""

    def __init__(self, patterns: list[DeclarationPattern]):
        self._patterns = patterns

    @classmethod
    def for_language(cls, language: Language) -> "BraceDepthStrategy | None":
        patterns = BRACE_PATTERNS.get(language)
        return cls(patterns) if patterns else None

    def extract(self, content: str) -> list[SymbolSpan]:
        lines = content.split("\n")
        line_starts = [0]
        for line in lines[:-1]:
            line_starts.append(line_starts[-1] + len(line) + 1)

        def line_of(offset: int) -> int:
            return bisect_right(line_starts, offset) - 1

        spans: list[SymbolSpan] = []
        seen: set[tuple[ChunkKind, int]] = set()

        for pattern in self._patterns:
            for match in pattern.regex.finditer(content):
                name = match.group("name")
                groups = match.groupdict()
                if name in CONTROL_KEYWORDS or groups.get("rtype") in CONTROL_KEYWORDS:
                    continue
                if pattern.reject_call_sites and _is_call_site(name, groups.get("params")):
                    continue

                open_idx = find_body_open(content, match.end(), pattern.body_follows)
                if open_idx is None:
                    continue
                close_idx = find_matching_brace(content, open_idx)
                if close_idx is None:
                    continue

                decl_line = line_of(match.start())
                if (pattern.kind, decl_line) in seen:
                    continue
                seen.add((pattern.kind, decl_line))

                start = decl_line
                while start > 0 and _is_annotation(lines[start - 1]):
                    start -= 1
                end = line_of(close_idx)

                header = content[match.start():open_idx]
                spans.append(
                    SymbolSpan(
                        kind=pattern.kind,
                        name=name,
                        start_line=start + 1,
                        end_line=end + 1,
                        content="\n".join(lines[start:end + 1]),
                        base_types=(
                            parse_base_types(header, name)
                            if pattern.kind is not ChunkKind.FUNCTION
                            else ()
                        ),
                        parameters=(
                            split_parameters(groups.get("params"), pattern.name_first_params)
                            if pattern.kind is ChunkKind.FUNCTION
                            else ()
                        ),
                    )
                )

        spans.sort(key=lambda span: (span.start_line, -span.end_line))
        return spans
