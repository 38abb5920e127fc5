"""Single-file component (Vue, Svelte) extraction."""

import re

from devcanvas.core.types.common import Language
from devcanvas.parsers.strategies.base import SymbolSpan, SyntacticStrategy
from devcanvas.parsers.strategies.brace import BraceDepthStrategy

_SCRIPT_BLOCK = re.compile(
    r"<script(?P<attrs>[^>]*)>(?P<body>.*?)</script>", re.DOTALL | re.IGNORECASE
)
_TS_LANG = re.compile(r"""lang\s*=\s*["']ts["']""")


class ComponentScriptStrategy(SyntacticStrategy):
    """Runs the TS/JS brace strategy over every ``<script>`` section.

    Line numbers are offset so they refer to the component file.
    """

    def extract(self, content: str) -> list[SymbolSpan]:
        spans: list[SymbolSpan] = []
        for block in _SCRIPT_BLOCK.finditer(content):
            language = (
                Language.TYPESCRIPT
                if _TS_LANG.search(block.group("attrs"))
                else Language.JAVASCRIPT
            )
            strategy = BraceDepthStrategy.for_language(language)
            if strategy is None:
                continue
            offset = content.count("\n", 0, block.start("body"))
            spans.extend(
                span.shifted(offset) for span in strategy.extract(block.group("body"))
            )
        return spans
