"""Syntactic strategies used by the chunker, selected by language family."""

from devcanvas.core.types.common import Language, LanguageFamily

from .base import SymbolSpan, SyntacticStrategy
from .brace import BraceDepthStrategy
from .component import ComponentScriptStrategy
from .indent import IndentationStrategy


def strategy_for_language(language: Language) -> SyntacticStrategy | None:
    """Return the extraction strategy for ``language`` (None if unsupported)."""
    family = language.family
    if family is LanguageFamily.BRACE:
        return BraceDepthStrategy.for_language(language)
    if family is LanguageFamily.INDENT:
        return IndentationStrategy()
    if family is LanguageFamily.COMPONENT:
        return ComponentScriptStrategy()
    return None


__all__ = [
    "BraceDepthStrategy",
    "ComponentScriptStrategy",
    "IndentationStrategy",
    "SymbolSpan",
    "SyntacticStrategy",
    "strategy_for_language",
]
