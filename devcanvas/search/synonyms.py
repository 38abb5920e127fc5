"""Programming synonym expansion for the sparse query form.

# FILE_CONTEXT: Widens lexical recall before the query's sparse vector is built
# SCOPE: Query side only; corpus chunks are never expanded
"""

from .bm25 import tokenize

SYNONYMS: dict[str, tuple[str, ...]] = {
    "function": ("method", "procedure", "routine"),
    "method": ("function", "procedure", "routine"),
    "class": ("object", "type", "entity"),
    "variable": ("var", "property", "field"),
    "parameter": ("param", "argument", "arg"),
    "create": ("make", "build", "generate", "new"),
    "delete": ("remove", "destroy", "drop"),
    "update": ("modify", "change", "edit"),
    "get": ("fetch", "retrieve", "obtain"),
    "set": ("assign", "store", "save"),
    "check": ("validate", "verify", "test"),
    "handle": ("process", "manage", "deal"),
    "error": ("exception", "failure", "issue"),
    "config": ("configuration", "settings", "options"),
}


def expand_terms(terms: list[str]) -> list[str]:
    """Terms followed by their synonyms, first occurrence order, no duplicates."""
    expanded = list(dict.fromkeys(terms))
    seen = set(expanded)
    for term in terms:
        for synonym in SYNONYMS.get(term, ()):
            if synonym not in seen:
                seen.add(synonym)
                expanded.append(synonym)
    return expanded


def expand_query(text: str) -> str:
    """Append synonyms of the query's terms to ``text``.

    The original text is kept verbatim so its own term frequencies are
    unchanged; only terms it does not already contain are added.
    """
    terms = tokenize(text)
    extra = expand_terms(terms)[len(set(terms)):]
    if not extra:
        return text
    return f"{text} {' '.join(extra)}"
