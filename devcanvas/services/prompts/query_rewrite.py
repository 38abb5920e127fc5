"""Query rewrite prompt for the query orchestrator.

Asks the generation capability for a semantic (dense) rephrasing and a
keyword (sparse) form of the user's question.
"""

SYSTEM_MESSAGE = "You are a code search expert. Be concise and focused."

DENSE_PREFIX = "DENSE:"
SPARSE_PREFIX = "SPARSE:"


def get_user_prompt(query: str) -> str:
    """Build the rewrite prompt for one query."""
    return f"""Enhance this user query for better code search:
Query: "{query}"

Generate:
1. A dense query (semantic meaning, rephrased for better embedding)
2. A sparse query (key programming terms, class names, function names)

Format:
{DENSE_PREFIX} [enhanced semantic query]
{SPARSE_PREFIX} [key terms separated by spaces]
"""


def parse_reply(content: str) -> tuple[str | None, str | None]:
    """Extract the dense and sparse lines from a rewrite reply.

    Returns:
        (dense, sparse); either is None when its line is missing or empty
    """
    dense = None
    sparse = None
    for line in content.splitlines():
        stripped = line.strip()
        if dense is None and stripped.upper().startswith(DENSE_PREFIX):
            dense = stripped[len(DENSE_PREFIX):].strip() or None
        elif sparse is None and stripped.upper().startswith(SPARSE_PREFIX):
            sparse = stripped[len(SPARSE_PREFIX):].strip() or None
    return dense, sparse
