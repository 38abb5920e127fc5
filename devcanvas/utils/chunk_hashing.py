"""Deterministic chunk ID generation.

IDs are derived from the chunk kind, its source path and an anchor (the
symbol name for syntactic chunks, the start line otherwise), so an
unchanged file produces the same IDs on every rebuild.
"""

import hashlib

from devcanvas.core.types.common import ChunkKind


def generate_chunk_id(kind: ChunkKind, source_path: str, anchor: str | int) -> str:
    """Generate a stable chunk ID.

    Args:
        kind: Chunk kind
        source_path: Root-relative POSIX path of the source file
        anchor: Symbol name or start line that locates the chunk in the file

    Returns:
        ID of the form ``<kind>_<16 hex chars>``
    """
    key = f"{kind.value}\x00{source_path}\x00{anchor}".encode("utf-8")
    digest = hashlib.blake2b(key, digest_size=8).hexdigest()
    return f"{kind.value}_{digest}"
