"""Source tree discovery.

Walks a project tree with os.walk(), pruning excluded directories early and
filtering files through the IgnoreEngine and the text-file allowlist.
Unreadable directories are recorded as DiscoveryError and skipped.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

from loguru import logger

from devcanvas.core.exceptions import DiscoveryError
from devcanvas.core.types.common import TEXT_FILE_EXTENSIONS, TEXT_FILE_NAMES
from devcanvas.utils.ignore_engine import IgnoreEngine, build_ignore_engine


@dataclass
class DiscoveryResult:
    root: Path
    files: list[Path] = field(default_factory=list)
    errors: list[DiscoveryError] = field(default_factory=list)


def is_text_file(path: Path) -> bool:
    """Return True if the file looks like indexable text by name or extension."""
    name = path.name.lower()
    if name in TEXT_FILE_NAMES:
        return True
    suffix = path.suffix.lower()
    return bool(suffix) and suffix in TEXT_FILE_EXTENSIONS


def discover_files(
    root: Path,
    exclude_patterns: Iterable[str] | None = None,
    ignore_sources: Iterable[str] = ("gitignore", "devcanvasignore"),
    ignore_file: str = ".devcanvasignore",
    ignore_engine: IgnoreEngine | None = None,
) -> DiscoveryResult:
    """Discover indexable files under ``root``.

    Args:
        root: Project root directory
        exclude_patterns: Gitwildmatch patterns always excluded
        ignore_sources: Project ignore files to honor
        ignore_file: Name of the project-specific ignore file
        ignore_engine: Prebuilt engine (overrides the three arguments above)

    Returns:
        DiscoveryResult with sorted file paths and contained errors

    Raises:
        DiscoveryError: If ``root`` itself is not a readable directory
    """
    root = root.resolve()
    if not root.is_dir():
        raise DiscoveryError(str(root), "not a directory")

    engine = ignore_engine or build_ignore_engine(
        root, list(ignore_sources), ignore_file, list(exclude_patterns or [])
    )
    result = DiscoveryResult(root=root)

    def _on_error(err: OSError) -> None:
        path = getattr(err, "filename", None) or "<unknown>"
        error = DiscoveryError(str(path), err.strerror or str(err))
        logger.warning(str(error))
        result.errors.append(error)

    for dirpath, dirnames, filenames in os.walk(root, topdown=True, onerror=_on_error):
        dpath = Path(dirpath)
        # Prune ignored directories in place so os.walk never descends into them
        dirnames[:] = sorted(
            dn for dn in dirnames if not engine.is_ignored(dpath / dn, is_dir=True)
        )
        for fn in sorted(filenames):
            fpath = dpath / fn
            if not is_text_file(fpath):
                continue
            if engine.is_ignored(fpath, is_dir=False):
                continue
            if fpath.is_symlink() and not fpath.exists():
                continue
            result.files.append(fpath)

    result.files.sort()
    logger.debug(
        f"Discovered {len(result.files)} files under {root} "
        f"({len(result.errors)} unreadable paths)"
    )
    return result
