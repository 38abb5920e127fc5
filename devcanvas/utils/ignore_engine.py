"""IgnoreEngine: central exclusion logic with gitwildmatch semantics.

Combines configured default excludes, every .gitignore file in the tree
(rewritten to root-relative patterns) and a root-level .devcanvasignore,
compiled with the `pathspec` library.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from pathspec import PathSpec


@dataclass
class MatchInfo:
    matched: bool
    source: Optional[Path] = None


class IgnoreEngine:
    def __init__(self, root: Path, compiled_specs: list[tuple[Path, PathSpec]]):
        self.root = root.resolve()
        self._compiled_specs = compiled_specs

    def matches(self, path: Path, is_dir: bool) -> Optional[MatchInfo]:
        # Normalize to root-relative POSIX path
        try:
            rel = path.resolve().relative_to(self.root)
        except ValueError:
            rel = path.resolve()
        rel_str = rel.as_posix()
        if rel_str == ".":
            return None

        # Evaluate specs in precedence order; first match wins
        for src, spec in self._compiled_specs:
            if spec.match_file(rel_str) or (is_dir and spec.match_file(rel_str + "/")):
                return MatchInfo(matched=True, source=src)
        return None

    def is_ignored(self, path: Path, is_dir: bool = False) -> bool:
        return self.matches(path, is_dir) is not None


def _compile_gitwildmatch(patterns: Iterable[str]) -> PathSpec:
    return PathSpec.from_lines("gitwildmatch", patterns)


def build_ignore_engine(
    root: Path,
    sources: Iterable[str],
    ignore_file: str = ".devcanvasignore",
    config_exclude: Optional[Iterable[str]] = None,
) -> IgnoreEngine:
    """Build an IgnoreEngine for the given root and sources.

    Supports:
    - gitignore: every .gitignore in the tree, scoped to its directory
    - devcanvasignore: a root-level ignore file (``ignore_file``)
    - config excludes: always enforced, regardless of sources
    """
    compiled: list[tuple[Path, PathSpec]] = []
    root = root.resolve()
    config_exclude = list(config_exclude or [])

    pre_spec = _compile_gitwildmatch(config_exclude) if config_exclude else None
    if pre_spec is not None:
        compiled.append((root, pre_spec))

    for src in sources:
        if src == "gitignore":
            pats = _collect_gitignore_patterns(root, pre_spec)
            if pats:
                compiled.append((root / ".gitignore", _compile_gitwildmatch(pats)))
        elif src == "devcanvasignore":
            ci = root / ignore_file
            if ci.is_file():
                lines = ci.read_text(encoding="utf-8", errors="ignore").splitlines()
                compiled.append((ci, _compile_gitwildmatch(lines)))

    return IgnoreEngine(root, compiled)


def _collect_gitignore_patterns(
    root: Path, pre_exclude_spec: Optional[PathSpec] = None
) -> list[str]:
    """Return root-relative gitwildmatch patterns transformed from .gitignore files.

    We walk the directory tree top-down so that root patterns appear before
    child directory patterns; last match still wins in PathSpec.
    """
    out: list[str] = []
    for dirpath, dirnames, _filenames in os.walk(root, topdown=True):
        dpath = Path(dirpath)
        # Prune excluded subtrees early based on config excludes (e.g., node_modules)
        if pre_exclude_spec is not None:
            rel_base = "." if dpath == root else dpath.relative_to(root).as_posix()
            for dn in list(dirnames):
                child = dn if rel_base == "." else f"{rel_base}/{dn}"
                if pre_exclude_spec.match_file(child) or pre_exclude_spec.match_file(
                    child + "/"
                ):
                    dirnames.remove(dn)
        gi = dpath / ".gitignore"
        if not gi.is_file():
            continue
        try:
            lines = gi.read_text(encoding="utf-8", errors="ignore").splitlines()
        except OSError:
            continue
        rel_from_root = dpath.relative_to(root)
        dir_rel = "." if str(rel_from_root) == "." else rel_from_root.as_posix()
        for raw in lines:
            line = raw.strip()
            if not line or line.startswith("#"):
                continue
            out.extend(_transform_gitignore_line(dir_rel, line))
    return out


def _transform_gitignore_line(dir_rel: str, line: str) -> list[str]:
    """Transform a .gitignore pattern from a directory into root-relative patterns.

    Handles negation (!), anchored (/), and directory-only (trailing /) forms by
    emitting patterns that constrain the match to the originating subtree.
    """
    neg = False
    if line.startswith("!"):
        neg = True
        line = line[1:]

    is_dir_pat = line.endswith("/")
    if is_dir_pat:
        line = line[:-1]

    parts: list[str] = []

    def add(p: str) -> None:
        if is_dir_pat:
            p = f"{p}/**"
        if neg:
            p = "!" + p
        parts.append(p)

    if dir_rel == ".":
        if line.startswith("/"):
            add(line)
        else:
            add(line)
            add(f"**/{line}")
    else:
        if line.startswith("/"):
            add(f"{dir_rel}/{line[1:]}")
        else:
            add(f"{dir_rel}/{line}")
            add(f"{dir_rel}/**/{line}")

    return parts


__all__ = ["IgnoreEngine", "MatchInfo", "build_ignore_engine"]
