"""Tests for ignore rules and source tree discovery."""

from pathlib import Path

import pytest

from devcanvas.core.config.indexing_config import DEFAULT_EXCLUDES
from devcanvas.core.exceptions import DiscoveryError
from devcanvas.utils.file_discovery import discover_files, is_text_file
from devcanvas.utils.ignore_engine import build_ignore_engine


def _write(root: Path, rel: str, text: str = "x = 1\n") -> Path:
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def _relative(result) -> list[str]:
    return [p.relative_to(result.root).as_posix() for p in result.files]


@pytest.fixture
def project(tmp_path: Path) -> Path:
    _write(tmp_path, "src/app.py")
    _write(tmp_path, "src/util.js")
    _write(tmp_path, "README.md", "# Project\n")
    _write(tmp_path, "Dockerfile", "FROM python\n")
    _write(tmp_path, "node_modules/lib/index.js")
    _write(tmp_path, "build/out.js")
    _write(tmp_path, "logs/run.log", "log line\n")
    (tmp_path / "assets").mkdir()
    (tmp_path / "assets" / "logo.png").write_bytes(b"\x89PNG\r\n")
    return tmp_path


def test_is_text_file():
    assert is_text_file(Path("src/app.py"))
    assert is_text_file(Path("Makefile"))
    assert is_text_file(Path("docs/guide.MD"))
    assert not is_text_file(Path("image.png"))
    assert not is_text_file(Path("LICENSE"))


def test_default_excludes_and_allowlist(project):
    result = discover_files(project, DEFAULT_EXCLUDES)
    assert _relative(result) == ["Dockerfile", "README.md", "src/app.py", "src/util.js"]
    assert result.errors == []


def test_gitignore_rules_are_honored(project):
    _write(project, ".gitignore", "*.js\n")
    _write(project, "src/.gitignore", "/app.py\n")
    result = discover_files(project, DEFAULT_EXCLUDES)
    assert _relative(result) == ["Dockerfile", "README.md"]


def test_nested_gitignore_is_scoped_to_its_directory(project):
    _write(project, "app.py")
    _write(project, "src/.gitignore", "app.py\n")
    result = discover_files(project, DEFAULT_EXCLUDES)
    assert "app.py" in _relative(result)
    assert "src/app.py" not in _relative(result)


def test_project_ignore_file(project):
    _write(project, ".devcanvasignore", "README.md\nsrc/\n")
    result = discover_files(project, DEFAULT_EXCLUDES)
    assert _relative(result) == ["Dockerfile"]


def test_ignore_sources_can_be_disabled(project):
    _write(project, ".gitignore", "*.js\n")
    result = discover_files(project, DEFAULT_EXCLUDES, ignore_sources=())
    assert "src/util.js" in _relative(result)


def test_config_excludes_win_over_sources(tmp_path):
    engine = build_ignore_engine(tmp_path, ["gitignore"], config_exclude=["secret/"])
    match = engine.matches(tmp_path / "secret", is_dir=True)
    assert match is not None
    assert match.source == tmp_path.resolve()
    assert not engine.is_ignored(tmp_path / "public.py")


def test_missing_root_raises(tmp_path):
    with pytest.raises(DiscoveryError):
        discover_files(tmp_path / "missing")
