"""Heuristic chunk metadata: complexity, importance and framework tags."""

import re
from pathlib import PurePosixPath

from devcanvas.core.types.common import ChunkKind, Language, LanguageFamily

_BRANCH_KEYWORDS = re.compile(
    r"\b(?:if|elif|else|while|for|case|switch|catch|except|try)\b"
)
_BRANCH_OPERATORS = ("&&", "||", "?")

# Ordered: ties in marker count resolve to the earlier framework
FRAMEWORK_MARKERS: list[tuple[str, tuple[str, ...]]] = [
    ("spring", ("@SpringBootApplication", "@RestController", "org.springframework")),
    ("angular", ("@Component", "@Injectable", "@NgModule", "@angular/")),
    ("react", ("from 'react'", 'from "react"', "import React", "useState", "useEffect")),
    ("vue", ("from 'vue'", 'from "vue"', "Vue.", "createApp", "defineComponent")),
    ("svelte", ("from 'svelte", 'from "svelte', "svelte:")),
    ("fastapi", ("from fastapi", "FastAPI(", "APIRouter(")),
    ("flask", ("from flask", "@app.route", "Flask(__name__)")),
    ("django", ("from django", "models.Model", "HttpResponse")),
    ("express", ("require('express')", 'require("express")', "from 'express'", "express()")),
    ("node", ("require(", "module.exports", "process.env")),
]

_ROUTE_MARKERS = (
    "@app.route",
    "@app.get",
    "@app.post",
    "@router.",
    "@GetMapping",
    "@PostMapping",
    "@PutMapping",
    "@DeleteMapping",
    "@RequestMapping",
    "app.get(",
    "app.post(",
    "router.get(",
    "router.post(",
)

_CONFIG_LANGUAGES = frozenset({Language.JSON, Language.YAML, Language.TOML})
_CONFIG_SUFFIXES = frozenset({".properties", ".ini", ".cfg", ".conf", ".env", ".gradle"})

_KIND_WEIGHTS = {
    ChunkKind.CLASS: 0.8,
    ChunkKind.INTERFACE: 0.8,
    ChunkKind.FUNCTION: 0.6,
}

_MAIN_WORD = re.compile(r"\b(?:main|Main)\b")


def calculate_complexity(content: str) -> int:
    """Branching and looping constructs plus one."""
    count = len(_BRANCH_KEYWORDS.findall(content))
    count += sum(content.count(op) for op in _BRANCH_OPERATORS)
    return count + 1


def detect_framework(content: str, language: Language | None = None) -> str | None:
    """Framework a file belongs to, judged by marker strings in its content."""
    if language is Language.VUE:
        return "vue"
    if language is Language.SVELTE:
        return "svelte"

    best: str | None = None
    best_hits = 0
    for tag, markers in FRAMEWORK_MARKERS:
        hits = sum(1 for marker in markers if marker in content)
        if hits > best_hits:
            best, best_hits = tag, hits
    return best


def is_configuration_file(source_path: str, language: Language) -> bool:
    if language in _CONFIG_LANGUAGES:
        return True
    return PurePosixPath(source_path).suffix.lower() in _CONFIG_SUFFIXES


def calculate_importance(
    kind: ChunkKind, content: str, language: Language, source_path: str
) -> float:
    """Importance in [0, 1]: a base weight by role plus content boosts."""
    if kind is ChunkKind.FUNCTION and any(m in content for m in _ROUTE_MARKERS):
        importance = 0.9
    elif kind in _KIND_WEIGHTS:
        importance = _KIND_WEIGHTS[kind]
    elif language.family is LanguageFamily.COMPONENT:
        importance = 0.8
    elif is_configuration_file(source_path, language):
        importance = 0.7
    else:
        importance = 0.5

    if "@RestController" in content or "@Controller" in content:
        importance += 0.2
    if _MAIN_WORD.search(content):
        importance += 0.3
    if "export default" in content or "public static void main" in content:
        importance += 0.2

    return round(min(1.0, importance), 4)
