"""Query planner: intent classification, parameter extraction and re-ranking.

# FILE_CONTEXT: Turns a raw question into a QueryIntent and re-scores
#               hybrid search candidates against it
# ROLE: Pure, synchronous logic; no store or provider access
# DETERMINISM: Same query, context and candidates give the same ranking
"""

import re
from dataclasses import dataclass

from loguru import logger

from devcanvas.core.models.chunk import Chunk
from devcanvas.core.models.query import (
    ContextType,
    QueryComplexity,
    QueryContext,
    QueryIntent,
    QueryParameters,
    QueryScope,
    QueryType,
    RankedResult,
    ScoredChunk,
    UserRole,
)
from devcanvas.core.types.common import ChunkKind

# Pattern weight = len(pattern) / SPECIFICITY_DIVISOR
SPECIFICITY_DIVISOR = 3.0
CONFIDENCE_SCALE = 10.0
MAX_KEYWORDS = 10
RELEVANCE_THRESHOLD = 0.1

INTENT_PATTERNS: dict[QueryType, list[str]] = {
    QueryType.CODE_SEARCH: [
        r"find.*function",
        r"search.*class",
        r"where.*is",
        r"locate.*method",
        r"show.*implementation",
        r"how.*does.*work",
    ],
    QueryType.ARCHITECTURE_ANALYSIS: [
        r"architecture",
        r"structure",
        r"design.*pattern",
        r"system.*overview",
        r"how.*organized",
    ],
    QueryType.DOCUMENTATION: [
        r"document",
        r"explain",
        r"readme",
        r"guide",
        r"tutorial",
        r"how.*to.*use",
    ],
    QueryType.BUG_ANALYSIS: [
        r"bug",
        r"error",
        r"exception",
        r"issue",
        r"problem",
        r"not.*working",
        r"fail",
    ],
    QueryType.SECURITY_ANALYSIS: [
        r"security",
        r"vulnerability",
        r"authentication",
        r"authorization",
        r"secure",
        r"protect",
    ],
    QueryType.PERFORMANCE_ANALYSIS: [
        r"performance",
        r"optimize",
        r"slow",
        r"memory",
        r"cpu",
        r"bottleneck",
        r"efficiency",
    ],
    QueryType.TESTING_GUIDANCE: [
        r"test",
        r"testing",
        r"unit.*test",
        r"integration.*test",
        r"coverage",
        r"mock",
    ],
    QueryType.REFACTORING_ADVICE: [
        r"refactor",
        r"improve",
        r"clean.*up",
        r"best.*practice",
        r"code.*quality",
        r"maintainable",
    ],
    QueryType.CLASS_DIAGRAM: [
        r"class.*diagram",
        r"uml.*class",
        r"show.*class",
        r"generate.*class.*diagram",
        r"class.*structure",
        r"diagram.*for.*class",
        r"class.*relationship",
    ],
    QueryType.SEQUENCE_DIAGRAM: [
        r"sequence.*diagram",
        r"interaction.*diagram",
        r"flow.*diagram",
        r"process.*flow",
        r"sequence.*chart",
    ],
    QueryType.ARCHITECTURE_DIAGRAM: [
        r"architecture.*diagram",
        r"system.*diagram",
        r"component.*diagram",
        r"service.*diagram",
        r"module.*diagram",
    ],
    QueryType.GENERAL: [],
}

_COMPILED_PATTERNS: dict[QueryType, list[re.Pattern[str]]] = {
    intent: [re.compile(p) for p in patterns] for intent, patterns in INTENT_PATTERNS.items()
}

ROLE_BOOSTS: dict[UserRole, dict[QueryType, float]] = {
    UserRole.ARCHITECT: {QueryType.ARCHITECTURE_ANALYSIS: 2.0},
    UserRole.QA: {QueryType.TESTING_GUIDANCE: 2.0, QueryType.BUG_ANALYSIS: 1.0},
    UserRole.DEVOPS: {
        QueryType.SECURITY_ANALYSIS: 1.0,
        QueryType.PERFORMANCE_ANALYSIS: 1.0,
    },
}

QUERY_STOP_WORDS = frozenset(
    {
        "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for",
        "of", "with", "by", "how", "what", "where", "when", "why", "is", "are",
        "was", "were", "be", "been", "have", "has", "had", "do", "does", "did",
        "will", "would", "could", "should", "can", "may", "might", "me", "my",
        "this", "that", "these", "those", "please", "all", "any", "there",
    }
)

FRAMEWORK_PATTERNS: dict[str, re.Pattern[str]] = {
    "spring boot": re.compile(r"spring\s*boot"),
    "spring": re.compile(r"spring(?!\s*boot)"),
    "react": re.compile(r"react"),
    "angular": re.compile(r"angular"),
    "vue": re.compile(r"\bvue"),
    "svelte": re.compile(r"svelte"),
    "flask": re.compile(r"flask"),
    "fastapi": re.compile(r"fastapi|fast\s*api"),
    "django": re.compile(r"django"),
    "express": re.compile(r"express"),
    "node": re.compile(r"\bnode(?:\.?js)?\b"),
}

FILE_TYPE_PATTERNS: dict[str, re.Pattern[str]] = {
    "java": re.compile(r"\.java\b|\bjava\b"),
    "javascript": re.compile(r"\.jsx?\b|javascript"),
    "typescript": re.compile(r"\.tsx?\b|typescript"),
    "python": re.compile(r"\.py\b|python"),
    "html": re.compile(r"\.html\b|\bhtml\b"),
    "css": re.compile(r"\.css\b|\bcss\b"),
    "json": re.compile(r"\.json\b|\bjson\b"),
    "xml": re.compile(r"\.xml\b|\bxml\b"),
    "yaml": re.compile(r"\.ya?ml\b|\byaml\b"),
    "markdown": re.compile(r"\.md\b|markdown"),
}

# Component name -> aliases looked for in the query and in chunk paths/symbols
COMPONENT_ALIASES: dict[str, tuple[str, ...]] = {
    "controller": ("controller",),
    "service": ("service",),
    "repository": ("repository", "repo"),
    "entity": ("entity", "model"),
    "component": ("component",),
    "middleware": ("middleware",),
    "router": ("router", "route"),
    "config": ("config", "configuration", "settings"),
}

_SCOPE_WORDS: list[tuple[QueryScope, frozenset[str]]] = [
    (QueryScope.PROJECT, frozenset({"project", "entire", "all", "whole", "codebase"})),
    (QueryScope.MODULE, frozenset({"module", "package"})),
    (QueryScope.COMPONENT, frozenset({"component", "class"})),
    (QueryScope.FILE, frozenset({"file"})),
]

_SCOPE_DEFAULTS: dict[QueryType, QueryScope] = {
    QueryType.ARCHITECTURE_ANALYSIS: QueryScope.PROJECT,
    QueryType.ARCHITECTURE_DIAGRAM: QueryScope.PROJECT,
    QueryType.CODE_SEARCH: QueryScope.COMPONENT,
    QueryType.CLASS_DIAGRAM: QueryScope.COMPONENT,
}

# Checked in order; the first tier with a matching indicator wins
COMPLEXITY_INDICATORS: list[tuple[QueryComplexity, tuple[str, ...]]] = [
    (
        QueryComplexity.ADVANCED,
        ("architecture", "design pattern", "optimization", "performance", "security", "scalability"),
    ),
    (
        QueryComplexity.COMPLEX,
        ("integration", "workflow", "pipeline", "relationship", "dependency"),
    ),
    (QueryComplexity.MODERATE, ("implement", "create", "build", "configure", "setup")),
    (QueryComplexity.SIMPLE, ("find", "show", "list", "what", "where")),
]

_COMPLEXITY_DEFAULTS: dict[QueryType, QueryComplexity] = {
    QueryType.ARCHITECTURE_ANALYSIS: QueryComplexity.COMPLEX,
    QueryType.ARCHITECTURE_DIAGRAM: QueryComplexity.COMPLEX,
    QueryType.SECURITY_ANALYSIS: QueryComplexity.COMPLEX,
    QueryType.PERFORMANCE_ANALYSIS: QueryComplexity.COMPLEX,
}

SECURITY_TERMS = (
    "auth", "login", "password", "token", "security", "secure",
    "crypt", "permission", "session", "jwt", "oauth", "credential",
)
TEST_PATH_MARKERS = ("test", "spec", "__tests__")
ERROR_HANDLING_TERMS = ("try", "catch", "except", "raise", "throw", "error")

KEYWORD_CONTENT_WEIGHT = 0.2
KEYWORD_SYMBOL_WEIGHT = 0.3
KEYWORD_PATH_WEIGHT = 0.1
FRAMEWORK_WEIGHT = 0.4
COMPONENT_WEIGHT = 0.3
RECENT_FILE_WEIGHT = 0.1
HIGH_IMPORTANCE = 0.8

# Added once for the best result of each chunk kind, framework tag and file
DIVERSITY_KIND_BONUS = 0.05
DIVERSITY_FRAMEWORK_BONUS = 0.05
DIVERSITY_FILE_BONUS = 0.03

FOLLOW_UP_QUESTIONS: dict[QueryType, list[str]] = {
    QueryType.CODE_SEARCH: [
        "Would you like to see related functions or classes?",
        "Do you need implementation details for any of these components?",
        "Are you looking for usage examples?",
    ],
    QueryType.ARCHITECTURE_ANALYSIS: [
        "Would you like a visual diagram of the architecture?",
        "Do you want to explore specific architectural patterns?",
        "Are you interested in component relationships?",
    ],
    QueryType.SECURITY_ANALYSIS: [
        "Would you like specific security recommendations?",
        "Do you want to see potential vulnerabilities?",
        "Are you interested in authentication mechanisms?",
    ],
    QueryType.PERFORMANCE_ANALYSIS: [
        "Would you like to see the most complex functions?",
        "Do you want suggestions for reducing hot-path work?",
    ],
    QueryType.BUG_ANALYSIS: [
        "Do you want to see where this error is raised?",
        "Would you like to review the related error handling?",
    ],
    QueryType.TESTING_GUIDANCE: [
        "Would you like to see existing tests for this code?",
        "Do you want suggestions for missing test cases?",
    ],
    QueryType.CLASS_DIAGRAM: [
        "Would you like the diagram to include interfaces?",
        "Do you want to see the methods of each class?",
    ],
}

FRAMEWORK_SUGGESTIONS: dict[str, list[str]] = {
    "spring boot": [
        "Consider reviewing Spring Boot best practices",
        "Check for proper dependency injection usage",
        "Verify configuration management",
    ],
    "spring": [
        "Check for proper dependency injection usage",
        "Verify bean scopes and configuration classes",
    ],
    "react": [
        "Review component composition patterns",
        "Consider performance optimization with React.memo",
        "Check for proper state management",
    ],
    "vue": [
        "Review computed properties versus watchers",
        "Check component props validation",
    ],
    "angular": [
        "Review service injection and module boundaries",
        "Check change detection strategy on heavy components",
    ],
    "django": [
        "Check for N+1 queries in views and serializers",
        "Review middleware ordering",
    ],
    "flask": [
        "Review blueprint organization",
        "Check request context usage outside handlers",
    ],
    "fastapi": [
        "Review dependency injection with Depends",
        "Check response models on each route",
    ],
    "express": [
        "Review middleware ordering",
        "Check error-handling middleware placement",
    ],
}

_WORD = re.compile(r"[a-z0-9_]+")


@dataclass(frozen=True)
class _Relevance:
    score: float
    reasons: tuple[str, ...]
    context_type: ContextType


class QueryPlanner:
    """Classifies queries and re-ranks retrieval candidates."""

    def __init__(self, diversify: bool = True):
        self.diversify = diversify

    # Intent classification

    def score_intents(
        self, query: str, context: QueryContext | None = None
    ) -> dict[QueryType, float]:
        """Raw per-intent scores before the arg-max."""
        text = query.lower()
        scores = {intent: 0.0 for intent in QueryType}
        for intent, patterns in _COMPILED_PATTERNS.items():
            for pattern in patterns:
                if pattern.search(text):
                    scores[intent] += len(pattern.pattern) / SPECIFICITY_DIVISOR

        if context is not None:
            for intent, boost in ROLE_BOOSTS.get(context.user_role, {}).items():
                scores[intent] += boost
            if context.session_history:
                scores[context.session_history[-1]] += 1.0
        return scores

    def classify_intent(
        self, query: str, context: QueryContext | None = None
    ) -> QueryIntent:
        """Pick the highest scoring intent.

        Ties resolve to the earlier QueryType member; no positive score at
        all yields GENERAL with confidence 0.
        """
        scores = self.score_intents(query, context)
        best = QueryType.GENERAL
        best_score = 0.0
        for intent in QueryType:
            if scores[intent] > best_score:
                best, best_score = intent, scores[intent]

        confidence = min(1.0, best_score / CONFIDENCE_SCALE)
        intent = QueryIntent(
            type=best,
            confidence=round(confidence, 4),
            parameters=self.extract_parameters(query, best),
        )
        logger.debug(
            f"Classified query as {best.value} (confidence {intent.confidence:.2f})"
        )
        return intent

    # Parameter extraction

    def extract_keywords(self, query: str) -> tuple[str, ...]:
        keywords: list[str] = []
        for word in _WORD.findall(query.lower()):
            if len(word) > 2 and word not in QUERY_STOP_WORDS and word not in keywords:
                keywords.append(word)
        return tuple(keywords[:MAX_KEYWORDS])

    def extract_frameworks(self, query: str) -> tuple[str, ...]:
        text = query.lower()
        return tuple(name for name, pattern in FRAMEWORK_PATTERNS.items() if pattern.search(text))

    def extract_file_types(self, query: str) -> tuple[str, ...]:
        text = query.lower()
        return tuple(name for name, pattern in FILE_TYPE_PATTERNS.items() if pattern.search(text))

    def extract_components(self, query: str) -> tuple[str, ...]:
        text = query.lower()
        return tuple(
            name
            for name, aliases in COMPONENT_ALIASES.items()
            if any(alias in text for alias in aliases)
        )

    def determine_scope(
        self, query: str, intent_type: QueryType, frameworks: tuple[str, ...] = ()
    ) -> QueryScope:
        words = set(_WORD.findall(query.lower()))
        for scope, markers in _SCOPE_WORDS:
            if words & markers:
                return scope
        if frameworks:
            return QueryScope.FRAMEWORK
        return _SCOPE_DEFAULTS.get(intent_type, QueryScope.MODULE)

    def determine_complexity(self, query: str, intent_type: QueryType) -> QueryComplexity:
        text = query.lower()
        for tier, indicators in COMPLEXITY_INDICATORS:
            if any(indicator in text for indicator in indicators):
                return tier
        return _COMPLEXITY_DEFAULTS.get(intent_type, QueryComplexity.MODERATE)

    def extract_parameters(self, query: str, intent_type: QueryType) -> QueryParameters:
        frameworks = self.extract_frameworks(query)
        return QueryParameters(
            keywords=self.extract_keywords(query),
            frameworks=frameworks,
            file_types=self.extract_file_types(query),
            components=self.extract_components(query),
            scope=self.determine_scope(query, intent_type, frameworks),
            complexity=self.determine_complexity(query, intent_type),
        )

    # Relevance scoring

    def _intent_bonus(self, intent_type: QueryType, chunk: Chunk) -> float:
        kind = chunk.kind
        path = chunk.source_path.lower()
        if intent_type is QueryType.CODE_SEARCH:
            return 0.2 if kind.is_symbol else 0.0
        if intent_type is QueryType.CLASS_DIAGRAM:
            return 0.3 if kind in (ChunkKind.CLASS, ChunkKind.INTERFACE) else 0.0
        if intent_type is QueryType.SEQUENCE_DIAGRAM:
            return 0.2 if kind is ChunkKind.FUNCTION else 0.0
        if intent_type is QueryType.SECURITY_ANALYSIS:
            haystack = f"{path} {(chunk.symbol_name or '').lower()} {chunk.content.lower()}"
            return 0.3 if any(term in haystack for term in SECURITY_TERMS) else 0.0
        if intent_type in (QueryType.PERFORMANCE_ANALYSIS, QueryType.REFACTORING_ADVICE):
            return 0.2 if (chunk.complexity or 0) > 5 else 0.0
        if intent_type is QueryType.TESTING_GUIDANCE:
            return 0.3 if any(marker in path for marker in TEST_PATH_MARKERS) else 0.0
        if intent_type is QueryType.BUG_ANALYSIS:
            content = chunk.content.lower()
            return 0.2 if any(term in content for term in ERROR_HANDLING_TERMS) else 0.0
        if intent_type is QueryType.DOCUMENTATION:
            if chunk.language in ("markdown", "text"):
                return 0.3
            return 0.1 if kind is ChunkKind.FILE else 0.0
        if intent_type in (QueryType.ARCHITECTURE_ANALYSIS, QueryType.ARCHITECTURE_DIAGRAM):
            if kind is not ChunkKind.FILE:
                return 0.0
            return 0.2 if _component_hits(chunk, tuple(COMPONENT_ALIASES)) else 0.0
        return 0.0

    def score_chunk(
        self, intent: QueryIntent, chunk: Chunk, context: QueryContext | None = None
    ) -> _Relevance:
        params = intent.parameters
        content = chunk.content.lower()
        symbol = (chunk.symbol_name or "").lower()
        path = chunk.source_path.lower()
        reasons: list[str] = []
        score = 0.0

        content_hits = [k for k in params.keywords if k in content]
        symbol_hits = [k for k in params.keywords if symbol and k in symbol]
        path_hits = [k for k in params.keywords if k in path]
        score += KEYWORD_CONTENT_WEIGHT * len(content_hits)
        score += KEYWORD_SYMBOL_WEIGHT * len(symbol_hits)
        score += KEYWORD_PATH_WEIGHT * len(path_hits)
        if symbol_hits:
            reasons.append("matches query keywords in name")
        elif content_hits:
            reasons.append("contains query keywords")
        if path_hits:
            reasons.append("matches query keywords in path")

        framework_hits = [
            f for f in params.frameworks if chunk.framework_tag and _framework_matches(f, chunk.framework_tag)
        ]
        score += FRAMEWORK_WEIGHT * len(framework_hits)
        if framework_hits:
            reasons.append("matches specified framework")

        component_hits = _component_hits(chunk, params.components)
        score += COMPONENT_WEIGHT * len(component_hits)
        if component_hits:
            reasons.append(f"is a {', '.join(component_hits)}")

        bonus = self._intent_bonus(intent.type, chunk)
        score += bonus
        if bonus:
            reasons.append(f"fits a {intent.type.value} query")

        if context is not None and chunk.source_path in context.recent_files:
            score += RECENT_FILE_WEIGHT
            reasons.append("was recently opened")

        score = min(1.0, score * chunk.importance)
        if chunk.importance > HIGH_IMPORTANCE:
            reasons.append("high importance component")
        if not reasons:
            reasons.append("general content relevance")

        if content_hits or symbol_hits:
            context_type = ContextType.DIRECT_MATCH
        elif framework_hits:
            context_type = ContextType.FRAMEWORK
        elif component_hits:
            context_type = ContextType.DEPENDENCY
        elif bonus:
            context_type = ContextType.PATTERN
        else:
            context_type = ContextType.RELATED
        return _Relevance(score=score, reasons=tuple(reasons), context_type=context_type)

    def rank(
        self,
        intent: QueryIntent,
        candidates: list[Chunk] | list[ScoredChunk],
        context: QueryContext | None = None,
    ) -> list[RankedResult]:
        """Re-score candidates, drop weak ones and cap by complexity tier.

        Survivors are visited best first; with ``diversify`` the first one of
        each chunk kind, framework tag and source file earns a small bonus,
        so repeats from one file or kind sink below fresh material.
        Candidates keep their input order among equal scores.
        """
        survivors: list[tuple[int, Chunk, _Relevance]] = []
        for position, candidate in enumerate(candidates):
            chunk = candidate.chunk if isinstance(candidate, ScoredChunk) else candidate
            relevance = self.score_chunk(intent, chunk, context)
            if relevance.score <= RELEVANCE_THRESHOLD:
                continue
            survivors.append((position, chunk, relevance))
        survivors.sort(key=lambda item: (-item[2].score, item[0]))

        seen_kinds: set[ChunkKind] = set()
        seen_frameworks: set[str] = set()
        seen_files: set[str] = set()
        ranked: list[tuple[int, RankedResult]] = []
        for position, chunk, relevance in survivors:
            bonus = 0.0
            if self.diversify:
                if chunk.kind not in seen_kinds:
                    seen_kinds.add(chunk.kind)
                    bonus += DIVERSITY_KIND_BONUS
                if chunk.framework_tag and chunk.framework_tag not in seen_frameworks:
                    seen_frameworks.add(chunk.framework_tag)
                    bonus += DIVERSITY_FRAMEWORK_BONUS
                if chunk.source_path not in seen_files:
                    seen_files.add(chunk.source_path)
                    bonus += DIVERSITY_FILE_BONUS

            score = min(1.0, relevance.score + bonus)
            reasons = relevance.reasons
            if bonus:
                reasons = reasons + ("adds variety to the results",)
            explanation = f"Relevant because it {', '.join(reasons)} (score: {score:.2f})"
            ranked.append(
                (
                    position,
                    RankedResult(
                        chunk=chunk,
                        score=score,
                        explanation=explanation,
                        context_type=relevance.context_type,
                    ),
                )
            )

        ranked.sort(key=lambda item: (-item[1].score, item[0]))
        cap = intent.parameters.complexity.max_results
        return [result for _, result in ranked[:cap]]

    def follow_up_questions(self, intent: QueryIntent) -> list[str]:
        """Up to three intent questions, then up to two suggestions for the
        first framework the query names."""
        questions = FOLLOW_UP_QUESTIONS.get(intent.type, [])[:3]
        if not intent.parameters.frameworks:
            return list(questions)
        framework = intent.parameters.frameworks[0]
        return [*questions, *FRAMEWORK_SUGGESTIONS.get(framework, [])[:2]]


def _framework_matches(query_framework: str, chunk_framework: str) -> bool:
    chunk_framework = chunk_framework.lower()
    return query_framework.startswith(chunk_framework) or chunk_framework.startswith(
        query_framework
    )


def _component_hits(chunk: Chunk, components: tuple[str, ...]) -> list[str]:
    haystack = f"{chunk.source_path.lower()} {(chunk.symbol_name or '').lower()}"
    return [
        name
        for name in components
        if any(alias in haystack for alias in COMPONENT_ALIASES.get(name, (name,)))
    ]
