"""Query-side models: intents, parameters, ranked results."""

from dataclasses import dataclass, field
from enum import Enum

from devcanvas.core.models.chunk import Chunk


class QueryType(Enum):
    """Closed set of query intents."""

    CODE_SEARCH = "code-search"
    ARCHITECTURE_ANALYSIS = "architecture-analysis"
    DOCUMENTATION = "documentation"
    BUG_ANALYSIS = "bug-analysis"
    SECURITY_ANALYSIS = "security-analysis"
    PERFORMANCE_ANALYSIS = "performance-analysis"
    TESTING_GUIDANCE = "testing-guidance"
    REFACTORING_ADVICE = "refactoring-advice"
    CLASS_DIAGRAM = "class-diagram"
    SEQUENCE_DIAGRAM = "sequence-diagram"
    ARCHITECTURE_DIAGRAM = "architecture-diagram"
    GENERAL = "general"

    @property
    def is_diagram(self) -> bool:
        return self in (
            QueryType.CLASS_DIAGRAM,
            QueryType.SEQUENCE_DIAGRAM,
            QueryType.ARCHITECTURE_DIAGRAM,
        )


class QueryScope(Enum):
    FILE = "file"
    COMPONENT = "component"
    MODULE = "module"
    PROJECT = "project"
    FRAMEWORK = "framework"


class QueryComplexity(Enum):
    SIMPLE = "simple"
    MODERATE = "moderate"
    COMPLEX = "complex"
    ADVANCED = "advanced"

    @property
    def max_results(self) -> int:
        """Result cap applied by the planner for this complexity tier."""
        return _MAX_RESULTS_BY_COMPLEXITY[self]


_MAX_RESULTS_BY_COMPLEXITY = {
    QueryComplexity.SIMPLE: 5,
    QueryComplexity.MODERATE: 10,
    QueryComplexity.COMPLEX: 15,
    QueryComplexity.ADVANCED: 20,
}


class ContextType(Enum):
    DIRECT_MATCH = "direct-match"
    FRAMEWORK = "framework"
    DEPENDENCY = "dependency"
    PATTERN = "pattern"
    RELATED = "related"


class UserRole(Enum):
    DEVELOPER = "developer"
    ARCHITECT = "architect"
    QA = "qa"
    DEVOPS = "devops"
    MANAGER = "manager"


@dataclass(frozen=True)
class QueryParameters:
    keywords: tuple[str, ...]
    frameworks: tuple[str, ...]
    file_types: tuple[str, ...]
    components: tuple[str, ...]
    scope: QueryScope
    complexity: QueryComplexity


@dataclass(frozen=True)
class QueryIntent:
    type: QueryType
    confidence: float
    parameters: QueryParameters

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be within [0, 1], got {self.confidence}")


@dataclass
class QueryContext:
    """Session information used to nudge intent classification."""

    user_role: UserRole = UserRole.DEVELOPER
    session_history: list[QueryType] = field(default_factory=list)
    recent_files: list[str] = field(default_factory=list)

    def remember(self, intent: QueryIntent) -> None:
        self.session_history.append(intent.type)


@dataclass(frozen=True)
class RankedResult:
    chunk: Chunk
    score: float
    explanation: str
    context_type: ContextType

    def to_dict(self) -> dict:
        return {
            "chunk": self.chunk.consumer_view(),
            "score": self.score,
            "explanation": self.explanation,
            "context_type": self.context_type.value,
        }


@dataclass(frozen=True)
class QueryRewrite:
    """Outcome of the optional query rewrite step.

    Either ``rewritten`` is True and dense/sparse hold the generated forms, or
    it is False, both forms equal the raw query and ``reason`` says why.
    """

    dense: str
    sparse: str
    rewritten: bool
    reason: str | None = None

    @classmethod
    def fallback(cls, query: str, reason: str) -> "QueryRewrite":
        return cls(dense=query, sparse=query, rewritten=False, reason=reason)


@dataclass(frozen=True)
class TokenUsage:
    prompt_tokens: int = 0
    completion_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


@dataclass(frozen=True)
class QueryResult:
    ranked_chunks: list[RankedResult]
    intent: QueryIntent
    rewrite: QueryRewrite
    usage: TokenUsage | None = None

    @property
    def chunks(self) -> list[Chunk]:
        return [result.chunk for result in self.ranked_chunks]


@dataclass(frozen=True)
class ScoredChunk:
    """A hybrid search hit before planner re-ranking."""

    chunk: Chunk
    score: float
    dense_score: float = 0.0
    sparse_score: float = 0.0
