"""Common enums shared across DevCanvas modules."""

from enum import Enum
from pathlib import Path


class ChunkKind(Enum):
    """Kind of an indexed chunk."""

    FILE = "file"
    BLOCK = "block"
    CLASS = "class"
    FUNCTION = "function"
    INTERFACE = "interface"

    @property
    def is_symbol(self) -> bool:
        return self in (ChunkKind.CLASS, ChunkKind.FUNCTION, ChunkKind.INTERFACE)

    @classmethod
    def from_string(cls, value: str) -> "ChunkKind":
        try:
            return cls(value.lower())
        except ValueError:
            raise ValueError(
                f"Unknown chunk kind: {value}. "
                f"Must be one of {[k.value for k in cls]}"
            ) from None


class LanguageFamily(Enum):
    """How a language delimits declaration bodies."""

    BRACE = "brace"
    INDENT = "indent"
    COMPONENT = "component"  # Vue/Svelte single-file components
    NONE = "none"


class Language(Enum):
    """Languages recognized by the chunker."""

    PYTHON = "python"
    JAVASCRIPT = "javascript"
    TYPESCRIPT = "typescript"
    JAVA = "java"
    KOTLIN = "kotlin"
    CSHARP = "csharp"
    GO = "go"
    RUST = "rust"
    C = "c"
    CPP = "cpp"
    PHP = "php"
    SWIFT = "swift"
    SCALA = "scala"
    DART = "dart"
    RUBY = "ruby"
    VUE = "vue"
    SVELTE = "svelte"
    MARKDOWN = "markdown"
    JSON = "json"
    YAML = "yaml"
    TOML = "toml"
    HTML = "html"
    CSS = "css"
    SQL = "sql"
    SHELL = "shell"
    TEXT = "text"

    @classmethod
    def from_file_extension(cls, file_path: str | Path) -> "Language":
        """Detect the language of a file from its extension or name."""
        path = Path(file_path)
        name = path.name.lower()
        if name in _SPECIAL_FILE_LANGUAGES:
            return _SPECIAL_FILE_LANGUAGES[name]
        return _EXTENSION_LANGUAGES.get(path.suffix.lower(), cls.TEXT)

    @property
    def family(self) -> LanguageFamily:
        if self in _BRACE_LANGUAGES:
            return LanguageFamily.BRACE
        if self is Language.PYTHON:
            return LanguageFamily.INDENT
        if self in (Language.VUE, Language.SVELTE):
            return LanguageFamily.COMPONENT
        return LanguageFamily.NONE

    @property
    def is_documentation(self) -> bool:
        return self in (Language.MARKDOWN, Language.TEXT)


_BRACE_LANGUAGES = frozenset(
    {
        Language.JAVASCRIPT,
        Language.TYPESCRIPT,
        Language.JAVA,
        Language.KOTLIN,
        Language.CSHARP,
        Language.GO,
        Language.RUST,
        Language.C,
        Language.CPP,
        Language.PHP,
        Language.SWIFT,
        Language.SCALA,
        Language.DART,
    }
)

_EXTENSION_LANGUAGES: dict[str, Language] = {
    ".py": Language.PYTHON,
    ".pyw": Language.PYTHON,
    ".pyi": Language.PYTHON,
    ".js": Language.JAVASCRIPT,
    ".jsx": Language.JAVASCRIPT,
    ".mjs": Language.JAVASCRIPT,
    ".cjs": Language.JAVASCRIPT,
    ".ts": Language.TYPESCRIPT,
    ".tsx": Language.TYPESCRIPT,
    ".java": Language.JAVA,
    ".kt": Language.KOTLIN,
    ".kts": Language.KOTLIN,
    ".cs": Language.CSHARP,
    ".go": Language.GO,
    ".rs": Language.RUST,
    ".c": Language.C,
    ".h": Language.C,
    ".cpp": Language.CPP,
    ".cc": Language.CPP,
    ".cxx": Language.CPP,
    ".hpp": Language.CPP,
    ".hxx": Language.CPP,
    ".php": Language.PHP,
    ".swift": Language.SWIFT,
    ".scala": Language.SCALA,
    ".dart": Language.DART,
    ".rb": Language.RUBY,
    ".vue": Language.VUE,
    ".svelte": Language.SVELTE,
    ".md": Language.MARKDOWN,
    ".mdx": Language.MARKDOWN,
    ".rst": Language.TEXT,
    ".txt": Language.TEXT,
    ".adoc": Language.TEXT,
    ".json": Language.JSON,
    ".jsonc": Language.JSON,
    ".yaml": Language.YAML,
    ".yml": Language.YAML,
    ".toml": Language.TOML,
    ".ini": Language.TEXT,
    ".cfg": Language.TEXT,
    ".conf": Language.TEXT,
    ".properties": Language.TEXT,
    ".xml": Language.HTML,
    ".html": Language.HTML,
    ".htm": Language.HTML,
    ".css": Language.CSS,
    ".scss": Language.CSS,
    ".sass": Language.CSS,
    ".less": Language.CSS,
    ".sql": Language.SQL,
    ".sh": Language.SHELL,
    ".bash": Language.SHELL,
    ".zsh": Language.SHELL,
    ".ps1": Language.SHELL,
    ".gradle": Language.TEXT,
}

_SPECIAL_FILE_LANGUAGES: dict[str, Language] = {
    "dockerfile": Language.TEXT,
    "makefile": Language.TEXT,
    "gemfile": Language.RUBY,
    "rakefile": Language.RUBY,
    "procfile": Language.TEXT,
    "requirements.txt": Language.TEXT,
    "pom.xml": Language.HTML,
    "build.gradle": Language.TEXT,
    "settings.gradle": Language.TEXT,
    "build.sbt": Language.SCALA,
}

# Extensions and bare file names the discovery walk treats as text.
TEXT_FILE_EXTENSIONS = frozenset(_EXTENSION_LANGUAGES)
TEXT_FILE_NAMES = frozenset(_SPECIAL_FILE_LANGUAGES)
