"""Exception hierarchy for DevCanvas.

Per-file and per-chunk failures (DiscoveryError, ExtractionError,
ProviderError) are contained by the orchestrators and counted in the
indexing report. ConfigurationError and IndexStateError abort the
operation before or instead of mutating the store.
"""


class DevCanvasError(Exception):
    """Base class for all DevCanvas errors."""


class ConfigurationError(DevCanvasError):
    """A required capability or setting is missing."""


class DiscoveryError(DevCanvasError):
    """A file or directory could not be read during discovery."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot read {path}: {reason}")


class ExtractionError(DevCanvasError):
    """Chunk extraction failed for a file."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Chunk extraction failed for {path}: {reason}")


class ProviderError(DevCanvasError):
    """An embedding or generation call failed."""

    def __init__(self, provider: str, message: str):
        self.provider = provider
        super().__init__(f"[{provider}] {message}")


class IndexStateError(DevCanvasError):
    """The vector store is missing, corrupt, or belongs to another project."""


class IndexBusyError(IndexStateError):
    """Another reindex of the same project is already running."""


class QueryError(DevCanvasError):
    """A query could not be answered."""
