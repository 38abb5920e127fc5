"""DevCanvas: hybrid lexical + semantic retrieval over source trees.

Use lazy import to avoid importing heavy backends (e.g., duckdb) on package import.
"""

__version__ = "0.1.0"

__all__ = ["Capabilities", "Config", "DevCanvasEngine", "__version__"]


def __getattr__(name: str):
    if name == "DevCanvasEngine":
        from .services.engine import DevCanvasEngine  # lazy

        return DevCanvasEngine
    if name == "Config":
        from .core.config import Config

        return Config
    if name == "Capabilities":
        from .capabilities import Capabilities

        return Capabilities
    raise AttributeError(name)
