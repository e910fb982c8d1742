"""coderag - multi-tenant code graph store and software metrics engine."""

__version__ = "0.3.0"

from .core.exceptions import CodeRAGError

__all__ = ["CodeRAGError", "__version__"]
