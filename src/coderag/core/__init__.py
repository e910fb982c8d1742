"""Core graph store for coderag."""

from .exceptions import (
    CodeRAGError,
    ConfigError,
    ConfigurationError,
    ConflictError,
    ConnectivityError,
    EndpointNotFoundError,
    GraphStoreError,
    InvalidEdgeError,
    InvalidUpdateError,
    NotCreatedError,
    NotFoundError,
    QueryError,
    ValidationError,
)
from .models import (
    CLASS_LIKE_TYPES,
    CodeEdge,
    CodeNode,
    CrossProjectDependency,
    EdgeType,
    NodeType,
    ParseIssue,
    ProjectContext,
    ProjectStats,
)
from .scoping import (
    ScopedId,
    make_scoped_id,
    parse_scoped_id,
    project_label,
    validate_project_id,
)

__all__ = [
    "CLASS_LIKE_TYPES",
    "CodeEdge",
    "CodeNode",
    "CodeRAGError",
    "ConfigError",
    "ConfigurationError",
    "ConflictError",
    "ConnectivityError",
    "CrossProjectDependency",
    "EdgeType",
    "EndpointNotFoundError",
    "GraphStoreError",
    "InvalidEdgeError",
    "InvalidUpdateError",
    "NodeType",
    "NotCreatedError",
    "NotFoundError",
    "ParseIssue",
    "ProjectContext",
    "ProjectStats",
    "QueryError",
    "ScopedId",
    "ValidationError",
    "make_scoped_id",
    "parse_scoped_id",
    "project_label",
    "validate_project_id",
]
