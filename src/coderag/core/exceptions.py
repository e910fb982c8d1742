"""Typed exception hierarchy for coderag.

Hierarchy
---------
CodeRAGError (base)
├── GraphStoreError          – Kuzu / graph store layer errors
│   ├── ConnectivityError    – database unreachable or not connected
│   ├── QueryError           – Kuzu rejected a Cypher statement
│   ├── NotFoundError        – node, edge, class or package absent in a project
│   ├── ConflictError        – duplicate id, or node still attached to edges
│   ├── NotCreatedError      – write produced no record
│   ├── InvalidUpdateError   – empty or immutable-only update set
│   ├── InvalidEdgeError     – self-referential edge of a non-recursive type
│   └── EndpointNotFoundError – edge endpoints could not be resolved
├── ValidationError          – malformed entity / relationship payloads
└── ConfigError              – configuration / threshold loading errors
    └── ConfigurationError   – (alias)

``NotFoundError`` is also what the metrics engine raises for an unknown class
or package, so presentation layers only need to catch one type for "absent".
"""

from typing import Any


class CodeRAGError(Exception):
    """Base exception for coderag."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.context = context or {}


# ── Graph store layer ───────────────────────────────────────────────────


class GraphStoreError(CodeRAGError):
    """Graph store errors (Kuzu backing store, schema, identity rules)."""

    pass


class ConnectivityError(GraphStoreError):
    """Backing store unreachable, or a session requested before ``connect()``.

    Fatal for the caller: the store never retries on its own.
    """

    pass


class QueryError(GraphStoreError):
    """Kuzu failed to execute a statement."""

    pass


class NotFoundError(GraphStoreError):
    """Requested node, edge, class or package does not exist in the project."""

    pass


class ConflictError(GraphStoreError):
    """Write conflicts with existing state.

    Raised for duplicate ids on create (recoverable; swallowed by bulk
    ingestion) and for deleting a node that still has edges without detaching.
    """

    pass


class NotCreatedError(GraphStoreError):
    """The create statement ran but returned no record."""

    pass


class InvalidUpdateError(GraphStoreError):
    """Update set is empty or only touches immutable fields."""

    pass


class InvalidEdgeError(GraphStoreError):
    """Edge violates a structural rule (e.g. non-recursive self loop)."""

    pass


class EndpointNotFoundError(GraphStoreError):
    """Edge source or target could not be resolved, fallback included."""

    pass


# ── Payload validation ──────────────────────────────────────────────────


class ValidationError(CodeRAGError):
    """Entity or relationship payload is malformed (unknown type, missing id)."""

    pass


# ── Configuration layer ─────────────────────────────────────────────────


class ConfigError(CodeRAGError):
    """Configuration / validation errors."""

    pass


# Alias kept for callers that spell it out
ConfigurationError = ConfigError
