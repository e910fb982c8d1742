"""Endpoint resolution for new edges.

Parsers emit edges whose endpoints are sometimes not node ids: an
``implements`` target is often the interface as written in source
(``com.acme.Repository``) rather than the id the interface node was stored
under. ``EndpointResolver`` tries an ordered list of strategies per endpoint
and stops at the first hit.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from typing import Literal

from loguru import logger

from .exceptions import EndpointNotFoundError
from .graph_store import GraphSession
from .models import CLASS_LIKE_TYPES, CodeEdge, EdgeType
from .queries import any_of
from .scoping import make_scoped_id

Role = Literal["source", "target"]

_QUALIFIER_SEPARATORS = re.compile(r"[.:/\\#]")


def simple_name(reference: str) -> str:
    """Last segment of a qualified reference.

    Examples:
        >>> simple_name("com.acme.Repository")
        'Repository'
        >>> simple_name("pkg/module#Thing")
        'Thing'
    """
    return _QUALIFIER_SEPARATORS.split(reference)[-1]


class ResolutionStrategy(ABC):
    """Maps an endpoint reference to the scoped id of an existing node."""

    name: str = "strategy"

    def applies_to(self, edge_type: EdgeType, role: Role) -> bool:
        return True

    @abstractmethod
    def resolve(self, s: GraphSession, project_id: str, reference: str) -> str | None:
        """Return the scoped id of the matched node, or None."""


class ExactIdStrategy(ResolutionStrategy):
    """The reference is the node id."""

    name = "exact_id"

    def resolve(self, s: GraphSession, project_id: str, reference: str) -> str | None:
        sid = make_scoped_id(project_id, reference)
        found = s.scalar(
            "MATCH (n:CodeNode) WHERE n.scoped_id = $sid RETURN n.scoped_id",
            {"sid": sid},
        )
        return found


class SimpleNameStrategy(ResolutionStrategy):
    """Match the reference's simple name against class-like node names.

    Restricted to the targets of ``implements`` edges. Ties are broken by
    preferring interfaces, then by node id.
    """

    name = "simple_name"

    def __init__(self, edge_types: frozenset[EdgeType] = frozenset({EdgeType.IMPLEMENTS})):
        self.edge_types = edge_types

    def applies_to(self, edge_type: EdgeType, role: Role) -> bool:
        return role == "target" and edge_type in self.edge_types

    def resolve(self, s: GraphSession, project_id: str, reference: str) -> str | None:
        name = simple_name(reference)
        if not name:
            return None
        rows = s.fetch_all(
            f"""
            MATCH (n:CodeNode)
            WHERE n.project_id = $pid
              AND (n.name = $name OR n.id ENDS WITH $name OR n.qualified_name ENDS WITH $name)
              AND {any_of("n.node_type", CLASS_LIKE_TYPES)}
            RETURN n.scoped_id AS scoped_id, n.node_type AS node_type, n.id AS id,
                   n.name AS name, n.qualified_name AS qualified_name
            """,
            {"pid": project_id, "name": name},
        )
        # ENDS WITH also matches "FooBar" for "Bar"; keep whole-segment hits only
        rows = [
            r
            for r in rows
            if name in (simple_name(r["name"]), simple_name(r["id"]), simple_name(r["qualified_name"] or ""))
        ]
        if not rows:
            return None
        rows.sort(key=lambda r: (r["node_type"] != "interface", r["id"]))
        return rows[0]["scoped_id"]


DEFAULT_STRATEGIES: tuple[ResolutionStrategy, ...] = (ExactIdStrategy(), SimpleNameStrategy())


class EndpointResolver:
    """Runs strategies in order for each endpoint of an edge."""

    def __init__(self, strategies: tuple[ResolutionStrategy, ...] = DEFAULT_STRATEGIES):
        self.strategies = strategies

    def resolve_endpoint(
        self,
        s: GraphSession,
        project_id: str,
        reference: str,
        edge_type: EdgeType,
        role: Role,
    ) -> str | None:
        for strategy in self.strategies:
            if not strategy.applies_to(edge_type, role):
                continue
            sid = strategy.resolve(s, project_id, reference)
            if sid is not None:
                if strategy is not self.strategies[0]:
                    logger.debug(
                        f"Resolved {role} {reference!r} via {strategy.name} -> {sid}"
                    )
                return sid
        return None

    def resolve(
        self,
        s: GraphSession,
        edge: CodeEdge,
        source_project: str | None = None,
        target_project: str | None = None,
    ) -> tuple[str, str]:
        """Scoped ids of both endpoints.

        Raises:
            EndpointNotFoundError: If either endpoint stays unresolved
        """
        source = self.resolve_endpoint(
            s, source_project or edge.project_id, edge.source, edge.type, "source"
        )
        target = self.resolve_endpoint(
            s, target_project or edge.project_id, edge.target, edge.type, "target"
        )
        if source is None or target is None:
            raise EndpointNotFoundError(
                "Failed to create edge - source or target node not found",
                {
                    "edge_id": edge.id,
                    "project_id": edge.project_id,
                    "source": edge.source,
                    "target": edge.target,
                    "source_resolved": source is not None,
                    "target_resolved": target is not None,
                },
            )
        return source, target
