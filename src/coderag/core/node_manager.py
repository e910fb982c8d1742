"""Project-scoped node operations."""

from __future__ import annotations

from typing import Any

from loguru import logger

from .annotations import (
    AnnotatedNode,
    AnnotationGrouping,
    AnnotationUsageGroup,
    find_matching,
    load_annotated_nodes,
    summarize_usage,
)
from .exceptions import (
    ConflictError,
    InvalidUpdateError,
    NotCreatedError,
    NotFoundError,
)
from .graph_store import GraphSession, GraphStore
from .models import CodeNode, NodeType, parse_node_type
from .queries import limit_clause, node_columns
from .scoping import make_scoped_id, project_label
from .serialization import (
    ATTRIBUTES_SCHEMA_VERSION,
    dump_json,
    node_to_params,
    record_to_node,
)

# Fields callers may change after creation
MUTABLE_NODE_FIELDS = frozenset(
    {
        "name",
        "qualified_name",
        "description",
        "source_file",
        "start_line",
        "end_line",
        "modifiers",
        "attributes",
    }
)


class NodeManager:
    """CRUD and lookups for ``CodeNode`` records.

    Every lookup is confined to one project unless its name says
    ``across_projects``.
    """

    def __init__(self, store: GraphStore):
        self.store = store

    @property
    def _search_limit(self) -> int:
        return self.store.settings.search_limit

    # ── Writes ──────────────────────────────────────────────────────────

    def _create(self, s: GraphSession, node: CodeNode) -> CodeNode:
        exists = s.scalar(
            "MATCH (n:CodeNode) WHERE n.scoped_id = $sid RETURN count(n)",
            {"sid": node.scoped_id},
        )
        if exists:
            raise ConflictError(
                f"Node with id {node.id} already exists in project {node.project_id}",
                {"id": node.id, "project_id": node.project_id},
            )

        params = node_to_params(node)
        props = ", ".join(f"{k}: ${k}" for k in params)
        row = s.fetch_one(
            f"CREATE (n:CodeNode {{{props}}}) RETURN {node_columns('n')}", params
        )
        if row is None:
            raise NotCreatedError(
                f"Failed to create node {node.id}",
                {"id": node.id, "project_id": node.project_id},
            )
        return record_to_node(row)

    async def add_node(self, node: CodeNode) -> CodeNode:
        """Create a node in ``node.project_id``.

        Raises:
            ConflictError: If ``(project_id, id)`` already exists
            NotCreatedError: If the write returned no record
        """
        with self.store.session() as s:
            created = self._create(s, node)
            self.store.ensure_project(s, node.project_id)
        logger.debug(f"Added {node.type} node {node.scoped_id}")
        return created

    async def update_node(
        self, node_id: str, project_id: str, updates: dict[str, Any]
    ) -> CodeNode:
        """Apply an allow-listed partial update.

        Keys outside the mutable set (``id``, ``project_id``, ``type``, and
        anything unknown) are dropped.

        Raises:
            InvalidUpdateError: If nothing mutable remains
            NotFoundError: If the node does not exist in the project
        """
        effective = {k: v for k, v in updates.items() if k in MUTABLE_NODE_FIELDS}
        dropped = set(updates) - set(effective)
        if dropped:
            logger.debug(f"Ignoring immutable or unknown node fields: {sorted(dropped)}")
        if not effective:
            raise InvalidUpdateError(
                "No valid updates provided", {"id": node_id, "fields": sorted(updates)}
            )

        params: dict[str, Any] = {"sid": make_scoped_id(project_id, node_id)}
        assignments = []
        for key, value in effective.items():
            if key == "modifiers":
                column, value = "modifiers_json", dump_json(list(value or []))
            elif key == "attributes":
                column, value = "attributes_json", dump_json(dict(value or {}))
                assignments.append("n.attributes_version = $attributes_version")
                params["attributes_version"] = ATTRIBUTES_SCHEMA_VERSION
            else:
                column = key

            if value is None:
                assignments.append(f"n.{column} = NULL")
            else:
                assignments.append(f"n.{column} = ${column}")
                params[column] = value

        with self.store.session() as s:
            row = s.fetch_one(
                f"""
                MATCH (n:CodeNode) WHERE n.scoped_id = $sid
                SET {', '.join(assignments)}
                RETURN {node_columns('n')}
                """,
                params,
            )
        if row is None:
            raise NotFoundError(
                f"Node with id {node_id} not found",
                {"id": node_id, "project_id": project_id},
            )
        return record_to_node(row)

    async def delete_node(self, node_id: str, project_id: str, detach: bool = False) -> bool:
        """Delete a node.

        Args:
            detach: Also delete the node's edges; otherwise a node that still
                has edges is refused

        Returns:
            False when the node did not exist

        Raises:
            ConflictError: If the node has edges and ``detach`` is False
        """
        sid = make_scoped_id(project_id, node_id)
        with self.store.session() as s:
            if not s.scalar("MATCH (n:CodeNode) WHERE n.scoped_id = $sid RETURN count(n)", {"sid": sid}):
                return False

            degree = s.scalar(
                "MATCH (n:CodeNode)-[e:CodeEdge]-(:CodeNode) WHERE n.scoped_id = $sid RETURN count(e)",
                {"sid": sid},
            )
            if degree and not detach:
                raise ConflictError(
                    f"Node {node_id} still has {degree} edge(s); delete them or pass detach=True",
                    {"id": node_id, "project_id": project_id, "edges": degree},
                )
            s.execute("MATCH (n:CodeNode) WHERE n.scoped_id = $sid DETACH DELETE n", {"sid": sid})

        logger.debug(f"Deleted node {sid} ({degree or 0} edges detached)")
        return True

    # ── Reads ───────────────────────────────────────────────────────────

    def _find(
        self,
        where: str,
        params: dict[str, Any],
        order_by: str = "name",
        limit: int | None = None,
    ) -> list[CodeNode]:
        with self.store.session() as s:
            rows = s.fetch_all(
                f"""
                MATCH (n:CodeNode) WHERE {where}
                RETURN {node_columns('n')}
                ORDER BY {order_by}{limit_clause(limit)}
                """,
                params,
            )
        return [record_to_node(r) for r in rows]

    async def get_node(self, node_id: str, project_id: str) -> CodeNode | None:
        nodes = self._find("n.scoped_id = $sid", {"sid": make_scoped_id(project_id, node_id)})
        return nodes[0] if nodes else None

    async def find_nodes_by_type(self, node_type: NodeType | str, project_id: str) -> list[CodeNode]:
        return self._find(
            "n.project_label = $label",
            {"label": project_label(project_id, parse_node_type(node_type).value)},
        )

    async def find_nodes_by_name(self, name: str, project_id: str) -> list[CodeNode]:
        return self._find(
            "n.project_id = $pid AND n.name = $name",
            {"pid": project_id, "name": name},
            order_by="node_type, id",
        )

    async def find_nodes_by_qualified_name(
        self, qualified_name: str, project_id: str
    ) -> list[CodeNode]:
        return self._find(
            "n.project_id = $pid AND n.qualified_name = $qn",
            {"pid": project_id, "qn": qualified_name},
            order_by="node_type, id",
        )

    async def search_nodes(self, query: str, project_id: str) -> list[CodeNode]:
        """Case-insensitive substring match over name, qualified name and description."""
        return self._find(
            "n.project_id = $pid AND ("
            "lower(n.name) CONTAINS $q "
            "OR lower(n.qualified_name) CONTAINS $q "
            "OR lower(coalesce(n.description, '')) CONTAINS $q)",
            {"pid": project_id, "q": query.lower()},
            limit=self._search_limit,
        )

    async def get_all_nodes(self, project_id: str) -> list[CodeNode]:
        return self._find(
            "n.project_id = $pid",
            {"pid": project_id},
            order_by="node_type, name",
            limit=self.store.settings.list_limit,
        )

    async def find_nodes_by_type_across_projects(self, node_type: NodeType | str) -> list[CodeNode]:
        return self._find(
            "n.node_type = $t",
            {"t": parse_node_type(node_type).value},
            order_by="project_id, name",
        )

    async def search_nodes_across_projects(self, query: str) -> list[CodeNode]:
        return self._find(
            "lower(n.name) CONTAINS $q "
            "OR lower(n.qualified_name) CONTAINS $q "
            "OR lower(coalesce(n.description, '')) CONTAINS $q",
            {"q": query.lower()},
            order_by="project_id, name",
            limit=self._search_limit,
        )

    # ── Annotations ─────────────────────────────────────────────────────

    async def find_nodes_by_annotation(
        self,
        annotation_name: str,
        project_id: str,
        framework: str | None = None,
        category: str | None = None,
        node_type: NodeType | str | None = None,
    ) -> list[AnnotatedNode]:
        """Nodes carrying ``annotation_name``, ordered by qualified name.

        ``framework`` and ``category`` must match on the same annotation.
        """
        with self.store.session() as s:
            candidates = load_annotated_nodes(s, project_id, node_type)
        return find_matching(candidates, annotation_name, framework, category)

    async def get_annotation_usage(
        self,
        project_id: str,
        category: str | None = None,
        framework: str | None = None,
        include_deprecated: bool = True,
        group_by: AnnotationGrouping | str = AnnotationGrouping.ANNOTATION,
    ) -> list[AnnotationUsageGroup]:
        """Annotation counts for one project, grouped by name, category or framework."""
        with self.store.session() as s:
            candidates = load_annotated_nodes(s, project_id)
        return summarize_usage(candidates, category, framework, include_deprecated, group_by)
