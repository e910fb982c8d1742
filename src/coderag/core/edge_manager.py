"""Project-scoped edge operations and graph-shape queries."""

from __future__ import annotations

from typing import Any

from loguru import logger

from .annotations import (
    DeprecatedNode,
    DeprecationDependent,
    find_deprecated,
    load_annotated_nodes,
)
from .exceptions import (
    ConflictError,
    InvalidEdgeError,
    InvalidUpdateError,
    NotCreatedError,
    NotFoundError,
    ValidationError,
)
from .graph_store import GraphSession, GraphStore
from .models import (
    CLASS_LIKE_TYPES,
    DEPENDENCY_EDGE_TYPES,
    SELF_REFERENTIAL_EDGE_TYPES,
    CodeEdge,
    CrossProjectDependency,
    EdgeType,
    NodeType,
    parse_edge_type,
)
from .queries import any_of, edge_columns
from .resolution import EndpointResolver
from .scoping import make_scoped_id
from .serialization import (
    ATTRIBUTES_SCHEMA_VERSION,
    dump_json,
    edge_to_params,
    record_to_edge,
)

# Fields callers may change after creation
MUTABLE_EDGE_FIELDS = frozenset({"type", "attributes"})

_EDGE_MATCH = "MATCH (a:CodeNode)-[e:CodeEdge]->(b:CodeNode)"


class EdgeManager:
    """CRUD for ``CodeEdge`` records plus traversal queries built on them."""

    def __init__(self, store: GraphStore, resolver: EndpointResolver | None = None):
        self.store = store
        self.resolver = resolver or EndpointResolver()

    # ── Writes ──────────────────────────────────────────────────────────

    def _create(
        self, s: GraphSession, edge: CodeEdge, target_project: str | None = None
    ) -> CodeEdge:
        exists = s.scalar(
            f"{_EDGE_MATCH} WHERE e.scoped_id = $sid RETURN count(e)",
            {"sid": edge.scoped_id},
        )
        if exists:
            raise ConflictError(
                f"Edge with id {edge.id} already exists in project {edge.project_id}",
                {"id": edge.id, "project_id": edge.project_id},
            )

        source_sid, target_sid = self.resolver.resolve(
            s, edge, target_project=target_project
        )
        if source_sid == target_sid and edge.type not in SELF_REFERENTIAL_EDGE_TYPES:
            raise InvalidEdgeError(
                f"Self-referential {edge.type} edge on {edge.source} is not allowed",
                {"id": edge.id, "project_id": edge.project_id, "type": edge.type.value},
            )

        params = edge_to_params(edge)
        props = ", ".join(f"{k}: ${k}" for k in params)
        params.update({"src": source_sid, "dst": target_sid})
        row = s.fetch_one(
            f"""
            MATCH (a:CodeNode), (b:CodeNode)
            WHERE a.scoped_id = $src AND b.scoped_id = $dst
            CREATE (a)-[e:CodeEdge {{{props}}}]->(b)
            RETURN {edge_columns()}
            """,
            params,
        )
        if row is None:
            raise NotCreatedError(
                f"Failed to create edge {edge.id}",
                {"id": edge.id, "project_id": edge.project_id},
            )
        return record_to_edge(row)

    async def add_edge(self, edge: CodeEdge) -> CodeEdge:
        """Create an edge between two nodes of ``edge.project_id``.

        The returned edge carries the resolved endpoint ids, which differ
        from the input when the ``implements`` fallback matched by name.

        Raises:
            ConflictError: If the edge id already exists in the project
            EndpointNotFoundError: If an endpoint cannot be resolved
            InvalidEdgeError: On a self loop of a non-recursive edge type
        """
        with self.store.session() as s:
            created = self._create(s, edge)
            self.store.ensure_project(s, edge.project_id)
        logger.debug(f"Added {edge.type} edge {created.source} -> {created.target}")
        return created

    async def add_cross_project_edge(
        self, edge: CodeEdge, target_project_id: str
    ) -> CodeEdge:
        """Link a node of ``edge.project_id`` to a node of another project.

        The edge belongs to the source project; ``edge.target`` is resolved
        inside ``target_project_id``.
        """
        if target_project_id == edge.project_id:
            raise ValidationError(
                "Cross-project edge must target a different project; use add_edge",
                {"id": edge.id, "project_id": edge.project_id},
            )
        with self.store.session() as s:
            created = self._create(s, edge, target_project=target_project_id)
            self.store.ensure_project(s, edge.project_id)
        logger.debug(
            f"Added cross-project {edge.type} edge "
            f"{edge.project_id}:{created.source} -> {target_project_id}:{created.target}"
        )
        return created

    async def update_edge(
        self, edge_id: str, project_id: str, updates: dict[str, Any]
    ) -> CodeEdge:
        """Apply an allow-listed partial update (``type``, ``attributes``).

        Raises:
            InvalidUpdateError: If nothing mutable remains
            NotFoundError: If the edge does not exist in the project
            InvalidEdgeError: If a self loop would get a non-recursive type
        """
        effective = {k: v for k, v in updates.items() if k in MUTABLE_EDGE_FIELDS}
        if not effective:
            raise InvalidUpdateError(
                "No valid updates provided", {"id": edge_id, "fields": sorted(updates)}
            )

        sid = make_scoped_id(project_id, edge_id)
        params: dict[str, Any] = {"sid": sid}
        assignments = []
        new_type: EdgeType | None = None
        if "type" in effective:
            new_type = parse_edge_type(effective["type"])
            assignments.append("e.edge_type = $edge_type")
            params["edge_type"] = new_type.value
        if "attributes" in effective:
            assignments.append("e.attributes_json = $attributes_json")
            assignments.append("e.attributes_version = $attributes_version")
            params["attributes_json"] = dump_json(dict(effective["attributes"] or {}))
            params["attributes_version"] = ATTRIBUTES_SCHEMA_VERSION

        with self.store.session() as s:
            current = s.fetch_one(
                f"{_EDGE_MATCH} WHERE e.scoped_id = $sid "
                "RETURN a.scoped_id AS src, b.scoped_id AS dst",
                {"sid": sid},
            )
            if current is None:
                raise NotFoundError(
                    f"Edge with id {edge_id} not found",
                    {"id": edge_id, "project_id": project_id},
                )
            if (
                new_type is not None
                and current["src"] == current["dst"]
                and new_type not in SELF_REFERENTIAL_EDGE_TYPES
            ):
                raise InvalidEdgeError(
                    f"Self-referential edge {edge_id} cannot become {new_type}",
                    {"id": edge_id, "project_id": project_id},
                )
            row = s.fetch_one(
                f"""
                {_EDGE_MATCH} WHERE e.scoped_id = $sid
                SET {', '.join(assignments)}
                RETURN {edge_columns()}
                """,
                params,
            )
        return record_to_edge(row)

    async def delete_edge(self, edge_id: str, project_id: str) -> bool:
        sid = make_scoped_id(project_id, edge_id)
        with self.store.session() as s:
            count = s.scalar(f"{_EDGE_MATCH} WHERE e.scoped_id = $sid RETURN count(e)", {"sid": sid})
            if not count:
                return False
            s.execute(f"{_EDGE_MATCH} WHERE e.scoped_id = $sid DELETE e", {"sid": sid})
        logger.debug(f"Deleted edge {sid}")
        return True

    # ── Reads ───────────────────────────────────────────────────────────

    def _find(self, where: str, params: dict[str, Any], order_by: str = "id") -> list[CodeEdge]:
        with self.store.session() as s:
            rows = s.fetch_all(
                f"{_EDGE_MATCH} WHERE {where} RETURN {edge_columns()} ORDER BY {order_by}",
                params,
            )
        return [record_to_edge(r) for r in rows]

    async def get_edge(self, edge_id: str, project_id: str) -> CodeEdge | None:
        edges = self._find("e.scoped_id = $sid", {"sid": make_scoped_id(project_id, edge_id)})
        return edges[0] if edges else None

    async def find_edges_by_type(self, edge_type: EdgeType | str, project_id: str) -> list[CodeEdge]:
        return self._find(
            "e.project_id = $pid AND e.edge_type = $t",
            {"pid": project_id, "t": parse_edge_type(edge_type).value},
        )

    async def find_edges_by_source(self, source_id: str, project_id: str) -> list[CodeEdge]:
        return self._find(
            "e.project_id = $pid AND a.scoped_id = $sid",
            {"pid": project_id, "sid": make_scoped_id(project_id, source_id)},
        )

    async def find_edges_by_target(self, target_id: str, project_id: str) -> list[CodeEdge]:
        return self._find(
            "e.project_id = $pid AND b.scoped_id = $sid",
            {"pid": project_id, "sid": make_scoped_id(project_id, target_id)},
        )

    async def find_edges_by_type_across_projects(self, edge_type: EdgeType | str) -> list[CodeEdge]:
        return self._find(
            "e.edge_type = $t",
            {"t": parse_edge_type(edge_type).value},
            order_by="project_id, id",
        )

    async def find_cross_project_dependencies(
        self, project_id: str | None = None
    ) -> list[CrossProjectDependency]:
        """Edges whose endpoints live in different projects.

        Args:
            project_id: Only report edges touching this project
        """
        where = "a.project_id <> b.project_id"
        params: dict[str, Any] = {}
        if project_id:
            where += " AND (a.project_id = $pid OR b.project_id = $pid)"
            params["pid"] = project_id
        with self.store.session() as s:
            rows = s.fetch_all(
                f"{_EDGE_MATCH} WHERE {where} RETURN {edge_columns()} ORDER BY project_id, id",
                params,
            )
        return [
            CrossProjectDependency(
                edge=record_to_edge(r),
                source_scoped_id=make_scoped_id(r["source_project"], r["source"]),
                target_scoped_id=make_scoped_id(r["target_project"], r["target"]),
            )
            for r in rows
        ]

    # ── Graph-shape queries ─────────────────────────────────────────────

    async def find_classes_that_call_method(self, method_name: str, project_id: str) -> list[str]:
        """Names of classes calling ``method_name`` directly or via a member."""
        callee = (
            "m.project_id = $pid AND (m.name = $name OR m.id = $name) AND "
            + any_of("m.node_type", (NodeType.METHOD, NodeType.FUNCTION))
        )
        owner = "c.project_id = $pid AND " + any_of("c.node_type", CLASS_LIKE_TYPES)
        params = {"pid": project_id, "name": method_name}

        with self.store.session() as s:
            direct = s.fetch_all(
                f"""
                MATCH (c:CodeNode)-[e:CodeEdge]->(m:CodeNode)
                WHERE {owner} AND e.edge_type = 'calls' AND {callee}
                RETURN DISTINCT c.name AS name
                """,
                params,
            )
            via_member = s.fetch_all(
                f"""
                MATCH (c:CodeNode)-[k:CodeEdge]->(x:CodeNode)-[e:CodeEdge]->(m:CodeNode)
                WHERE {owner} AND k.edge_type = 'contains'
                  AND x.project_id = $pid AND e.edge_type = 'calls' AND {callee}
                RETURN DISTINCT c.name AS name
                """,
                params,
            )
        return sorted({r["name"] for r in direct} | {r["name"] for r in via_member})

    async def find_classes_that_implement_interface(
        self, interface_name: str, project_id: str
    ) -> list[str]:
        """Names of classes with an ``implements`` edge to the interface.

        The interface may be given by id, qualified name or simple name.
        """
        with self.store.session() as s:
            rows = s.fetch_all(
                f"""
                MATCH (c:CodeNode)-[e:CodeEdge]->(i:CodeNode)
                WHERE c.project_id = $pid AND i.project_id = $pid
                  AND e.edge_type = 'implements'
                  AND {any_of("c.node_type", CLASS_LIKE_TYPES)}
                  AND (i.id = $name OR i.qualified_name = $name OR i.name = $name)
                RETURN DISTINCT c.name AS name
                """,
                {"pid": project_id, "name": interface_name},
            )
        return sorted(r["name"] for r in rows)

    def _resolve_class(self, s: GraphSession, class_name: str, project_id: str) -> str | None:
        """Scoped id of a class-like node by id, then qualified name, then name."""
        for prop in ("id", "qualified_name", "name"):
            rows = s.fetch_all(
                f"""
                MATCH (n:CodeNode)
                WHERE n.project_id = $pid AND n.{prop} = $ref
                  AND {any_of("n.node_type", CLASS_LIKE_TYPES)}
                RETURN n.scoped_id AS scoped_id ORDER BY scoped_id LIMIT 1
                """,
                {"pid": project_id, "ref": class_name},
            )
            if rows:
                return rows[0]["scoped_id"]
        return None

    async def find_inheritance_hierarchy(self, class_name: str, project_id: str) -> list[str]:
        """Ancestor names from the direct parent up to the root.

        Follows ``extends`` edges, taking the first parent by name when a
        class has several. Stops at ``max_traversal_depth`` or when a cycle
        closes. Unknown classes and roots yield an empty list.
        """
        max_depth = self.store.settings.max_traversal_depth
        ancestors: list[str] = []

        with self.store.session() as s:
            current = self._resolve_class(s, class_name, project_id)
            if current is None:
                return []

            seen = {current}
            while len(ancestors) < max_depth:
                parent = s.fetch_one(
                    f"""
                    {_EDGE_MATCH}
                    WHERE a.scoped_id = $sid AND e.edge_type = 'extends'
                      AND b.project_id = $pid
                    RETURN b.scoped_id AS scoped_id, b.name AS name
                    ORDER BY name, scoped_id LIMIT 1
                    """,
                    {"sid": current, "pid": project_id},
                )
                if parent is None:
                    break
                if parent["scoped_id"] in seen:
                    logger.warning(
                        f"Inheritance cycle at {parent['scoped_id']} while walking {class_name}"
                    )
                    break
                seen.add(parent["scoped_id"])
                ancestors.append(parent["name"])
                current = parent["scoped_id"]
            else:
                logger.debug(f"Inheritance walk for {class_name} stopped at depth {max_depth}")

        return ancestors

    async def find_deprecated_code(
        self,
        project_id: str,
        node_type: NodeType | str | None = None,
        include_dependencies: bool = False,
    ) -> list[DeprecatedNode]:
        """Nodes annotated as deprecated, optionally with what still uses them.

        Dependents are nodes of the same project with a ``calls``,
        ``references``, ``extends`` or ``implements`` edge into the
        deprecated node. With dependents the most used nodes come first,
        otherwise the order is by qualified name.
        """
        with self.store.session() as s:
            deprecated = [
                DeprecatedNode(node, annotation)
                for node, annotation in find_deprecated(
                    load_annotated_nodes(s, project_id, node_type)
                )
            ]
            if not include_dependencies:
                return deprecated

            for item in deprecated:
                rows = s.fetch_all(
                    f"""
                    {_EDGE_MATCH}
                    WHERE b.scoped_id = $sid AND a.project_id = $pid
                      AND {any_of("e.edge_type", DEPENDENCY_EDGE_TYPES)}
                    RETURN DISTINCT a.id AS id, a.qualified_name AS qualified_name,
                           a.node_type AS node_type, e.edge_type AS relationship
                    ORDER BY qualified_name, relationship
                    """,
                    {"sid": item.node.scoped_id, "pid": project_id},
                )
                item.dependents = [
                    DeprecationDependent(
                        node_id=r["id"],
                        qualified_name=r["qualified_name"] or r["id"],
                        node_type=r["node_type"],
                        relationship=r["relationship"],
                    )
                    for r in rows
                ]

        deprecated.sort(key=lambda d: (-d.dependency_count, d.node.qualified_name))
        return deprecated
