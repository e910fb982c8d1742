"""In-memory class-level view of one project, loaded in a single session.

Member-level edges (a method calling another class's method, a field typed
by another class) are lifted to the classes that contain their endpoints,
which is the granularity every class and package metric works at.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field

from loguru import logger

from ..core.graph_store import GraphStore
from ..core.models import (
    DEPENDENCY_EDGE_TYPES,
    CodeNode,
    EdgeType,
    NodeType,
)
from ..core.queries import node_columns
from ..core.serialization import record_to_node

# Node types that belong to the class that contains them
MEMBER_TYPES = frozenset({NodeType.METHOD, NodeType.FIELD, NodeType.FUNCTION})


@dataclass
class ClassGraph:
    project_id: str
    nodes: dict[str, CodeNode] = field(default_factory=dict)
    # member id -> owning class id
    owner: dict[str, str] = field(default_factory=dict)
    methods: dict[str, list[str]] = field(default_factory=lambda: defaultdict(list))
    fields: dict[str, set[str]] = field(default_factory=lambda: defaultdict(set))
    # raw calls between any two nodes
    calls: dict[str, set[str]] = field(default_factory=lambda: defaultdict(set))
    # method id -> own-class field ids it reads or writes
    field_access: dict[str, set[str]] = field(default_factory=lambda: defaultdict(set))
    # class id -> classes it depends on (lifted, self excluded)
    depends_on: dict[str, set[str]] = field(default_factory=lambda: defaultdict(set))
    # class id -> classes it is coupled with in either direction
    coupled: dict[str, set[str]] = field(default_factory=lambda: defaultdict(set))
    # class id -> ids of nodes extending it
    children: dict[str, set[str]] = field(default_factory=lambda: defaultdict(set))
    # package id -> class ids it contains (contains or belongs_to)
    package_members: dict[str, set[str]] = field(default_factory=lambda: defaultdict(set))

    @property
    def classes(self) -> list[CodeNode]:
        return sorted(
            (n for n in self.nodes.values() if n.is_class_like), key=lambda n: n.id
        )

    def nodes_of_type(self, node_type: NodeType) -> list[CodeNode]:
        return [n for n in self.nodes.values() if n.type == node_type]

    def lift(self, node_id: str) -> str | None:
        """The class a node stands for: itself if class-like, else its owner."""
        node = self.nodes.get(node_id)
        if node is None:
            return None
        if node.is_class_like:
            return node_id
        return self.owner.get(node_id)

    def find_class(self, ref: str) -> CodeNode | None:
        """Class-like node by id, then qualified name, then name."""
        node = self.nodes.get(ref)
        if node is not None and node.is_class_like:
            return node
        for attr in ("qualified_name", "name"):
            matches = sorted(
                (n for n in self.classes if getattr(n, attr) == ref), key=lambda n: n.id
            )
            if matches:
                return matches[0]
        return None

    @classmethod
    def load(cls, store: GraphStore, project_id: str) -> ClassGraph:
        graph = cls(project_id=project_id)
        with store.session() as s:
            node_rows = s.fetch_all(
                f"MATCH (n:CodeNode) WHERE n.project_id = $pid RETURN {node_columns('n')}",
                {"pid": project_id},
            )
            edge_rows = s.fetch_all(
                """
                MATCH (a:CodeNode)-[e:CodeEdge]->(b:CodeNode)
                WHERE e.project_id = $pid AND a.project_id = $pid AND b.project_id = $pid
                RETURN e.edge_type AS edge_type, a.id AS source, b.id AS target
                """,
                {"pid": project_id},
            )

        graph.nodes = {r["id"]: record_to_node(r) for r in node_rows}
        edges = [(EdgeType(r["edge_type"]), r["source"], r["target"]) for r in edge_rows]
        graph._index(edges)
        logger.debug(
            f"Loaded class graph for {project_id}: {len(graph.nodes)} nodes, {len(edges)} edges"
        )
        return graph

    def _index(self, edges: list[tuple[EdgeType, str, str]]) -> None:
        # Ownership first; every other index depends on lifting
        for edge_type, src, dst in edges:
            source, target = self.nodes.get(src), self.nodes.get(dst)
            if source is None or target is None:
                continue
            if edge_type == EdgeType.CONTAINS:
                if source.is_class_like and target.type in MEMBER_TYPES:
                    self.owner.setdefault(dst, src)
                elif source.type == NodeType.PACKAGE and target.is_class_like:
                    self.package_members[src].add(dst)
            elif edge_type == EdgeType.BELONGS_TO:
                if source.is_class_like and target.type == NodeType.PACKAGE:
                    self.package_members[dst].add(src)

        for member, klass in sorted(self.owner.items()):
            member_type = self.nodes[member].type
            if member_type == NodeType.METHOD:
                self.methods[klass].append(member)
            elif member_type == NodeType.FIELD:
                self.fields[klass].add(member)

        for edge_type, src, dst in edges:
            if src not in self.nodes or dst not in self.nodes:
                continue
            if edge_type == EdgeType.EXTENDS:
                self.children[dst].add(src)
            if edge_type == EdgeType.CALLS:
                self.calls[src].add(dst)
            if edge_type in (EdgeType.CALLS, EdgeType.REFERENCES):
                klass = self.owner.get(src)
                if klass is not None and dst in self.fields.get(klass, ()):
                    self.field_access[src].add(dst)
            if edge_type in DEPENDENCY_EDGE_TYPES:
                a, b = self.lift(src), self.lift(dst)
                if a is None or b is None or a == b:
                    continue
                self.depends_on[a].add(b)
                self.coupled[a].add(b)
                self.coupled[b].add(a)
