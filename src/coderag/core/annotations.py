"""Annotation and decorator queries over node attributes.

Parsers record annotations under ``attributes["annotations"]``, either as
plain names (``"@Override"``) or as objects::

    {"name": "@Component", "framework": "Spring", "category": "injection", "type": "class"}

Attributes are stored as an opaque JSON column, so the store narrows the
candidates in Cypher and the matching happens here after decoding.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from .exceptions import ValidationError
from .graph_store import GraphSession
from .models import CodeNode, NodeType, parse_node_type
from .queries import node_columns
from .scoping import project_label
from .serialization import record_to_node

DEPRECATION_ANNOTATIONS = frozenset({"@Deprecated", "@deprecated", "deprecated"})

# Sample of qualified names kept per usage row
SAMPLE_NODE_LIMIT = 5


def _optional_str(value: Any) -> str | None:
    return None if value is None else str(value)


class AnnotationGrouping(StrEnum):
    ANNOTATION = "annotation"
    CATEGORY = "category"
    FRAMEWORK = "framework"


@dataclass(frozen=True)
class Annotation:
    """One annotation or decorator attached to a node."""

    name: str
    framework: str | None = None
    category: str | None = None
    type: str | None = None

    @classmethod
    def from_value(cls, value: Any) -> Annotation | None:
        """Read a stored annotation; anything without a name yields None."""
        if isinstance(value, str):
            return cls(name=value) if value else None
        if isinstance(value, dict) and value.get("name"):
            return cls(
                name=str(value["name"]),
                framework=_optional_str(value.get("framework")),
                category=_optional_str(value.get("category")),
                type=_optional_str(value.get("type")),
            )
        return None

    @property
    def is_deprecation(self) -> bool:
        return self.name in DEPRECATION_ANNOTATIONS

    def matches(
        self, name: str, framework: str | None = None, category: str | None = None
    ) -> bool:
        if self.name != name:
            return False
        if framework is not None and self.framework != framework:
            return False
        return category is None or self.category == category

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "framework": self.framework,
            "category": self.category,
            "type": self.type,
        }


def node_annotations(node: CodeNode) -> list[Annotation]:
    raw = node.attributes.get("annotations")
    if not isinstance(raw, list):
        return []
    return [a for a in (Annotation.from_value(v) for v in raw) if a is not None]


@dataclass
class AnnotatedNode:
    """A node together with the annotation that matched the query."""

    node: CodeNode
    annotation: Annotation

    def to_dict(self) -> dict[str, Any]:
        return {**self.node.to_dict(), "matched_annotation": self.annotation.to_dict()}


@dataclass
class DeprecationDependent:
    """A node that reaches a deprecated node through a dependency edge."""

    node_id: str
    qualified_name: str
    node_type: str
    relationship: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.node_id,
            "qualified_name": self.qualified_name,
            "type": self.node_type,
            "relationship": self.relationship,
        }


@dataclass
class DeprecatedNode:
    node: CodeNode
    annotation: Annotation
    # None when dependents were not requested
    dependents: list[DeprecationDependent] | None = None

    @property
    def dependency_count(self) -> int:
        return len(self.dependents or [])

    def to_dict(self) -> dict[str, Any]:
        data = {**self.node.to_dict(), "deprecation_info": self.annotation.to_dict()}
        if self.dependents is not None:
            data["dependencies"] = [d.to_dict() for d in self.dependents]
            data["dependency_count"] = self.dependency_count
        return data


@dataclass
class AnnotationUsage:
    """How often one annotation occurs in a project."""

    name: str
    framework: str | None = None
    category: str | None = None
    annotation_type: str | None = None
    usage_count: int = 0
    node_types: list[str] = field(default_factory=list)
    sample_nodes: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "annotation_name": self.name,
            "framework": self.framework,
            "category": self.category,
            "annotation_type": self.annotation_type,
            "usage_count": self.usage_count,
            "node_types": list(self.node_types),
            "sample_nodes": list(self.sample_nodes),
        }


@dataclass
class AnnotationUsageGroup:
    """Usage rows sharing an annotation name, category or framework."""

    key: str | None
    annotations: list[AnnotationUsage] = field(default_factory=list)

    @property
    def total_usage(self) -> int:
        return sum(a.usage_count for a in self.annotations)

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "annotations": [a.to_dict() for a in self.annotations],
            "total_usage": self.total_usage,
        }


def load_annotated_nodes(
    s: GraphSession, project_id: str, node_type: NodeType | str | None = None
) -> list[CodeNode]:
    """Nodes of one project whose attributes mention annotations.

    Ordered by qualified name. Callers still decode and filter the list.
    """
    where = "n.project_id = $pid AND n.attributes_json CONTAINS $marker"
    params: dict[str, Any] = {"pid": project_id, "marker": '"annotations"'}
    if node_type is not None:
        where += " AND n.project_label = $label"
        params["label"] = project_label(project_id, parse_node_type(node_type).value)
    rows = s.fetch_all(
        f"""
        MATCH (n:CodeNode) WHERE {where}
        RETURN {node_columns('n')}
        ORDER BY qualified_name, id
        """,
        params,
    )
    return [record_to_node(r) for r in rows]


def find_matching(
    nodes: list[CodeNode],
    name: str,
    framework: str | None = None,
    category: str | None = None,
) -> list[AnnotatedNode]:
    matches = []
    for node in nodes:
        hit = next(
            (a for a in node_annotations(node) if a.matches(name, framework, category)),
            None,
        )
        if hit is not None:
            matches.append(AnnotatedNode(node, hit))
    return matches


def find_deprecated(nodes: list[CodeNode]) -> list[tuple[CodeNode, Annotation]]:
    found = []
    for node in nodes:
        hit = next((a for a in node_annotations(node) if a.is_deprecation), None)
        if hit is not None:
            found.append((node, hit))
    return found


def summarize_usage(
    nodes: list[CodeNode],
    category: str | None = None,
    framework: str | None = None,
    include_deprecated: bool = True,
    group_by: AnnotationGrouping | str = AnnotationGrouping.ANNOTATION,
) -> list[AnnotationUsageGroup]:
    """Count annotation occurrences and group them.

    Each distinct ``(name, framework, category, type)`` becomes one usage
    row. Rows are grouped by name, category or framework; grouping by
    framework leaves out annotations without one. Groups come back by
    total usage, largest first.

    Raises:
        ValidationError: If ``group_by`` is not a known grouping
    """
    try:
        grouping = AnnotationGrouping(group_by)
    except ValueError:
        allowed = ", ".join(g.value for g in AnnotationGrouping)
        raise ValidationError(
            f"Unknown grouping {group_by!r} (expected one of: {allowed})"
        ) from None
    rows: dict[Annotation, AnnotationUsage] = {}
    node_types: dict[Annotation, set[str]] = defaultdict(set)

    for node in nodes:
        for annotation in node_annotations(node):
            if category is not None and annotation.category != category:
                continue
            if framework is not None and annotation.framework != framework:
                continue
            if not include_deprecated and annotation.is_deprecation:
                continue
            usage = rows.get(annotation)
            if usage is None:
                usage = rows[annotation] = AnnotationUsage(
                    name=annotation.name,
                    framework=annotation.framework,
                    category=annotation.category,
                    annotation_type=annotation.type,
                )
            usage.usage_count += 1
            node_types[annotation].add(node.type.value)
            if (
                len(usage.sample_nodes) < SAMPLE_NODE_LIMIT
                and node.qualified_name not in usage.sample_nodes
            ):
                usage.sample_nodes.append(node.qualified_name)

    groups: dict[str | None, AnnotationUsageGroup] = {}
    for annotation, usage in rows.items():
        usage.node_types = sorted(node_types[annotation])
        if grouping == AnnotationGrouping.ANNOTATION:
            key = annotation.name
        elif grouping == AnnotationGrouping.CATEGORY:
            key = annotation.category
        else:
            if annotation.framework is None:
                continue
            key = annotation.framework
        groups.setdefault(key, AnnotationUsageGroup(key)).annotations.append(usage)

    for group in groups.values():
        group.annotations.sort(key=lambda u: (-u.usage_count, u.name))
    return sorted(groups.values(), key=lambda g: (-g.total_usage, g.key or ""))
