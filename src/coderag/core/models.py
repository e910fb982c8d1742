"""Data models for the code graph.

``CodeNode`` and ``CodeEdge`` are the two records the graph store persists.
Both are plain dataclasses; ``from_dict`` is the entry point for payloads
coming from parsers or the CLI and is where malformed input is rejected.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any

from .exceptions import ValidationError
from .scoping import make_scoped_id, project_label, validate_project_id


class NodeType(StrEnum):
    CLASS = "class"
    INTERFACE = "interface"
    ENUM = "enum"
    EXCEPTION = "exception"
    FUNCTION = "function"
    METHOD = "method"
    FIELD = "field"
    PACKAGE = "package"
    MODULE = "module"


class EdgeType(StrEnum):
    CALLS = "calls"
    IMPLEMENTS = "implements"
    EXTENDS = "extends"
    CONTAINS = "contains"
    REFERENCES = "references"
    THROWS = "throws"
    BELONGS_TO = "belongs_to"


class ParseSeverity(StrEnum):
    WARNING = "warning"
    ERROR = "error"


# Node types the metrics engine treats as classes
CLASS_LIKE_TYPES: tuple[NodeType, ...] = (
    NodeType.CLASS,
    NodeType.INTERFACE,
    NodeType.ENUM,
    NodeType.EXCEPTION,
)

# Edge types that express a dependency between classes
DEPENDENCY_EDGE_TYPES: tuple[EdgeType, ...] = (
    EdgeType.CALLS,
    EdgeType.REFERENCES,
    EdgeType.IMPLEMENTS,
    EdgeType.EXTENDS,
)

# Edge types allowed to point back at their own source (recursion)
SELF_REFERENTIAL_EDGE_TYPES: frozenset[EdgeType] = frozenset({EdgeType.CALLS})


def _coerce_enum(enum_cls: type[StrEnum], value: Any, what: str) -> Any:
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(
            f"Unknown {what} {value!r} (expected one of: {allowed})",
            {"value": value},
        ) from None


def parse_node_type(value: Any) -> NodeType:
    return _coerce_enum(NodeType, value, "node type")


def parse_edge_type(value: Any) -> EdgeType:
    return _coerce_enum(EdgeType, value, "edge type")


def _require_mapping(data: Any, what: str) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise ValidationError(f"{what} must be an object, got {type(data).__name__}")
    return data


def _require(data: dict[str, Any], key: str, what: str) -> Any:
    value = data.get(key)
    if value is None or value == "":
        raise ValidationError(f"{what} is missing required field '{key}'", dict(data))
    return value


@dataclass
class CodeNode:
    """A code entity (class, method, package, ...)."""

    id: str
    project_id: str
    type: NodeType
    name: str
    qualified_name: str
    description: str | None = None
    source_file: str | None = None
    start_line: int | None = None
    end_line: int | None = None
    modifiers: list[str] = field(default_factory=list)
    attributes: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        validate_project_id(self.project_id)
        self.type = parse_node_type(self.type)

    @property
    def scoped_id(self) -> str:
        return make_scoped_id(self.project_id, self.id)

    @property
    def label(self) -> str:
        return project_label(self.project_id, self.type.value)

    @property
    def is_class_like(self) -> bool:
        return self.type in CLASS_LIKE_TYPES

    @property
    def is_abstract(self) -> bool:
        """Interfaces, ``abstract`` modifiers and ``is_abstract`` attributes."""
        if self.type == NodeType.INTERFACE:
            return True
        if any(m.lower() == "abstract" for m in self.modifiers):
            return True
        return bool(self.attributes.get("is_abstract"))

    @classmethod
    def from_dict(cls, data: dict[str, Any], project_id: str | None = None) -> CodeNode:
        """Build a node from an ingest payload.

        Args:
            data: Entity mapping (``project_id`` optional)
            project_id: Project to scope the node to; overrides ``data``

        Raises:
            ValidationError: On missing identity fields or unknown type
        """
        data = _require_mapping(data, "Entity")
        pid = project_id or data.get("project_id")
        if not pid:
            raise ValidationError("Entity has no project_id", dict(data))
        name = _require(data, "name", "Entity")
        return cls(
            id=str(_require(data, "id", "Entity")),
            project_id=pid,
            type=parse_node_type(_require(data, "type", "Entity")),
            name=name,
            qualified_name=data.get("qualified_name") or name,
            description=data.get("description"),
            source_file=data.get("source_file"),
            start_line=data.get("start_line"),
            end_line=data.get("end_line"),
            modifiers=list(data.get("modifiers") or []),
            attributes=dict(data.get("attributes") or {}),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "type": self.type.value,
            "name": self.name,
            "qualified_name": self.qualified_name,
            "description": self.description,
            "source_file": self.source_file,
            "start_line": self.start_line,
            "end_line": self.end_line,
            "modifiers": list(self.modifiers),
            "attributes": dict(self.attributes),
        }


@dataclass
class CodeEdge:
    """A directed relationship between two nodes of a project."""

    id: str
    project_id: str
    type: EdgeType
    source: str  # Source node id
    target: str  # Target node id
    attributes: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        validate_project_id(self.project_id)
        self.type = parse_edge_type(self.type)

    @property
    def scoped_id(self) -> str:
        return make_scoped_id(self.project_id, self.id)

    @classmethod
    def from_dict(cls, data: dict[str, Any], project_id: str | None = None) -> CodeEdge:
        data = _require_mapping(data, "Relationship")
        pid = project_id or data.get("project_id")
        if not pid:
            raise ValidationError("Relationship has no project_id", dict(data))
        return cls(
            id=str(_require(data, "id", "Relationship")),
            project_id=pid,
            type=parse_edge_type(_require(data, "type", "Relationship")),
            source=str(_require(data, "source", "Relationship")),
            target=str(_require(data, "target", "Relationship")),
            attributes=dict(data.get("attributes") or {}),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "type": self.type.value,
            "source": self.source,
            "target": self.target,
            "attributes": dict(self.attributes),
        }


@dataclass
class ProjectContext:
    """A project registered in the graph."""

    project_id: str
    name: str | None = None
    description: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "project_id": self.project_id,
            "name": self.name,
            "description": self.description,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass
class ProjectStats:
    """Entity / relationship counts for one project."""

    entity_count: int = 0
    relationship_count: int = 0
    entity_types: list[str] = field(default_factory=list)
    relationship_types: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "entity_count": self.entity_count,
            "relationship_count": self.relationship_count,
            "entity_types": list(self.entity_types),
            "relationship_types": list(self.relationship_types),
        }


@dataclass
class ParseIssue:
    """A non-fatal parser error passed through ingestion untouched."""

    file: str
    message: str
    severity: ParseSeverity = ParseSeverity.ERROR

    def __post_init__(self) -> None:
        self.severity = _coerce_enum(ParseSeverity, self.severity, "severity")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ParseIssue:
        return cls(
            file=str(data.get("file", "")),
            message=str(data.get("message", "")),
            severity=data.get("severity") or ParseSeverity.ERROR,
        )

    def to_dict(self) -> dict[str, Any]:
        return {"file": self.file, "message": self.message, "severity": self.severity.value}


@dataclass
class CrossProjectDependency:
    """An edge whose endpoints live in different projects."""

    edge: CodeEdge
    source_scoped_id: str
    target_scoped_id: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "edge": self.edge.to_dict(),
            "source": self.source_scoped_id,
            "target": self.target_scoped_id,
        }
