"""Row <-> model conversion for the Kuzu graph store.

Kuzu tables have a fixed schema, so the open-ended parts of a node
(``modifiers`` and ``attributes``) are stored as orjson-encoded strings.
The attribute blob carries a schema version so that a later change in
encoding can still read rows written by older releases.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

import orjson
from loguru import logger

from .exceptions import ValidationError
from .models import CodeEdge, CodeNode, ProjectContext

ATTRIBUTES_SCHEMA_VERSION = 1


def dump_json(value: Any) -> str:
    """Encode a value with orjson (non-str keys allowed, sorted for stable blobs).

    Raises:
        ValidationError: If orjson cannot encode the value (sets, integers
            wider than 64 bits, arbitrary objects)
    """
    try:
        encoded = orjson.dumps(
            value, option=orjson.OPT_NON_STR_KEYS | orjson.OPT_SORT_KEYS
        )
    except orjson.JSONEncodeError as e:
        raise ValidationError(f"Value cannot be stored as JSON: {e}") from e
    return encoded.decode("utf-8")


def load_json(raw: str | None, default: Any) -> Any:
    if not raw:
        return default
    try:
        return orjson.loads(raw)
    except orjson.JSONDecodeError as e:
        logger.warning(f"Discarding undecodable JSON column: {e}")
        return default


def load_attributes(raw: str | None, version: int | None) -> dict[str, Any]:
    """Rehydrate an attribute blob.

    Version 1 is a plain JSON object. Rows without a version predate the
    column and are read the same way.
    """
    if version not in (None, ATTRIBUTES_SCHEMA_VERSION):
        logger.warning(
            f"Attribute schema version {version} is newer than "
            f"{ATTRIBUTES_SCHEMA_VERSION}; reading as plain JSON"
        )
    value = load_json(raw, {})
    return value if isinstance(value, dict) else {}


def node_to_params(node: CodeNode) -> dict[str, Any]:
    """Flatten a node into Kuzu parameters (``None`` values omitted)."""
    params: dict[str, Any] = {
        "scoped_id": node.scoped_id,
        "id": node.id,
        "project_id": node.project_id,
        "project_label": node.label,
        "node_type": node.type.value,
        "name": node.name,
        "qualified_name": node.qualified_name,
        "description": node.description,
        "source_file": node.source_file,
        "start_line": node.start_line,
        "end_line": node.end_line,
        "modifiers_json": dump_json(list(node.modifiers)),
        "attributes_json": dump_json(node.attributes),
        "attributes_version": ATTRIBUTES_SCHEMA_VERSION,
    }
    return {k: v for k, v in params.items() if v is not None}


def edge_to_params(edge: CodeEdge) -> dict[str, Any]:
    return {
        "scoped_id": edge.scoped_id,
        "id": edge.id,
        "project_id": edge.project_id,
        "edge_type": edge.type.value,
        "attributes_json": dump_json(edge.attributes),
        "attributes_version": ATTRIBUTES_SCHEMA_VERSION,
    }


def record_to_node(row: dict[str, Any]) -> CodeNode:
    """Build a ``CodeNode`` from a row shaped by ``node_columns()``."""
    return CodeNode(
        id=row["id"],
        project_id=row["project_id"],
        type=row["node_type"],
        name=row["name"],
        qualified_name=row["qualified_name"] or row["name"],
        description=row.get("description"),
        source_file=row.get("source_file"),
        start_line=row.get("start_line"),
        end_line=row.get("end_line"),
        modifiers=load_json(row.get("modifiers_json"), []),
        attributes=load_attributes(
            row.get("attributes_json"), row.get("attributes_version")
        ),
    )


def record_to_edge(row: dict[str, Any]) -> CodeEdge:
    """Build a ``CodeEdge`` from a row shaped by ``edge_columns()``."""
    return CodeEdge(
        id=row["id"],
        project_id=row["project_id"],
        type=row["edge_type"],
        source=row["source"],
        target=row["target"],
        attributes=load_attributes(
            row.get("attributes_json"), row.get("attributes_version")
        ),
    )


def record_to_project(row: dict[str, Any]) -> ProjectContext:
    def _ts(value: str | None) -> datetime | None:
        return datetime.fromisoformat(value) if value else None

    return ProjectContext(
        project_id=row["project_id"],
        name=row.get("name"),
        description=row.get("description"),
        created_at=_ts(row.get("created_at")),
        updated_at=_ts(row.get("updated_at")),
    )
