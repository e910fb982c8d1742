"""Cypher fragments shared by the node and edge managers."""

from __future__ import annotations

from collections.abc import Iterable
from enum import StrEnum

_NODE_FIELDS = (
    "scoped_id",
    "id",
    "project_id",
    "project_label",
    "node_type",
    "name",
    "qualified_name",
    "description",
    "source_file",
    "start_line",
    "end_line",
    "modifiers_json",
    "attributes_json",
    "attributes_version",
)


def node_columns(alias: str = "n") -> str:
    """RETURN list yielding every stored node property under its own name."""
    return ", ".join(f"{alias}.{f} AS {f}" for f in _NODE_FIELDS)


def edge_columns(rel: str = "e", src: str = "a", dst: str = "b") -> str:
    """RETURN list for an edge plus the ids and projects of its endpoints."""
    return (
        f"{rel}.scoped_id AS scoped_id, {rel}.id AS id, "
        f"{rel}.project_id AS project_id, {rel}.edge_type AS edge_type, "
        f"{src}.id AS source, {dst}.id AS target, "
        f"{src}.project_id AS source_project, {dst}.project_id AS target_project, "
        f"{rel}.attributes_json AS attributes_json, "
        f"{rel}.attributes_version AS attributes_version"
    )


def any_of(prop: str, values: Iterable[StrEnum | str]) -> str:
    """``(prop = 'a' OR prop = 'b')`` for a fixed set of enum values.

    Only used with enum members, never with user input.
    """
    parts = [f"{prop} = '{str(v)}'" for v in values]
    if not parts:
        return "false"
    return "(" + " OR ".join(parts) + ")"


def limit_clause(limit: int | None) -> str:
    return f" LIMIT {int(limit)}" if limit else ""
