"""Project scoping helpers.

Every node and edge lives inside a project. Two derived names keep tenants
apart inside the shared Kuzu database:

- the *project label* ``Project_<project_id>_<Type>`` stored on each node
- the *scoped identifier* ``<project_id>:<entity_id>`` used as the physical
  primary key and wherever a key must be unique across projects

Entity ids may contain colons themselves, so parsing splits on the first
colon only. Project ids therefore never contain one.
"""

from __future__ import annotations

from typing import NamedTuple

from .exceptions import ValidationError

SCOPE_SEPARATOR = ":"


class ScopedId(NamedTuple):
    """A scoped identifier split into its parts."""

    project_id: str
    entity_id: str


def project_label(project_id: str, node_type: str) -> str:
    """Build the project-scoped label for a node type.

    Examples:
        >>> project_label("billing", "class")
        'Project_billing_Class'
    """
    return f"Project_{project_id}_{node_type[:1].upper()}{node_type[1:]}"


def validate_project_id(project_id: str) -> str:
    """Return ``project_id`` if it can prefix a scoped identifier.

    Raises:
        ValidationError: If it is empty or contains the separator
    """
    if not project_id:
        raise ValidationError("project_id must not be empty")
    if SCOPE_SEPARATOR in project_id:
        raise ValidationError(
            f"project_id must not contain '{SCOPE_SEPARATOR}': {project_id!r}",
            {"project_id": project_id},
        )
    return project_id


def make_scoped_id(project_id: str, entity_id: str) -> str:
    """Compose ``<project_id>:<entity_id>``.

    Raises:
        ValidationError: If ``project_id`` is empty or contains a colon
    """
    validate_project_id(project_id)
    return f"{project_id}{SCOPE_SEPARATOR}{entity_id}"


def parse_scoped_id(scoped_id: str) -> ScopedId:
    """Split a scoped identifier on its first colon.

    Examples:
        >>> parse_scoped_id("billing:com.acme:Invoice:total")
        ScopedId(project_id='billing', entity_id='com.acme:Invoice:total')

    Raises:
        ValueError: If the value carries no separator.
    """
    project_id, sep, entity_id = scoped_id.partition(SCOPE_SEPARATOR)
    if not sep or not project_id:
        raise ValueError(f"Not a scoped identifier: {scoped_id!r}")
    return ScopedId(project_id, entity_id)
