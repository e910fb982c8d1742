"""Bulk ingestion of parser output into the code graph.

A parser hands over one document per run::

    {
        "project_id": "billing",          # optional when given by the caller
        "entities": [ {CodeNode fields} ],
        "relationships": [ {CodeEdge fields} ],
        "errors": [ {"file", "message", "severity"} ]
    }

``BatchWriter`` writes entities first, then relationships, each in
fixed-size batches. Items inside one batch are issued concurrently and the
batch is awaited before the next one starts. Duplicates are skipped, other
per-item failures are collected, and only a lost database aborts the run.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, TypeVar

from loguru import logger

from .edge_manager import EdgeManager
from .exceptions import CodeRAGError, ConflictError, ConnectivityError, ValidationError
from .models import CodeEdge, CodeNode, EdgeType, NodeType, ParseIssue
from .node_manager import NodeManager
from .scoping import validate_project_id

T = TypeVar("T")

# Package attribute values that mean "no package"
_DEFAULT_PACKAGES = {"", "default"}


@dataclass
class IngestFailure:
    """One entity or relationship that could not be stored."""

    kind: str  # node_creation_error, edge_creation_error, invalid_payload
    item_id: str
    message: str
    severity: str = "error"
    source: str | None = None
    target: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "type": self.kind,
            "id": self.item_id,
            "message": self.message,
            "severity": self.severity,
        }
        if self.source is not None:
            data["source"] = self.source
            data["target"] = self.target
        return data


@dataclass
class IngestResult:
    """Outcome of one ingestion run."""

    project_id: str
    entities_created: int = 0
    entities_skipped: int = 0
    relationships_created: int = 0
    relationships_skipped: int = 0
    duplicates_in_input: int = 0
    failures: list[IngestFailure] = field(default_factory=list)
    parse_errors: list[ParseIssue] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.failures

    def to_dict(self) -> dict[str, Any]:
        return {
            "project_id": self.project_id,
            "entities_created": self.entities_created,
            "entities_skipped": self.entities_skipped,
            "relationships_created": self.relationships_created,
            "relationships_skipped": self.relationships_skipped,
            "duplicates_in_input": self.duplicates_in_input,
            "failures": [f.to_dict() for f in self.failures],
            "parse_errors": [e.to_dict() for e in self.parse_errors],
        }


@dataclass
class IngestDocument:
    """Parsed form of an ingest payload for a single project."""

    project_id: str
    entities: list[CodeNode] = field(default_factory=list)
    relationships: list[CodeEdge] = field(default_factory=list)
    parse_errors: list[ParseIssue] = field(default_factory=list)
    # Payload items rejected while parsing the document
    invalid: list[IngestFailure] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any], project_id: str | None = None) -> IngestDocument:
        """Parse a payload; malformed items are kept aside rather than raised.

        Raises:
            ValidationError: If the document is not an object or has no
                usable project id
        """
        if not isinstance(data, dict):
            raise ValidationError(
                f"Ingest document must be an object, got {type(data).__name__}"
            )
        pid = project_id or data.get("project_id")
        if not pid:
            raise ValidationError("Ingest document has no project_id")
        pid = validate_project_id(str(pid))

        doc = cls(project_id=pid)
        for raw in data.get("entities") or []:
            try:
                doc.entities.append(CodeNode.from_dict(raw, project_id=pid))
            except ValidationError as e:
                doc.invalid.append(IngestFailure("invalid_payload", _payload_id(raw), str(e)))
        for raw in data.get("relationships") or []:
            try:
                doc.relationships.append(CodeEdge.from_dict(raw, project_id=pid))
            except ValidationError as e:
                doc.invalid.append(IngestFailure("invalid_payload", _payload_id(raw), str(e)))
        for raw in data.get("errors") or []:
            if isinstance(raw, dict):
                doc.parse_errors.append(ParseIssue.from_dict(raw))
            else:
                logger.warning(f"Ignoring parse error entry that is not an object: {raw!r}")
        return doc


def _payload_id(raw: Any) -> str:
    if isinstance(raw, dict):
        return str(raw.get("id", "?"))
    return "?"


class IngestSession:
    """Per-run state: which package nodes this run has already emitted.

    Class-like entities carrying an ``attributes["package"]`` value get a
    package node (once per run) and a ``contains`` edge from it.
    """

    def __init__(self, project_id: str):
        self.project_id = project_id
        self.known_packages: set[str] = set()

    def package_entities(
        self, entities: Sequence[CodeNode]
    ) -> tuple[list[CodeNode], list[CodeEdge]]:
        self.known_packages.update(e.id for e in entities if e.type == NodeType.PACKAGE)

        packages: list[CodeNode] = []
        edges: list[CodeEdge] = []
        for entity in entities:
            if not entity.is_class_like:
                continue
            package = str(entity.attributes.get("package") or "")
            if package in _DEFAULT_PACKAGES:
                continue
            if package not in self.known_packages:
                packages.append(
                    CodeNode(
                        id=package,
                        project_id=self.project_id,
                        type=NodeType.PACKAGE,
                        name=package,
                        qualified_name=package,
                        source_file=package.replace(".", "/"),
                        description=f"Package: {package}",
                    )
                )
                self.known_packages.add(package)
            edges.append(
                CodeEdge(
                    id=f"{package}_contains_{entity.id}",
                    project_id=self.project_id,
                    type=EdgeType.CONTAINS,
                    source=package,
                    target=entity.id,
                )
            )
        return packages, edges


class BatchWriter:
    """Writes ingest documents through the node and edge managers."""

    def __init__(
        self,
        nodes: NodeManager,
        edges: EdgeManager,
        synthesize_packages: bool = True,
    ):
        self.nodes = nodes
        self.edges = edges
        self.synthesize_packages = synthesize_packages
        settings = nodes.store.settings
        self.entity_batch_size = settings.entity_batch_size
        self.relationship_batch_size = settings.relationship_batch_size

    async def _write_batches(
        self,
        items: Sequence[T],
        batch_size: int,
        write: Callable[[T], Awaitable[Any]],
        on_failure: Callable[[T, CodeRAGError], IngestFailure],
        result: IngestResult,
    ) -> tuple[int, int]:
        created = skipped = 0
        for i in range(0, len(items), batch_size):
            batch = items[i : i + batch_size]
            outcomes = await asyncio.gather(*(write(item) for item in batch), return_exceptions=True)
            for item, outcome in zip(batch, outcomes, strict=True):
                if isinstance(outcome, ConnectivityError):
                    raise outcome
                if isinstance(outcome, ConflictError):
                    skipped += 1
                    logger.debug(f"Skipping duplicate: {outcome}")
                elif isinstance(outcome, CodeRAGError):
                    failure = on_failure(item, outcome)
                    logger.warning(f"Failed to store {failure.item_id}: {failure.message}")
                    result.failures.append(failure)
                elif isinstance(outcome, BaseException):
                    raise outcome
                else:
                    created += 1
        return created, skipped

    async def ingest(self, document: IngestDocument) -> IngestResult:
        """Store one document.

        Raises:
            ConnectivityError: If the database becomes unreachable
        """
        project_id = document.project_id
        result = IngestResult(
            project_id=project_id,
            parse_errors=list(document.parse_errors),
            failures=list(document.invalid),
        )
        await self.nodes.store.create_project_if_missing(project_id)

        entities = document.entities
        relationships = document.relationships
        if self.synthesize_packages:
            packages, package_edges = IngestSession(project_id).package_entities(entities)
            entities = packages + entities
            relationships = relationships + package_edges

        unique: dict[str, CodeNode] = {}
        for entity in entities:
            unique.setdefault(entity.scoped_id, entity)
        result.duplicates_in_input = len(entities) - len(unique)
        if result.duplicates_in_input:
            logger.debug(
                f"Deduplicated {len(entities)} entities to {len(unique)} for {project_id}"
            )

        result.entities_created, result.entities_skipped = await self._write_batches(
            list(unique.values()),
            self.entity_batch_size,
            self.nodes.add_node,
            lambda n, e: IngestFailure("node_creation_error", n.id, str(e)),
            result,
        )
        result.relationships_created, result.relationships_skipped = await self._write_batches(
            relationships,
            self.relationship_batch_size,
            self.edges.add_edge,
            lambda r, e: IngestFailure(
                "edge_creation_error", r.id, str(e), source=r.source, target=r.target
            ),
            result,
        )

        logger.info(
            f"Ingested {project_id}: {result.entities_created} entities "
            f"({result.entities_skipped} skipped), {result.relationships_created} "
            f"relationships ({result.relationships_skipped} skipped), "
            f"{len(result.failures)} failures, {len(result.parse_errors)} parse errors"
        )
        return result

    async def ingest_payload(
        self, data: dict[str, Any], project_id: str | None = None
    ) -> IngestResult:
        return await self.ingest(IngestDocument.from_dict(data, project_id=project_id))
