"""Multi-tenant code graph backed by Kuzu.

All projects share one embedded Kuzu database. Tenancy is expressed in the
data rather than in the schema:

- ``CodeNode`` rows are keyed by their scoped identifier
  (``<project_id>:<id>``) and carry ``project_id`` and the project-scoped
  label ``Project_<project_id>_<Type>`` as properties
- ``CodeEdge`` relationships carry their own scoped identifier and the
  ``project_id`` of the edge
- ``Project`` rows hold the project registry

Every public operation opens a short-lived ``kuzu.Connection`` from the
shared ``kuzu.Database`` and closes it on every exit path. Kuzu's bindings
are not thread-safe, so sessions are serialized with a process-local lock.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import kuzu
from loguru import logger

from ..config.defaults import DEFAULT_PROJECT_LIST_LIMIT
from ..config.settings import CodeRAGSettings
from .exceptions import (
    ConnectivityError,
    NotFoundError,
    QueryError,
    ValidationError,
)
from .models import ProjectContext, ProjectStats
from .scoping import validate_project_id
from .serialization import record_to_project

_SCHEMA = (
    (
        "CodeNode",
        """
        CREATE NODE TABLE IF NOT EXISTS CodeNode (
            scoped_id STRING PRIMARY KEY,
            id STRING,
            project_id STRING,
            project_label STRING,
            node_type STRING,
            name STRING,
            qualified_name STRING,
            description STRING,
            source_file STRING,
            start_line INT64,
            end_line INT64,
            modifiers_json STRING,
            attributes_json STRING,
            attributes_version INT64
        )
        """,
    ),
    (
        "CodeEdge",
        """
        CREATE REL TABLE IF NOT EXISTS CodeEdge (
            FROM CodeNode TO CodeNode,
            scoped_id STRING,
            id STRING,
            project_id STRING,
            edge_type STRING,
            attributes_json STRING,
            attributes_version INT64,
            MANY_MANY
        )
        """,
    ),
    (
        "Project",
        """
        CREATE NODE TABLE IF NOT EXISTS Project (
            project_id STRING PRIMARY KEY,
            name STRING,
            description STRING,
            created_at STRING,
            updated_at STRING
        )
        """,
    ),
)

_PROJECT_SORT_KEYS = ("name", "created_at", "updated_at", "entity_count")


def _now() -> str:
    return datetime.now(UTC).isoformat()


class GraphSession:
    """One Kuzu connection, used for the duration of a single operation."""

    def __init__(self, conn: kuzu.Connection):
        self._conn = conn

    def execute(self, query: str, params: dict[str, Any] | None = None) -> Any:
        """Run a statement and return the raw Kuzu result.

        Raises:
            QueryError: If Kuzu rejects the statement
        """
        try:
            return self._conn.execute(query, params or {})
        except RuntimeError as e:
            raise QueryError(f"Query failed: {e}", {"query": " ".join(query.split())}) from e

    def fetch_all(
        self, query: str, params: dict[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        """Run a query and return its rows keyed by column name."""
        result = self.execute(query, params)
        columns = result.get_column_names()
        rows = []
        while result.has_next():
            rows.append(dict(zip(columns, result.get_next(), strict=True)))
        return rows

    def fetch_one(
        self, query: str, params: dict[str, Any] | None = None
    ) -> dict[str, Any] | None:
        rows = self.fetch_all(query, params)
        return rows[0] if rows else None

    def scalar(self, query: str, params: dict[str, Any] | None = None) -> Any:
        result = self.execute(query, params)
        return result.get_next()[0] if result.has_next() else None


class GraphStore:
    """Shared Kuzu database, session factory and project registry.

    Node and edge operations live in ``NodeManager`` and ``EdgeManager``;
    both borrow sessions from this object.
    """

    def __init__(self, settings: CodeRAGSettings | None = None):
        self.settings = settings or CodeRAGSettings()
        self.db_path: Path = self.settings.db_path
        self.db: kuzu.Database | None = None
        self._initialized = False

        # Serializes every Kuzu call made through this store
        self._kuzu_lock = threading.RLock()

    @property
    def is_connected(self) -> bool:
        return self._initialized

    async def connect(self) -> None:
        """Open the database and create the schema. Idempotent."""
        if self._initialized:
            return

        # Kuzu creates the database directory itself, only the parent must exist
        db_dir = self.settings.database_dir
        try:
            db_dir.parent.mkdir(parents=True, exist_ok=True)
            with self._kuzu_lock:
                self.db = kuzu.Database(str(db_dir))
        except (OSError, RuntimeError) as e:
            logger.error(f"Failed to open graph database at {db_dir}: {e}")
            raise ConnectivityError(
                f"Cannot open graph database at {db_dir}: {e}", {"path": str(db_dir)}
            ) from e

        self._initialized = True
        with self.session() as s:
            self._create_schema(s)

        logger.info(f"Code graph ready at {db_dir}")

    async def close(self) -> None:
        with self._kuzu_lock:
            if self.db is not None:
                self.db.close()
                self.db = None
            self._initialized = False

        logger.debug("Code graph connection closed")

    @contextmanager
    def session(self) -> Iterator[GraphSession]:
        """Borrow a connection for one operation.

        Raises:
            ConnectivityError: If ``connect()`` has not been called
        """
        if not self._initialized or self.db is None:
            raise ConnectivityError("Graph store is not connected; call connect() first")

        with self._kuzu_lock:
            try:
                conn = kuzu.Connection(self.db)
            except RuntimeError as e:
                logger.error(f"Failed to open Kuzu connection: {e}")
                raise ConnectivityError(f"Cannot open connection: {e}") from e
            try:
                yield GraphSession(conn)
            finally:
                conn.close()

    def _create_schema(self, s: GraphSession) -> None:
        for table, ddl in _SCHEMA:
            s.execute(ddl)
            logger.debug(f"Ensured {table} table")

    # ── Project registry ────────────────────────────────────────────────

    def ensure_project(self, s: GraphSession, project_id: str) -> None:
        """Register ``project_id`` if needed and bump its ``updated_at``."""
        now = _now()
        s.execute(
            """
            MERGE (p:Project {project_id: $project_id})
            ON CREATE SET p.name = $project_id,
                          p.created_at = $now,
                          p.updated_at = $now
            ON MATCH SET p.updated_at = $now
            """,
            {"project_id": project_id, "now": now},
        )

    async def create_project_if_missing(self, project_id: str) -> None:
        with self.session() as s:
            self.ensure_project(s, project_id)

    async def create_project(
        self,
        project_id: str,
        name: str | None = None,
        description: str | None = None,
    ) -> ProjectContext:
        """Register a project, updating name/description if it already exists.

        Raises:
            ValidationError: If ``project_id`` is empty or contains a colon
        """
        validate_project_id(project_id)

        now = _now()
        with self.session() as s:
            s.execute(
                """
                MERGE (p:Project {project_id: $project_id})
                ON CREATE SET p.name = $name,
                              p.description = $description,
                              p.created_at = $now,
                              p.updated_at = $now
                ON MATCH SET p.name = $name,
                             p.description = $description,
                             p.updated_at = $now
                """,
                {
                    "project_id": project_id,
                    "name": name or project_id,
                    "description": description or "",
                    "now": now,
                },
            )
            row = self._fetch_project(s, project_id)

        logger.debug(f"Registered project {project_id}")
        return record_to_project(row)

    def _fetch_project(self, s: GraphSession, project_id: str) -> dict[str, Any]:
        row = s.fetch_one(
            """
            MATCH (p:Project) WHERE p.project_id = $project_id
            RETURN p.project_id AS project_id, p.name AS name,
                   p.description AS description,
                   p.created_at AS created_at, p.updated_at AS updated_at
            """,
            {"project_id": project_id},
        )
        if row is None:
            raise NotFoundError(f"Project {project_id} not found", {"project_id": project_id})
        return row

    async def get_project(self, project_id: str) -> ProjectContext | None:
        with self.session() as s:
            try:
                return record_to_project(self._fetch_project(s, project_id))
            except NotFoundError:
                return None

    async def list_projects(
        self,
        sort_by: str = "name",
        descending: bool = False,
        include_stats: bool = False,
        limit: int = DEFAULT_PROJECT_LIST_LIMIT,
    ) -> list[tuple[ProjectContext, ProjectStats | None]]:
        """List registered projects.

        Args:
            sort_by: name, created_at, updated_at or entity_count
            descending: Reverse the sort order
            include_stats: Attach ``ProjectStats`` to every project
            limit: Maximum number of projects returned

        Returns:
            ``(project, stats)`` pairs; ``stats`` is None unless requested
        """
        if sort_by not in _PROJECT_SORT_KEYS:
            raise ValidationError(
                f"Cannot sort projects by {sort_by!r}",
                {"allowed": list(_PROJECT_SORT_KEYS)},
            )
        if sort_by == "entity_count":
            include_stats = True

        with self.session() as s:
            rows = s.fetch_all(
                """
                MATCH (p:Project)
                RETURN p.project_id AS project_id, p.name AS name,
                       p.description AS description,
                       p.created_at AS created_at, p.updated_at AS updated_at
                """
            )
            projects = [
                (
                    record_to_project(row),
                    self._project_stats(s, row["project_id"]) if include_stats else None,
                )
                for row in rows
            ]

        def sort_key(item: tuple[ProjectContext, ProjectStats | None]) -> Any:
            project, stats = item
            if sort_by == "entity_count":
                return stats.entity_count if stats else 0
            value = getattr(project, sort_by)
            return value if value is not None else ""

        projects.sort(key=sort_key, reverse=descending)
        return projects[:limit]

    async def delete_project(self, project_id: str) -> bool:
        """Remove a project and all of its nodes and edges."""
        with self.session() as s:
            exists = s.scalar(
                "MATCH (p:Project) WHERE p.project_id = $pid RETURN count(p)",
                {"pid": project_id},
            )
            self._clear_project(s, project_id)
            s.execute("MATCH (p:Project) WHERE p.project_id = $pid DELETE p", {"pid": project_id})

        logger.info(f"Deleted project {project_id}")
        return bool(exists)

    def _project_stats(self, s: GraphSession, project_id: str) -> ProjectStats:
        entity_types = s.fetch_all(
            """
            MATCH (n:CodeNode) WHERE n.project_id = $pid
            RETURN n.node_type AS t, count(n) AS c
            """,
            {"pid": project_id},
        )
        relationship_types = s.fetch_all(
            """
            MATCH (:CodeNode)-[e:CodeEdge]->(:CodeNode) WHERE e.project_id = $pid
            RETURN e.edge_type AS t, count(e) AS c
            """,
            {"pid": project_id},
        )
        return ProjectStats(
            entity_count=sum(r["c"] for r in entity_types),
            relationship_count=sum(r["c"] for r in relationship_types),
            entity_types=sorted(r["t"] for r in entity_types),
            relationship_types=sorted(r["t"] for r in relationship_types),
        )

    async def get_project_stats(self, project_id: str) -> ProjectStats:
        with self.session() as s:
            return self._project_stats(s, project_id)

    # ── Clearing ────────────────────────────────────────────────────────

    def _clear_project(self, s: GraphSession, project_id: str) -> None:
        # Edges owned by the project, including cross-project ones it created
        s.execute(
            "MATCH (:CodeNode)-[e:CodeEdge]->(:CodeNode) WHERE e.project_id = $pid DELETE e",
            {"pid": project_id},
        )
        s.execute(
            "MATCH (n:CodeNode) WHERE n.project_id = $pid DETACH DELETE n",
            {"pid": project_id},
        )

    async def clear_project(self, project_id: str) -> None:
        """Remove every node and edge of a project. The registry entry stays."""
        with self.session() as s:
            self._clear_project(s, project_id)
        logger.info(f"Cleared project {project_id}")

    async def clear_all(self) -> None:
        """Remove every node, edge and project."""
        with self.session() as s:
            s.execute("MATCH (n:CodeNode) DETACH DELETE n")
            s.execute("MATCH (p:Project) DELETE p")
        logger.info("Cleared all projects")

    async def health_check(self) -> bool:
        """True when the database answers a trivial query."""
        try:
            with self.session() as s:
                return s.scalar("RETURN 1") == 1
        except (ConnectivityError, QueryError) as e:
            logger.warning(f"Health check failed: {e}")
            return False
