"""Shared fixtures: a real Kuzu database per test in a temporary directory."""

from __future__ import annotations

import os
from collections.abc import Callable

import pytest

from coderag.config.settings import CodeRAGSettings
from coderag.core.edge_manager import EdgeManager
from coderag.core.graph_store import GraphStore
from coderag.core.ingest import BatchWriter
from coderag.core.models import CodeEdge, CodeNode
from coderag.core.node_manager import NodeManager


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch):
    """Keep CODERAG_* variables from the developer's shell out of tests."""
    for key in list(os.environ):
        if key.startswith("CODERAG_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def settings(tmp_path) -> CodeRAGSettings:
    return CodeRAGSettings(db_path=tmp_path / "graph")


@pytest.fixture
async def store(settings):
    """Connected graph store; closed after the test."""
    graph_store = GraphStore(settings)
    await graph_store.connect()
    yield graph_store
    await graph_store.close()


@pytest.fixture
def nodes(store) -> NodeManager:
    return NodeManager(store)


@pytest.fixture
def edges(store) -> EdgeManager:
    return EdgeManager(store)


@pytest.fixture
def writer(nodes, edges) -> BatchWriter:
    return BatchWriter(nodes, edges)


@pytest.fixture
def make_node() -> Callable[..., CodeNode]:
    """Build a CodeNode with sensible defaults."""

    def _make(
        node_id: str,
        node_type: str = "class",
        project_id: str = "p1",
        name: str | None = None,
        **kwargs,
    ) -> CodeNode:
        simple = name or node_id.replace(":", ".").split(".")[-1]
        return CodeNode(
            id=node_id,
            project_id=project_id,
            type=node_type,
            name=simple,
            qualified_name=kwargs.pop("qualified_name", node_id),
            **kwargs,
        )

    return _make


@pytest.fixture
def make_edge() -> Callable[..., CodeEdge]:
    counter = {"n": 0}

    def _make(
        source: str,
        target: str,
        edge_type: str = "calls",
        project_id: str = "p1",
        edge_id: str | None = None,
        **kwargs,
    ) -> CodeEdge:
        counter["n"] += 1
        return CodeEdge(
            id=edge_id or f"e{counter['n']}",
            project_id=project_id,
            type=edge_type,
            source=source,
            target=target,
            **kwargs,
        )

    return _make
