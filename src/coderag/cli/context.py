"""Wiring of store, managers and engine for CLI commands."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

import typer

from ..analysis.engine import MetricsEngine
from ..config.settings import CodeRAGSettings
from ..core.edge_manager import EdgeManager
from ..core.graph_store import GraphStore
from ..core.node_manager import NodeManager


@dataclass
class GraphContext:
    store: GraphStore
    nodes: NodeManager
    edges: EdgeManager

    def metrics_engine(self) -> MetricsEngine:
        return MetricsEngine(
            self.store,
            edges=self.edges,
            thresholds=self.store.settings.load_thresholds(),
        )


def get_settings(ctx: typer.Context) -> CodeRAGSettings:
    """Settings stored on the root context by the app callback."""
    root = ctx.find_root()
    if isinstance(root.obj, CodeRAGSettings):
        return root.obj
    return CodeRAGSettings()


@asynccontextmanager
async def open_graph(settings: CodeRAGSettings) -> AsyncIterator[GraphContext]:
    store = GraphStore(settings)
    await store.connect()
    try:
        yield GraphContext(store=store, nodes=NodeManager(store), edges=EdgeManager(store))
    finally:
        await store.close()
