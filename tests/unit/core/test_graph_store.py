"""Tests for the Kuzu-backed store and project registry."""

import pytest

from coderag.core.exceptions import ConnectivityError, ValidationError
from coderag.core.graph_store import GraphStore


class TestConnection:
    @pytest.mark.asyncio
    async def test_session_before_connect_raises(self, settings):
        store = GraphStore(settings)
        with pytest.raises(ConnectivityError):
            with store.session():
                pass

    @pytest.mark.asyncio
    async def test_connect_is_idempotent(self, store):
        await store.connect()
        assert store.is_connected
        assert await store.health_check()

    @pytest.mark.asyncio
    async def test_health_check_false_when_closed(self, settings):
        store = GraphStore(settings)
        await store.connect()
        await store.close()
        assert not await store.health_check()

    @pytest.mark.asyncio
    async def test_data_survives_reopen(self, settings, make_node):
        from coderag.core.node_manager import NodeManager

        store = GraphStore(settings)
        await store.connect()
        await NodeManager(store).add_node(make_node("A"))
        await store.close()

        reopened = GraphStore(settings)
        await reopened.connect()
        try:
            node = await NodeManager(reopened).get_node("A", "p1")
            assert node is not None
            assert node.name == "A"
        finally:
            await reopened.close()


class TestProjects:
    @pytest.mark.asyncio
    async def test_create_and_get(self, store):
        project = await store.create_project("billing", name="Billing", description="Invoices")
        assert project.project_id == "billing"
        assert project.name == "Billing"
        assert project.created_at is not None

        fetched = await store.get_project("billing")
        assert fetched.description == "Invoices"

    @pytest.mark.asyncio
    async def test_get_missing_project(self, store):
        assert await store.get_project("nope") is None

    @pytest.mark.asyncio
    async def test_create_requires_id(self, store):
        with pytest.raises(ValidationError):
            await store.create_project("")

    @pytest.mark.asyncio
    async def test_create_rejects_colon_in_id(self, store):
        with pytest.raises(ValidationError):
            await store.create_project("team:billing")
        assert await store.get_project("team:billing") is None

    @pytest.mark.asyncio
    async def test_adding_node_registers_project(self, store, nodes, make_node):
        await nodes.add_node(make_node("A", project_id="auto"))
        project = await store.get_project("auto")
        assert project is not None
        assert project.name == "auto"

    @pytest.mark.asyncio
    async def test_list_projects_sorted_with_stats(self, store, nodes, make_node):
        await nodes.add_node(make_node("A", project_id="b"))
        await nodes.add_node(make_node("B", project_id="b"))
        await nodes.add_node(make_node("m", "method", project_id="a"))

        listed = await store.list_projects()
        assert [p.project_id for p, _ in listed] == ["a", "b"]
        assert all(stats is None for _, stats in listed)

        by_size = await store.list_projects(sort_by="entity_count", descending=True)
        assert [p.project_id for p, _ in by_size] == ["b", "a"]
        assert by_size[0][1].entity_count == 2
        assert by_size[0][1].entity_types == ["class"]

    @pytest.mark.asyncio
    async def test_list_projects_limit(self, store):
        for pid in ("x", "y", "z"):
            await store.create_project(pid)
        assert len(await store.list_projects(limit=2)) == 2

    @pytest.mark.asyncio
    async def test_list_projects_rejects_unknown_sort(self, store):
        with pytest.raises(ValidationError):
            await store.list_projects(sort_by="size")


class TestClearing:
    @pytest.mark.asyncio
    async def test_clear_project_leaves_others(self, store, nodes, edges, make_node, make_edge):
        for pid in ("p1", "p2"):
            await nodes.add_node(make_node("A", project_id=pid))
            await nodes.add_node(make_node("B", project_id=pid))
            await edges.add_edge(make_edge("A", "B", project_id=pid))

        await store.clear_project("p1")

        assert await nodes.get_all_nodes("p1") == []
        assert len(await nodes.get_all_nodes("p2")) == 2
        stats = await store.get_project_stats("p2")
        assert stats.relationship_count == 1
        # Registry entry stays
        assert await store.get_project("p1") is not None

    @pytest.mark.asyncio
    async def test_delete_project(self, store, nodes, make_node):
        await nodes.add_node(make_node("A", project_id="gone"))
        assert await store.delete_project("gone") is True
        assert await store.get_project("gone") is None
        assert await store.delete_project("gone") is False

    @pytest.mark.asyncio
    async def test_clear_all(self, store, nodes, make_node):
        await nodes.add_node(make_node("A", project_id="p1"))
        await nodes.add_node(make_node("A", project_id="p2"))
        await store.clear_all()
        assert await store.list_projects() == []
        assert await nodes.search_nodes_across_projects("a") == []
