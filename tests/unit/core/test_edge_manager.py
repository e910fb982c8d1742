"""Tests for edge CRUD, endpoint resolution and graph-shape queries."""

import pytest

from coderag.core.exceptions import (
    ConflictError,
    EndpointNotFoundError,
    InvalidEdgeError,
    InvalidUpdateError,
    NotFoundError,
    ValidationError,
)
from coderag.core.resolution import simple_name


async def add_nodes(nodes, make_node, *ids, project_id="p1"):
    for item in ids:
        node_id, node_type = item if isinstance(item, tuple) else (item, "class")
        await nodes.add_node(make_node(node_id, node_type, project_id=project_id))


class TestAddEdge:
    @pytest.mark.asyncio
    async def test_add_and_get(self, nodes, edges, make_node, make_edge):
        await add_nodes(nodes, make_node, "A", "B")
        created = await edges.add_edge(make_edge("A", "B", "references", edge_id="r1", attributes={"line": 7}))

        assert (created.source, created.target) == ("A", "B")
        fetched = await edges.get_edge("r1", "p1")
        assert fetched.type == "references"
        assert fetched.attributes == {"line": 7}

    @pytest.mark.asyncio
    async def test_duplicate_edge_conflicts(self, nodes, edges, make_node, make_edge):
        await add_nodes(nodes, make_node, "A", "B")
        await edges.add_edge(make_edge("A", "B", edge_id="r1"))
        with pytest.raises(ConflictError):
            await edges.add_edge(make_edge("A", "B", edge_id="r1"))

    @pytest.mark.asyncio
    async def test_missing_endpoint(self, nodes, edges, make_node, make_edge):
        await add_nodes(nodes, make_node, "A")
        with pytest.raises(
            EndpointNotFoundError, match="Failed to create edge - source or target node not found"
        ):
            await edges.add_edge(make_edge("A", "Missing"))

    @pytest.mark.asyncio
    async def test_endpoints_never_resolve_in_other_project(self, nodes, edges, make_node, make_edge):
        await add_nodes(nodes, make_node, "A")
        await add_nodes(nodes, make_node, "B", project_id="p2")
        with pytest.raises(EndpointNotFoundError):
            await edges.add_edge(make_edge("A", "B"))

    @pytest.mark.asyncio
    async def test_recursive_call_allowed(self, nodes, edges, make_node, make_edge):
        await add_nodes(nodes, make_node, ("f", "method"))
        created = await edges.add_edge(make_edge("f", "f", "calls"))
        assert created.source == created.target == "f"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("edge_type", ["extends", "implements", "contains"])
    async def test_other_self_loops_rejected(self, nodes, edges, make_node, make_edge, edge_type):
        await add_nodes(nodes, make_node, "A")
        with pytest.raises(InvalidEdgeError):
            await edges.add_edge(make_edge("A", "A", edge_type))


class TestImplementsFallback:
    @pytest.mark.asyncio
    async def test_resolves_interface_by_simple_name(self, nodes, edges, make_node, make_edge):
        await add_nodes(nodes, make_node, "com.acme.Impl", ("com.acme.repo.Repository", "interface"))
        created = await edges.add_edge(make_edge("com.acme.Impl", "Repository", "implements"))
        assert created.target == "com.acme.repo.Repository"

    @pytest.mark.asyncio
    async def test_qualified_reference_resolves_by_last_segment(
        self, nodes, edges, make_node, make_edge
    ):
        await add_nodes(nodes, make_node, "Impl", ("Repository", "interface"))
        created = await edges.add_edge(make_edge("Impl", "org.lib.Repository", "implements"))
        assert created.target == "Repository"

    @pytest.mark.asyncio
    async def test_suffix_of_longer_name_does_not_match(self, nodes, edges, make_node, make_edge):
        await add_nodes(nodes, make_node, "Impl", ("BaseRepository", "interface"))
        with pytest.raises(EndpointNotFoundError):
            await edges.add_edge(make_edge("Impl", "Repository", "implements"))

    @pytest.mark.asyncio
    async def test_mismatched_package_resolves_for_implements(
        self, nodes, edges, make_node, make_edge
    ):
        await add_nodes(nodes, make_node, "Impl", "com.example.Foo")
        created = await edges.add_edge(make_edge("Impl", "other.pkg.Foo", "implements"))
        assert created.target == "com.example.Foo"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("edge_type", ["calls", "extends", "references"])
    async def test_fallback_only_for_implements(
        self, nodes, edges, make_node, make_edge, edge_type
    ):
        await add_nodes(nodes, make_node, "Impl", "com.example.Foo")
        with pytest.raises(EndpointNotFoundError):
            await edges.add_edge(make_edge("Impl", "other.pkg.Foo", edge_type))

    @pytest.mark.asyncio
    async def test_prefers_interface_on_ambiguity(self, nodes, edges, make_node, make_edge):
        await add_nodes(nodes, make_node, "Impl", "a.Repository", ("b.Repository", "interface"))
        created = await edges.add_edge(make_edge("Impl", "Repository", "implements"))
        assert created.target == "b.Repository"

    def test_simple_name(self):
        assert simple_name("com.acme.Repository") == "Repository"
        assert simple_name("Repository") == "Repository"


class TestUpdateDelete:
    @pytest.mark.asyncio
    async def test_update_type_and_attributes(self, nodes, edges, make_node, make_edge):
        await add_nodes(nodes, make_node, "A", "B")
        await edges.add_edge(make_edge("A", "B", "calls", edge_id="r1"))
        updated = await edges.update_edge("r1", "p1", {"type": "references", "attributes": {"w": 2}})
        assert updated.type == "references"
        assert updated.attributes == {"w": 2}

    @pytest.mark.asyncio
    async def test_update_rejects_unknown_type(self, nodes, edges, make_node, make_edge):
        await add_nodes(nodes, make_node, "A", "B")
        await edges.add_edge(make_edge("A", "B", edge_id="r1"))
        with pytest.raises(ValidationError):
            await edges.update_edge("r1", "p1", {"type": "imports"})

    @pytest.mark.asyncio
    async def test_update_requires_mutable_field(self, nodes, edges, make_node, make_edge):
        await add_nodes(nodes, make_node, "A", "B")
        await edges.add_edge(make_edge("A", "B", edge_id="r1"))
        with pytest.raises(InvalidUpdateError):
            await edges.update_edge("r1", "p1", {"source": "B"})

    @pytest.mark.asyncio
    async def test_update_missing_edge(self, edges):
        with pytest.raises(NotFoundError):
            await edges.update_edge("ghost", "p1", {"type": "calls"})

    @pytest.mark.asyncio
    async def test_recursive_call_cannot_become_extends(self, nodes, edges, make_node, make_edge):
        await add_nodes(nodes, make_node, ("f", "method"))
        await edges.add_edge(make_edge("f", "f", "calls", edge_id="r1"))
        with pytest.raises(InvalidEdgeError):
            await edges.update_edge("r1", "p1", {"type": "extends"})

    @pytest.mark.asyncio
    async def test_delete(self, nodes, edges, make_node, make_edge):
        await add_nodes(nodes, make_node, "A", "B")
        await edges.add_edge(make_edge("A", "B", edge_id="r1"))
        assert await edges.delete_edge("r1", "p1") is True
        assert await edges.delete_edge("r1", "p1") is False
        assert await edges.get_edge("r1", "p1") is None


class TestEdgeLookups:
    @pytest.mark.asyncio
    async def test_by_type_source_target(self, nodes, edges, make_node, make_edge):
        await add_nodes(nodes, make_node, "A", "B", "C")
        await edges.add_edge(make_edge("A", "B", "calls", edge_id="r1"))
        await edges.add_edge(make_edge("A", "C", "references", edge_id="r2"))
        await edges.add_edge(make_edge("B", "C", "calls", edge_id="r3"))

        assert [e.id for e in await edges.find_edges_by_type("calls", "p1")] == ["r1", "r3"]
        assert [e.id for e in await edges.find_edges_by_source("A", "p1")] == ["r1", "r2"]
        assert [e.id for e in await edges.find_edges_by_target("C", "p1")] == ["r2", "r3"]

    @pytest.mark.asyncio
    async def test_type_across_projects(self, nodes, edges, make_node, make_edge):
        for pid in ("p1", "p2"):
            await add_nodes(nodes, make_node, "A", "B", project_id=pid)
            await edges.add_edge(make_edge("A", "B", "extends", project_id=pid, edge_id="x"))
        found = await edges.find_edges_by_type_across_projects("extends")
        assert [e.project_id for e in found] == ["p1", "p2"]


class TestCrossProject:
    @pytest.mark.asyncio
    async def test_cross_project_edge(self, nodes, edges, make_node, make_edge):
        await add_nodes(nodes, make_node, "Client", project_id="app")
        await add_nodes(nodes, make_node, "Api", project_id="lib")

        created = await edges.add_cross_project_edge(
            make_edge("Client", "Api", "references", project_id="app", edge_id="x1"), "lib"
        )
        assert created.project_id == "app"

        deps = await edges.find_cross_project_dependencies()
        assert len(deps) == 1
        assert deps[0].source_scoped_id == "app:Client"
        assert deps[0].target_scoped_id == "lib:Api"

        assert len(await edges.find_cross_project_dependencies("lib")) == 1
        assert await edges.find_cross_project_dependencies("other") == []

    @pytest.mark.asyncio
    async def test_same_project_rejected(self, edges, make_edge):
        with pytest.raises(ValidationError):
            await edges.add_cross_project_edge(make_edge("A", "B"), "p1")

    @pytest.mark.asyncio
    async def test_clearing_target_project_drops_cross_edges(self, store, nodes, edges, make_node, make_edge):
        await add_nodes(nodes, make_node, "Client", project_id="app")
        await add_nodes(nodes, make_node, "Api", project_id="lib")
        await edges.add_cross_project_edge(
            make_edge("Client", "Api", "references", project_id="app"), "lib"
        )
        await store.clear_project("lib")
        assert await edges.find_cross_project_dependencies() == []
        assert await nodes.get_node("Client", "app") is not None


class TestGraphShapeQueries:
    @pytest.fixture
    async def graph(self, nodes, edges, make_node, make_edge):
        await add_nodes(
            nodes,
            make_node,
            "Service",
            "Controller",
            "Helper",
            ("Controller.handle", "method"),
            ("Repo.save", "method"),
            ("Repository", "interface"),
            "JpaRepo",
            "MemRepo",
        )
        # Class-level call and member-level call
        await edges.add_edge(make_edge("Service", "Repo.save", "calls"))
        await edges.add_edge(make_edge("Controller", "Controller.handle", "contains"))
        await edges.add_edge(make_edge("Controller.handle", "Repo.save", "calls"))
        await edges.add_edge(make_edge("JpaRepo", "Repository", "implements"))
        await edges.add_edge(make_edge("MemRepo", "Repository", "implements"))
        return edges

    @pytest.mark.asyncio
    async def test_classes_that_call_method(self, graph):
        assert await graph.find_classes_that_call_method("save", "p1") == ["Controller", "Service"]
        assert await graph.find_classes_that_call_method("nothing", "p1") == []

    @pytest.mark.asyncio
    async def test_classes_that_implement_interface(self, graph):
        assert await graph.find_classes_that_implement_interface("Repository", "p1") == [
            "JpaRepo",
            "MemRepo",
        ]

    @pytest.mark.asyncio
    async def test_queries_are_project_scoped(self, graph):
        assert await graph.find_classes_that_implement_interface("Repository", "p2") == []


class TestInheritanceHierarchy:
    @pytest.mark.asyncio
    async def test_chain(self, nodes, edges, make_node, make_edge):
        await add_nodes(nodes, make_node, "C", "B", "A")
        await edges.add_edge(make_edge("C", "B", "extends"))
        await edges.add_edge(make_edge("B", "A", "extends"))

        assert await edges.find_inheritance_hierarchy("C", "p1") == ["B", "A"]
        assert await edges.find_inheritance_hierarchy("A", "p1") == []
        assert await edges.find_inheritance_hierarchy("Unknown", "p1") == []

    @pytest.mark.asyncio
    async def test_cycle_terminates(self, nodes, edges, make_node, make_edge):
        await add_nodes(nodes, make_node, "A", "B")
        await edges.add_edge(make_edge("A", "B", "extends"))
        await edges.add_edge(make_edge("B", "A", "extends"))
        assert await edges.find_inheritance_hierarchy("A", "p1") == ["B"]

    @pytest.mark.asyncio
    async def test_depth_bound(self, store, nodes, edges, make_node, make_edge):
        store.settings.max_traversal_depth = 2
        await add_nodes(nodes, make_node, "D", "C", "B", "A")
        await edges.add_edge(make_edge("D", "C", "extends"))
        await edges.add_edge(make_edge("C", "B", "extends"))
        await edges.add_edge(make_edge("B", "A", "extends"))
        assert await edges.find_inheritance_hierarchy("D", "p1") == ["C", "B"]
