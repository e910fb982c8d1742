"""Tests for bulk ingestion of parser output."""

import pytest

from coderag.core.exceptions import ConnectivityError, ValidationError
from coderag.core.ingest import BatchWriter, IngestDocument, IngestSession
from coderag.core.models import NodeType


def entity(node_id, node_type="class", **extra):
    return {"id": node_id, "type": node_type, "name": node_id.split(".")[-1], **extra}


def relationship(rel_id, source, target, rel_type="calls"):
    return {"id": rel_id, "type": rel_type, "source": source, "target": target}


class TestIngestDocument:
    def test_project_from_payload(self):
        doc = IngestDocument.from_dict({"project_id": "p9", "entities": [entity("A")]})
        assert doc.project_id == "p9"
        assert doc.entities[0].project_id == "p9"

    def test_caller_project_wins(self):
        doc = IngestDocument.from_dict({"project_id": "p9"}, project_id="p1")
        assert doc.project_id == "p1"

    def test_missing_project(self):
        with pytest.raises(ValidationError):
            IngestDocument.from_dict({"entities": []})

    def test_invalid_items_are_collected(self):
        doc = IngestDocument.from_dict(
            {
                "entities": [entity("A"), {"id": "B", "type": "struct", "name": "B"}],
                "relationships": [{"id": "r1", "type": "calls", "source": "A"}],
                "errors": [{"file": "X.java", "message": "oops"}],
            },
            project_id="p1",
        )
        assert [e.id for e in doc.entities] == ["A"]
        assert [f.item_id for f in doc.invalid] == ["B", "r1"]
        assert all(f.kind == "invalid_payload" for f in doc.invalid)
        assert doc.parse_errors[0].file == "X.java"

    def test_non_object_items_are_collected(self):
        doc = IngestDocument.from_dict(
            {
                "entities": [entity("Good"), "Bad", 7],
                "relationships": [["r1", "calls"]],
                "errors": ["not an object", {"file": "Y.java", "message": "bad"}],
            },
            project_id="p1",
        )
        assert [e.id for e in doc.entities] == ["Good"]
        assert [(f.kind, f.item_id) for f in doc.invalid] == [("invalid_payload", "?")] * 3
        assert "must be an object" in doc.invalid[0].message
        assert [e.file for e in doc.parse_errors] == ["Y.java"]

    def test_document_must_be_an_object(self):
        with pytest.raises(ValidationError):
            IngestDocument.from_dict([entity("A")], project_id="p1")

    @pytest.mark.parametrize("project_id", ["a:b", ":"])
    def test_project_id_with_separator_rejected(self, project_id):
        with pytest.raises(ValidationError):
            IngestDocument.from_dict({"entities": [entity("A")]}, project_id=project_id)


class TestPackageSynthesis:
    def test_one_package_per_run(self):
        doc = IngestDocument.from_dict(
            {
                "entities": [
                    entity("com.acme.A", attributes={"package": "com.acme"}),
                    entity("com.acme.B", attributes={"package": "com.acme"}),
                    entity("com.acme.A.run", "method", attributes={"package": "com.acme"}),
                    entity("Loose", attributes={"package": "default"}),
                ]
            },
            project_id="p1",
        )
        packages, edges = IngestSession("p1").package_entities(doc.entities)

        assert len(packages) == 1
        pkg = packages[0]
        assert pkg.type == NodeType.PACKAGE
        assert pkg.id == pkg.name == "com.acme"
        assert pkg.source_file == "com/acme"
        assert pkg.description == "Package: com.acme"
        assert [e.id for e in edges] == [
            "com.acme_contains_com.acme.A",
            "com.acme_contains_com.acme.B",
        ]

    def test_existing_package_entity_is_reused(self):
        doc = IngestDocument.from_dict(
            {
                "entities": [
                    entity("com.acme", "package"),
                    entity("com.acme.A", attributes={"package": "com.acme"}),
                ]
            },
            project_id="p1",
        )
        packages, edges = IngestSession("p1").package_entities(doc.entities)
        assert packages == []
        assert len(edges) == 1


class TestBatchWriter:
    @pytest.mark.asyncio
    async def test_ingest_counts(self, writer, nodes, edges):
        result = await writer.ingest_payload(
            {
                "entities": [
                    entity("com.acme.A", attributes={"package": "com.acme"}),
                    entity("com.acme.B", attributes={"package": "com.acme"}),
                ],
                "relationships": [relationship("r1", "com.acme.A", "com.acme.B")],
                "errors": [{"file": "Bad.java", "message": "parse failure", "severity": "warning"}],
            },
            project_id="p1",
        )

        assert result.success
        assert result.entities_created == 3  # two classes and one package
        assert result.relationships_created == 3  # one call and two contains
        assert result.parse_errors[0].severity == "warning"
        assert await nodes.get_node("com.acme", "p1") is not None
        assert len(await edges.find_edges_by_type("contains", "p1")) == 2

    @pytest.mark.asyncio
    async def test_reingest_skips_duplicates(self, writer):
        payload = {
            "entities": [entity("A"), entity("B")],
            "relationships": [relationship("r1", "A", "B")],
        }
        await writer.ingest_payload(payload, project_id="p1")
        again = await writer.ingest_payload(payload, project_id="p1")

        assert again.entities_created == 0
        assert again.entities_skipped == 2
        assert again.relationships_skipped == 1
        assert again.success

    @pytest.mark.asyncio
    async def test_duplicates_within_payload(self, writer):
        result = await writer.ingest_payload(
            {"entities": [entity("A"), entity("A", description="second")]}, project_id="p1"
        )
        assert result.entities_created == 1
        assert result.duplicates_in_input == 1

    @pytest.mark.asyncio
    async def test_failures_are_collected_not_raised(self, writer):
        result = await writer.ingest_payload(
            {
                "entities": [entity("A"), {"id": "X", "type": "bogus", "name": "X"}],
                "relationships": [
                    relationship("r1", "A", "Missing"),
                    relationship("r2", "A", "A", "extends"),
                ],
            },
            project_id="p1",
        )

        assert not result.success
        kinds = {f.item_id: f.kind for f in result.failures}
        assert kinds == {
            "X": "invalid_payload",
            "r1": "edge_creation_error",
            "r2": "edge_creation_error",
        }
        r1 = next(f for f in result.failures if f.item_id == "r1")
        assert r1.to_dict()["source"] == "A"
        assert r1.to_dict()["target"] == "Missing"

    @pytest.mark.asyncio
    async def test_unencodable_attributes_fail_one_entity(self, writer, nodes):
        result = await writer.ingest_payload(
            {
                "entities": [
                    entity("Good"),
                    entity("Huge", attributes={"size": 2**70}),
                    entity("Tagged", attributes={"tags": {"a", "b"}}),
                ]
            },
            project_id="p1",
        )

        assert result.entities_created == 1
        assert {f.item_id: f.kind for f in result.failures} == {
            "Huge": "node_creation_error",
            "Tagged": "node_creation_error",
        }
        assert "cannot be stored as JSON" in result.failures[0].message
        assert await nodes.get_node("Good", "p1") is not None
        assert await nodes.get_node("Huge", "p1") is None

    @pytest.mark.asyncio
    async def test_non_object_entity_does_not_abort(self, writer, nodes):
        result = await writer.ingest_payload(
            {"entities": [entity("Good"), "Bad"]}, project_id="p1"
        )
        assert result.entities_created == 1
        assert [f.kind for f in result.failures] == ["invalid_payload"]
        assert await nodes.get_node("Good", "p1") is not None

    @pytest.mark.asyncio
    async def test_batches_smaller_than_input(self, settings, store, nodes, edges):
        settings.entity_batch_size = 2
        settings.relationship_batch_size = 2
        writer = BatchWriter(nodes, edges, synthesize_packages=False)
        result = await writer.ingest_payload(
            {
                "entities": [entity(f"C{i}") for i in range(5)],
                "relationships": [relationship(f"r{i}", f"C{i}", f"C{i + 1}") for i in range(4)],
            },
            project_id="p1",
        )
        assert result.entities_created == 5
        assert result.relationships_created == 4

    @pytest.mark.asyncio
    async def test_without_package_synthesis(self, nodes, edges, store):
        writer = BatchWriter(nodes, edges, synthesize_packages=False)
        result = await writer.ingest_payload(
            {"entities": [entity("com.acme.A", attributes={"package": "com.acme"})]},
            project_id="p1",
        )
        assert result.entities_created == 1
        assert await nodes.get_node("com.acme", "p1") is None

    @pytest.mark.asyncio
    async def test_lost_connection_aborts(self, writer, store):
        await store.close()
        with pytest.raises(ConnectivityError):
            await writer.ingest_payload({"entities": [entity("A")]}, project_id="p1")
