"""
Knowledge graph manager: write-through ordering, batch failure behaviour and
index alignment.
"""

import json

import pytest
from unittest.mock import MagicMock

from qdrant_memory.core.config import Settings
from qdrant_memory.core.errors import NotFoundError, VectorStoreConnectionError
from qdrant_memory.core.graph_store import GraphStore
from qdrant_memory.core.identifiers import derive_point_id
from qdrant_memory.core.manager import KnowledgeGraphManager
from qdrant_memory.core.schema import Entity, Relation
from qdrant_memory.core.synchronizer import Synchronizer
from qdrant_memory.vector.embeddings import DeterministicHashEmbedding
from qdrant_memory.vector.index import SimpleInMemoryVectorIndex


@pytest.fixture
def memory_file(tmp_path):
    return tmp_path / "memory.json"


@pytest.fixture
def manager(memory_file):
    synchronizer = Synchronizer(DeterministicHashEmbedding(dimension=16), SimpleInMemoryVectorIndex("kg"))
    manager = KnowledgeGraphManager(GraphStore(str(memory_file)), synchronizer)
    manager.initialize()
    return manager


def points(manager):
    return manager.synchronizer.vector_index._collections["kg"]["points"]


def saved(memory_file):
    return json.loads(memory_file.read_text())


def test_create_entities_writes_both_stores(manager, memory_file):
    manager.create_entities([Entity("Alice", "person", ["likes tea"]), Entity("Bob", "person", [])])

    assert set(points(manager)) == {derive_point_id("Alice"), derive_point_id("Bob")}
    assert [e["name"] for e in saved(memory_file)["entities"]] == ["Alice", "Bob"]


def test_entity_upsert_idempotence(manager):
    """The last write per name wins in the graph and in the index."""
    manager.create_entities([Entity("Alice", "person", ["one"])])
    manager.create_entities([Entity("Alice", "robot", ["two"])])

    graph = manager.read_graph()
    assert list(graph.entities.values()) == [Entity("Alice", "robot", ["two"])]
    assert points(manager)[derive_point_id("Alice")].payload["entityType"] == "robot"


def test_create_relations_referential_integrity(manager, memory_file):
    """A missing endpoint stops the batch; earlier relations stay, nothing is saved."""
    manager.create_entities([Entity("A", "t", []), Entity("B", "t", [])])

    with pytest.raises(NotFoundError, match="Entity not found: Ghost"):
        manager.create_relations([
            Relation("A", "B", "knows"),
            Relation("A", "Ghost", "knows"),
            Relation("B", "A", "knows"),
        ])

    assert list(manager.read_graph().relations.values()) == [Relation("A", "B", "knows")]
    assert Relation("B", "A", "knows") not in manager.read_graph().relations.values()
    assert saved(memory_file)["relations"] == []


def test_add_observations_reembeds_entity(manager, memory_file):
    manager.create_entities([Entity("A", "t", ["x"])])

    manager.add_observations("A", ["y"])

    assert points(manager)[derive_point_id("A")].payload["observations"] == ["x", "y"]
    assert saved(memory_file)["entities"][0]["observations"] == ["x", "y"]


def test_observation_calls_on_unknown_entity(manager):
    with pytest.raises(NotFoundError):
        manager.add_observations("Nobody", ["x"])
    with pytest.raises(NotFoundError):
        manager.delete_observations("Nobody", ["x"])


def test_delete_observations_exact_match(manager):
    manager.create_entities([Entity("E", "t", ["x", "y", "x"])])

    manager.delete_observations("E", ["x", "z"])

    assert manager.read_graph().entities["E"].observations == ["y"]
    assert points(manager)[derive_point_id("E")].payload["observations"] == ["y"]


def test_delete_entities_cascades_in_both_stores(manager, memory_file):
    manager.create_entities([Entity(n, "t", []) for n in "ABC"])
    manager.create_relations([Relation("A", "B", "knows"), Relation("B", "C", "knows")])

    manager.delete_entities(["B", "Nobody"])

    graph = manager.read_graph()
    assert set(graph.entities) == {"A", "C"}
    assert graph.relations == {}
    assert set(points(manager)) == {derive_point_id("A"), derive_point_id("C")}
    assert saved(memory_file)["relations"] == []


def test_delete_relations_skips_unknown(manager):
    manager.create_entities([Entity("A", "t", []), Entity("B", "t", [])])
    manager.create_relations([Relation("A", "B", "knows")])

    manager.delete_relations([Relation("A", "B", "knows"), Relation("B", "A", "knows")])

    assert manager.read_graph().relations == {}
    assert derive_point_id("A-knows-B") not in points(manager)


def test_search_similar(manager):
    manager.create_entities([Entity("Alice", "person", ["likes tea"]), Entity("Bob", "person", [])])

    results = manager.search_similar("Alice (person): likes tea", limit=1)

    assert results == [Entity("Alice", "person", ["likes tea"])]


def test_search_default_limit(manager):
    manager.synchronizer = MagicMock()

    manager.search_similar("q", None)

    manager.synchronizer.search.assert_called_once_with("q", 10)


def test_remote_failure_leaves_graph_ahead_and_unsaved(manager, memory_file):
    """A failed upsert keeps the in-memory change but skips the save."""
    manager.create_entities([Entity("A", "t", [])])
    manager.synchronizer.vector_index.upsert = MagicMock(side_effect=VectorStoreConnectionError("down"))

    with pytest.raises(VectorStoreConnectionError):
        manager.create_entities([Entity("B", "t", [])])

    assert "B" in manager.read_graph().entities
    assert [e["name"] for e in saved(memory_file)["entities"]] == ["A"]


def test_rebuild_index_realigns(manager):
    manager.create_entities([Entity("A", "t", []), Entity("B", "t", [])])
    manager.create_relations([Relation("A", "B", "knows")])
    points(manager).clear()

    written = manager.rebuild_index()

    assert written == 3
    assert len(points(manager)) == 3


def test_initialize_loads_existing_file(memory_file):
    memory_file.write_text(json.dumps({
        "entities": [{"name": "A", "entityType": "t", "observations": ["o"]}],
        "relations": [],
    }))
    synchronizer = Synchronizer(DeterministicHashEmbedding(dimension=8), SimpleInMemoryVectorIndex("kg"))
    manager = KnowledgeGraphManager(GraphStore(str(memory_file)), synchronizer)

    manager.initialize()

    assert manager.read_graph().entities["A"].observations == ["o"]
    assert synchronizer.vector_index.describe_collection().dimension == 8


def test_from_settings_wires_components(tmp_path):
    settings = Settings(
        memory_file_path=str(tmp_path / "m.json"),
        embedding_provider="hash",
        hash_dimension=12,
        vector_provider="memory",
        qdrant_collection_name="graph",
    )

    manager = KnowledgeGraphManager.from_settings(settings)

    assert isinstance(manager.synchronizer.embedding_provider, DeterministicHashEmbedding)
    assert isinstance(manager.synchronizer.vector_index, SimpleInMemoryVectorIndex)
    assert manager.synchronizer.vector_index.collection_name == "graph"
    assert str(manager.store.path) == settings.memory_file_path
