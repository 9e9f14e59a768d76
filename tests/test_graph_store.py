"""
Graph store mutations and JSON file persistence.
"""

import json

import pytest

from qdrant_memory.core.errors import NotFoundError
from qdrant_memory.core.graph_store import GraphStore
from qdrant_memory.core.schema import Entity, KnowledgeGraph, Relation


@pytest.fixture
def store(tmp_path):
    store = GraphStore(str(tmp_path / "memory.json"))
    store.load()
    return store


def knows(a, b):
    return Relation(from_entity=a, to_entity=b, relation_type="knows")


def test_missing_file_loads_empty(tmp_path):
    store = GraphStore(str(tmp_path / "absent.json"))

    graph = store.load()

    assert graph.entities == {}
    assert graph.relations == {}


def test_corrupt_file_loads_empty(tmp_path):
    path = tmp_path / "memory.json"
    path.write_text("{not json")

    graph = GraphStore(str(path)).load()

    assert graph == KnowledgeGraph()


def test_malformed_records_load_empty(tmp_path):
    path = tmp_path / "memory.json"
    path.write_text(json.dumps({"entities": [{"name": 3}], "relations": []}))

    assert GraphStore(str(path)).load() == KnowledgeGraph()


@pytest.mark.parametrize("content", [
    {"entities": 5},
    {"relations": 7},
    {"entities": {"name": "Alice"}, "relations": []},
])
def test_non_array_sections_load_empty(tmp_path, content):
    """A graph file with a section that is not an array starts empty."""
    path = tmp_path / "memory.json"
    path.write_text(json.dumps(content))

    assert GraphStore(str(path)).load() == KnowledgeGraph()


def test_round_trip(tmp_path):
    """Saving and reloading yields an equal graph with observation order kept."""
    path = str(tmp_path / "nested" / "memory.json")
    store = GraphStore(path)
    store.upsert_entity(Entity("Alice", "person", ["b", "a", "b"]))
    store.upsert_entity(Entity("Bob", "person", []))
    store.upsert_relation(knows("Alice", "Bob"))
    store.save()

    reloaded = GraphStore(path).load()

    assert reloaded == store.graph
    assert reloaded.entities["Alice"].observations == ["b", "a", "b"]


def test_file_format(store):
    store.upsert_entity(Entity("Alice", "person", ["likes tea"]))
    store.upsert_entity(Entity("Bob", "person", []))
    store.upsert_relation(knows("Alice", "Bob"))
    store.save()

    text = store.path.read_text()
    data = json.loads(text)

    assert data == {
        "entities": [
            {"name": "Alice", "entityType": "person", "observations": ["likes tea"]},
            {"name": "Bob", "entityType": "person", "observations": []},
        ],
        "relations": [{"from": "Alice", "to": "Bob", "relationType": "knows"}],
    }
    assert text.startswith("{\n  ")
    assert list(store.path.parent.glob("*.tmp")) == []


def test_upsert_entity_last_write_wins(store):
    store.upsert_entity(Entity("Alice", "person", ["one"]))
    store.upsert_entity(Entity("Alice", "robot", ["two"]))

    assert list(store.graph.entities) == ["Alice"]
    assert store.get_entity("Alice") == Entity("Alice", "robot", ["two"])


def test_upsert_entity_copies_input(store):
    entity = Entity("Alice", "person", ["one"])
    store.upsert_entity(entity)
    entity.observations.append("mutated")

    assert store.get_entity("Alice").observations == ["one"]


@pytest.mark.parametrize("relation", [knows("Alice", "Ghost"), knows("Ghost", "Alice")])
def test_relation_requires_both_endpoints(store, relation):
    store.upsert_entity(Entity("Alice", "person", []))

    with pytest.raises(NotFoundError, match="Entity not found: Ghost"):
        store.upsert_relation(relation)

    assert store.graph.relations == {}


def test_relation_identity_is_unique(store):
    store.upsert_entity(Entity("A", "t", []))
    store.upsert_entity(Entity("B", "t", []))

    store.upsert_relation(knows("A", "B"))
    store.upsert_relation(knows("A", "B"))
    store.upsert_relation(Relation("A", "B", "likes"))

    assert len(store.graph.relations) == 2


def test_cascade_delete(store):
    """Deleting B removes every relation touching B and nothing else."""
    for name in "ABCD":
        store.upsert_entity(Entity(name, "node", []))
    store.upsert_relation(knows("A", "B"))
    store.upsert_relation(knows("B", "C"))
    store.upsert_relation(knows("C", "D"))

    removed = store.delete_entity("B")

    assert set(store.graph.entities) == {"A", "C", "D"}
    assert set(removed) == {knows("A", "B"), knows("B", "C")}
    assert list(store.graph.relations.values()) == [knows("C", "D")]


def test_delete_unknown_entity_is_noop(store):
    assert store.delete_entity("Nobody") == []


def test_delete_observations_filter_semantics(store):
    store.upsert_entity(Entity("E", "t", ["x", "y", "x"]))

    entity = store.delete_observations("E", ["x", "never-there"])

    assert entity.observations == ["y"]


def test_observation_calls_require_entity(store):
    with pytest.raises(NotFoundError):
        store.append_observations("Nobody", ["x"])
    with pytest.raises(NotFoundError):
        store.delete_observations("Nobody", ["x"])


def test_append_observations_keeps_duplicates(store):
    store.upsert_entity(Entity("E", "t", ["x"]))

    store.append_observations("E", ["x", "y"])

    assert store.get_entity("E").observations == ["x", "x", "y"]


def test_delete_relation(store):
    store.upsert_entity(Entity("A", "t", []))
    store.upsert_entity(Entity("B", "t", []))
    store.upsert_relation(knows("A", "B"))

    assert store.delete_relation(knows("A", "B")) is True
    assert store.delete_relation(knows("A", "B")) is False


def test_snapshot_is_independent(store):
    store.upsert_entity(Entity("E", "t", ["x"]))

    snapshot = store.snapshot()
    store.append_observations("E", ["y"])

    assert snapshot.entities["E"].observations == ["x"]
