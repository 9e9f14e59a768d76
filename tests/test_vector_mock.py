"""
In-memory vector index and the shared collection lifecycle.
"""

import pytest

from qdrant_memory.core.errors import IndexSchemaError, VectorIndexError
from qdrant_memory.vector.index import IVectorIndex, SimpleInMemoryVectorIndex
from qdrant_memory.vector.types import CollectionInfo, VectorRecord


@pytest.fixture
def index():
    idx = SimpleInMemoryVectorIndex("test_collection")
    idx.ensure_collection(3)
    return idx


def test_vector_index_interface():
    """Test that SimpleInMemoryVectorIndex implements IVectorIndex."""
    assert isinstance(SimpleInMemoryVectorIndex(), IVectorIndex)


def test_ensure_creates_missing_collection():
    idx = SimpleInMemoryVectorIndex("kg")
    assert idx.list_collections() == []

    idx.ensure_collection(768)

    assert idx.list_collections() == ["kg"]
    assert idx.describe_collection().dimension == 768


def test_ensure_is_idempotent(index):
    """Same dimension keeps the collection and its points."""
    index.upsert(VectorRecord(id=1, vector=[1.0, 0.0, 0.0], payload={"type": "entity"}))

    index.ensure_collection(3)

    assert len(index.search([1.0, 0.0, 0.0], limit=5)) == 1


def test_dimension_migration_recreates(index):
    """A different dimension drops every point and reconfigures the collection."""
    index.upsert(VectorRecord(id=1, vector=[1.0, 0.0, 0.0], payload={"type": "entity"}))

    index.ensure_collection(2)

    assert index.describe_collection().dimension == 2
    assert index.search([1.0, 0.0], limit=5) == []


def test_upsert_replaces_same_id(index):
    index.upsert(VectorRecord(id=7, vector=[1.0, 0.0, 0.0], payload={"v": 1}))
    index.upsert(VectorRecord(id=7, vector=[0.0, 1.0, 0.0], payload={"v": 2}))

    results = index.search([0.0, 1.0, 0.0], limit=5)
    assert len(results) == 1
    assert results[0].payload == {"v": 2}
    assert results[0].score == pytest.approx(1.0)


def test_search_orders_by_similarity_and_limits(index):
    """Test that search returns results ordered by similarity."""
    index.upsert(VectorRecord(id=1, vector=[1.0, 0.0, 0.0], payload={"name": "a"}))
    index.upsert(VectorRecord(id=2, vector=[0.7, 0.7, 0.0], payload={"name": "b"}))
    index.upsert(VectorRecord(id=3, vector=[0.0, 0.0, 1.0], payload={"name": "c"}))

    results = index.search([1.0, 0.1, 0.0], limit=2)

    assert [r.id for r in results] == [1, 2]
    assert results[0].score >= results[1].score


def test_delete_ignores_unknown_ids(index):
    index.upsert(VectorRecord(id=1, vector=[1.0, 0.0, 0.0], payload={}))

    index.delete([1, 999])
    index.delete([1])

    assert index.search([1.0, 0.0, 0.0], limit=5) == []


def test_wrong_vector_length_rejected(index):
    with pytest.raises(VectorIndexError, match="expected dim: 3"):
        index.upsert(VectorRecord(id=1, vector=[1.0, 0.0], payload={}))


def test_missing_collection_rejected():
    with pytest.raises(VectorIndexError, match="Collection not found"):
        SimpleInMemoryVectorIndex("absent").search([1.0], limit=1)


class _UnreadableSchemaIndex(SimpleInMemoryVectorIndex):
    """Reports the collection as present but its vector config as unreadable once."""

    def __init__(self):
        super().__init__("kg")
        self.create_collection(4)
        self.broken = True

    def describe_collection(self, name=None):
        if self.broken:
            self.broken = False
            raise IndexSchemaError("no vector size")
        return super().describe_collection(name)


def test_unreadable_schema_is_recreated():
    """An unreadable vector config is handled by recreating, not raised."""
    idx = _UnreadableSchemaIndex()

    idx.ensure_collection(8)

    assert idx.describe_collection() == CollectionInfo(name="kg", dimension=8)
