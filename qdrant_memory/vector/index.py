"""
Vector index capability bound to one named collection, plus an in-memory
variant used offline and in tests. The index is a projection of the graph
file; recreating a collection loses nothing that `rebuild_index` cannot
restore.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional
import numpy as np

from ..core.errors import IndexSchemaError, VectorIndexError
from ..util.logging import logger
from .types import CollectionInfo, QueryResult, VectorRecord


class IVectorIndex(ABC):
    """Abstract interface for a vector collection."""

    def __init__(self, collection_name: str):
        self.collection_name = collection_name

    @abstractmethod
    def list_collections(self) -> List[str]:
        """Names of every collection on the server."""
        pass

    @abstractmethod
    def describe_collection(self, name: Optional[str] = None) -> CollectionInfo:
        """Vector configuration of an existing collection.

        Raises IndexSchemaError when the dimension cannot be read.
        """
        pass

    @abstractmethod
    def create_collection(self, dimension: int) -> None:
        """Create the bound collection with cosine distance."""
        pass

    @abstractmethod
    def drop_collection(self) -> None:
        """Delete the bound collection and all of its points."""
        pass

    @abstractmethod
    def upsert(self, record: VectorRecord) -> None:
        """Write a point, replacing any point with the same id."""
        pass

    @abstractmethod
    def search(self, vector: List[float], limit: int = 10) -> List[QueryResult]:
        """Nearest points by cosine similarity, best first."""
        pass

    @abstractmethod
    def delete(self, ids: List[int]) -> None:
        """Delete points by id. Unknown ids are ignored."""
        pass

    def recreate_collection(self, dimension: int) -> None:
        """Drop and re-create the bound collection. All points are lost."""
        self.drop_collection()
        self.create_collection(dimension)
        logger.log_collection_event(
            "recreate", self.collection_name, {"dimension": dimension}, destructive=True
        )

    def ensure_collection(self, dimension: int) -> None:
        """Make the bound collection exist with the given vector size.

        A missing collection is created. An existing one whose dimension is
        different or unreadable is recreated.
        """
        if self.collection_name not in self.list_collections():
            self.create_collection(dimension)
            logger.log_collection_event("create", self.collection_name, {"dimension": dimension})
            return

        try:
            info = self.describe_collection()
        except IndexSchemaError as e:
            logger.warning(f"Collection {self.collection_name} has an unreadable vector config: {e}")
            self.recreate_collection(dimension)
            return

        if info.dimension != dimension:
            logger.warning(
                f"Collection {self.collection_name} dimension mismatch: "
                f"found {info.dimension}, expected {dimension}"
            )
            self.recreate_collection(dimension)


class SimpleInMemoryVectorIndex(IVectorIndex):
    """In-memory implementation of IVectorIndex using cosine similarity."""

    def __init__(self, collection_name: str = "knowledge_graph"):
        super().__init__(collection_name)
        self._collections: Dict[str, Dict] = {}  # name -> {"dimension", "points"}

    def _points(self) -> Dict[int, VectorRecord]:
        collection = self._collections.get(self.collection_name)
        if collection is None:
            raise VectorIndexError(f"Collection not found: {self.collection_name}")
        return collection["points"]

    def _check_dimension(self, vector: List[float]) -> None:
        expected = self._collections[self.collection_name]["dimension"]
        if len(vector) != expected:
            raise VectorIndexError(
                f"Vector dimension error: expected dim: {expected}, got {len(vector)}"
            )

    def list_collections(self) -> List[str]:
        return list(self._collections)

    def describe_collection(self, name: Optional[str] = None) -> CollectionInfo:
        name = name or self.collection_name
        collection = self._collections.get(name)
        if collection is None:
            raise VectorIndexError(f"Collection not found: {name}")
        return CollectionInfo(name=name, dimension=collection["dimension"])

    def create_collection(self, dimension: int) -> None:
        self._collections[self.collection_name] = {"dimension": dimension, "points": {}}

    def drop_collection(self) -> None:
        self._collections.pop(self.collection_name, None)

    def upsert(self, record: VectorRecord) -> None:
        points = self._points()
        self._check_dimension(record.vector)
        points[record.id] = VectorRecord(
            id=record.id,
            vector=np.asarray(record.vector, dtype=float),
            payload=dict(record.payload),
        )

    def search(self, vector: List[float], limit: int = 10) -> List[QueryResult]:
        points = self._points()
        self._check_dimension(vector)
        if not points or limit <= 0:
            return []

        query = np.asarray(vector, dtype=float)
        query_norm = np.linalg.norm(query)
        if query_norm == 0:
            return []
        query = query / query_norm

        scored = []
        for point_id, record in points.items():
            norm = np.linalg.norm(record.vector)
            score = float(np.dot(query, record.vector / norm)) if norm > 0 else 0.0
            scored.append((score, point_id))

        scored.sort(key=lambda x: x[0], reverse=True)

        return [
            QueryResult(id=point_id, score=score, payload=dict(points[point_id].payload))
            for score, point_id in scored[:limit]
        ]

    def delete(self, ids: List[int]) -> None:
        points = self._points()
        for point_id in ids:
            points.pop(point_id, None)
