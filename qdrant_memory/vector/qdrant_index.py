"""
Qdrant-backed vector index.

Every call goes through the connection gate first. Transport failures drop
the remembered connection so the next call retries from scratch; server
rejections surface as VectorIndexError without touching the connection.
"""

import time
from typing import Any, Callable, List, Optional

import httpx
from qdrant_client import QdrantClient
from qdrant_client.http.exceptions import ResponseHandlingException, UnexpectedResponse
from qdrant_client.models import Distance, PointIdsList, PointStruct, VectorParams

from ..core.errors import IndexSchemaError, VectorIndexError, VectorStoreConnectionError
from ..util.logging import logger
from .connection import ResilientConnection
from .index import IVectorIndex
from .types import CollectionInfo, QueryResult, VectorRecord

TRANSPORT_ERRORS = (ResponseHandlingException, httpx.TransportError, ConnectionError, TimeoutError)


class QdrantVectorIndex(IVectorIndex):
    """IVectorIndex over a Qdrant collection using the REST client."""

    def __init__(self, collection_name: str, url: Optional[str] = None,
                 api_key: Optional[str] = None, timeout: float = 60.0,
                 client: Optional[QdrantClient] = None, max_attempts: int = 3,
                 initial_delay: float = 2.0, sleep: Callable[[float], None] = time.sleep):
        super().__init__(collection_name)
        if client is None:
            if not url:
                raise VectorIndexError("A Qdrant URL or client is required")
            client = QdrantClient(url=url, api_key=api_key, timeout=int(timeout), check_compatibility=False)
        self.client = client
        self.connection = ResilientConnection(
            self.client.get_collections,
            max_attempts=max_attempts,
            initial_delay=initial_delay,
            sleep=sleep,
        )

    def _call(self, operation: str, fn: Callable[..., Any], *args, **kwargs) -> Any:
        self.connection.ensure()
        try:
            return fn(*args, **kwargs)
        except TRANSPORT_ERRORS as e:
            self.connection.reset()
            raise VectorStoreConnectionError(f"Qdrant {operation} failed: {e}") from e
        except UnexpectedResponse as e:
            raise VectorIndexError(f"Qdrant {operation} rejected: {e}") from e

    def list_collections(self) -> List[str]:
        response = self._call("get_collections", self.client.get_collections)
        return [c.name for c in response.collections]

    def describe_collection(self, name: Optional[str] = None) -> CollectionInfo:
        name = name or self.collection_name
        info = self._call("get_collection", self.client.get_collection, name)

        params = getattr(getattr(info, "config", None), "params", None)
        vectors = getattr(params, "vectors", None)
        size = getattr(vectors, "size", None)
        if not isinstance(size, int):
            raise IndexSchemaError(f"Collection {name} has no readable vector size")

        distance = getattr(vectors, "distance", None)
        return CollectionInfo(
            name=name,
            dimension=size,
            distance=str(getattr(distance, "value", distance) or "cosine").lower(),
        )

    def create_collection(self, dimension: int) -> None:
        self._call(
            "create_collection",
            self.client.create_collection,
            collection_name=self.collection_name,
            vectors_config=VectorParams(size=dimension, distance=Distance.COSINE),
        )

    def drop_collection(self) -> None:
        self._call("delete_collection", self.client.delete_collection, collection_name=self.collection_name)

    def upsert(self, record: VectorRecord) -> None:
        self._call(
            "upsert",
            self.client.upsert,
            collection_name=self.collection_name,
            points=[PointStruct(id=record.id, vector=list(record.vector), payload=record.payload)],
            wait=True,
        )
        logger.log_vector_operation("upsert", record.id, {"type": record.payload.get("type")})

    def search(self, vector: List[float], limit: int = 10) -> List[QueryResult]:
        response = self._call(
            "query_points",
            self.client.query_points,
            collection_name=self.collection_name,
            query=list(vector),
            limit=limit,
            with_payload=True,
        )
        return [
            QueryResult(id=point.id, score=point.score, payload=point.payload)
            for point in response.points
        ]

    def delete(self, ids: List[int]) -> None:
        if not ids:
            return
        self._call(
            "delete",
            self.client.delete,
            collection_name=self.collection_name,
            points_selector=PointIdsList(points=list(ids)),
            wait=True,
        )
        for point_id in ids:
            logger.log_vector_operation("delete", point_id)
