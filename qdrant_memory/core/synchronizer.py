"""
Keeps the vector index a projection of the graph.

Each graph element becomes one point: an entity under the id derived from
its name, a relation under the id derived from "{from}-{relationType}-{to}".
The payload carries the full element plus a `type` tag so search hits can
be turned back into graph records.
"""

from typing import Any, Dict, List, Optional, Union

from .identifiers import derive_point_id, entity_key, relation_key
from .schema import Entity, Relation
from ..util.logging import logger
from ..vector.embeddings import IEmbeddingProvider
from ..vector.index import IVectorIndex
from ..vector.types import VectorRecord

SearchHit = Union[Entity, Relation]


def entity_text(entity: Entity) -> str:
    return f"{entity.name} ({entity.entity_type}): {'. '.join(entity.observations)}"


def relation_text(relation: Relation) -> str:
    return f"{relation.from_entity} {relation.relation_type} {relation.to_entity}"


def _str_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(v, str) for v in value)


def parse_payload(payload: Optional[Dict[str, Any]]) -> Optional[SearchHit]:
    """Turn a tagged payload back into an Entity or Relation.

    Returns None for anything that is not a well-formed entity or relation.
    """
    if not isinstance(payload, dict):
        return None

    kind = payload.get("type")
    if kind == "entity":
        name = payload.get("name")
        entity_type = payload.get("entityType")
        observations = payload.get("observations")
        if isinstance(name, str) and isinstance(entity_type, str) and _str_list(observations):
            return Entity(name=name, entity_type=entity_type, observations=list(observations))
    elif kind == "relation":
        values = [payload.get(k) for k in ("from", "to", "relationType")]
        if all(isinstance(v, str) for v in values):
            return Relation(from_entity=values[0], to_entity=values[1], relation_type=values[2])
    return None


class Synchronizer:
    """Write-through bridge from graph mutations to the vector index."""

    def __init__(self, embedding_provider: IEmbeddingProvider, vector_index: IVectorIndex):
        self.embedding_provider = embedding_provider
        self.vector_index = vector_index

    def ensure_index(self) -> None:
        self.vector_index.ensure_collection(self.embedding_provider.get_dimension())

    def _upsert(self, natural_key: str, text: str, payload: Dict[str, Any]) -> int:
        point_id = derive_point_id(natural_key)
        try:
            vector = self.embedding_provider.embed_text(text)
            self.vector_index.upsert(VectorRecord(id=point_id, vector=vector, payload=payload))
        except Exception as e:
            logger.log_sync_failure("upsert", natural_key, e)
            raise
        return point_id

    def _delete(self, natural_key: str) -> int:
        point_id = derive_point_id(natural_key)
        try:
            self.vector_index.delete([point_id])
        except Exception as e:
            logger.log_sync_failure("delete", natural_key, e)
            raise
        return point_id

    def on_entity_upserted(self, entity: Entity) -> int:
        payload = {"type": "entity", **entity.to_dict()}
        return self._upsert(entity_key(entity.name), entity_text(entity), payload)

    def on_relation_upserted(self, relation: Relation) -> int:
        payload = {"type": "relation", **relation.to_dict()}
        return self._upsert(relation_key(relation), relation_text(relation), payload)

    def on_entity_deleted(self, name: str) -> int:
        return self._delete(entity_key(name))

    def on_relation_deleted(self, relation: Relation) -> int:
        return self._delete(relation_key(relation))

    def reindex(self, entities: List[Entity], relations: List[Relation]) -> int:
        """Recreate the collection and write every element again."""
        self.vector_index.recreate_collection(self.embedding_provider.get_dimension())
        for entity in entities:
            self.on_entity_upserted(entity)
        for relation in relations:
            self.on_relation_upserted(relation)
        return len(entities) + len(relations)

    def search(self, query: str, limit: int = 10) -> List[SearchHit]:
        """Entities and relations nearest to the query, best first."""
        if limit <= 0:
            return []

        vector = self.embedding_provider.embed_text(query)
        hits = self.vector_index.search(vector, limit=limit)
        hits = sorted(hits, key=lambda h: h.score, reverse=True)[:limit]

        results = []
        for hit in hits:
            record = parse_payload(hit.payload)
            if record is None:
                logger.debug(f"Dropping search hit {hit.id} with unrecognized payload")
                continue
            results.append(record)
        return results
