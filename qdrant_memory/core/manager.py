"""
Knowledge graph façade.

Every mutation runs in three steps: change the in-memory graph, write each
touched element to the vector index one at a time, then save the whole
graph file. A failure in any step stops the call; nothing already applied
is rolled back, and the file is not saved for that call. `rebuild_index`
re-aligns the index with the graph afterwards.
"""

from typing import Iterable, List, Optional

from .config import Settings, get_embedding_provider, get_vector_index
from .graph_store import GraphStore
from .schema import Entity, KnowledgeGraph, Relation
from .synchronizer import SearchHit, Synchronizer
from ..util.logging import logger


class KnowledgeGraphManager:
    """Graph operations with write-through to the vector index."""

    def __init__(self, store: GraphStore, synchronizer: Synchronizer):
        self.store = store
        self.synchronizer = synchronizer

    @classmethod
    def from_settings(cls, settings: Settings) -> "KnowledgeGraphManager":
        """Wire the store, embedding provider and vector index from settings."""
        synchronizer = Synchronizer(
            embedding_provider=get_embedding_provider(settings),
            vector_index=get_vector_index(settings),
        )
        return cls(GraphStore(settings.memory_file_path), synchronizer)

    def initialize(self) -> None:
        """Load the graph file and make sure the collection matches the provider."""
        self.store.load()
        self.synchronizer.ensure_index()

    def create_entities(self, entities: Iterable[Entity]) -> None:
        count = 0
        for entity in entities:
            stored = self.store.upsert_entity(entity)
            self.synchronizer.on_entity_upserted(stored)
            count += 1
        self.store.save()
        logger.log_graph_operation("create_entities", count)

    def create_relations(self, relations: Iterable[Relation]) -> None:
        """Add relations in order. Stops at the first one with a missing endpoint."""
        count = 0
        for relation in relations:
            self.store.upsert_relation(relation)
            self.synchronizer.on_relation_upserted(relation)
            count += 1
        self.store.save()
        logger.log_graph_operation("create_relations", count)

    def add_observations(self, entity_name: str, contents: List[str]) -> None:
        entity = self.store.append_observations(entity_name, contents)
        self.synchronizer.on_entity_upserted(entity)
        self.store.save()
        logger.log_graph_operation("add_observations", len(contents), {"entity": entity_name})

    def delete_entities(self, entity_names: Iterable[str]) -> None:
        """Delete entities and the relations touching them. Unknown names are skipped."""
        count = 0
        for name in entity_names:
            if self.store.get_entity(name) is None:
                continue
            removed = self.store.delete_entity(name)
            self.synchronizer.on_entity_deleted(name)
            for relation in removed:
                self.synchronizer.on_relation_deleted(relation)
            count += 1
        self.store.save()
        logger.log_graph_operation("delete_entities", count)

    def delete_observations(self, entity_name: str, observations: List[str]) -> None:
        entity = self.store.delete_observations(entity_name, observations)
        self.synchronizer.on_entity_upserted(entity)
        self.store.save()
        logger.log_graph_operation("delete_observations", len(observations), {"entity": entity_name})

    def delete_relations(self, relations: Iterable[Relation]) -> None:
        count = 0
        for relation in relations:
            if not self.store.delete_relation(relation):
                continue
            self.synchronizer.on_relation_deleted(relation)
            count += 1
        self.store.save()
        logger.log_graph_operation("delete_relations", count)

    def read_graph(self) -> KnowledgeGraph:
        return self.store.snapshot()

    def search_similar(self, query: str, limit: Optional[int] = 10) -> List[SearchHit]:
        return self.synchronizer.search(query, 10 if limit is None else limit)

    def rebuild_index(self) -> int:
        """Recreate the collection from the graph. Returns the number of points written."""
        graph = self.store.snapshot()
        written = self.synchronizer.reindex(
            list(graph.entities.values()), list(graph.relations.values())
        )
        logger.log_graph_operation("rebuild_index", written)
        return written
