"""
Authoritative knowledge graph held in memory and persisted as one JSON file.

Mutations here never touch the vector index and never write to disk; the
manager decides when to call `save()`.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Iterable, List, Optional

from .errors import NotFoundError, ValidationError
from .schema import Entity, KnowledgeGraph, Relation
from ..util.logging import logger


class GraphStore:
    """In-memory graph with whole-file JSON persistence."""

    def __init__(self, path: str):
        self.path = Path(path)
        self.graph = KnowledgeGraph()

    def load(self) -> KnowledgeGraph:
        """Read the graph file, starting empty if it is missing or unreadable."""
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            self.graph = KnowledgeGraph.from_dict(data)
        except FileNotFoundError:
            logger.info(f"No graph file at {self.path}, starting with an empty graph")
            self.graph = KnowledgeGraph()
        except (ValueError, OSError, ValidationError) as e:
            logger.warning(f"Could not read graph file {self.path}, starting empty: {e}")
            self.graph = KnowledgeGraph()

        logger.log_graph_operation(
            "load", len(self.graph.entities), {"relations": len(self.graph.relations)}
        )
        return self.graph

    def save(self) -> None:
        """Write the whole graph, replacing the file atomically."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self.graph.to_dict(), f, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

        logger.log_graph_operation(
            "save", len(self.graph.entities), {"relations": len(self.graph.relations)}
        )

    def get_entity(self, name: str) -> Optional[Entity]:
        return self.graph.entities.get(name)

    def _require_entity(self, name: str) -> Entity:
        entity = self.graph.entities.get(name)
        if entity is None:
            raise NotFoundError(name)
        return entity

    def upsert_entity(self, entity: Entity) -> Entity:
        """Insert or fully replace the entity with this name."""
        self.graph.entities[entity.name] = entity.copy()
        return self.graph.entities[entity.name]

    def upsert_relation(self, relation: Relation) -> Relation:
        """Insert a relation whose endpoints both exist."""
        self._require_entity(relation.from_entity)
        self._require_entity(relation.to_entity)
        self.graph.relations[relation.identity] = relation
        return relation

    def append_observations(self, name: str, contents: Iterable[str]) -> Entity:
        entity = self._require_entity(name)
        entity.observations.extend(contents)
        return entity

    def delete_entity(self, name: str) -> List[Relation]:
        """Remove an entity and every relation touching it.

        Returns the removed relations, empty when the entity was unknown.
        """
        if self.graph.entities.pop(name, None) is None:
            return []

        removed = [
            r for r in self.graph.relations.values()
            if r.from_entity == name or r.to_entity == name
        ]
        for relation in removed:
            del self.graph.relations[relation.identity]
        return removed

    def delete_observations(self, name: str, observations: Iterable[str]) -> Entity:
        """Drop every observation equal to one of the given strings."""
        entity = self._require_entity(name)
        to_remove = set(observations)
        entity.observations = [o for o in entity.observations if o not in to_remove]
        return entity

    def delete_relation(self, relation: Relation) -> bool:
        return self.graph.relations.pop(relation.identity, None) is not None

    def snapshot(self) -> KnowledgeGraph:
        return self.graph.copy()
