"""
Knowledge graph records.

Field names follow Python conventions; `to_dict`/`from_dict` use the wire
and file format keys (`entityType`, `from`, `to`, `relationType`).
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

from .errors import ValidationError


def _require_str(data: Dict[str, Any], key: str, kind: str) -> str:
    value = data.get(key)
    if not isinstance(value, str):
        raise ValidationError(f"{kind} {key} must be a string")
    return value


@dataclass
class Entity:
    name: str
    entity_type: str
    observations: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "entityType": self.entity_type,
            "observations": list(self.observations),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Entity":
        if not isinstance(data, dict):
            raise ValidationError("each entity must be an object")
        observations = data.get("observations")
        if not isinstance(observations, list):
            raise ValidationError("entity observations must be an array")
        if not all(isinstance(obs, str) for obs in observations):
            raise ValidationError("all observations must be strings")
        return cls(
            name=_require_str(data, "name", "entity"),
            entity_type=_require_str(data, "entityType", "entity"),
            observations=list(observations),
        )

    def copy(self) -> "Entity":
        return Entity(self.name, self.entity_type, list(self.observations))


@dataclass(frozen=True)
class Relation:
    """Directed typed edge. Identity is the (from, to, type) triple."""

    from_entity: str
    to_entity: str
    relation_type: str

    @property
    def identity(self) -> Tuple[str, str, str]:
        return (self.from_entity, self.to_entity, self.relation_type)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from": self.from_entity,
            "to": self.to_entity,
            "relationType": self.relation_type,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Relation":
        if not isinstance(data, dict):
            raise ValidationError("each relation must be an object")
        return cls(
            from_entity=_require_str(data, "from", "relation"),
            to_entity=_require_str(data, "to", "relation"),
            relation_type=_require_str(data, "relationType", "relation"),
        )


@dataclass
class KnowledgeGraph:
    """Entities keyed by name and relations keyed by identity, insertion ordered."""

    entities: Dict[str, Entity] = field(default_factory=dict)
    relations: Dict[Tuple[str, str, str], Relation] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entities": [e.to_dict() for e in self.entities.values()],
            "relations": [r.to_dict() for r in self.relations.values()],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "KnowledgeGraph":
        if not isinstance(data, dict):
            raise ValidationError("graph must be an object")
        raw_entities = data.get("entities") or []
        raw_relations = data.get("relations") or []
        if not isinstance(raw_entities, list):
            raise ValidationError("graph entities must be an array")
        if not isinstance(raw_relations, list):
            raise ValidationError("graph relations must be an array")

        graph = cls()
        for raw in raw_entities:
            entity = Entity.from_dict(raw)
            graph.entities[entity.name] = entity
        for raw in raw_relations:
            relation = Relation.from_dict(raw)
            graph.relations[relation.identity] = relation
        return graph

    def copy(self) -> "KnowledgeGraph":
        return KnowledgeGraph(
            entities={name: e.copy() for name, e in self.entities.items()},
            relations=dict(self.relations),
        )
