"""
Request and response models for the HTTP adapter. Field names follow the
graph file format (`entityType`, `from`, `to`, `relationType`).
"""

from pydantic import BaseModel, Field, field_validator, ConfigDict
from typing import Any, Dict, List, Optional

from ..core.schema import Entity, Relation


class EntityModel(BaseModel):
    name: str
    entityType: str
    observations: List[str]

    def to_entity(self) -> Entity:
        return Entity(name=self.name, entity_type=self.entityType, observations=list(self.observations))


class RelationModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_: str = Field(alias="from")
    to: str
    relationType: str

    def to_relation(self) -> Relation:
        return Relation(from_entity=self.from_, to_entity=self.to, relation_type=self.relationType)


class CreateEntitiesRequest(BaseModel):
    entities: List[EntityModel]


class RelationsRequest(BaseModel):
    relations: List[RelationModel]


class ObservationAddition(BaseModel):
    entityName: str
    contents: List[str]


class AddObservationsRequest(BaseModel):
    observations: List[ObservationAddition]


class DeleteEntitiesRequest(BaseModel):
    entityNames: List[str]


class ObservationDeletion(BaseModel):
    entityName: str
    observations: List[str]


class DeleteObservationsRequest(BaseModel):
    deletions: List[ObservationDeletion]


class SearchRequest(BaseModel):
    query: str
    limit: Optional[int] = 10

    @field_validator('query')
    @classmethod
    def query_must_not_be_empty(cls, v):
        if not v.strip():
            raise ValueError('query cannot be empty')
        return v

    @field_validator('limit')
    @classmethod
    def limit_must_be_positive(cls, v):
        if v is not None and v < 1:
            raise ValueError('limit must be at least 1')
        return v


class MessageResponse(BaseModel):
    message: str


class GraphResponse(BaseModel):
    entities: List[Dict[str, Any]]
    relations: List[Dict[str, Any]]


class SearchResponse(BaseModel):
    results: List[Dict[str, Any]]


class RebuildResponse(BaseModel):
    message: str
    points: int


class HealthResponse(BaseModel):
    status: str
    version: str
    entity_count: int
    relation_count: int


class ErrorResponse(BaseModel):
    error_type: str
    message: str
