"""
Error taxonomy for the knowledge graph and its vector index.

Every error reaching the manager boundary is one of these, carrying a
human-readable message. Protocol adapters map them to their own codes.
"""


class KnowledgeGraphError(Exception):
    """Base class for all knowledge graph errors."""


class ConfigurationError(KnowledgeGraphError):
    """Settings are missing or invalid."""


class ValidationError(KnowledgeGraphError):
    """An entity or relation is malformed."""


class NotFoundError(KnowledgeGraphError, LookupError):
    """An operation referenced an entity that does not exist."""

    def __init__(self, entity_name: str):
        self.entity_name = entity_name
        super().__init__(f"Entity not found: {entity_name}")


class ProviderError(KnowledgeGraphError):
    """The embedding provider failed or returned a malformed vector."""


class VectorIndexError(KnowledgeGraphError):
    """The vector index rejected an operation."""


class VectorStoreConnectionError(VectorIndexError, ConnectionError):
    """The vector index could not be reached."""


class IndexSchemaError(VectorIndexError):
    """The remote collection's vector configuration is unreadable."""
