"""
Runtime configuration.

Settings are read from the environment (and a `.env` file, if present) once
at process start and passed explicitly to the factories below. Nothing in
the package reads the environment after that.
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from .errors import ConfigurationError

VERSION = "0.7.0"

DEFAULT_COLLECTION_NAME = "knowledge_graph"


class EmbeddingProviderType(str, Enum):
    OPENAI = "openai"
    OLLAMA = "ollama"
    LMSTUDIO = "lmstudio"
    LOCAL = "local"
    HASH = "hash"


class VectorProviderType(str, Enum):
    QDRANT = "qdrant"
    MEMORY = "memory"


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass
class Settings:
    # Graph persistence
    memory_file_path: str = "./data/memory.json"

    # Embedding provider
    embedding_provider: str = EmbeddingProviderType.OPENAI.value
    openai_api_key: Optional[str] = None
    openai_embedding_model: str = "text-embedding-ada-002"
    openai_embedding_dimension: int = 1536
    ollama_url: str = "http://localhost:11434"
    ollama_embedding_model: str = "nomic-embed-text"
    ollama_dimension: int = 768
    lmstudio_url: str = "http://localhost:1234/v1"
    lmstudio_model: str = "embedding-model"
    lmstudio_dimension: int = 768
    local_embedding_model: str = "all-mpnet-base-v2"
    hash_dimension: int = 384

    # Vector index
    vector_provider: str = VectorProviderType.QDRANT.value
    qdrant_url: Optional[str] = None
    qdrant_collection_name: Optional[str] = None
    qdrant_api_key: Optional[str] = None

    # Remote call behaviour
    request_timeout_sec: float = 60.0
    connect_max_attempts: int = 3
    connect_initial_delay_sec: float = 2.0

    # Runtime
    log_level: str = "INFO"
    debug: bool = False
    api_host: str = "127.0.0.1"
    api_port: int = 8000

    # Problems found while parsing the environment, reported by validate()
    parse_errors: List[str] = field(default_factory=list, repr=False)

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "Settings":
        """Build settings from the process environment.

        Numeric variables that fail to parse keep their raw value out of the
        struct and are reported by `validate()` instead of raising here.
        """
        candidates = [Path(env_file)] if env_file else [Path.cwd() / ".env"]
        for p in candidates:
            if p.exists():
                load_dotenv(p, override=False)

        settings = cls(
            memory_file_path=os.getenv("MEMORY_FILE_PATH", cls.memory_file_path),
            embedding_provider=os.getenv("EMBEDDING_PROVIDER", cls.embedding_provider).lower(),
            openai_api_key=os.getenv("OPENAI_API_KEY"),
            openai_embedding_model=os.getenv("OPENAI_EMBEDDING_MODEL", cls.openai_embedding_model),
            ollama_url=os.getenv("OLLAMA_URL", cls.ollama_url),
            ollama_embedding_model=os.getenv("OLLAMA_EMBEDDING_MODEL", cls.ollama_embedding_model),
            lmstudio_url=os.getenv("LMSTUDIO_URL", cls.lmstudio_url),
            lmstudio_model=os.getenv("LMSTUDIO_MODEL", cls.lmstudio_model),
            local_embedding_model=os.getenv("LOCAL_EMBEDDING_MODEL", cls.local_embedding_model),
            vector_provider=os.getenv("VECTOR_PROVIDER", cls.vector_provider).lower(),
            qdrant_url=os.getenv("QDRANT_URL"),
            qdrant_collection_name=os.getenv("QDRANT_COLLECTION_NAME"),
            qdrant_api_key=os.getenv("QDRANT_API_KEY"),
            log_level=os.getenv("LOG_LEVEL", cls.log_level),
            debug=_env_bool("DEBUG", "false"),
            api_host=os.getenv("API_HOST", cls.api_host),
        )

        numeric = {
            "openai_embedding_dimension": ("OPENAI_EMBEDDING_DIMENSION", int),
            "ollama_dimension": ("OLLAMA_DIMENSION", int),
            "lmstudio_dimension": ("LMSTUDIO_DIMENSION", int),
            "hash_dimension": ("HASH_DIMENSION", int),
            "request_timeout_sec": ("REQUEST_TIMEOUT_SEC", float),
            "connect_max_attempts": ("CONNECT_MAX_ATTEMPTS", int),
            "connect_initial_delay_sec": ("CONNECT_INITIAL_DELAY_SEC", float),
            "api_port": ("API_PORT", int),
        }
        for attr, (var, cast) in numeric.items():
            raw = os.getenv(var)
            if raw is None:
                continue
            try:
                setattr(settings, attr, cast(raw))
            except ValueError:
                settings.parse_errors.append(f"{var} must be a number, got {raw!r}")

        return settings

    def validate(self) -> List[str]:
        """Validate settings and return any issues."""
        issues = list(self.parse_errors)

        providers = [p.value for p in EmbeddingProviderType]
        if self.embedding_provider not in providers:
            issues.append(f"Invalid EMBEDDING_PROVIDER: {self.embedding_provider} (expected one of {providers})")
        elif self.embedding_provider == EmbeddingProviderType.OPENAI.value and not self.openai_api_key:
            issues.append("OPENAI_API_KEY is required when using OpenAI embeddings")

        vector_providers = [p.value for p in VectorProviderType]
        if self.vector_provider not in vector_providers:
            issues.append(f"Invalid VECTOR_PROVIDER: {self.vector_provider} (expected one of {vector_providers})")
        elif self.vector_provider == VectorProviderType.QDRANT.value:
            if not self.qdrant_url:
                issues.append("QDRANT_URL is required")
            elif not self.qdrant_url.startswith(("http://", "https://")):
                issues.append("QDRANT_URL must start with http:// or https://")
            if not self.qdrant_collection_name:
                issues.append("QDRANT_COLLECTION_NAME is required")

        for name in ("openai_embedding_dimension", "ollama_dimension", "lmstudio_dimension", "hash_dimension"):
            if getattr(self, name) < 1:
                issues.append(f"{name.upper()} must be >= 1")

        if self.connect_max_attempts < 1:
            issues.append("CONNECT_MAX_ATTEMPTS must be >= 1")

        if self.request_timeout_sec <= 0:
            issues.append("REQUEST_TIMEOUT_SEC must be > 0")

        return issues

    @property
    def collection_name(self) -> str:
        return self.qdrant_collection_name or DEFAULT_COLLECTION_NAME


def ensure_data_directory(settings: Settings) -> None:
    """Ensure the graph file's directory exists."""
    Path(settings.memory_file_path).parent.mkdir(parents=True, exist_ok=True)


def get_embedding_provider(settings: Settings):
    """Build the embedding provider selected by EMBEDDING_PROVIDER."""
    from ..vector.embeddings import (
        DeterministicHashEmbedding,
        LMStudioEmbedding,
        OllamaEmbedding,
        OpenAIEmbedding,
        SentenceTransformerEmbedding,
    )

    try:
        provider = EmbeddingProviderType(settings.embedding_provider)
    except ValueError:
        raise ConfigurationError(f"Unknown embedding provider: {settings.embedding_provider}")

    if provider == EmbeddingProviderType.OPENAI:
        if not settings.openai_api_key:
            raise ConfigurationError("OPENAI_API_KEY is required for OpenAI embedding provider")
        return OpenAIEmbedding(
            api_key=settings.openai_api_key,
            model=settings.openai_embedding_model,
            dimension=settings.openai_embedding_dimension,
            timeout=settings.request_timeout_sec,
        )
    if provider == EmbeddingProviderType.OLLAMA:
        return OllamaEmbedding(
            host=settings.ollama_url,
            model=settings.ollama_embedding_model,
            dimension=settings.ollama_dimension,
            timeout=settings.request_timeout_sec,
        )
    if provider == EmbeddingProviderType.LMSTUDIO:
        return LMStudioEmbedding(
            base_url=settings.lmstudio_url,
            model=settings.lmstudio_model,
            dimension=settings.lmstudio_dimension,
            timeout=settings.request_timeout_sec,
        )
    if provider == EmbeddingProviderType.LOCAL:
        return SentenceTransformerEmbedding(settings.local_embedding_model)
    return DeterministicHashEmbedding(dimension=settings.hash_dimension)


def get_vector_index(settings: Settings):
    """Build the vector index client selected by VECTOR_PROVIDER."""
    try:
        provider = VectorProviderType(settings.vector_provider)
    except ValueError:
        raise ConfigurationError(f"Unknown vector provider: {settings.vector_provider}")

    if provider == VectorProviderType.MEMORY:
        from ..vector.index import SimpleInMemoryVectorIndex
        return SimpleInMemoryVectorIndex(settings.collection_name)

    if not settings.qdrant_url:
        raise ConfigurationError("QDRANT_URL is required for the qdrant vector provider")

    from ..vector.qdrant_index import QdrantVectorIndex
    return QdrantVectorIndex(
        collection_name=settings.collection_name,
        url=settings.qdrant_url,
        api_key=settings.qdrant_api_key,
        timeout=settings.request_timeout_sec,
        max_attempts=settings.connect_max_attempts,
        initial_delay=settings.connect_initial_delay_sec,
    )
