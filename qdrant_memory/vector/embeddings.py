"""
Embedding providers. Each provider maps text to a fixed-length vector whose
length is reported by `get_dimension()` and never changes for the provider's
lifetime. Remote failures and malformed replies surface as `ProviderError`.
"""

from abc import ABC, abstractmethod
import hashlib
import struct
from typing import Any, Optional

import httpx
import ollama
import openai
import requests

from ..core.errors import ProviderError


class IEmbeddingProvider(ABC):
    """Abstract interface for embedding providers."""

    @abstractmethod
    def embed_text(self, text: str) -> list[float]:
        """Generate embedding vector for given text."""
        pass

    @abstractmethod
    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        pass

    def _check_vector(self, vector: Any, provider: str) -> list[float]:
        if not isinstance(vector, (list, tuple)) or not all(isinstance(v, (int, float)) for v in vector):
            raise ProviderError(f"Invalid embedding format received from {provider}")
        expected = self.get_dimension()
        if len(vector) != expected:
            raise ProviderError(f"Embedding dimension mismatch. Expected {expected}, got {len(vector)}")
        return [float(v) for v in vector]


class DeterministicHashEmbedding(IEmbeddingProvider):
    """Deterministic hash-based embedding provider for tests and offline use.

    Identical text always yields the identical vector, so similarity between
    a query and a stored point is 1.0 only when the texts match exactly.
    No model or network access is needed.
    """

    def __init__(self, dimension: int = 384):
        self.dimension = dimension

    def embed_text(self, text: str) -> list[float]:
        """Generate deterministic embedding vector using SHA-256 blocks."""
        vector = []
        counter = 0
        while len(vector) < self.dimension:
            block = hashlib.sha256(f"{counter}:{text}".encode("utf-8")).digest()
            for (value,) in struct.iter_unpack(">I", block):
                # Map to [-1, 1] for cosine similarity
                vector.append((value / (2**32)) * 2 - 1)
            counter += 1

        return vector[:self.dimension]

    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        return self.dimension


class SentenceTransformerEmbedding(IEmbeddingProvider):
    """Sentence transformers embedding provider using pre-trained models.

    The model is loaded on first use. Requires the `local` extra.
    """

    def __init__(self, model_name: str = "all-mpnet-base-v2"):
        self.model_name = model_name
        self._model = None
        self._dimension = None

    @property
    def model(self):
        if self._model is None:
            try:
                from sentence_transformers import SentenceTransformer
                self._model = SentenceTransformer(self.model_name)
            except Exception as e:
                raise ProviderError(f"Could not load sentence-transformers model {self.model_name}: {e}") from e
        return self._model

    def embed_text(self, text: str) -> list[float]:
        """Generate embedding vector using sentence transformers."""
        model = self.model
        try:
            embedding = model.encode(text, convert_to_tensor=False)
        except Exception as e:
            raise ProviderError(f"sentence-transformers encode failed: {e}") from e
        return self._check_vector(embedding.tolist(), "sentence-transformers")

    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        if self._dimension is None:
            self._dimension = self.model.get_sentence_embedding_dimension()
        return self._dimension


class OpenAIEmbedding(IEmbeddingProvider):
    """OpenAI embeddings API provider."""

    def __init__(self, api_key: str, model: str = "text-embedding-ada-002",
                 dimension: int = 1536, timeout: float = 60.0,
                 client: Optional[openai.OpenAI] = None):
        self.model = model
        self.dimension = dimension
        self.client = client or openai.OpenAI(api_key=api_key, timeout=timeout)

    def embed_text(self, text: str) -> list[float]:
        try:
            response = self.client.embeddings.create(model=self.model, input=text)
        except openai.OpenAIError as e:
            raise ProviderError(f"OpenAI embedding request failed: {e}") from e

        data = getattr(response, "data", None)
        if not data:
            raise ProviderError("Invalid embedding format received from OpenAI")
        return self._check_vector(getattr(data[0], "embedding", None), "OpenAI")

    def get_dimension(self) -> int:
        return self.dimension


class OllamaEmbedding(IEmbeddingProvider):
    """Local Ollama embeddings via the ollama client."""

    def __init__(self, host: str = "http://localhost:11434", model: str = "nomic-embed-text",
                 dimension: int = 768, timeout: float = 60.0,
                 client: Optional[ollama.Client] = None):
        self.model = model
        self.dimension = dimension
        self.client = client or ollama.Client(host=host, timeout=timeout)

    def embed_text(self, text: str) -> list[float]:
        try:
            response = self.client.embed(model=self.model, input=text)
        except ollama.ResponseError as e:
            raise ProviderError(f"Ollama embedding error: {e}") from e
        except (httpx.HTTPError, ConnectionError) as e:
            raise ProviderError(f"Ollama unreachable: {e}") from e

        try:
            vector = response["embeddings"][0]
        except (KeyError, IndexError, TypeError):
            raise ProviderError("Invalid embedding format received from Ollama")
        return self._check_vector(vector, "Ollama")

    def get_dimension(self) -> int:
        return self.dimension


class LMStudioEmbedding(IEmbeddingProvider):
    """LM Studio's OpenAI-compatible `/embeddings` endpoint."""

    def __init__(self, base_url: str = "http://localhost:1234/v1", model: str = "embedding-model",
                 dimension: int = 768, timeout: float = 60.0,
                 session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.dimension = dimension
        self.timeout = timeout
        self.session = session or requests.Session()

    def embed_text(self, text: str) -> list[float]:
        try:
            response = self.session.post(
                f"{self.base_url}/embeddings",
                json={"input": text, "model": self.model},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise ProviderError(f"LMStudio request failed: {e}") from e

        if not response.ok:
            raise ProviderError(f"LMStudio API error ({response.status_code}): {response.text}")

        try:
            vector = response.json()["data"][0]["embedding"]
        except (ValueError, KeyError, IndexError, TypeError):
            raise ProviderError("Invalid embedding format received from LMStudio")
        return self._check_vector(vector, "LMStudio")

    def get_dimension(self) -> int:
        return self.dimension


__all__ = [
    "IEmbeddingProvider",
    "DeterministicHashEmbedding",
    "SentenceTransformerEmbedding",
    "OpenAIEmbedding",
    "OllamaEmbedding",
    "LMStudioEmbedding",
]
