"""
Records exchanged with the vector index. The index is a derived projection
of the JSON graph file and never the source of truth.
"""

from typing import Any, Dict, List, Optional
from dataclasses import dataclass


@dataclass
class VectorRecord:
    """A point to write into the index."""

    id: int
    """Point id derived from the graph element's natural key"""

    vector: List[float]
    """Embedding of the element's projection text"""

    payload: Dict[str, Any]
    """Tagged copy of the graph element (`type` is entity or relation)"""


@dataclass
class QueryResult:
    """A scored hit returned by a similarity search."""

    id: int
    score: float
    """Cosine similarity, higher is closer"""

    payload: Optional[Dict[str, Any]]


@dataclass
class CollectionInfo:
    """Vector configuration of an existing collection."""

    name: str
    dimension: int
    distance: str = "cosine"
