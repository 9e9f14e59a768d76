"""
Vector index layer: embedding providers and index clients. Derived from the
graph file and rebuildable from it at any time.
"""

from .types import CollectionInfo, QueryResult, VectorRecord

__all__ = ["CollectionInfo", "QueryResult", "VectorRecord"]
