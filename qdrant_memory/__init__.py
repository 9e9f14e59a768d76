"""
Knowledge graph memory with a Qdrant-backed semantic index.
"""

from .core.config import VERSION

__version__ = VERSION
