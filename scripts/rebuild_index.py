#!/usr/bin/env python3
"""
Index Rebuild Utility
Recreates the vector collection from the graph file after a failed sync,
a lost index, or an embedding provider change.
"""

import sys

from qdrant_memory.core.config import Settings, ensure_data_directory
from qdrant_memory.core.errors import KnowledgeGraphError
from qdrant_memory.core.manager import KnowledgeGraphManager
from qdrant_memory.util.logging import configure_logging


def main(settings: Settings = None, manager: KnowledgeGraphManager = None) -> int:
    """Rebuild the vector index from the graph file. Returns an exit code."""
    if manager is None:
        settings = settings or Settings.from_env()
        issues = settings.validate()
        if issues:
            for issue in issues:
                print(f"ERROR: {issue}")
            return 1

        configure_logging(settings.log_level)
        ensure_data_directory(settings)
        manager = KnowledgeGraphManager.from_settings(settings)

    print("Starting vector index rebuild...")

    try:
        manager.store.load()
        graph = manager.read_graph()
        print(f"Found {len(graph.entities)} entities and {len(graph.relations)} relations in the graph file")

        points = manager.rebuild_index()
    except KnowledgeGraphError as e:
        print(f"ERROR: Rebuild failed: {e}")
        return 1

    print(f"✓ Successfully rebuilt index with {points} points")
    print("Index rebuild complete!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
