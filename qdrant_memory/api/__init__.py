"""HTTP adapter for the knowledge graph."""
