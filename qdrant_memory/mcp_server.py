"""MCP server exposing the knowledge graph as tools over stdio."""

import json
import sys
from typing import Any, Dict, List, Optional

from mcp.server.fastmcp import FastMCP

from .core.config import Settings, ensure_data_directory
from .core.errors import ValidationError
from .core.manager import KnowledgeGraphManager
from .core.schema import Entity, Relation
from .util.logging import configure_logging, logger


def _string_list(value: Any, field: str) -> List[str]:
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValidationError(f"{field} must be an array of strings")
    return value


def _entity_name(item: Any) -> str:
    if not isinstance(item, dict) or not isinstance(item.get("entityName"), str):
        raise ValidationError("entityName must be a string")
    return item["entityName"]


class MemoryTools:
    """Tool handlers. Errors propagate and are reported by the MCP layer."""

    def __init__(self, manager: KnowledgeGraphManager):
        self.manager = manager

    def create_entities(self, entities: List[Dict[str, Any]]) -> str:
        """Create multiple new entities in the knowledge graph.

        Args:
            entities: Objects with name, entityType and observations
        """
        self.manager.create_entities([Entity.from_dict(e) for e in entities])
        return "Entities created successfully"

    def create_relations(self, relations: List[Dict[str, Any]]) -> str:
        """Create multiple new relations between entities.

        Args:
            relations: Objects with from, to and relationType
        """
        self.manager.create_relations([Relation.from_dict(r) for r in relations])
        return "Relations created successfully"

    def add_observations(self, observations: List[Dict[str, Any]]) -> str:
        """Add new observations to existing entities.

        Args:
            observations: Objects with entityName and contents
        """
        for obs in observations:
            name = _entity_name(obs)
            self.manager.add_observations(name, _string_list(obs.get("contents"), "contents"))
        return "Observations added successfully"

    def delete_entities(self, entityNames: List[str]) -> str:
        """Delete multiple entities and their relations."""
        self.manager.delete_entities(_string_list(entityNames, "entityNames"))
        return "Entities deleted successfully"

    def delete_observations(self, deletions: List[Dict[str, Any]]) -> str:
        """Delete specific observations from entities.

        Args:
            deletions: Objects with entityName and observations
        """
        for deletion in deletions:
            name = _entity_name(deletion)
            self.manager.delete_observations(name, _string_list(deletion.get("observations"), "observations"))
        return "Observations deleted successfully"

    def delete_relations(self, relations: List[Dict[str, Any]]) -> str:
        """Delete multiple relations from the graph."""
        self.manager.delete_relations([Relation.from_dict(r) for r in relations])
        return "Relations deleted successfully"

    def read_graph(self) -> str:
        """Read the entire knowledge graph."""
        return json.dumps(self.manager.read_graph().to_dict(), indent=2)

    def search_similar(self, query: str, limit: Optional[int] = 10) -> str:
        """Search for semantically similar entities and relations.

        Args:
            query: Search query text
            limit: Maximum number of results to return
        """
        if not isinstance(query, str):
            raise ValidationError("query must be a string")
        results = self.manager.search_similar(query, limit)
        return json.dumps([r.to_dict() for r in results], indent=2)


TOOL_NAMES = [
    "create_entities",
    "create_relations",
    "add_observations",
    "delete_entities",
    "delete_observations",
    "delete_relations",
    "read_graph",
    "search_similar",
]


def build_server(manager: KnowledgeGraphManager) -> FastMCP:
    """Register the graph tools against an initialized manager."""
    mcp = FastMCP("memory")
    tools = MemoryTools(manager)
    for name in TOOL_NAMES:
        mcp.tool()(getattr(tools, name))
    return mcp


def main() -> None:
    settings = Settings.from_env()
    issues = settings.validate()
    if issues:
        for issue in issues:
            print(f"ERROR: {issue}", file=sys.stderr)
        sys.exit(1)

    configure_logging(settings.log_level)
    ensure_data_directory(settings)

    manager = KnowledgeGraphManager.from_settings(settings)
    manager.initialize()
    logger.info("Memory MCP server running on stdio")
    build_server(manager).run()


if __name__ == "__main__":
    main()
