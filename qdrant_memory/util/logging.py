"""
Structured operation logging for graph mutations, vector index sync and
collection lifecycle events.
"""

import logging
import sys
from typing import Any, Dict, Optional


class StructuredLogger:
    """Structured logger for graph, vector and collection operations."""

    def __init__(self, name: str = "qdrant_memory"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.INFO)

        # stderr only: stdout belongs to the MCP stdio transport
        if not self.logger.handlers:
            handler = logging.StreamHandler(sys.stderr)
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def log_operation(self, operation: str, status: str, details: Dict[str, Any] = None, level: int = logging.INFO):
        """Log a structured operation."""
        message = f"Operation: {operation}, Status: {status}"
        if details:
            message += f", Details: {details}"

        self.logger.log(level, message)

    def log_graph_operation(self, operation: str, count: int, details: Dict[str, Any] = None, status: str = "success"):
        """Log a mutation or read against the authoritative graph."""
        log_details = {"count": count}
        if details:
            log_details.update(details)

        self.log_operation(f"graph.{operation}", status, log_details)

    def log_vector_operation(self, operation: str, point_id: Optional[int], details: Dict[str, Any] = None, status: str = "success"):
        """Log a vector index operation."""
        log_details = {"point_id": point_id}
        if details:
            log_details.update(details)

        level = logging.INFO if status == "success" else logging.WARNING
        self.log_operation(f"vector.{operation}", status, log_details, level=level)

    def log_collection_event(self, event: str, collection: str, details: Dict[str, Any] = None, destructive: bool = False):
        """Log collection lifecycle events (create, recreate)."""
        log_details = {"collection": collection}
        if details:
            log_details.update(details)
        if destructive:
            log_details["destructive"] = True

        level = logging.WARNING if destructive else logging.INFO
        self.log_operation(f"collection.{event}", "applied", log_details, level=level)

    def log_sync_failure(self, operation: str, natural_key: str, error: Exception):
        """Log a remote sync failure that leaves the graph ahead of the index."""
        log_details = {
            "natural_key": natural_key[:100],
            "error_type": type(error).__name__,
            "error": str(error)[:200],
        }
        self.log_operation(f"sync.{operation}", "failed", log_details, level=logging.ERROR)

    def log_connection_attempt(self, attempt: int, max_attempts: int, error: Exception = None, delay: float = None):
        """Log a vector store connection attempt."""
        log_details = {"attempt": attempt, "max_attempts": max_attempts}
        if error is not None:
            log_details["error"] = str(error)[:200]
            if delay is not None:
                log_details["retry_in_sec"] = delay
            self.log_operation("connection.attempt", "failed", log_details, level=logging.WARNING)
        else:
            self.log_operation("connection.attempt", "connected", log_details)

    # Standard logging methods for compatibility
    def info(self, message: str) -> None:
        """Log an info message."""
        self.logger.info(message)

    def warning(self, message: str) -> None:
        """Log a warning message."""
        self.logger.warning(message)

    def error(self, message: str) -> None:
        """Log an error message."""
        self.logger.error(message)

    def debug(self, message: str) -> None:
        """Log a debug message."""
        self.logger.debug(message)


# Global logger instance
logger = StructuredLogger()


def configure_logging(level: str = "INFO") -> None:
    """Apply a level name (DEBUG, INFO, ...) to the package logger."""
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        resolved = logging.INFO
    logger.logger.setLevel(resolved)
