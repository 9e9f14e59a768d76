"""
Connection gate for the remote vector store.

The first operation probes the server, retrying with exponential backoff.
A successful probe is remembered until `reset()` is called, which the index
client does whenever an operation fails at the transport level.
"""

import time
from typing import Callable

from ..core.errors import VectorStoreConnectionError
from ..util.logging import logger


class ResilientConnection:
    """Bounded retry around a connectivity probe."""

    def __init__(self, probe: Callable[[], object], max_attempts: int = 3,
                 initial_delay: float = 2.0, sleep: Callable[[float], None] = time.sleep):
        self.probe = probe
        self.max_attempts = max_attempts
        self.initial_delay = initial_delay
        self.sleep = sleep
        self.connected = False

    def ensure(self) -> None:
        """Connect if not already connected.

        Waits initial_delay, then twice that, and so on between attempts.
        Raises VectorStoreConnectionError after the last failed attempt.
        """
        if self.connected:
            return

        delay = self.initial_delay
        last_error = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                self.probe()
            except Exception as e:
                last_error = e
                if attempt < self.max_attempts:
                    logger.log_connection_attempt(attempt, self.max_attempts, error=e, delay=delay)
                    self.sleep(delay)
                    delay *= 2
                else:
                    logger.log_connection_attempt(attempt, self.max_attempts, error=e)
                continue

            self.connected = True
            logger.log_connection_attempt(attempt, self.max_attempts)
            return

        raise VectorStoreConnectionError(
            f"Failed to connect to Qdrant after {self.max_attempts} attempts: {last_error}"
        ) from last_error

    def reset(self) -> None:
        """Forget the connection so the next call probes again."""
        self.connected = False
