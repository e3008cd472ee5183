"""Timing and debug hooks around the phases of a release query."""

import time
from typing import Dict

from .logging import get_logger

logger = get_logger(__name__)


class QueryHooks:
    """No-op hooks. Subclass to observe a query without changing its result."""

    def start_timer(self, key: str) -> None:
        pass

    def stop_timer(self, key: str) -> None:
        pass

    def debug(self, *args) -> None:
        pass


class LoggingQueryHooks(QueryHooks):
    """Hooks that write phase timings and debug lines to the log."""

    def __init__(self):
        self.started: Dict[str, float] = {}
        self.elapsed: Dict[str, float] = {}

    def start_timer(self, key: str) -> None:
        self.started[key] = time.perf_counter()

    def stop_timer(self, key: str) -> None:
        started = self.started.pop(key, None)
        if started is None:
            logger.debug(f"Timer {key} stopped without being started")
            return
        self.elapsed[key] = time.perf_counter() - started
        logger.debug(f"{key} took {self.elapsed[key]:.3f}s")

    def debug(self, *args) -> None:
        logger.debug(" ".join(str(arg) for arg in args))
