"""
Build observers.

Progress reporting for tree builds is optional. Builders call these hooks;
the default implementation narrates through logging, NullObserver is silent.
"""

from __future__ import annotations

import logging
from typing import Protocol

logger = logging.getLogger(__name__)


class BuildObserver(Protocol):
    def build_started(self, mode: str, leaf_count: int, capacity: int) -> None: ...

    def layer_completed(self, level: int, node_count: int) -> None: ...

    def build_completed(self, mode: str, root_hex: str, duration_ms: int) -> None: ...


class NullObserver:
    def build_started(self, mode: str, leaf_count: int, capacity: int) -> None:
        pass

    def layer_completed(self, level: int, node_count: int) -> None:
        pass

    def build_completed(self, mode: str, root_hex: str, duration_ms: int) -> None:
        pass


class LoggingObserver:
    def build_started(self, mode: str, leaf_count: int, capacity: int) -> None:
        logger.info("Building %s tree: %d leaves (padded to %d)", mode, leaf_count, capacity)

    def layer_completed(self, level: int, node_count: int) -> None:
        logger.debug("Layer %d complete: %d nodes", level, node_count)

    def build_completed(self, mode: str, root_hex: str, duration_ms: int) -> None:
        logger.info("Built %s tree in %dms, root %s", mode, duration_ms, root_hex)
