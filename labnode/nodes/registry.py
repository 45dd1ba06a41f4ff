"""Registry mapping node kinds to driver constructors.

Kind modules register themselves at import time; importing labnode.nodes
loads all built-in kinds. Registration is expected during startup only,
lookups are safe from any thread afterwards.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from labnode.nodes.base import NodeDriver

logger = logging.getLogger(__name__)

NodeConstructor = Callable[[], "NodeDriver"]


class NodeRegistry:
    """Kind name -> driver constructor table."""

    def __init__(self) -> None:
        self._constructors: dict[str, NodeConstructor] = {}
        self._lock = threading.Lock()

    def register(self, kinds: list[str], constructor: NodeConstructor) -> None:
        """Register a constructor under one or more kind names.

        Raises:
            ValueError: a kind is already registered to another constructor
        """
        with self._lock:
            for kind in kinds:
                existing = self._constructors.get(kind)
                if existing is not None and existing is not constructor:
                    raise ValueError(f"Node kind '{kind}' is already registered")
                self._constructors[kind] = constructor
        logger.debug(f"Registered node kinds: {kinds}")

    def new_node(self, kind: str) -> NodeDriver:
        """Instantiate the driver for a kind.

        Raises:
            KeyError: the kind is unknown
        """
        constructor = self._constructors.get(kind)
        if constructor is None:
            raise KeyError(f"Unknown node kind '{kind}'")
        return constructor()

    def is_registered(self, kind: str) -> bool:
        return kind in self._constructors

    def list_kinds(self) -> list[str]:
        return sorted(self._constructors)

    def reset(self) -> None:
        """Reset the registry (mainly for testing)."""
        with self._lock:
            self._constructors = {}


# Module-level singleton instance
_registry = NodeRegistry()


def register(kinds: list[str], constructor: NodeConstructor) -> None:
    """Register a driver constructor in the global registry."""
    _registry.register(kinds, constructor)


def new_node(kind: str) -> NodeDriver:
    """Instantiate a driver from the global registry."""
    return _registry.new_node(kind)


def is_registered(kind: str) -> bool:
    return _registry.is_registered(kind)


def list_kinds() -> list[str]:
    """List all registered kind names."""
    return _registry.list_kinds()
