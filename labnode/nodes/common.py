"""Behaviour shared by node drivers.

Drivers compose these helpers instead of inheriting them, so each kind
keeps its lifecycle readable in one place.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from enum import Enum
from pathlib import Path

from labnode.config import settings
from labnode.errors import (
    ConfigurationError,
    ContainerNotFoundError,
    ContainerRuntimeError,
    FilesystemError,
    LifecycleError,
    NodeError,
)
from labnode.runtime.base import ContainerRuntime
from labnode.types import NodeConfig

logger = logging.getLogger(__name__)


class NodeState(str, Enum):
    """Lifecycle state of a node driver."""
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    PRE_DEPLOYED = "pre_deployed"
    DEPLOYED = "deployed"
    POST_DEPLOYED = "post_deployed"
    DELETED = "deleted"


DEPLOYED_STATES = (NodeState.DEPLOYED, NodeState.POST_DEPLOYED)
POST_INIT_STATES = tuple(s for s in NodeState if s != NodeState.UNINITIALIZED)


class Lifecycle:
    """Tracks and guards a driver's lifecycle state."""

    def __init__(self) -> None:
        self.state = NodeState.UNINITIALIZED
        self.node = ""

    def require(self, action: str, *allowed: NodeState) -> None:
        if self.state not in allowed:
            raise LifecycleError(
                self.node or "<uninitialized>",
                f"cannot {action} while {self.state.value}",
            )

    def advance(self, state: NodeState) -> None:
        logger.debug(f"Node {self.node}: {self.state.value} -> {state.value}", extra={"node": self.node})
        self.state = state


def check_required(cfg: NodeConfig) -> None:
    """Raise ConfigurationError if a field every node needs is empty."""
    if not cfg.short_name:
        raise ConfigurationError("<unnamed>", "node name is required")
    if not cfg.image:
        raise ConfigurationError(cfg.short_name, "image is required")
    if not cfg.lab_dir:
        raise ConfigurationError(cfg.short_name, "lab directory is required")


def require_runtime(runtime: ContainerRuntime | None, cfg: NodeConfig) -> ContainerRuntime:
    if runtime is None:
        raise ConfigurationError(cfg.short_name, "no container runtime configured")
    return runtime


def ensure_lab_dir(cfg: NodeConfig) -> Path:
    """Create the node's lab directory. Existing directories are fine."""
    path = Path(cfg.lab_dir)
    try:
        path.mkdir(mode=settings.lab_dir_mode, parents=True, exist_ok=True)
    except OSError as e:
        raise FilesystemError(cfg.short_name, f"cannot create lab directory {path}: {e}", path=str(path)) from e
    return path


async def deploy_container(runtime: ContainerRuntime, cfg: NodeConfig) -> str:
    """Create then start the node's container.

    On cancellation the partially deployed container is removed before
    CancelledError propagates.
    """
    try:
        container_id = await runtime.create_container(cfg)
        await runtime.start_container(container_id, cfg)
    except asyncio.CancelledError:
        logger.warning(
            f"Deploy of node {cfg.short_name} cancelled, removing container {cfg.long_name}",
            extra={"node": cfg.short_name},
        )
        try:
            await runtime.delete_container(cfg.long_name)
        except Exception as e:
            logger.error(f"Failed to remove container {cfg.long_name}: {e}", extra={"node": cfg.short_name})
        raise
    except NodeError:
        raise
    except Exception as e:
        raise ContainerRuntimeError(cfg.short_name, "deploy", str(e)) from e
    return container_id


async def delete_container(runtime: ContainerRuntime, cfg: NodeConfig) -> None:
    """Remove the node's container; an absent container is not an error."""
    try:
        await runtime.delete_container(cfg.long_name)
    except ContainerNotFoundError:
        logger.debug(f"Container {cfg.long_name} already absent", extra={"node": cfg.short_name})
    except NodeError:
        raise
    except Exception as e:
        raise ContainerRuntimeError(cfg.short_name, "delete", str(e)) from e


def best_effort(phase: str):
    """Log failures of an async driver method instead of raising them.

    LifecycleError (a caller bug) and cancellation still propagate.
    """
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(self, *args, **kwargs):
            try:
                return await func(self, *args, **kwargs)
            except LifecycleError:
                raise
            except Exception as e:
                logger.warning(
                    f"{phase} failed for node {self.config.short_name}: {e}",
                    extra={"node": self.config.short_name},
                )
                return None
        return wrapper
    return decorator
