"""Container runtime interface consumed by node drivers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from labnode.types import NodeConfig


@dataclass
class ExecResult:
    """Output of a command executed inside a container."""
    stdout: str = ""
    stderr: str = ""
    exit_code: int = 0

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class ContainerRuntime(ABC):
    """Abstract base class for container runtimes.

    Drivers call these methods and nothing else. Implementations raise
    labnode.errors.ContainerRuntimeError subclasses on failure and let
    asyncio.CancelledError propagate.
    """

    @abstractmethod
    async def exec(self, container_name: str, command: list[str]) -> ExecResult:
        """Run a command inside a running container.

        Args:
            container_name: Runtime-visible container name (NodeConfig.long_name)
            command: Argument vector

        Returns:
            ExecResult with decoded stdout/stderr and exit code
        """
        ...

    @abstractmethod
    async def create_container(self, cfg: NodeConfig) -> str:
        """Create the container described by cfg.

        Creating a container that already runs under cfg.long_name is a
        no-op that returns the existing ID.

        Returns:
            Container ID
        """
        ...

    @abstractmethod
    async def start_container(self, container_id: str, cfg: NodeConfig) -> str:
        """Start a created container.

        Implementations may record the management addresses on cfg.

        Returns:
            Container status after start
        """
        ...

    @abstractmethod
    async def delete_container(self, container_name: str) -> None:
        """Remove a container. Removing an absent container succeeds."""
        ...
