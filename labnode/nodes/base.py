"""Node driver interface.

Every device kind implements NodeDriver. The orchestrator calls the
lifecycle methods strictly in order for one node:

    init -> pre_deploy -> deploy -> post_deploy [-> save_config] -> delete

Different nodes may run their lifecycles concurrently; a single driver
instance must not be entered concurrently.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping

from labnode.runtime.base import ContainerRuntime
from labnode.types import MgmtNet, NodeConfig


# Key of the main container image in get_images()
IMAGE_KEY = "image"

NodeOption = Callable[["NodeDriver"], None]


class NodeDriver(ABC):
    """Abstract base class for node kind drivers."""

    @property
    @abstractmethod
    def kind(self) -> str:
        """Canonical kind name (e.g., 'xrd', 'srl')."""
        ...

    @property
    @abstractmethod
    def config(self) -> NodeConfig:
        """The node's configuration."""
        ...

    @property
    @abstractmethod
    def runtime(self) -> ContainerRuntime | None:
        ...

    @abstractmethod
    def with_runtime(self, runtime: ContainerRuntime) -> None:
        ...

    @abstractmethod
    def with_mgmt_net(self, mgmt_net: MgmtNet) -> None:
        ...

    @abstractmethod
    def init(self, cfg: NodeConfig, *opts: NodeOption) -> None:
        """Apply kind defaults, then each option in order, then derived values.

        Raises:
            ConfigurationError: a required field is missing
        """
        ...

    @abstractmethod
    def pre_deploy(self, *args: str) -> None:
        """Create the lab directory and render the startup config.

        Raises:
            FilesystemError, TemplateError
        """
        ...

    @abstractmethod
    async def deploy(self) -> None:
        """Create and start the node's container.

        Raises:
            ContainerRuntimeError: the runtime call failed
            asyncio.CancelledError: the deploy was cancelled
        """
        ...

    @abstractmethod
    async def post_deploy(self, peers: Mapping[str, NodeDriver]) -> None:
        """Kind-specific actions once the container runs.

        Best effort: failures are logged, never raised. peers is a read-only
        view of the other nodes in the lab.
        """
        ...

    @abstractmethod
    async def save_config(self) -> None:
        """Persist the running configuration, where the kind supports it."""
        ...

    @abstractmethod
    async def delete(self) -> None:
        """Remove the node's container. Succeeds if it is already gone."""
        ...

    @abstractmethod
    def get_images(self) -> dict[str, str]:
        """Map of logical image role to image reference."""
        ...


def with_runtime(runtime: ContainerRuntime) -> NodeOption:
    """Option that attaches a container runtime."""
    def option(node: NodeDriver) -> None:
        node.with_runtime(runtime)
    return option


def with_mgmt_net(mgmt_net: MgmtNet) -> NodeOption:
    """Option that sets the management network."""
    def option(node: NodeDriver) -> None:
        node.with_mgmt_net(mgmt_net)
    return option


def with_env(env: Mapping[str, str]) -> NodeOption:
    """Option that sets explicit environment variables.

    Explicit values win over both kind defaults and computed values.
    """
    def option(node: NodeDriver) -> None:
        node.config.env.update(env)
    return option


def with_binds(binds: list[str]) -> NodeOption:
    """Option that adds bind mounts, skipping duplicates."""
    def option(node: NodeDriver) -> None:
        for bind in binds:
            node.config.add_bind(bind)
    return option
