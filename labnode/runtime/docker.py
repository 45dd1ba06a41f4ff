"""Docker runtime for node containers.

Blocking Docker SDK calls run in worker threads so that many nodes can be
deployed concurrently from one event loop.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import docker
from docker.errors import APIError, ImageNotFound, NotFound

from labnode.config import settings
from labnode.errors import (
    ContainerConflictError,
    ContainerNotFoundError,
    ContainerRuntimeError,
)
from labnode.runtime.base import ContainerRuntime, ExecResult
from labnode.types import NodeConfig


logger = logging.getLogger(__name__)


def parse_binds(binds: list[str]) -> dict[str, dict[str, str]]:
    """Convert "host:container[:ro]" binds to the Docker SDK volumes form."""
    volumes: dict[str, dict[str, str]] = {}
    for bind in binds:
        if ":" not in bind:
            continue
        host_path, container_path = bind.split(":", 1)
        ro = False
        if container_path.endswith(":ro"):
            container_path = container_path[:-3]
            ro = True
        elif container_path.endswith(":rw"):
            container_path = container_path[:-3]
        volumes[host_path] = {
            "bind": container_path,
            "mode": "ro" if ro else "rw",
        }
    return volumes


class DockerRuntime(ContainerRuntime):
    """Docker SDK implementation of ContainerRuntime."""

    def __init__(self, client: docker.DockerClient | None = None):
        self._docker = client

    @property
    def docker(self) -> docker.DockerClient:
        """Lazy-initialize Docker client with extended timeout for slow operations."""
        if self._docker is None:
            self._docker = docker.DockerClient(
                base_url=settings.docker_socket,
                timeout=settings.docker_client_timeout,
            )
        return self._docker

    def _labels(self, cfg: NodeConfig) -> dict[str, str]:
        prefix = settings.container_label_prefix
        return {
            f"{prefix}.node_name": cfg.short_name,
            f"{prefix}.node_kind": cfg.kind,
        }

    def _container_config(self, cfg: NodeConfig) -> dict[str, Any]:
        """Build docker.containers.create() arguments for a node."""
        config: dict[str, Any] = {
            "image": cfg.image,
            "name": cfg.long_name,
            "hostname": cfg.short_name,
            "environment": dict(cfg.env),
            "labels": self._labels(cfg),
            "detach": True,
            "tty": True,
            "stdin_open": True,
            # Network devices need full system access
            "privileged": True,
        }

        volumes = parse_binds(cfg.binds)
        if volumes:
            config["volumes"] = volumes

        if cfg.mgmt_net:
            config["network"] = cfg.mgmt_net.network

        return config

    async def exec(self, container_name: str, command: list[str]) -> ExecResult:
        try:
            container = await asyncio.to_thread(self.docker.containers.get, container_name)
            result = await asyncio.to_thread(container.exec_run, command, demux=True)
        except NotFound as e:
            raise ContainerNotFoundError(container_name, "exec", str(e)) from e
        except APIError as e:
            raise ContainerRuntimeError(container_name, "exec", str(e)) from e

        stdout, stderr = result.output or (None, None)
        return ExecResult(
            stdout=stdout.decode("utf-8", errors="replace") if stdout else "",
            stderr=stderr.decode("utf-8", errors="replace") if stderr else "",
            exit_code=result.exit_code or 0,
        )

    async def create_container(self, cfg: NodeConfig) -> str:
        # Reuse a running container, replace a stopped one
        try:
            existing = await asyncio.to_thread(self.docker.containers.get, cfg.long_name)
            if existing.status == "running":
                logger.info(f"Container {cfg.long_name} already running", extra={"node": cfg.short_name})
                return existing.id
            logger.info(f"Removing stopped container {cfg.long_name}", extra={"node": cfg.short_name})
            await asyncio.to_thread(existing.remove, force=True)
        except NotFound:
            pass
        except APIError as e:
            raise ContainerRuntimeError(cfg.short_name, "create", str(e)) from e

        config = self._container_config(cfg)
        logger.info(f"Creating container {cfg.long_name} with image {cfg.image}", extra={"node": cfg.short_name})
        # A cancelled create still completes in its thread; its container is removed
        create = asyncio.ensure_future(
            asyncio.to_thread(lambda: self.docker.containers.create(**config))
        )
        try:
            container = await asyncio.shield(create)
        except asyncio.CancelledError:
            await self._discard_created(create, cfg)
            raise
        except ImageNotFound as e:
            raise ContainerRuntimeError(cfg.short_name, "create", f"image {cfg.image} not found") from e
        except APIError as e:
            if e.status_code == 409:
                raise ContainerConflictError(cfg.short_name, "create", str(e)) from e
            raise ContainerRuntimeError(cfg.short_name, "create", str(e)) from e

        return container.id

    async def _discard_created(self, create: asyncio.Future, cfg: NodeConfig) -> None:
        """Wait for an abandoned create to finish and remove its container."""
        try:
            container = await create
        except Exception as e:
            logger.debug(f"Cancelled create of {cfg.long_name} failed: {e}", extra={"node": cfg.short_name})
            return
        logger.warning(
            f"Removing container {cfg.long_name} created after cancellation",
            extra={"node": cfg.short_name},
        )
        try:
            await asyncio.to_thread(container.remove, force=True, v=True)
        except APIError as e:
            logger.error(f"Failed to remove container {cfg.long_name}: {e}", extra={"node": cfg.short_name})

    async def start_container(self, container_id: str, cfg: NodeConfig) -> str:
        try:
            container = await asyncio.to_thread(self.docker.containers.get, container_id)
            if container.status != "running":
                await asyncio.to_thread(container.start)
                logger.info(f"Started container {cfg.long_name}", extra={"node": cfg.short_name})
            await asyncio.to_thread(container.reload)
        except NotFound as e:
            raise ContainerNotFoundError(cfg.short_name, "start", str(e)) from e
        except APIError as e:
            raise ContainerRuntimeError(cfg.short_name, "start", str(e)) from e

        self._record_mgmt_addresses(container, cfg)
        return container.status

    def _record_mgmt_addresses(self, container, cfg: NodeConfig) -> None:
        """Copy the management network addresses onto cfg."""
        networks = container.attrs.get("NetworkSettings", {}).get("Networks", {}) or {}
        if cfg.mgmt_net and cfg.mgmt_net.network in networks:
            net = networks[cfg.mgmt_net.network]
        elif networks:
            net = next(iter(networks.values()))
        else:
            return

        if net.get("IPAddress"):
            cfg.mgmt_ipv4_address = net["IPAddress"]
            cfg.mgmt_ipv4_prefix_length = net.get("IPPrefixLen")
        if net.get("GlobalIPv6Address"):
            cfg.mgmt_ipv6_address = net["GlobalIPv6Address"]
            cfg.mgmt_ipv6_prefix_length = net.get("GlobalIPv6PrefixLen")

    async def delete_container(self, container_name: str) -> None:
        try:
            container = await asyncio.to_thread(self.docker.containers.get, container_name)
            await asyncio.to_thread(container.remove, force=True, v=True)  # v=True removes anonymous volumes
            logger.info(f"Removed container {container_name}")
        except NotFound:
            logger.debug(f"Container {container_name} already absent")
        except APIError as e:
            raise ContainerRuntimeError(container_name, "delete", str(e)) from e
