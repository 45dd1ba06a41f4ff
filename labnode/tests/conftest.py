"""Shared pytest fixtures for node driver tests."""
from __future__ import annotations

import pytest

from labnode.errors import ContainerRuntimeError
from labnode.runtime.base import ContainerRuntime, ExecResult
from labnode.types import NodeConfig


class FakeRuntime(ContainerRuntime):
    """In-memory container runtime.

    Containers are tracked by name; exec responses are scripted per command
    string via ``exec_results``.
    """

    def __init__(self):
        self.containers: dict[str, dict] = {}
        self.calls: list[tuple] = []
        self.exec_results: dict[str, ExecResult] = {}
        self.fail_on: set[str] = set()

    def _check(self, operation: str, name: str) -> None:
        if operation in self.fail_on:
            raise ContainerRuntimeError(name, operation, "injected failure")

    async def exec(self, container_name: str, command: list[str]) -> ExecResult:
        self.calls.append(("exec", container_name, command))
        self._check("exec", container_name)
        return self.exec_results.get(" ".join(command), ExecResult())

    async def create_container(self, cfg: NodeConfig) -> str:
        self.calls.append(("create", cfg.long_name))
        self._check("create", cfg.long_name)
        existing = self.containers.get(cfg.long_name)
        if existing is not None:
            return existing["id"]
        container_id = f"id-{cfg.long_name}"
        self.containers[cfg.long_name] = {
            "id": container_id,
            "status": "created",
            "image": cfg.image,
            "env": dict(cfg.env),
            "binds": list(cfg.binds),
        }
        return container_id

    async def start_container(self, container_id: str, cfg: NodeConfig) -> str:
        self.calls.append(("start", container_id))
        self._check("start", cfg.long_name)
        self.containers[cfg.long_name]["status"] = "running"
        cfg.mgmt_ipv4_address = "172.20.20.2"
        cfg.mgmt_ipv4_prefix_length = 24
        return "running"

    async def delete_container(self, container_name: str) -> None:
        self.calls.append(("delete", container_name))
        self._check("delete", container_name)
        self.containers.pop(container_name, None)


@pytest.fixture
def runtime():
    return FakeRuntime()


@pytest.fixture
def lab_dir(tmp_path):
    return tmp_path / "clab-test" / "r1"


@pytest.fixture
def node_config(lab_dir):
    return NodeConfig(
        short_name="r1",
        long_name="clab-test-r1",
        image="ios-xr/xrd-control-plane:7.8.1",
        lab_dir=str(lab_dir),
    )
