"""Container runtimes for node drivers."""

from labnode.runtime.base import ContainerRuntime, ExecResult
from labnode.runtime.docker import DockerRuntime

__all__ = [
    "ContainerRuntime",
    "ExecResult",
    "DockerRuntime",
]
