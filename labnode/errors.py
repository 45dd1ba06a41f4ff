"""Error types raised by node drivers.

Every error that crosses a driver boundary is a NodeError subclass and
names the node it belongs to. Cancellation is not part of this hierarchy:
asyncio.CancelledError propagates unchanged.
"""

from __future__ import annotations


class NodeError(Exception):
    """Base class for node driver failures."""

    def __init__(self, node: str, detail: str):
        self.node = node
        self.detail = detail
        super().__init__(f"node '{node}': {detail}")


class ConfigurationError(NodeError):
    """A required field is missing or invalid. The node must not be deployed."""


class FilesystemError(NodeError):
    """A lab directory or startup-config file could not be created or read."""

    def __init__(self, node: str, detail: str, path: str | None = None):
        self.path = path
        super().__init__(node, detail)


class TemplateError(NodeError):
    """The startup-config template could not be rendered."""


class ParseError(NodeError):
    """Command output held nothing version-shaped."""

    def __init__(self, node: str, detail: str, output: str = ""):
        self.output = output
        super().__init__(node, detail)


class LifecycleError(NodeError):
    """A lifecycle method was called out of order."""


class ContainerRuntimeError(NodeError):
    """A container runtime call failed."""

    def __init__(self, node: str, operation: str, detail: str):
        self.operation = operation
        super().__init__(node, f"{operation} failed: {detail}")


class ContainerNotFoundError(ContainerRuntimeError):
    """The container does not exist."""


class ContainerConflictError(ContainerRuntimeError):
    """A container with the same name exists and cannot be reused."""
