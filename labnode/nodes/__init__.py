"""Node kind drivers.

Importing this package registers every built-in kind.
"""

from labnode.nodes.base import (
    IMAGE_KEY,
    NodeDriver,
    NodeOption,
    with_binds,
    with_env,
    with_mgmt_net,
    with_runtime,
)
from labnode.nodes.common import NodeState
from labnode.nodes.registry import (
    NodeRegistry,
    is_registered,
    list_kinds,
    new_node,
    register,
)
from labnode.nodes.srl import SRLinux
from labnode.nodes.xrd import XRd

__all__ = [
    # Interface and options
    "IMAGE_KEY",
    "NodeDriver",
    "NodeOption",
    "NodeState",
    "with_binds",
    "with_env",
    "with_mgmt_net",
    "with_runtime",
    # Kinds
    "SRLinux",
    "XRd",
    # Registry
    "NodeRegistry",
    "is_registered",
    "list_kinds",
    "new_node",
    "register",
]
