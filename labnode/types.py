"""Node configuration model shared by all drivers."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path


# Sentinel startup_config value meaning "no user-supplied fragment"
STARTUP_CONFIG_NONE = "None"


def is_startup_config_none(value: str | None) -> bool:
    """Return True if value means no startup-config fragment was supplied."""
    return not value or value.strip().lower() == STARTUP_CONFIG_NONE.lower()


@dataclass
class MgmtNet:
    """Management network the node's eth0 attaches to.

    Set by the orchestrator; drivers only read it.
    """
    network: str


@dataclass
class NodeConfig:
    """Desired state of one node.

    Owned by exactly one driver for the node's lifetime. After deploy only
    the contents of res_startup_config (and the mgmt_* addresses reported by
    the runtime) change.
    """
    short_name: str
    long_name: str = ""  # unique container name, defaults to short_name
    kind: str = ""
    image: str = ""
    lab_dir: str = ""
    env: dict[str, str] = field(default_factory=dict)
    binds: list[str] = field(default_factory=list)
    startup_config: str = STARTUP_CONFIG_NONE
    res_startup_config: str = ""  # computed by the driver
    enforce_startup_config: bool = False
    mgmt_net: MgmtNet | None = None

    # Filled in by the runtime once the container is started
    mgmt_ipv4_address: str | None = None
    mgmt_ipv4_prefix_length: int | None = None
    mgmt_ipv6_address: str | None = None
    mgmt_ipv6_prefix_length: int | None = None

    def __post_init__(self) -> None:
        if not self.long_name:
            self.long_name = self.short_name
        if is_startup_config_none(self.startup_config):
            self.startup_config = STARTUP_CONFIG_NONE

    @property
    def has_startup_config(self) -> bool:
        return not is_startup_config_none(self.startup_config)

    def lab_path(self, filename: str) -> Path:
        """Path of a generated artifact inside this node's lab directory."""
        return Path(self.lab_dir) / filename

    def add_bind(self, bind: str) -> None:
        """Append a bind mount unless it is already present."""
        if bind not in self.binds:
            self.binds.append(bind)

    def template_context(self) -> dict[str, object]:
        """Variables exposed to startup-config templates."""
        return {
            "short_name": self.short_name,
            "long_name": self.long_name,
            "kind": self.kind,
            "image": self.image,
            "env": dict(self.env),
            "mgmt_network": self.mgmt_net.network if self.mgmt_net else None,
            "mgmt_ipv4_address": self.mgmt_ipv4_address,
            "mgmt_ipv4_prefix_length": self.mgmt_ipv4_prefix_length,
            "mgmt_ipv6_address": self.mgmt_ipv6_address,
            "mgmt_ipv6_prefix_length": self.mgmt_ipv6_prefix_length,
        }
