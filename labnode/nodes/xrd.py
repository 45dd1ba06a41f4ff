"""Cisco XRd node driver."""

from __future__ import annotations

import logging
from collections.abc import Mapping

from labnode.environment import (
    add_missing_env,
    interface_mapping,
    merge_env,
    missing_required_env,
)
from labnode.errors import ConfigurationError
from labnode.nodes.base import IMAGE_KEY, NodeDriver, NodeOption
from labnode.nodes.common import (
    DEPLOYED_STATES,
    POST_INIT_STATES,
    Lifecycle,
    NodeState,
    best_effort,
    check_required,
    delete_container,
    deploy_container,
    ensure_lab_dir,
    require_runtime,
)
from labnode.nodes.registry import register
from labnode.render import config_filename, write_startup_config
from labnode.runtime.base import ContainerRuntime
from labnode.types import MgmtNet, NodeConfig

logger = logging.getLogger(__name__)


KIND = "xrd"
KIND_NAMES = ["xrd", "cisco_xrd"]

# XRd maps container interfaces to GigabitEthernet ports
INTERFACE_COUNT = 90

FIRST_BOOT_CONFIG = "/etc/xrd/first-boot.cfg"

DEFAULT_ENV = {
    "XR_FIRST_BOOT_CONFIG": FIRST_BOOT_CONFIG,
    "XR_MGMT_INTERFACES": "linux:eth0,xr_name=Mg0/RP0/CPU0/0,chksum",
}

REQUIRED_ENV = ["XR_FIRST_BOOT_CONFIG", "XR_MGMT_INTERFACES", "XR_INTERFACES"]


def interface_env() -> dict[str, str]:
    """Computed XR_INTERFACES entry: linux:eth1 -> Gi0/0/0/0 and so on."""
    return {"XR_INTERFACES": interface_mapping(INTERFACE_COUNT)}


class XRd(NodeDriver):
    """Cisco XRd control-plane container."""

    def __init__(self) -> None:
        self._cfg: NodeConfig | None = None
        self._runtime: ContainerRuntime | None = None
        self._lifecycle = Lifecycle()

    @property
    def kind(self) -> str:
        return KIND

    @property
    def config(self) -> NodeConfig:
        return self._cfg

    @property
    def runtime(self) -> ContainerRuntime | None:
        return self._runtime

    @property
    def state(self) -> NodeState:
        return self._lifecycle.state

    def with_runtime(self, runtime: ContainerRuntime) -> None:
        self._runtime = runtime

    def with_mgmt_net(self, mgmt_net: MgmtNet) -> None:
        self._cfg.mgmt_net = mgmt_net

    def init(self, cfg: NodeConfig, *opts: NodeOption) -> None:
        self._lifecycle.require("init", NodeState.UNINITIALIZED)
        self._cfg = cfg
        self._lifecycle.node = cfg.short_name
        cfg.kind = KIND

        # Explicit env (node config, then options) first; computed values and
        # kind defaults only fill the keys still missing, in that order
        cfg.env = merge_env(cfg.env)
        for option in opts:
            option(self)
        add_missing_env(cfg.env, interface_env())
        add_missing_env(cfg.env, DEFAULT_ENV)

        check_required(cfg)
        missing = missing_required_env(cfg.env, REQUIRED_ENV)
        if missing:
            raise ConfigurationError(cfg.short_name, f"empty environment variables: {', '.join(missing)}")

        cfg.add_bind(f"{cfg.lab_path(config_filename(KIND))}:{FIRST_BOOT_CONFIG}")
        self._lifecycle.advance(NodeState.INITIALIZED)

    def pre_deploy(self, *args: str) -> None:
        self._lifecycle.require("pre-deploy", NodeState.INITIALIZED, NodeState.PRE_DEPLOYED)
        ensure_lab_dir(self._cfg)
        self._create_xrd_files()
        self._lifecycle.advance(NodeState.PRE_DEPLOYED)

    async def deploy(self) -> None:
        self._lifecycle.require("deploy", NodeState.PRE_DEPLOYED, NodeState.DEPLOYED)
        runtime = require_runtime(self._runtime, self._cfg)
        await deploy_container(runtime, self._cfg)
        self._lifecycle.advance(NodeState.DEPLOYED)

    @best_effort("Post-deploy")
    async def post_deploy(self, peers: Mapping[str, NodeDriver]) -> None:
        self._lifecycle.require("post-deploy", *DEPLOYED_STATES)
        logger.info(
            f"Running postdeploy actions for Cisco XRd '{self._cfg.short_name}' node",
            extra={"node": self._cfg.short_name},
        )
        # Full re-render: overwrites any edits made to the file since pre-deploy
        self._create_xrd_files()
        self._lifecycle.advance(NodeState.POST_DEPLOYED)

    async def save_config(self) -> None:
        self._lifecycle.require("save config", *DEPLOYED_STATES)

    async def delete(self) -> None:
        self._lifecycle.require("delete", *POST_INIT_STATES)
        runtime = require_runtime(self._runtime, self._cfg)
        await delete_container(runtime, self._cfg)
        self._lifecycle.advance(NodeState.DELETED)

    def get_images(self) -> dict[str, str]:
        return {IMAGE_KEY: self._cfg.image}

    def _create_xrd_files(self) -> None:
        write_startup_config(self._cfg, KIND)


register(KIND_NAMES, XRd)
