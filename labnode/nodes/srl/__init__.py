"""Nokia SR Linux node driver."""

from __future__ import annotations

import logging
from collections.abc import Mapping

from labnode.environment import add_missing_env, merge_env
from labnode.errors import ContainerRuntimeError, ParseError
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
from labnode.nodes.srl.banner import format_banner, version_probe
from labnode.render import config_filename, write_startup_config
from labnode.runtime.base import ContainerRuntime
from labnode.types import MgmtNet, NodeConfig

logger = logging.getLogger(__name__)


KIND = "srl"
KIND_NAMES = ["srl", "nokia_srlinux"]

DEFAULT_ENV = {"SRLINUX": "1"}

# Rendered CLI commands are mounted here and applied once the node is up
CONFIG_CLI_PATH = "/tmp/clab-config.cli"

APPLY_CONFIG_COMMAND = [
    "bash", "-c", f"sr_cli -ed --post 'commit save' < {CONFIG_CLI_PATH}",
]
SAVE_CONFIG_COMMAND = ["sr_cli", "-d", "tools system configuration save"]


class SRLinux(NodeDriver):
    """Nokia SR Linux container."""

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

        cfg.env = merge_env(cfg.env)
        for option in opts:
            option(self)
        add_missing_env(cfg.env, DEFAULT_ENV)

        check_required(cfg)
        cfg.add_bind(f"{cfg.lab_path(config_filename(KIND))}:{CONFIG_CLI_PATH}:ro")
        self._lifecycle.advance(NodeState.INITIALIZED)

    def pre_deploy(self, *args: str) -> None:
        self._lifecycle.require("pre-deploy", NodeState.INITIALIZED, NodeState.PRE_DEPLOYED)
        ensure_lab_dir(self._cfg)
        write_startup_config(self._cfg, KIND, extra={"banner": None})
        self._lifecycle.advance(NodeState.PRE_DEPLOYED)

    async def deploy(self) -> None:
        self._lifecycle.require("deploy", NodeState.PRE_DEPLOYED, NodeState.DEPLOYED)
        runtime = require_runtime(self._runtime, self._cfg)
        await deploy_container(runtime, self._cfg)
        self._lifecycle.advance(NodeState.DEPLOYED)

    @best_effort("Post-deploy")
    async def post_deploy(self, peers: Mapping[str, NodeDriver]) -> None:
        self._lifecycle.require("post-deploy", *DEPLOYED_STATES)
        cfg = self._cfg
        logger.info(f"Running postdeploy actions for Nokia SR Linux '{cfg.short_name}' node", extra={"node": cfg.short_name})

        try:
            banner = await self.banner()
        except ParseError as e:
            logger.warning(f"Skipping login banner: {e}", extra={"node": cfg.short_name})
            banner = None

        write_startup_config(cfg, KIND, extra={"banner": banner})

        result = await require_runtime(self._runtime, cfg).exec(cfg.long_name, APPLY_CONFIG_COMMAND)
        if not result.ok:
            raise ContainerRuntimeError(
                cfg.short_name, "apply startup config",
                f"exit={result.exit_code}, stderr={result.stderr.strip()}",
            )
        self._lifecycle.advance(NodeState.POST_DEPLOYED)

    async def banner(self) -> str:
        """Login banner with docs links for the running release.

        Raises:
            ParseError: the version could not be read from the node
        """
        runtime = require_runtime(self._runtime, self._cfg)
        version = await version_probe.run(runtime, self._cfg.short_name, self._cfg.long_name)
        return format_banner(version)

    async def save_config(self) -> None:
        self._lifecycle.require("save config", *DEPLOYED_STATES)
        cfg = self._cfg
        result = await require_runtime(self._runtime, cfg).exec(cfg.long_name, SAVE_CONFIG_COMMAND)
        if not result.ok:
            raise ContainerRuntimeError(
                cfg.short_name, "save config",
                f"exit={result.exit_code}, stderr={result.stderr.strip()}",
            )
        logger.info(f"Saved SR Linux running configuration: {result.stdout.strip()}", extra={"node": cfg.short_name})

    async def delete(self) -> None:
        self._lifecycle.require("delete", *POST_INIT_STATES)
        runtime = require_runtime(self._runtime, self._cfg)
        await delete_container(runtime, self._cfg)
        self._lifecycle.advance(NodeState.DELETED)

    def get_images(self) -> dict[str, str]:
        return {IMAGE_KEY: self._cfg.image}


register(KIND_NAMES, SRLinux)
