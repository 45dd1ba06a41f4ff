"""Tests for the Cisco XRd driver.

These tests verify that:
1. Init applies defaults, options and computed env in the right order
2. PreDeploy materializes the first-boot config idempotently
3. Deploy/Delete drive the runtime and handle failures
4. PostDeploy is best effort
"""
from __future__ import annotations

import asyncio

import pytest

from labnode.errors import (
    ConfigurationError,
    ContainerRuntimeError,
    FilesystemError,
    LifecycleError,
)
from labnode.nodes import (
    IMAGE_KEY,
    NodeState,
    with_binds,
    with_env,
    with_mgmt_net,
    with_runtime,
)
from labnode.nodes.xrd import DEFAULT_ENV, FIRST_BOOT_CONFIG, XRd
from labnode.types import MgmtNet, NodeConfig


@pytest.fixture
def node(node_config, runtime):
    xrd = XRd()
    xrd.init(node_config, with_runtime(runtime))
    return xrd


# --- Init ---

def test_init_applies_default_env(node):
    """Test that kind defaults land in the environment."""
    env = node.config.env

    for key, value in DEFAULT_ENV.items():
        assert env[key] == value


def test_init_computes_ninety_interfaces(node):
    """Test that XR_INTERFACES enumerates 90 data interfaces."""
    rules = [r for r in node.config.env["XR_INTERFACES"].split(";") if r]

    assert len(rules) == 90
    assert rules[0] == "linux:eth1,xr_name=Gi0/0/0/0"


def test_init_explicit_env_beats_computed(node_config, runtime):
    """Test that an option-supplied value wins over the computed one."""
    xrd = XRd()
    xrd.init(
        node_config,
        with_runtime(runtime),
        with_env({"XR_INTERFACES": "linux:eth1,xr_name=Gi0/0/0/0;"}),
    )

    assert xrd.config.env["XR_INTERFACES"] == "linux:eth1,xr_name=Gi0/0/0/0;"


def test_init_computed_env_beats_kind_default(node_config, runtime, monkeypatch):
    """Test that a computed value wins over a kind default for the same key."""
    monkeypatch.setitem(DEFAULT_ENV, "XR_INTERFACES", "default")
    xrd = XRd()
    xrd.init(node_config, with_runtime(runtime))

    assert xrd.config.env["XR_INTERFACES"].startswith("linux:eth1,xr_name=Gi0/0/0/0;")


def test_init_node_env_beats_defaults(node_config, runtime):
    """Test that env from the node config overrides kind defaults."""
    node_config.env = {"XR_MGMT_INTERFACES": "linux:eth0,xr_name=Mg0/RP0/CPU0/0"}
    xrd = XRd()
    xrd.init(node_config, with_runtime(runtime))

    assert xrd.config.env["XR_MGMT_INTERFACES"] == "linux:eth0,xr_name=Mg0/RP0/CPU0/0"
    assert xrd.config.env["XR_FIRST_BOOT_CONFIG"] == FIRST_BOOT_CONFIG


def test_init_options_last_write_wins(node_config, runtime):
    """Test that later options override earlier ones."""
    xrd = XRd()
    xrd.init(
        node_config,
        with_runtime(runtime),
        with_env({"FOO": "first"}),
        with_env({"FOO": "second"}),
    )

    assert xrd.config.env["FOO"] == "second"


def test_init_adds_first_boot_bind(node):
    """Test that the rendered config is mounted as the first-boot config."""
    cfg = node.config

    assert f"{cfg.lab_dir}/xrd.conf:{FIRST_BOOT_CONFIG}" in cfg.binds


def test_init_binds_have_no_duplicates(node_config, runtime):
    """Test that an option repeating the kind bind does not duplicate it."""
    bind = f"{node_config.lab_dir}/xrd.conf:{FIRST_BOOT_CONFIG}"
    xrd = XRd()
    xrd.init(node_config, with_runtime(runtime), with_binds([bind, bind]))

    assert xrd.config.binds.count(bind) == 1


def test_init_sets_mgmt_net(node_config, runtime):
    """Test that the management network option reaches the config."""
    xrd = XRd()
    xrd.init(node_config, with_runtime(runtime), with_mgmt_net(MgmtNet(network="clab")))

    assert xrd.config.mgmt_net.network == "clab"


def test_init_missing_image(node_config):
    """Test that a config without image raises ConfigurationError."""
    node_config.image = ""

    with pytest.raises(ConfigurationError) as exc_info:
        XRd().init(node_config)

    assert exc_info.value.node == "r1"


def test_init_missing_name(lab_dir):
    """Test that a config without name raises ConfigurationError."""
    with pytest.raises(ConfigurationError):
        XRd().init(NodeConfig(short_name="", image="xrd:latest", lab_dir=str(lab_dir)))


def test_init_empty_required_env(node_config):
    """Test that blanking a boot variable is rejected."""
    with pytest.raises(ConfigurationError) as exc_info:
        XRd().init(node_config, with_env({"XR_MGMT_INTERFACES": ""}))

    assert "XR_MGMT_INTERFACES" in str(exc_info.value)


def test_init_has_no_side_effects(node, lab_dir):
    """Test that init does not touch the filesystem."""
    assert not lab_dir.exists()
    assert node.state == NodeState.INITIALIZED


def test_init_twice_rejected(node, node_config):
    with pytest.raises(LifecycleError):
        node.init(node_config)


def test_get_images(node):
    assert node.get_images() == {IMAGE_KEY: "ios-xr/xrd-control-plane:7.8.1"}


# --- PreDeploy ---

def test_pre_deploy_creates_config(node, lab_dir):
    """Test that pre-deploy creates the lab dir and a non-empty config."""
    node.pre_deploy()

    path = lab_dir / "xrd.conf"
    assert path.exists()
    assert path.read_text().strip()
    assert node.config.res_startup_config == str(path)
    assert node.config.enforce_startup_config is True
    assert node.state == NodeState.PRE_DEPLOYED


def test_pre_deploy_twice_identical(node, lab_dir):
    """Test that pre-deploy is re-runnable with identical output."""
    node.pre_deploy()
    first = (lab_dir / "xrd.conf").read_bytes()

    node.pre_deploy()

    assert (lab_dir / "xrd.conf").read_bytes() == first


def test_pre_deploy_appends_user_config(node, lab_dir, tmp_path):
    """Test that the user fragment follows the template."""
    source = tmp_path / "r1.cfg"
    source.write_text("interface Loopback0\n ipv4 address 10.0.0.1/32\n")
    node.config.startup_config = str(source)

    node.pre_deploy()

    content = (lab_dir / "xrd.conf").read_text()
    assert content.endswith("\ninterface Loopback0\n ipv4 address 10.0.0.1/32\n")
    assert content.index("hostname r1") < content.index("interface Loopback0")


def test_pre_deploy_unwritable_lab_dir(node, tmp_path):
    """Test that a lab dir under a regular file raises FilesystemError."""
    blocker = tmp_path / "blocker"
    blocker.write_text("")
    node.config.lab_dir = str(blocker / "r1")

    with pytest.raises(FilesystemError):
        node.pre_deploy()


def test_pre_deploy_before_init():
    with pytest.raises(LifecycleError):
        XRd().pre_deploy()


# --- Deploy ---

@pytest.mark.asyncio
async def test_deploy_creates_and_starts(node, runtime):
    """Test that deploy creates then starts the container."""
    node.pre_deploy()

    await node.deploy()

    assert runtime.calls == [("create", "clab-test-r1"), ("start", "id-clab-test-r1")]
    assert runtime.containers["clab-test-r1"]["status"] == "running"
    assert node.state == NodeState.DEPLOYED


@pytest.mark.asyncio
async def test_deploy_passes_finalized_config(node, runtime):
    """Test that the runtime sees the merged env and binds."""
    node.pre_deploy()

    await node.deploy()

    container = runtime.containers["clab-test-r1"]
    assert "XR_INTERFACES" in container["env"]
    assert any(b.endswith(f":{FIRST_BOOT_CONFIG}") for b in container["binds"])


@pytest.mark.asyncio
async def test_deploy_before_pre_deploy(node):
    with pytest.raises(LifecycleError):
        await node.deploy()


@pytest.mark.asyncio
async def test_deploy_without_runtime(node_config):
    """Test that deploying without a runtime raises ConfigurationError."""
    xrd = XRd()
    xrd.init(node_config)
    xrd.pre_deploy()

    with pytest.raises(ConfigurationError):
        await xrd.deploy()


@pytest.mark.asyncio
async def test_deploy_runtime_failure(node, runtime):
    """Test that runtime errors surface as ContainerRuntimeError."""
    runtime.fail_on.add("start")
    node.pre_deploy()

    with pytest.raises(ContainerRuntimeError):
        await node.deploy()

    assert node.state == NodeState.PRE_DEPLOYED


@pytest.mark.asyncio
async def test_deploy_wraps_unexpected_errors(node, runtime):
    """Test that non-driver exceptions from the runtime are wrapped."""
    async def boom(cfg):
        raise OSError("socket closed")

    runtime.create_container = boom
    node.pre_deploy()

    with pytest.raises(ContainerRuntimeError) as exc_info:
        await node.deploy()

    assert exc_info.value.node == "r1"
    assert "socket closed" in str(exc_info.value)


@pytest.mark.asyncio
async def test_deploy_retry_is_noop(node, runtime):
    """Test that re-running deploy reuses the existing container."""
    node.pre_deploy()
    await node.deploy()

    await node.deploy()

    assert len(runtime.containers) == 1


@pytest.mark.asyncio
async def test_deploy_cancelled_removes_container(node, runtime):
    """Test that cancelling deploy cleans up and propagates CancelledError."""
    started = asyncio.Event()

    async def slow_start(container_id, cfg):
        started.set()
        await asyncio.sleep(3600)

    runtime.start_container = slow_start
    node.pre_deploy()

    task = asyncio.create_task(node.deploy())
    await started.wait()
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task

    assert "clab-test-r1" not in runtime.containers
    assert ("delete", "clab-test-r1") in runtime.calls
    assert node.state == NodeState.PRE_DEPLOYED


# --- PostDeploy ---

@pytest.mark.asyncio
async def test_post_deploy_rerenders_with_mgmt_address(node, runtime, lab_dir):
    """Test that post-deploy re-renders once the mgmt address is known."""
    node.pre_deploy()
    await node.deploy()

    await node.post_deploy({})

    assert "ipv4 address 172.20.20.2/24" in (lab_dir / "xrd.conf").read_text()
    assert node.state == NodeState.POST_DEPLOYED


@pytest.mark.asyncio
async def test_post_deploy_failure_is_logged(node, tmp_path, caplog):
    """Test that post-deploy failures are warnings, not exceptions."""
    node.pre_deploy()
    await node.deploy()
    node.config.startup_config = str(tmp_path / "gone.cfg")

    await node.post_deploy({})

    assert node.state == NodeState.DEPLOYED
    assert any(r.levelname == "WARNING" and "r1" in r.getMessage() for r in caplog.records)


@pytest.mark.asyncio
async def test_post_deploy_before_deploy(node):
    """Test that calling post-deploy out of order still raises."""
    with pytest.raises(LifecycleError):
        await node.post_deploy({})


@pytest.mark.asyncio
async def test_save_config_is_noop(node, runtime):
    node.pre_deploy()
    await node.deploy()
    calls = list(runtime.calls)

    await node.save_config()

    assert runtime.calls == calls


# --- Delete ---

@pytest.mark.asyncio
async def test_delete_removes_container(node, runtime):
    node.pre_deploy()
    await node.deploy()

    await node.delete()

    assert runtime.containers == {}
    assert node.state == NodeState.DELETED


@pytest.mark.asyncio
async def test_delete_twice_succeeds(node, runtime):
    """Test that deleting an already deleted node is not an error."""
    node.pre_deploy()
    await node.deploy()

    await node.delete()
    await node.delete()

    assert node.state == NodeState.DELETED


@pytest.mark.asyncio
async def test_delete_never_created(node):
    """Test that deleting a node that was never deployed succeeds."""
    await node.delete()

    assert node.state == NodeState.DELETED


@pytest.mark.asyncio
async def test_delete_failure_raises(node, runtime):
    runtime.fail_on.add("delete")

    with pytest.raises(ContainerRuntimeError):
        await node.delete()


@pytest.mark.asyncio
async def test_delete_before_init():
    with pytest.raises(LifecycleError):
        await XRd().delete()
