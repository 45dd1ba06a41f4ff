"""Environment derivation for node containers.

Precedence is explicit > computed > kind default. Drivers merge the explicit
layers (node config, then options; later wins) with merge_env, then fill the
remaining gaps with add_missing_env, computed values before kind defaults.
The order holds even when a default and a computed value share a key.
"""

from __future__ import annotations

from collections.abc import Mapping


def interface_mapping(
    count: int,
    container_name: str = "linux:eth{index}",
    device_name: str = "xr_name=Gi0/0/0/{port}",
    delimiter: str = ";",
    first_index: int = 1,
) -> str:
    """Build an interface mapping value with `count` rules.

    Rule i maps container interface ``first_index + i`` to device port ``i``.
    Index 0 belongs to the management interface, so data interfaces start at
    ``first_index`` (1). Every rule is terminated by the delimiter.

    >>> interface_mapping(2)
    'linux:eth1,xr_name=Gi0/0/0/0;linux:eth2,xr_name=Gi0/0/0/1;'
    """
    if count < 0:
        raise ValueError(f"interface count must be non-negative, got {count}")

    rules = [
        f"{container_name.format(index=first_index + port)},{device_name.format(port=port)}"
        for port in range(count)
    ]
    return "".join(rule + delimiter for rule in rules)


def merge_env(*maps: Mapping[str, str] | None) -> dict[str, str]:
    """Merge maps left to right; later maps win on key collision."""
    merged: dict[str, str] = {}
    for env in maps:
        if env:
            merged.update(env)
    return merged


def add_missing_env(env: dict[str, str], computed: Mapping[str, str]) -> dict[str, str]:
    """Insert computed entries whose keys are absent from env (in place)."""
    for key, value in computed.items():
        env.setdefault(key, value)
    return env


def missing_required_env(env: Mapping[str, str], required: list[str]) -> list[str]:
    """Return required keys that are absent or empty."""
    return [key for key in required if not str(env.get(key) or "").strip()]
