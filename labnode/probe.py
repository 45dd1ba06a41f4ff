"""Post-boot version introspection."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from labnode.errors import ParseError
from labnode.runtime.base import ContainerRuntime

logger = logging.getLogger(__name__)


# "v23.10.1", "v21.11.1-185-g7a7f8a1b2c", tokens may carry letters
DEFAULT_VERSION_PATTERN = re.compile(
    r"v(?P<major>\d+)\.(?P<minor>\w+)\.(?P<patch>\w+)"
)


@dataclass
class VersionInfo:
    """Version tokens as reported by the device. Not necessarily numeric."""
    major: str
    minor: str
    patch: str

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


def parse_version(
    node: str,
    output: str,
    pattern: re.Pattern[str] = DEFAULT_VERSION_PATTERN,
) -> VersionInfo:
    """Extract the first version-shaped token from command output.

    Surrounding log lines and whitespace are ignored. Raises ParseError when
    nothing matches.
    """
    match = pattern.search(output or "")
    if match is None:
        raise ParseError(node, "no version found in probe output", output=output or "")
    return VersionInfo(
        major=match.group("major"),
        minor=match.group("minor"),
        patch=match.group("patch"),
    )


class VersionProbe:
    """Runs a fixed command in a node's container and parses its version."""

    def __init__(
        self,
        command: list[str],
        pattern: re.Pattern[str] = DEFAULT_VERSION_PATTERN,
    ):
        self.command = command
        self.pattern = pattern

    async def run(self, runtime: ContainerRuntime, node: str, container_name: str) -> VersionInfo:
        result = await runtime.exec(container_name, self.command)
        logger.debug(
            f"node {node}. stdout: {result.stdout}, stderr: {result.stderr}",
            extra={"node": node},
        )
        return parse_version(node, result.stdout, self.pattern)
