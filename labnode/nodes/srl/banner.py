"""SR Linux login banner with links matching the running release."""

from __future__ import annotations

from labnode.probe import VersionInfo, VersionProbe

VERSION_COMMAND = [
    "sr_cli", "-d", "info from state /system information version | grep version",
]

version_probe = VersionProbe(VERSION_COMMAND)

BANNER = """\
................................................................
:                  Welcome to Nokia SR Linux!                  :
:              Open Network OS for the NetOps era.             :
:                                                              :
:    This is a freely distributed official container image.    :
:                      Use it - Share it                       :
:                                                              :
: Get started: https://learn.srlinux.dev                       :
: Container:   https://go.srlinux.dev/container-image          :
: Docs:        https://doc.srlinux.dev/{major}-{minor:<2}                   :
: Rel. notes:  https://doc.srlinux.dev/rn{major}-{minor}-{patch}               :
: YANG:        https://yang.srlinux.dev/v{major}.{minor}.{patch}               :
: Discord:     https://go.srlinux.dev/discord                  :
: Contact:     https://go.srlinux.dev/contact-sales            :
................................................................
"""


def format_banner(version: VersionInfo) -> str:
    """Fill the banner with version-specific links.

    A single-character minor leaves the table one column short, so the patch
    token gets a trailing space to keep the right border aligned.
    """
    patch = version.patch
    if len(version.minor) == 1:
        patch = patch + " "

    return BANNER.format(major=version.major, minor=version.minor, patch=patch)
