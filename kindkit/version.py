"""The CLI version."""

from __future__ import annotations

import platform

VERSION_CORE = "0.11.0"
VERSION_PRE_RELEASE = "alpha"
# the commit the package was built from, if known
GIT_COMMIT = ""

_ARCH_NAMES = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "i386": "386",
    "i686": "386",
}


def version() -> str:
    """Return the semantic version, with pre-release and commit build info if known."""
    v = VERSION_CORE
    if VERSION_PRE_RELEASE:
        v += "-" + VERSION_PRE_RELEASE
        if GIT_COMMIT:
            # 14 character short hash
            v += "+" + truncate(GIT_COMMIT, 14)
    return v


def display_version() -> str:
    """Return the version formatted for display, with runtime and platform."""
    machine = platform.machine().lower()
    arch = _ARCH_NAMES.get(machine, machine)
    system = platform.system().lower()
    return f"kind v{version()} python{platform.python_version()} {system}/{arch}"


def truncate(s: str, max_len: int) -> str:
    """Return s cut to at most max_len characters."""
    if len(s) < max_len:
        return s
    return s[:max_len]