"""Detection of terminals and of whether they handle escape codes."""

from __future__ import annotations

import os
import platform
from collections.abc import Mapping
from typing import Any, Optional


def is_terminal(writer: Any) -> bool:
    """Return True if writer is a terminal."""
    if writer is None:
        return False
    isatty = getattr(writer, "isatty", None)
    if not callable(isatty):
        return False
    try:
        return bool(isatty())
    except (OSError, ValueError):
        return False


def is_smart_terminal(
    writer: Any,
    system: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> bool:
    """Return True if writer is a terminal that can be trusted with VT escape codes.

    system is a lower-case OS name such as "linux" or "windows"; it defaults
    to the running system. environ defaults to the process environment.
    """
    if not is_terminal(writer):
        return False
    env = os.environ if environ is None else environ
    if system is None:
        system = platform.system().lower()

    # explicit request for no ANSI escape codes
    if "NO_COLOR" in env:
        return False

    term = env.get("TERM", "")
    if term == "dumb":
        return False
    # st has a known bug with the codes used here
    if term == "st-256color":
        return False

    # on Windows only the modern terminal component handles these well
    if system == "windows" and not env.get("WT_SESSION", ""):
        return False

    # Travis CI presents a poor fake TTY
    if env.get("HAS_JOSH_K_SEAL_OF_APPROVAL") == "true" and env.get("TRAVIS") == "true":
        return False

    return True