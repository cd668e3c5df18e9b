"""Host filesystem helpers that behave well with container bind mounts."""

from __future__ import annotations

import os
import posixpath
import shutil
import stat
import sys
import tempfile


def temp_dir(dir: str = "", prefix: str = "") -> str:
    """Create a temporary directory and return a path that can be mounted.

    On macOS the default temporary location under /var is not mountable, so
    the equivalent path under /private is returned instead.
    """
    name = tempfile.mkdtemp(prefix=prefix, dir=dir or None)
    if sys.platform == "darwin" and name.startswith("/var/"):
        name = "/private" + name
    return name


def is_abs(host_path: str) -> bool:
    """Return True if the path is absolute natively or as a POSIX path."""
    return posixpath.isabs(host_path) or os.path.isabs(host_path)


def copy(src: str, dst: str) -> None:
    """Recursively copy src to dst, keeping modes and dereferencing symlinks."""
    info = os.lstat(src)
    os.makedirs(os.path.dirname(dst) or ".", exist_ok=True)
    _copy(src, dst, info)


def _copy(src: str, dst: str, info: os.stat_result) -> None:
    if stat.S_ISLNK(info.st_mode):
        _copy_symlink(src, dst)
    elif stat.S_ISDIR(info.st_mode):
        _copy_dir(src, dst, info)
    else:
        _copy_file(src, dst, info)


def copy_file(src: str, dst: str) -> None:
    """Copy the file src to dst, creating dst with src's mode."""
    _copy_file(src, dst, os.stat(src))


def _copy_file(src: str, dst: str, info: os.stat_result) -> None:
    with open(src, "rb") as source:
        fd = os.open(dst, os.O_RDWR | os.O_CREAT | os.O_TRUNC, stat.S_IMODE(info.st_mode))
        with os.fdopen(fd, "wb") as target:
            shutil.copyfileobj(source, target)
            target.flush()
            os.fsync(target.fileno())


def _copy_symlink(src: str, dst: str) -> None:
    real_src = os.path.realpath(src, strict=True)
    _copy(real_src, dst, os.lstat(real_src))


def _copy_dir(src: str, dst: str, info: os.stat_result) -> None:
    os.makedirs(dst, mode=stat.S_IMODE(info.st_mode), exist_ok=True)
    for name in sorted(os.listdir(src)):
        entry_src = os.path.join(src, name)
        _copy(entry_src, os.path.join(dst, name), os.lstat(entry_src))