"""The logging interface used across the package, plus a logger that discards everything."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

Level = int


@runtime_checkable
class InfoLogger(Protocol):
    """Writes status messages at one verbosity level."""

    def info(self, message: str) -> None:
        """Write a user facing status message."""

    def infof(self, format: str, *args: Any) -> None:
        """Write a %-formatted user facing status message."""

    def enabled(self) -> bool:
        """Return True if this verbosity level is enabled on the logger."""


@runtime_checkable
class Logger(Protocol):
    """Writes warnings, errors and leveled info messages.

    v(0) carries normal user facing messages, v(1) and above debug output
    in increasing detail.
    """

    def warn(self, message: str) -> None:
        """Write a user facing warning."""

    def warnf(self, format: str, *args: Any) -> None:
        """Write a %-formatted user facing warning."""

    def error(self, message: str) -> None:
        """Write an error message."""

    def errorf(self, format: str, *args: Any) -> None:
        """Write a %-formatted error message."""

    def v(self, level: Level) -> InfoLogger:
        """Return an InfoLogger for the given verbosity level."""


class _NullWriter:
    """A text sink that accepts and drops everything written to it."""

    def write(self, text: str) -> int:
        return len(text)


_DISCARD = _NullWriter()


class NoopInfoLogger:
    """An InfoLogger that is never enabled and writes nothing."""

    def enabled(self) -> bool:
        return False

    def info(self, message: str) -> None:
        _DISCARD.write(message)

    def infof(self, format: str, *args: Any) -> None:
        _DISCARD.write(format)


class NoopLogger:
    """A Logger that writes nothing."""

    def warn(self, message: str) -> None:
        _DISCARD.write(message)

    def warnf(self, format: str, *args: Any) -> None:
        _DISCARD.write(format)

    def error(self, message: str) -> None:
        _DISCARD.write(message)

    def errorf(self, format: str, *args: Any) -> None:
        _DISCARD.write(format)

    def v(self, level: Level) -> InfoLogger:
        return NoopInfoLogger()