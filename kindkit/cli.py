"""Command line output: standard streams, the CLI logger, a spinner and status lines."""

from __future__ import annotations

import itertools
import os
import sys
import threading
from dataclasses import dataclass
from types import FrameType
from typing import Any, Optional, TextIO

from kindkit import env
from kindkit.log import InfoLogger, Level

_SPINNER_FRAMES = (
    "⠈⠁",
    "⠈⠑",
    "⠈⠱",
    "⠈⡱",
    "⢀⡱",
    "⢄⡱",
    "⢄⡱",
    "⢆⡱",
    "⢎⡱",
    "⢎⡰",
    "⢎⡠",
    "⢎⡀",
    "⢎⠁",
    "⠎⠁",
    "⠊⠁",
)


@dataclass
class IOStreams:
    """The standard input, output and error streams of a command."""

    stdin: Any
    out: Any
    err_out: Any


def standard_io_streams() -> IOStreams:
    """Return the process's own stdin, stdout and stderr."""
    return IOStreams(stdin=sys.stdin, out=sys.stdout, err_out=sys.stderr)


def _flush(writer: Any) -> None:
    flush = getattr(writer, "flush", None)
    if callable(flush):
        flush()


def _sprintf(format: str, args: tuple[Any, ...]) -> str:
    return format % args if args else format


class Spinner:
    """A terminal loading spinner that also acts as a writer.

    Writes made while it spins first return the cursor to the start of the line.
    """

    def __init__(self, writer: TextIO, interval: float = 0.1) -> None:
        self.writer = writer
        self._interval = interval
        self._lock = threading.Lock()
        self._running = False
        self._prefix = ""
        self._suffix = ""
        self._stop_event: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None
        # toggling line wrapping behaves poorly on Windows terminals
        if sys.platform.startswith("win"):
            self._frame_format = "\r%s%s%s"
        else:
            self._frame_format = "\x1b[?7l\r%s%s%s\x1b[?7h"

    def set_prefix(self, prefix: str) -> None:
        """Set the text written before the spinner."""
        with self._lock:
            self._prefix = prefix

    def set_suffix(self, suffix: str) -> None:
        """Set the text written after the spinner."""
        with self._lock:
            self._suffix = suffix

    def start(self) -> None:
        """Start spinning in the background; does nothing if already running."""
        with self._lock:
            if self._running:
                return
            self._running = True
            stop_event = threading.Event()
            self._stop_event = stop_event
            self._thread = threading.Thread(target=self._spin, args=(stop_event,), daemon=True)
            self._thread.start()

    def _spin(self, stop_event: threading.Event) -> None:
        for frame in itertools.cycle(_SPINNER_FRAMES):
            if stop_event.wait(self._interval):
                with self._lock:
                    self._running = False
                return
            with self._lock:
                self.writer.write(self._frame_format % (self._prefix, frame, self._suffix))
                _flush(self.writer)

    def stop(self) -> None:
        """Stop spinning and wait until the spinner has stopped."""
        with self._lock:
            if not self._running:
                return
            stop_event, thread = self._stop_event, self._thread
        assert stop_event is not None and thread is not None
        stop_event.set()
        thread.join()

    @property
    def running(self) -> bool:
        """True while the spinner is spinning."""
        with self._lock:
            return self._running

    def write(self, data: str) -> int:
        """Write data to the inner writer, interrupting the spinner line if needed."""
        with self._lock:
            if self._running:
                self.writer.write("\r")
            self.writer.write(data)
            _flush(self.writer)
            return len(data)

    def flush(self) -> None:
        with self._lock:
            _flush(self.writer)


def _debug_header(depth: int) -> str:
    frame: Optional[FrameType] = sys._getframe(1)
    for _ in range(depth):
        if frame is None:
            break
        frame = frame.f_back
    if frame is None:
        file, line = "???", 1
    else:
        path = frame.f_code.co_filename.replace(os.sep, "/")
        parts = path.rsplit("/", 2)
        file = "/".join(parts[-2:])
        line = frame.f_lineno
    return f"DEBUG: {file}:{line}] "


class Logger:
    """The CLI logger: writes whole lines to a writer, with leveled debug output."""

    def __init__(self, writer: Any, verbosity: Level = 0) -> None:
        self._lock = threading.Lock()
        self._verbosity = verbosity
        self._writer: Any = None
        self._is_smart_writer = False
        self.set_writer(writer)

    @property
    def writer(self) -> Any:
        """The current output writer."""
        with self._lock:
            return self._writer

    def set_writer(self, writer: Any) -> None:
        """Set the output writer."""
        with self._lock:
            self._writer = writer
            self._is_smart_writer = isinstance(writer, Spinner) or env.is_smart_terminal(writer)

    def color_enabled(self) -> bool:
        """Return True if colored output is fine for the current writer."""
        with self._lock:
            return self._is_smart_writer

    @property
    def verbosity(self) -> Level:
        return self._verbosity

    def set_verbosity(self, verbosity: Level) -> None:
        """Set the info verbosity level."""
        self._verbosity = verbosity

    def _write_line(self, text: str) -> None:
        if not text.endswith("\n"):
            text += "\n"
        with self._lock:
            self._writer.write(text)
            _flush(self._writer)

    def _debug(self, text: str) -> None:
        # frames above the header: _debug, the info method, its caller
        self._write_line(_debug_header(2) + text)

    def warn(self, message: str) -> None:
        self._write_line(message)

    def warnf(self, format: str, *args: Any) -> None:
        self._write_line(_sprintf(format, args))

    def error(self, message: str) -> None:
        self._write_line(message)

    def errorf(self, format: str, *args: Any) -> None:
        self._write_line(_sprintf(format, args))

    def v(self, level: Level) -> InfoLogger:
        return _InfoLogger(self, level, level <= self._verbosity)


class _InfoLogger:
    def __init__(self, logger: Logger, level: Level, enabled: bool) -> None:
        self._logger = logger
        self._level = level
        self._enabled = enabled

    def enabled(self) -> bool:
        return self._enabled

    def info(self, message: str) -> None:
        if not self._enabled:
            return
        if self._level > 0:
            self._logger._debug(message)
        else:
            self._logger._write_line(message)

    def infof(self, format: str, *args: Any) -> None:
        if not self._enabled:
            return
        text = _sprintf(format, args)
        if self._level > 0:
            self._logger._debug(text)
        else:
            self._logger._write_line(text)


class Status:
    """Tracks the current phase of work, with a spinner when one is available."""

    def __init__(self, logger: Any, spinner: Optional[Spinner] = None) -> None:
        self._logger = logger
        self._spinner = spinner
        self._status = ""
        if spinner is not None:
            self._success_format = " \x1b[32m✓\x1b[0m %s\n"
            self._failure_format = " \x1b[31m✗\x1b[0m %s\n"
        else:
            self._success_format = " ✓ %s\n"
            self._failure_format = " ✗ %s\n"

    def start(self, status: str) -> None:
        """End any current phase as a success and begin a new one."""
        self.end(True)
        self._status = status
        if self._spinner is not None:
            self._spinner.set_suffix(f" {status} ")
            self._spinner.start()
        else:
            self._logger.v(0).infof(" • %s  ...\n", status)

    def end(self, success: bool) -> None:
        """Finish the current phase, marking it as success or failure."""
        if not self._status:
            return
        if self._spinner is not None:
            self._spinner.stop()
            self._spinner.writer.write("\r")
        fmt = self._success_format if success else self._failure_format
        self._logger.v(0).infof(fmt, self._status)
        self._status = ""


def status_for_logger(logger: Any) -> Status:
    """Return a Status for logger, using its spinner if it writes to one."""
    if isinstance(logger, Logger) and isinstance(logger.writer, Spinner):
        return Status(logger, logger.writer)
    return Status(logger)


def new_logger() -> Logger:
    """Return the standard CLI logger, writing to stderr, with a spinner on smart terminals."""
    writer: Any = sys.stderr
    if env.is_smart_terminal(writer):
        writer = Spinner(writer)
    return Logger(writer, 0)


def color_enabled(logger: Any) -> bool:
    """Return True if logger reports that colored output is enabled."""
    method = getattr(logger, "color_enabled", None)
    return callable(method) and bool(method())