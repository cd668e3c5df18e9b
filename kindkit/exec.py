"""Running commands, capturing their output, and helpers built on commands."""

from __future__ import annotations

import io
import os
import shlex
import subprocess
import sys
import threading
from collections.abc import Callable, Sequence
from functools import partial
from typing import Any, Optional, Protocol

from kindkit import errors as kerrors

_CHUNK = 64 * 1024


class RunError(Exception):
    """An error running a command, with its argv and captured output."""

    def __init__(
        self,
        command: Sequence[str],
        output: bytes = b"",
        inner: Optional[BaseException] = None,
    ) -> None:
        super().__init__(list(command), bytes(output), inner)
        self.command: list[str] = list(command)
        self.output: bytes = bytes(output)
        self.inner = inner
        if inner is not None:
            self.__cause__ = inner

    def __str__(self) -> str:
        inner = "<nil>" if self.inner is None else str(self.inner)
        return f'command "{self.pretty_command()}" failed with error: {inner}'

    def pretty_command(self) -> str:
        """Return the command quoted so that it could be pasted into a shell."""
        return pretty_command(self.command[0], *self.command[1:])

    @property
    def cause(self) -> BaseException:
        """The underlying error, or this error when there is none."""
        return self.inner if self.inner is not None else self


class _Cmd(Protocol):
    def run(self) -> None: ...

    def set_env(self, *args: str) -> "_Cmd": ...

    def set_stdin(self, reader: Any) -> "_Cmd": ...

    def set_stdout(self, writer: Any) -> "_Cmd": ...

    def set_stderr(self, writer: Any) -> "_Cmd": ...


def _write_to(writer: Any, data: bytes) -> None:
    if isinstance(writer, io.TextIOBase):
        buffer = getattr(writer, "buffer", None)
        if buffer is not None:
            writer.flush()
            buffer.write(data)
            buffer.flush()
        else:
            writer.write(data.decode("utf-8", "replace"))
        return
    writer.write(data)
    flush = getattr(writer, "flush", None)
    if callable(flush):
        flush()


def _pump(
    stream: Any,
    sinks: list[Callable[[bytes], None]],
    failures: list[BaseException],
) -> None:
    active = list(sinks)
    with stream:
        for chunk in iter(partial(stream.read1, _CHUNK), b""):
            for sink in list(active):
                try:
                    sink(chunk)
                except Exception as exc:  # noqa: BLE001 - reported after the run
                    failures.append(exc)
                    active.remove(sink)


def _feed(reader: Any, pipe: Any, failures: list[BaseException]) -> None:
    try:
        while True:
            chunk = reader.read(_CHUNK)
            if not chunk:
                break
            if isinstance(chunk, str):
                chunk = chunk.encode()
            pipe.write(chunk)
    except BrokenPipeError:
        pass
    except Exception as exc:  # noqa: BLE001 - reported after the run
        failures.append(exc)
    finally:
        try:
            pipe.close()
        except BrokenPipeError:
            pass


def _stdin_source(reader: Any) -> tuple[Any, bool]:
    """Return what to hand the child as stdin, and whether it must be fed."""
    if reader is None:
        return subprocess.DEVNULL, False
    try:
        reader.fileno()
    except (AttributeError, OSError, ValueError):
        return subprocess.PIPE, True
    return reader, False


class LocalCmd:
    """A command run as a local process."""

    def __init__(self, name: str, *args: str) -> None:
        self.args: list[str] = [name, *args]
        self.env: Optional[list[str]] = None
        self.stdin: Any = None
        self.stdout: Any = None
        self.stderr: Any = None

    def set_env(self, *args: str) -> "LocalCmd":
        """Set the environment as "key=value" entries; none means inherit."""
        self.env = list(args) or None
        return self

    def set_stdin(self, reader: Any) -> "LocalCmd":
        """Set the reader the command takes its input from."""
        self.stdin = reader
        return self

    def set_stdout(self, writer: Any) -> "LocalCmd":
        """Set the writer that receives standard output."""
        self.stdout = writer
        return self

    def set_stderr(self, writer: Any) -> "LocalCmd":
        """Set the writer that receives standard error."""
        self.stderr = writer
        return self

    def _environ(self) -> Optional[dict[str, str]]:
        if self.env is None:
            return None
        environ: dict[str, str] = {}
        for entry in self.env:
            key, sep, value = entry.partition("=")
            if sep:
                environ[key] = value
        return environ

    def _failure(self, inner: BaseException, combined: bytearray) -> kerrors.KindError:
        err = kerrors.with_stack(RunError(self.args, bytes(combined), inner))
        assert err is not None
        return err

    def run(self) -> None:
        """Run the command and wait for it.

        On failure raises an error whose cause chain holds a RunError with
        the combined stdout and stderr of the command.
        """
        combined = bytearray()
        lock = threading.Lock()

        def record(data: bytes) -> None:
            with lock:
                combined.extend(data)

        merged = self.stdout is self.stderr
        out_sinks: list[Callable[[bytes], None]] = [record]
        if self.stdout is not None:
            out_sinks.insert(0, partial(_write_to, self.stdout))
        err_sinks: list[Callable[[bytes], None]] = [record]
        if self.stderr is not None:
            err_sinks.insert(0, partial(_write_to, self.stderr))

        stdin_arg, needs_feed = _stdin_source(self.stdin)
        try:
            proc = subprocess.Popen(
                self.args,
                stdin=stdin_arg,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT if merged else subprocess.PIPE,
                env=self._environ(),
            )
        except OSError as exc:
            raise self._failure(exc, combined)

        failures: list[BaseException] = []
        threads = [
            threading.Thread(target=_pump, args=(proc.stdout, out_sinks, failures), daemon=True)
        ]
        if not merged:
            threads.append(
                threading.Thread(target=_pump, args=(proc.stderr, err_sinks, failures), daemon=True)
            )
        if needs_feed:
            threads.append(
                threading.Thread(target=_feed, args=(self.stdin, proc.stdin, failures), daemon=True)
            )
        for thread in threads:
            thread.start()
        proc.wait()
        for thread in threads:
            thread.join()

        if proc.returncode != 0:
            inner: BaseException = subprocess.CalledProcessError(
                proc.returncode, self.args, output=bytes(combined)
            )
            raise self._failure(inner, combined)
        if failures:
            raise self._failure(failures[0], combined)


class LocalCmder:
    """A factory for LocalCmd."""

    def command(self, name: str, *args: str) -> LocalCmd:
        """Return a new command for name and args."""
        return LocalCmd(name, *args)


DEFAULT_CMDER = LocalCmder()


def command(name: str, *args: str) -> LocalCmd:
    """Return a new command from the default cmder."""
    return DEFAULT_CMDER.command(name, *args)


def pretty_command(name: str, *args: str) -> str:
    """Return the command quoted so that it could be pasted into a shell."""
    return " ".join(shlex.quote(part) for part in (name, *args))


def run_error_for_error(err: Optional[BaseException]) -> Optional[RunError]:
    """Return the deepest RunError in the cause chain of err, or None."""
    found: Optional[RunError] = None
    seen: set[int] = set()
    while err is not None and id(err) not in seen:
        seen.add(id(err))
        if isinstance(err, RunError):
            found = err
        err = err.__cause__
    return found


def _lines(data: bytes) -> list[str]:
    lines = data.decode("utf-8", "replace").split("\n")
    if lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def combined_output_lines(cmd: _Cmd) -> list[str]:
    """Run cmd and return the lines of its combined stdout and stderr."""
    buff = io.BytesIO()
    cmd.set_stdout(buff)
    cmd.set_stderr(buff)
    cmd.run()
    return _lines(buff.getvalue())


def output_lines(cmd: _Cmd) -> list[str]:
    """Run cmd and return the lines of its stdout."""
    return _lines(output(cmd))


def output(cmd: _Cmd) -> bytes:
    """Run cmd and return its stdout."""
    buff = io.BytesIO()
    cmd.set_stdout(buff)
    cmd.run()
    return buff.getvalue()


def inherit_output(cmd: _Cmd) -> _Cmd:
    """Send cmd's output to this process's stdout and stderr."""
    cmd.set_stderr(sys.stderr)
    cmd.set_stdout(sys.stdout)
    return cmd


def run_with_stdout_reader(cmd: _Cmd, reader_func: Callable[[Any], Any]) -> None:
    """Run cmd with its stdout piped to reader_func, concurrently."""
    read_fd, write_fd = os.pipe()
    reader = os.fdopen(read_fd, "rb")
    writer = os.fdopen(write_fd, "wb")
    cmd.set_stdout(writer)

    def read() -> None:
        with reader:
            reader_func(reader)

    def run() -> None:
        with writer:
            cmd.run()

    kerrors.aggregate_concurrent([read, run])


def run_with_stdin_writer(cmd: _Cmd, writer_func: Callable[[Any], Any]) -> None:
    """Run cmd with writer_func's output piped to its stdin, concurrently."""
    read_fd, write_fd = os.pipe()
    reader = os.fdopen(read_fd, "rb")
    writer = os.fdopen(write_fd, "wb")
    cmd.set_stdin(reader)

    def write() -> None:
        with writer:
            writer_func(writer)

    def run() -> None:
        with reader:
            cmd.run()

    kerrors.aggregate_concurrent([write, run])