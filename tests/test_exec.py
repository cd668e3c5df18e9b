import io
import os
import shlex
import sys

import pytest

from kindkit import errors as kerrors
from kindkit.exec import (
    LocalCmd,
    LocalCmder,
    RunError,
    combined_output_lines,
    command,
    inherit_output,
    output,
    output_lines,
    pretty_command,
    run_error_for_error,
    run_with_stdin_writer,
    run_with_stdout_reader,
)

PY = sys.executable


def py(code):
    return command(PY, "-c", code)


def test_pretty_command_quotes_only_when_needed():
    assert pretty_command("echo", "hello world") == "echo 'hello world'"
    assert pretty_command("ls", "-la", "/tmp") == "ls -la /tmp"
    assert pretty_command("x", "") == "x ''"


@pytest.mark.parametrize(
    "parts",
    [["docker", "it's", "a b"], ["a", "$HOME", "`x`"], ["cmd", "--flag=\"v\""]],
)
def test_pretty_command_round_trips_through_shell_split(parts):
    assert shlex.split(pretty_command(*parts)) == parts


def test_command_records_argv():
    cmd = command("docker", "image", "inspect")
    assert cmd.args == ["docker", "image", "inspect"]
    assert LocalCmder().command("a", "b").args == ["a", "b"]


def test_setters_return_same_command():
    cmd = LocalCmd("x")
    buf = io.BytesIO()
    assert cmd.set_stdout(buf) is cmd
    assert cmd.set_stderr(buf) is cmd
    assert cmd.set_stdin(buf) is cmd
    assert cmd.set_env("A=B") is cmd
    assert cmd.env == ["A=B"]
    assert cmd.set_env().env is None


def test_output_returns_stdout_bytes():
    cmd = py("import sys; sys.stdout.buffer.write(b'hi\\n')")
    assert output(cmd) == b"hi\n"


def test_output_lines_splits_and_strips_carriage_return():
    cmd = py("import sys; sys.stdout.buffer.write(b'a\\nb\\r\\nc')")
    assert output_lines(cmd) == ["a", "b", "c"]


def test_output_lines_empty_output():
    assert output_lines(py("pass")) == []


def test_combined_output_lines_has_both_streams():
    code = (
        "import sys; sys.stdout.buffer.write(b'out\\n'); sys.stdout.flush(); "
        "sys.stderr.buffer.write(b'err\\n'); sys.stderr.flush()"
    )
    assert sorted(combined_output_lines(py(code))) == ["err", "out"]


def test_separate_writers_get_their_own_stream():
    code = (
        "import sys; sys.stdout.buffer.write(b'to-out'); "
        "sys.stderr.buffer.write(b'to-err')"
    )
    out, err = io.BytesIO(), io.BytesIO()
    py(code).set_stdout(out).set_stderr(err).run()
    assert out.getvalue() == b"to-out"
    assert err.getvalue() == b"to-err"


def test_failure_raises_with_run_error_and_output():
    code = "import sys; sys.stderr.write('boom'); sys.exit(3)"
    with pytest.raises(kerrors.KindError) as info:
        py(code).run()
    run_error = run_error_for_error(info.value)
    assert isinstance(run_error, RunError)
    assert run_error.command == [PY, "-c", code]
    assert b"boom" in run_error.output
    assert run_error.inner.returncode == 3


def test_failure_output_also_reaches_writer():
    code = "import sys; sys.stdout.write('partial'); sys.exit(1)"
    out = io.BytesIO()
    with pytest.raises(kerrors.KindError) as info:
        py(code).set_stdout(out).run()
    assert out.getvalue() == b"partial"
    assert run_error_for_error(info.value).output == b"partial"


def test_missing_executable_raises_run_error():
    with pytest.raises(kerrors.KindError) as info:
        command("kindkit-no-such-binary-xyz").run()
    run_error = run_error_for_error(info.value)
    assert run_error.command == ["kindkit-no-such-binary-xyz"]
    assert isinstance(run_error.inner, FileNotFoundError)


def test_run_error_message_and_cause():
    inner = ValueError("bad")
    err = RunError(["echo", "hi there"], b"", inner)
    assert str(err) == "command \"echo 'hi there'\" failed with error: bad"
    assert err.cause is inner
    bare = RunError(["x"])
    assert bare.cause is bare


def test_run_error_for_error_walks_wrapped_chain():
    err = RunError(["x"], b"", ValueError("inner"))
    wrapped = kerrors.wrap(kerrors.with_stack(err), "outer")
    assert run_error_for_error(wrapped) is err
    assert run_error_for_error(ValueError("plain")) is None
    assert run_error_for_error(None) is None


def test_set_env_is_passed_to_child():
    entries = [f"{k}={v}" for k, v in os.environ.items()]
    cmd = py("import os, sys; sys.stdout.write(os.environ['KINDKIT_VALUE'])")
    cmd.set_env(*entries, "KINDKIT_VALUE=from-env")
    assert output(cmd) == b"from-env"


def test_stdin_from_in_memory_reader():
    cmd = py("import sys; sys.stdout.buffer.write(sys.stdin.buffer.read().upper())")
    cmd.set_stdin(io.BytesIO(b"shout"))
    assert output(cmd) == b"SHOUT"


def test_inherit_output_writes_to_process_stdout(capsys):
    cmd = py("import sys; sys.stdout.buffer.write(b'inherited')")
    assert inherit_output(cmd) is cmd
    cmd.run()
    assert capsys.readouterr().out == "inherited"


def test_run_with_stdout_reader_streams_output():
    received = []
    cmd = py("import sys; sys.stdout.buffer.write(b'streamed data')")
    run_with_stdout_reader(cmd, lambda reader: received.append(reader.read()))
    assert received == [b"streamed data"]


def test_run_with_stdin_writer_feeds_input():
    out = io.BytesIO()
    cmd = py("import sys; sys.stdout.buffer.write(sys.stdin.buffer.read())")
    cmd.set_stdout(out)
    run_with_stdin_writer(cmd, lambda writer: writer.write(b"payload"))
    assert out.getvalue() == b"payload"


def test_run_with_stdout_reader_aggregates_both_failures():
    def reader_func(reader):
        reader.read()
        raise ValueError("reader failed")

    cmd = py("import sys; sys.exit(1)")
    with pytest.raises(kerrors.KindError) as info:
        run_with_stdout_reader(cmd, reader_func)
    found = kerrors.errors(info.value)
    assert len(found) == 2
    assert any(isinstance(e, ValueError) for e in found)
    assert any(run_error_for_error(e) is not None for e in found)