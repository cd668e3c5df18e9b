# kindkit

Building blocks for tooling that manages local Kubernetes clusters whose
"nodes" are containers. It has no dependencies outside the standard library.

## What is inside

- `kindkit.errors`: the `KindError` and `Aggregate` exceptions and helpers
  to build and inspect them: `new`, `new_without_stack`, `errorf`, `wrap`,
  `wrapf`, `with_stack`, `stack_trace` (the deepest recorded stack in a
  cause chain), `new_aggregate` (flattens and reduces a list of errors) and
  `errors` (the errors of the deepest `Aggregate` in a cause chain). Two
  thread-based runners: `until_error_concurrent` raises the first error to
  arrive, `aggregate_concurrent` waits for every function and raises one
  error or an aggregate of several.
- `kindkit.log`: the `Logger` and `InfoLogger` protocols, and `NoopLogger`
  / `NoopInfoLogger`, which write nothing.
- `kindkit.env`: `is_terminal` and `is_smart_terminal`. The latter says no
  for non-terminals, when `NO_COLOR` is set, for `TERM=dumb` or
  `TERM=st-256color`, on Windows without `WT_SESSION`, and on Travis CI.
- `kindkit.exec`: run external commands through `LocalCmd`, `LocalCmder`
  or `command`. A failed `run()` raises a `KindError` whose cause chain holds
  a `RunError` carrying the command, its combined stdout and stderr, and the
  underlying error; `run_error_for_error` finds it. Also `pretty_command`,
  `output`, `output_lines`, `combined_output_lines`, `inherit_output`,
  `run_with_stdout_reader` and `run_with_stdin_writer`.
- `kindkit.fs`: `temp_dir` (returns a mountable `/private/var/...` path on
  macOS), `is_abs`, a recursive `copy` that keeps modes and follows symlinks,
  and `copy_file`.
- `kindkit.cli`: the console `Logger` (leveled output, `DEBUG: file:line]`
  headers above level 0), a terminal `Spinner` that doubles as a writer,
  `Status` lines with `status_for_logger`, `IOStreams` with
  `standard_io_streams`, `new_logger` and `color_enabled`.
- `kindkit.config`: cluster configuration dataclasses (`Cluster`, `Node`,
  `Networking`, `Mount`, `PortMapping`, `PatchJSON6902`), the enums
  `NodeRole`, `ClusterIPFamily`, `ProxyMode`, `MountPropagation`,
  `PortMappingProtocol`, and `set_defaults_cluster` / `set_defaults_node`.
- `kindkit.validate`: `validate_cluster`, `validate_node` and
  `validate_port`; each raises on an invalid value, listing every problem.
- `kindkit.version`: `version` (`0.11.0-alpha`), `display_version` and
  `truncate`.

## Installation

```
pip install kindkit
```

## Examples

Default and validate a cluster config:

```python
from kindkit.config import Cluster, ClusterIPFamily, set_defaults_cluster
from kindkit.validate import validate_cluster

cluster = Cluster()
cluster.networking.ip_family = ClusterIPFamily.IPV6
set_defaults_cluster(cluster)
validate_cluster(cluster)  # raises on an invalid config
print(cluster.networking.pod_subnet)  # fd00:10:244::/56
```

Run a command and collect its output lines:

```python
from kindkit.errors import KindError
from kindkit.exec import command, output_lines, run_error_for_error

try:
    lines = output_lines(command("docker", "ps", "-q"))
except KindError as err:
    run_err = run_error_for_error(err)
    if run_err is not None:
        print(run_err.pretty_command(), run_err.output.decode())
```

Report progress on the console:

```python
from kindkit.cli import new_logger, status_for_logger

logger = new_logger()
status = status_for_logger(logger)
status.start("Preparing nodes")
status.end(True)
```

## What it does not do

kindkit is a library only. It installs no command line program, does not
create, list or delete clusters, does not talk to a container runtime beyond
running the commands you give it, and does not read configuration files: a
`Cluster` is built in Python and then defaulted and validated.

## Tests

```
pip install -e .[test]
pytest
```