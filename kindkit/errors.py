"""Error helpers: stack-annotated errors, wrapping, aggregation and concurrency."""

from __future__ import annotations

import queue
import threading
import traceback
from collections.abc import Callable, Iterable, Iterator
from typing import Any, Optional


class KindError(Exception):
    """An error carrying a message, an optional cause and an optional stack."""

    def __init__(
        self,
        message: str,
        cause: Optional[BaseException] = None,
        stack: Optional[traceback.StackSummary] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.stack = stack
        if cause is not None:
            self.__cause__ = cause

    @property
    def cause(self) -> Optional[BaseException]:
        """The underlying error, if any."""
        return self.__cause__

    def __str__(self) -> str:
        return self.message


class Aggregate(Exception):
    """Several errors reported together."""

    def __init__(self, errs: Iterable[BaseException]) -> None:
        self.errors: list[BaseException] = list(errs)
        super().__init__(_aggregate_message(self.errors))

    def __str__(self) -> str:
        return _aggregate_message(self.errors)

    def __iter__(self) -> Iterator[BaseException]:
        return iter(self.errors)

    def __len__(self) -> int:
        return len(self.errors)


def _aggregate_message(errs: list[BaseException]) -> str:
    if len(errs) == 1:
        return str(errs[0])
    seen: list[str] = []
    for err in _flatten(errs):
        msg = str(err)
        if msg not in seen:
            seen.append(msg)
    if len(seen) == 1:
        return seen[0]
    return "[" + ", ".join(seen) + "]"


def _capture_stack() -> traceback.StackSummary:
    # drop this helper's frame and the public constructor's frame
    return traceback.StackSummary.from_list(traceback.extract_stack()[:-2])


def _sprintf(format: str, args: tuple[Any, ...]) -> str:
    return format % args if args else format


def _chain(err: Optional[BaseException]) -> Iterator[BaseException]:
    seen: set[int] = set()
    while err is not None and id(err) not in seen:
        seen.add(id(err))
        yield err
        err = err.__cause__


def new(message: str) -> KindError:
    """Return an error with the message, recording the current stack."""
    return KindError(message, stack=_capture_stack())


def new_without_stack(message: str) -> KindError:
    """Return an error with the message and no recorded stack."""
    return KindError(message)


def errorf(format: str, *args: Any) -> KindError:
    """Return an error with a %-formatted message, recording the current stack."""
    return KindError(_sprintf(format, args), stack=_capture_stack())


def wrap(err: Optional[BaseException], message: str) -> Optional[KindError]:
    """Annotate err with a message and the current stack; None stays None."""
    if err is None:
        return None
    return KindError(f"{message}: {err}", cause=err, stack=_capture_stack())


def wrapf(err: Optional[BaseException], format: str, *args: Any) -> Optional[KindError]:
    """Like wrap, with a %-formatted message."""
    if err is None:
        return None
    return KindError(f"{_sprintf(format, args)}: {err}", cause=err, stack=_capture_stack())


def with_stack(err: Optional[BaseException]) -> Optional[KindError]:
    """Annotate err with the current stack; None stays None."""
    if err is None:
        return None
    return KindError(str(err), cause=err, stack=_capture_stack())


def stack_trace(err: Optional[BaseException]) -> Optional[traceback.StackSummary]:
    """Return the deepest recorded stack in the cause chain of err."""
    found = None
    for item in _chain(err):
        stack = getattr(item, "stack", None)
        if isinstance(stack, traceback.StackSummary):
            found = stack
    return found


def _flatten(errs: Iterable[BaseException]) -> Iterator[BaseException]:
    for err in errs:
        if isinstance(err, Aggregate):
            yield from _flatten(err.errors)
        else:
            yield err


def new_aggregate(errlist: Iterable[Optional[BaseException]]) -> Optional[KindError]:
    """Flatten and reduce errlist, returning a stack-annotated error or None.

    None entries are dropped; a single error is returned on its own, several
    are combined into an Aggregate.
    """
    errs = list(_flatten(e for e in errlist if e is not None))
    if not errs:
        return None
    if len(errs) == 1:
        return KindError(str(errs[0]), cause=errs[0], stack=_capture_stack())
    agg = Aggregate(errs)
    return KindError(str(agg), cause=agg, stack=_capture_stack())


def errors(err: Optional[BaseException]) -> list[BaseException]:
    """Return the errors of the deepest Aggregate in the cause chain, or []."""
    found: Optional[Aggregate] = None
    for item in _chain(err):
        if isinstance(item, Aggregate):
            found = item
    return list(found.errors) if found is not None else []


def _run_into(func: Callable[[], Any], results: "queue.Queue[Optional[BaseException]]") -> None:
    try:
        func()
    except Exception as exc:  # noqa: BLE001 - errors are handed to the caller
        results.put(exc)
    else:
        results.put(None)


def _start_all(funcs: list[Callable[[], Any]]) -> "queue.Queue[Optional[BaseException]]":
    results: "queue.Queue[Optional[BaseException]]" = queue.Queue()
    for func in funcs:
        threading.Thread(target=_run_into, args=(func, results), daemon=True).start()
    return results


def until_error_concurrent(funcs: Iterable[Callable[[], Any]]) -> None:
    """Run funcs in threads; raise the first error to arrive without waiting for the rest."""
    funcs = list(funcs)
    results = _start_all(funcs)
    for _ in funcs:
        err = results.get()
        if err is not None:
            raise err


def aggregate_concurrent(funcs: Iterable[Callable[[], Any]]) -> None:
    """Run funcs in threads and wait for all of them.

    A single failure is raised as is; several are raised as one aggregate.
    """
    funcs = list(funcs)
    results = _start_all(funcs)
    errs = [err for err in (results.get() for _ in funcs) if err is not None]
    if len(errs) > 1:
        raise new_aggregate(errs)  # type: ignore[misc]
    if errs:
        raise errs[0]