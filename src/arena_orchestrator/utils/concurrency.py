"""Thread-backed deadline primitives for blocking stream I/O.

A blocking ``readline`` or ``write`` on a pipe cannot express a deadline, so the
call runs on a short-lived daemon worker while the caller waits on a
lock-guarded completion flag. A worker that misses its deadline is abandoned,
not cancelled: it may finish later and its outcome is simply never collected.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Generic, TypeVar

if TYPE_CHECKING:
    from collections.abc import Callable

T = TypeVar("T")


class DeadlineExceeded(TimeoutError):
    """Raised when a background call does not finish before its deadline."""

    def __init__(self, label: str, timeout_seconds: float) -> None:
        self.label = label
        self.timeout_seconds = timeout_seconds
        super().__init__(f"{label} did not finish within {timeout_seconds * 1000:.0f} ms")


class CompletionFlag(Generic[T]):
    """Lock-guarded completion flag carrying a worker outcome."""

    __slots__ = ("_condition", "_done", "_error", "_value")

    def __init__(self) -> None:
        self._condition = threading.Condition(threading.Lock())
        self._done = False
        self._value: T | None = None
        self._error: Exception | None = None

    @property
    def is_done(self) -> bool:
        with self._condition:
            return self._done

    def set_result(self, value: T) -> None:
        with self._condition:
            self._value = value
            self._done = True
            self._condition.notify_all()

    def set_error(self, error: Exception) -> None:
        with self._condition:
            self._error = error
            self._done = True
            self._condition.notify_all()

    def wait(self, timeout_seconds: float) -> bool:
        """Block until the flag is set or ``timeout_seconds`` elapse."""

        with self._condition:
            return self._condition.wait_for(lambda: self._done, timeout=timeout_seconds)

    def outcome(self) -> T:
        with self._condition:
            if not self._done:
                raise RuntimeError("outcome requested before completion")
            if self._error is not None:
                raise self._error
            return self._value  # type: ignore[return-value]


class BackgroundCall(Generic[T]):
    """Run one blocking callable on a dedicated daemon worker thread."""

    def __init__(self, fn: Callable[[], T], *, label: str) -> None:
        self._fn = fn
        self._label = label
        self._flag: CompletionFlag[T] = CompletionFlag()
        self._callbacks_lock = threading.Lock()
        self._callbacks: list[Callable[[], None]] = []
        self._finished = False
        self._thread = threading.Thread(target=self._run, name=label, daemon=True)

    @property
    def label(self) -> str:
        return self._label

    @property
    def is_running(self) -> bool:
        return self._thread.is_alive() and not self._flag.is_done

    def start(self) -> BackgroundCall[T]:
        self._thread.start()
        return self

    def result(self, timeout_seconds: float) -> T:
        """Return the worker's value, re-raise its error, or raise ``DeadlineExceeded``."""

        if not self._flag.wait(timeout_seconds):
            raise DeadlineExceeded(self._label, timeout_seconds)
        return self._flag.outcome()

    def add_done_callback(self, fn: Callable[[], None]) -> None:
        """Run ``fn`` on the worker once it finishes; right away if it already has."""

        with self._callbacks_lock:
            if not self._finished:
                self._callbacks.append(fn)
                return
        fn()

    def _run(self) -> None:
        try:
            value = self._fn()
        except Exception as exc:  # noqa: BLE001 - handed over to the waiting caller.
            self._flag.set_error(exc)
        else:
            self._flag.set_result(value)
        with self._callbacks_lock:
            self._finished = True
            callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()


__all__ = [
    "BackgroundCall",
    "CompletionFlag",
    "DeadlineExceeded",
]
