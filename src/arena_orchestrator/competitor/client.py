"""Competitor client: one sandboxed process behind a deadline-bounded protocol.

Every read and write runs on a short-lived worker (see
``arena_orchestrator.utils.concurrency``) so the caller can enforce a deadline
the blocking pipe call cannot. Any read failure, write failure, deadline miss or
protocol violation moves the client into ``ERROR``, except a missed handshake
deadline: that client stays in ``INIT`` and its pending read is collected by the
next poll. In ``ERROR`` every send is a no-op and the client reports the
sentinel value. The client owns its subprocess and kills and reaps it on
``close()``, on context-manager exit, and through a finalizer if neither ran.
"""

from __future__ import annotations

import os
import signal
import subprocess
import threading
import weakref
from contextlib import suppress
from dataclasses import dataclass
from functools import partial
from typing import IO, TYPE_CHECKING, Any

import structlog

from arena_orchestrator.competitor.protocol import (
    END_MESSAGE,
    GAME_MESSAGE,
    ProtocolState,
    ProtocolViolation,
    decode_line,
    encode_values,
    expect_ready,
    parse_value,
)
from arena_orchestrator.constants import (
    DEFAULT_CONTAINER_RUNTIME,
    HANDSHAKE_READ_DEADLINE_MS,
    MAX_LINE_BYTES,
    READ_DEADLINE_MS,
    SENTINEL_VALUE,
    WRITE_DEADLINE_MS,
)
from arena_orchestrator.sandbox.launcher import launch
from arena_orchestrator.utils.concurrency import BackgroundCall, DeadlineExceeded

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path


class ProtocolUsageError(RuntimeError):
    """Raised when the orchestrator drives a client through an undefined transition."""


@dataclass(frozen=True, slots=True)
class ClientTimeouts:
    """Read and write deadlines, in seconds."""

    handshake_read_seconds: float = HANDSHAKE_READ_DEADLINE_MS / 1000.0
    read_seconds: float = READ_DEADLINE_MS / 1000.0
    write_seconds: float = WRITE_DEADLINE_MS / 1000.0

    def __post_init__(self) -> None:
        for field_name in ("handshake_read_seconds", "read_seconds", "write_seconds"):
            if getattr(self, field_name) <= 0:
                raise ValueError(f"{field_name} must be > 0")

    @classmethod
    def from_milliseconds(
        cls,
        *,
        handshake_ms: int = HANDSHAKE_READ_DEADLINE_MS,
        read_ms: int = READ_DEADLINE_MS,
        write_ms: int = WRITE_DEADLINE_MS,
    ) -> ClientTimeouts:
        return cls(
            handshake_read_seconds=handshake_ms / 1000.0,
            read_seconds=read_ms / 1000.0,
            write_seconds=write_ms / 1000.0,
        )


class CompetitorClient:
    """Protocol state machine over one competitor process."""

    def __init__(
        self,
        process: subprocess.Popen[bytes],
        name: str,
        *,
        timeouts: ClientTimeouts | None = None,
        logger: Any | None = None,
    ) -> None:
        if process.stdin is None or process.stdout is None:
            raise ValueError("competitor process must be started with piped stdin and stdout")

        self._process = process
        self._stdin: IO[bytes] = process.stdin
        self._stdout: IO[bytes] = process.stdout
        # Per-stream locks keep a late, abandoned worker from interleaving with a new one.
        self._stdin_lock = threading.Lock()
        self._stdout_lock = threading.Lock()
        self._name = name
        self._state = ProtocolState.INIT
        self._value = SENTINEL_VALUE
        self._timeouts = timeouts if timeouts is not None else ClientTimeouts()
        self._logger = logger if logger is not None else structlog.get_logger(__name__)
        self._pending_read: BackgroundCall[bytes] | None = None
        self._pending_write: BackgroundCall[None] | None = None
        self._closed = False
        self._finalizer = weakref.finalize(self, terminate_process, process)

    @classmethod
    def spawn(
        cls,
        script_path: str | Path,
        *,
        name: str | None = None,
        image: str | None = None,
        container_runtime: str = DEFAULT_CONTAINER_RUNTIME,
        timeouts: ClientTimeouts | None = None,
        logger: Any | None = None,
    ) -> CompetitorClient:
        """Launch ``script_path`` in the selected sandbox and wrap the process.

        ``name`` is the display name; it defaults to ``script_path``.
        """

        process = launch(script_path, image=image, container_runtime=container_runtime)
        display_name = name if name is not None else str(script_path)
        return cls(process, display_name, timeouts=timeouts, logger=logger)

    def __enter__(self) -> CompetitorClient:
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        del exc_type, exc, tb
        self.close()

    def __str__(self) -> str:
        return f"Client(path = {self._name})"

    def __repr__(self) -> str:
        return f"CompetitorClient(name={self._name!r}, state={self._state.value!r})"

    @property
    def name(self) -> str:
        return self._name

    @property
    def state(self) -> ProtocolState:
        return self._state

    @property
    def value(self) -> int:
        """Last parsed value, or the sentinel when none is usable."""

        return self._value

    @property
    def is_init(self) -> bool:
        return self._state is ProtocolState.INIT

    @property
    def is_errored(self) -> bool:
        return self._state is ProtocolState.ERROR

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def returncode(self) -> int | None:
        return self._process.returncode

    @property
    def closed(self) -> bool:
        return self._closed

    def poll(self) -> None:
        """Read at most one line when the state expects one; no-op otherwise."""

        if not self._state.expects_read:
            return

        try:
            line = self._read_line()
        except DeadlineExceeded as exc:
            if self._state is ProtocolState.INIT:
                # Not ready yet; the next read collects the same pending line.
                self._logger.warning(
                    "competitor_not_ready", competitor=self._name, detail=str(exc)
                )
                return
            self._fail("read deadline exceeded", detail=str(exc))
            return
        except (OSError, EOFError, ValueError) as exc:
            self._fail("failed to read line", detail=str(exc))
            return

        try:
            if self._state is ProtocolState.INIT:
                expect_ready(line)
                self._state = ProtocolState.AWAITING_START
            else:
                self._value = parse_value(line)
                self._state = ProtocolState.AWAITING_ROUND_END
        except ProtocolViolation as exc:
            self._fail("protocol violation", detail=str(exc))

    def send_game(self) -> None:
        if self._state.is_terminal:
            return
        self._require_state("send_game", ProtocolState.INIT, ProtocolState.AWAITING_START)
        if self._write(GAME_MESSAGE):
            self._state = ProtocolState.AWAITING_VALUE

    def send_values(self, values: Sequence[int]) -> None:
        if self._state.is_terminal:
            return
        self._require_state("send_values", ProtocolState.AWAITING_ROUND_END)
        if self._write(encode_values(values)):
            self._state = ProtocolState.AWAITING_START

    def send_end(self) -> None:
        if self._state.is_terminal:
            return
        if self._write(END_MESSAGE):
            self._state = ProtocolState.ENDED

    def close(self) -> None:
        """Kill and reap the process; safe to call repeatedly."""

        if self._closed:
            return
        self._closed = True
        self._finalizer()
        _close_when_idle(self._stdin, self._pending_write)
        _close_when_idle(self._stdout, self._pending_read)

    def _read_line(self) -> str:
        timeout = (
            self._timeouts.handshake_read_seconds
            if self._state is ProtocolState.INIT
            else self._timeouts.read_seconds
        )
        call = self._pending_read
        if call is None:
            call = BackgroundCall(self._blocking_readline, label=f"read from {self._name}")
            self._pending_read = call.start()
        try:
            raw = call.result(timeout)
        except DeadlineExceeded:
            raise
        except (OSError, ValueError):
            self._pending_read = None
            raise
        self._pending_read = None
        if not raw:
            raise EOFError("competitor closed its output stream")
        if not raw.endswith(b"\n") and len(raw) >= MAX_LINE_BYTES:
            raise ProtocolViolation(f"line exceeds {MAX_LINE_BYTES} bytes")
        return decode_line(raw)

    def _blocking_readline(self) -> bytes:
        with self._stdout_lock:
            return self._stdout.readline(MAX_LINE_BYTES)

    def _write(self, payload: bytes) -> bool:
        call: BackgroundCall[None] = BackgroundCall(
            partial(self._blocking_write, payload), label=f"write to {self._name}"
        )
        self._pending_write = call.start()
        try:
            call.result(self._timeouts.write_seconds)
        except DeadlineExceeded as exc:
            self._fail("write deadline exceeded", detail=str(exc))
            return False
        except (OSError, ValueError) as exc:
            self._fail("failed to write line", detail=str(exc))
            return False
        self._pending_write = None
        return True

    def _blocking_write(self, payload: bytes) -> None:
        with self._stdin_lock:
            self._stdin.write(payload)
            self._stdin.flush()

    def _require_state(self, operation: str, *allowed: ProtocolState) -> None:
        if self._state not in allowed:
            expected = ", ".join(state.value for state in allowed)
            raise ProtocolUsageError(
                f"{operation} on {self._name} requires state {expected}; "
                f"client is {self._state.value}"
            )

    def _fail(self, reason: str, **fields: object) -> None:
        previous = self._state
        self._state = ProtocolState.ERROR
        self._value = SENTINEL_VALUE
        self._logger.warning(
            "competitor_error",
            competitor=self._name,
            reason=reason,
            previous_state=previous.value,
            **fields,
        )


def _close_when_idle(stream: IO[bytes], pending: BackgroundCall[Any] | None) -> None:
    # A worker still blocked on the stream holds its buffer lock, so closing now would
    # block too. The killed process group delivers EOF or EPIPE and the worker closes it.
    if pending is None:
        _close_quietly(stream)
    else:
        pending.add_done_callback(partial(_close_quietly, stream))


def _close_quietly(stream: IO[bytes]) -> None:
    with suppress(OSError, ValueError):
        stream.close()


def terminate_process(process: subprocess.Popen[bytes]) -> None:
    """Kill ``process`` and its process group, then reap it. Idempotent."""

    # An unreaped process keeps its pid, so the group id cannot have been reused yet.
    if process.returncode is None:
        _signal_process_group(process)
        process.kill()
    process.wait()


def _signal_process_group(process: subprocess.Popen[bytes]) -> None:
    if os.name != "posix":
        return
    with suppress(ProcessLookupError, PermissionError):
        if os.getpgid(process.pid) == process.pid:
            os.killpg(process.pid, signal.SIGKILL)


__all__ = [
    "ClientTimeouts",
    "CompetitorClient",
    "ProtocolUsageError",
    "terminate_process",
]
