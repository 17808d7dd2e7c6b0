"""Competitor line protocol: states, fixed messages and value codecs."""

from __future__ import annotations

import re
from enum import Enum
from typing import TYPE_CHECKING, Final

from arena_orchestrator.constants import SENTINEL_VALUE

if TYPE_CHECKING:
    from collections.abc import Sequence

READY_MESSAGE: Final[str] = "ready"
GAME_MESSAGE: Final[bytes] = b"game\n"
END_MESSAGE: Final[bytes] = b"end\n"

_VALUE_PATTERN: Final[re.Pattern[str]] = re.compile(r"\+?[0-9]+")


class ProtocolState(str, Enum):
    """Per-competitor protocol state; ``ERROR`` is absorbing."""

    INIT = "init"
    ERROR = "error"
    AWAITING_START = "awaiting_start"
    AWAITING_VALUE = "awaiting_value"
    AWAITING_ROUND_END = "awaiting_round_end"
    ENDED = "ended"

    @property
    def is_terminal(self) -> bool:
        return self in (ProtocolState.ERROR, ProtocolState.ENDED)

    @property
    def expects_read(self) -> bool:
        return self in (ProtocolState.INIT, ProtocolState.AWAITING_VALUE)


class ProtocolViolation(ValueError):
    """Raised when a competitor line is not the message its state expects."""


def decode_line(raw: bytes) -> str:
    return raw.decode("utf-8", errors="replace").strip()


def expect_ready(line: str) -> None:
    if line != READY_MESSAGE:
        raise ProtocolViolation(f"unknown message when waiting for `ready`: {line!r}")


def parse_value(line: str) -> int:
    """Parse one submitted value; it must fit the unsigned 32-bit domain."""

    if _VALUE_PATTERN.fullmatch(line) is None:
        raise ProtocolViolation(f"got {line!r} which is not a number")
    value = int(line)
    if value > SENTINEL_VALUE:
        raise ProtocolViolation(f"got {line!r} which is out of the unsigned 32-bit range")
    return value


def encode_values(values: Sequence[int]) -> bytes:
    """Encode the round's value vector as one space-separated line."""

    return (" ".join(str(value) for value in values) + "\n").encode("ascii")


def parse_values(line: str | bytes) -> tuple[int, ...]:
    """Decode a broadcast value vector, the way a competitor reads it."""

    text = decode_line(line) if isinstance(line, bytes) else line.strip()
    if not text:
        return ()
    return tuple(parse_value(part) for part in text.split(" "))


__all__ = [
    "END_MESSAGE",
    "GAME_MESSAGE",
    "READY_MESSAGE",
    "ProtocolState",
    "ProtocolViolation",
    "decode_line",
    "encode_values",
    "expect_ready",
    "parse_value",
    "parse_values",
]
