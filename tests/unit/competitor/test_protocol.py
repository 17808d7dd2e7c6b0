"""Unit tests for the competitor line protocol codecs."""

from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st

from arena_orchestrator.competitor.protocol import (
    END_MESSAGE,
    GAME_MESSAGE,
    ProtocolState,
    ProtocolViolation,
    decode_line,
    encode_values,
    expect_ready,
    parse_value,
    parse_values,
)
from arena_orchestrator.constants import SENTINEL_VALUE

_U32 = st.integers(min_value=0, max_value=SENTINEL_VALUE)


def test_fixed_messages_are_newline_terminated() -> None:
    assert GAME_MESSAGE == b"game\n"
    assert END_MESSAGE == b"end\n"


def test_expect_ready_accepts_only_ready() -> None:
    expect_ready("ready")
    with pytest.raises(ProtocolViolation, match="ready"):
        expect_ready("READY")


def test_decode_line_strips_whitespace_and_crlf() -> None:
    assert decode_line(b"  42\r\n") == "42"


@pytest.mark.parametrize(
    ("line", "expected"),
    [("0", 0), ("+7", 7), ("007", 7), (str(SENTINEL_VALUE), SENTINEL_VALUE)],
)
def test_parse_value_accepts_unsigned_32_bit(line: str, expected: int) -> None:
    assert parse_value(line) == expected


@pytest.mark.parametrize(
    "line",
    ["", "-1", "+", "1.0", "1e3", "0x10", "١٢", str(SENTINEL_VALUE + 1), "1 2"],
)
def test_parse_value_rejects_everything_else(line: str) -> None:
    with pytest.raises(ProtocolViolation):
        parse_value(line)


def test_encode_values_matches_wire_format() -> None:
    assert encode_values([3, 1, 3]) == b"3 1 3\n"
    assert encode_values([]) == b"\n"


def test_parse_values_accepts_bytes_and_empty_lines() -> None:
    assert parse_values(b"5 6 7\n") == (5, 6, 7)
    assert parse_values("\n") == ()


@given(st.lists(_U32, max_size=32))
def test_broadcast_vector_parses_back_exactly(values: list[int]) -> None:
    assert parse_values(encode_values(values)) == tuple(values)


def test_state_classification() -> None:
    assert {state for state in ProtocolState if state.is_terminal} == {
        ProtocolState.ERROR,
        ProtocolState.ENDED,
    }
    assert {state for state in ProtocolState if state.expects_read} == {
        ProtocolState.INIT,
        ProtocolState.AWAITING_VALUE,
    }
