"""Competitor clients and the line protocol they speak."""

from arena_orchestrator.competitor.client import (
    ClientTimeouts,
    CompetitorClient,
    ProtocolUsageError,
    terminate_process,
)
from arena_orchestrator.competitor.protocol import (
    END_MESSAGE,
    GAME_MESSAGE,
    READY_MESSAGE,
    ProtocolState,
    ProtocolViolation,
    decode_line,
    encode_values,
    expect_ready,
    parse_value,
    parse_values,
)

__all__ = [
    "END_MESSAGE",
    "GAME_MESSAGE",
    "READY_MESSAGE",
    "ClientTimeouts",
    "CompetitorClient",
    "ProtocolState",
    "ProtocolUsageError",
    "ProtocolViolation",
    "decode_line",
    "encode_values",
    "expect_ready",
    "parse_value",
    "parse_values",
    "terminate_process",
]
