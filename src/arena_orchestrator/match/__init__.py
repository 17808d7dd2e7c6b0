"""Match orchestration and the lowest-unique-value scoring rule."""

from arena_orchestrator.match.orchestrator import (
    ClientFactory,
    MatchOrchestrator,
    MatchResult,
    ReadyCallback,
    RoundCallback,
)
from arena_orchestrator.match.scoring import RoundOutcome, compute_round_outcome

__all__ = [
    "ClientFactory",
    "MatchOrchestrator",
    "MatchResult",
    "ReadyCallback",
    "RoundCallback",
    "RoundOutcome",
    "compute_round_outcome",
]
