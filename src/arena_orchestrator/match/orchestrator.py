"""Match orchestration: readiness pass, sequential rounds, scoring and shutdown.

Control flow is single-threaded. Rounds run one after another and, within a
round, clients are contacted one at a time; the only concurrency lives inside a
client's deadline-bounded I/O. A misbehaving competitor is contained by its
client (it enters ``ERROR`` and contributes the sentinel), so nothing here
needs to catch client-local failures.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from contextlib import ExitStack
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from uuid import uuid4

import structlog

from arena_orchestrator.competitor.client import ClientTimeouts, CompetitorClient
from arena_orchestrator.competitor.protocol import ProtocolState
from arena_orchestrator.config.loader import resolve_program_path
from arena_orchestrator.match.scoring import RoundOutcome, compute_round_outcome
from arena_orchestrator.observability.logging import correlation_scope

ClientFactory = Callable[[str], CompetitorClient]
RoundCallback = Callable[[int, RoundOutcome], None]
ReadyCallback = Callable[[tuple[int, ...]], None]


@dataclass(frozen=True, slots=True)
class MatchResult:
    """Final, in-memory report of one match."""

    names: tuple[str, ...]
    scores: tuple[int, ...]
    outcomes: tuple[RoundOutcome, ...]
    final_states: tuple[ProtocolState, ...]

    @property
    def rounds_played(self) -> int:
        return len(self.outcomes)

    def standings(self) -> list[tuple[int, str, int]]:
        """Return ``(index, name, points)`` rows in match order."""

        return [
            (index, name, points)
            for index, (name, points) in enumerate(zip(self.names, self.scores, strict=True))
        ]


class MatchOrchestrator:
    """Own the competitor clients of one match and drive the round protocol."""

    def __init__(
        self,
        clients: Sequence[CompetitorClient],
        *,
        rounds: int,
        match_id: str | None = None,
        logger: Any | None = None,
    ) -> None:
        if rounds < 0:
            raise ValueError("rounds must be >= 0")
        self._clients: tuple[CompetitorClient, ...] = tuple(clients)
        self._scores: list[int] = [0] * len(self._clients)
        self._rounds = rounds
        self._round_index = 0
        self._outcomes: list[RoundOutcome] = []
        self._match_id = match_id or uuid4().hex[:12]
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    @classmethod
    def from_config(
        cls,
        config: Mapping[str, Any],
        *,
        base_dir: Path | None = None,
        client_factory: ClientFactory | None = None,
        logger: Any | None = None,
    ) -> MatchOrchestrator:
        """Spawn one client per configured program.

        Relative program paths resolve against ``base_dir`` (default: the working
        directory); each client is named by its program as configured. A setup
        failure closes the clients spawned so far and propagates.
        """

        if client_factory is not None:
            factory = client_factory
        else:
            factory = _spawner_for(config, base_dir if base_dir is not None else Path.cwd())
        with ExitStack() as stack:
            clients = [stack.enter_context(factory(program)) for program in config["programs"]]
            stack.pop_all()
        return cls(clients, rounds=int(config["rounds"]), logger=logger)

    def __enter__(self) -> MatchOrchestrator:
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        del exc_type, exc, tb
        self.close()

    @property
    def clients(self) -> tuple[CompetitorClient, ...]:
        return self._clients

    @property
    def scores(self) -> tuple[int, ...]:
        return tuple(self._scores)

    @property
    def rounds(self) -> int:
        return self._rounds

    @property
    def rounds_played(self) -> int:
        return self._round_index

    @property
    def match_id(self) -> str:
        return self._match_id

    def wait_ready(self) -> tuple[int, ...]:
        """Poll every client exactly once; return indices still initialising.

        A client left in ``INIT`` is not fatal: its first value read will miss
        the steady-state deadline and move it to ``ERROR``.
        """

        self._logger.info("waiting_for_readiness", competitors=len(self._clients))
        pending: list[int] = []
        for index, client in enumerate(self._clients):
            client.poll()
            if client.is_init:
                pending.append(index)
                self._logger.warning("competitor_still_initializing", competitor=client.name)
        self._logger.info("readiness_pass_done", still_initializing=len(pending))
        return tuple(pending)

    def play_round(self) -> RoundOutcome:
        """Run one round: collect, broadcast, score."""

        values: list[int] = []
        errored: list[int] = []
        for index, client in enumerate(self._clients):
            client.send_game()
            client.poll()
            values.append(client.value)
            if client.is_errored:
                errored.append(index)

        for client in self._clients:
            client.send_values(values)

        outcome = compute_round_outcome(values, errored=errored)
        if outcome.winner is not None:
            self._scores[outcome.winner] += 1
        self._outcomes.append(outcome)
        self._round_index += 1

        self._logger.info(
            "round_finished",
            round=self._round_index - 1,
            values=list(values),
            winner=outcome.winner,
        )
        return outcome

    def shutdown(self) -> None:
        """Send end-of-match to every client not in ``ERROR``."""

        for client in self._clients:
            if not client.is_errored:
                client.send_end()

    def run(
        self,
        *,
        on_ready: ReadyCallback | None = None,
        on_round: RoundCallback | None = None,
    ) -> MatchResult:
        """Readiness pass, every remaining configured round, then shutdown."""

        with correlation_scope(match_id=self._match_id):
            pending = self.wait_ready()
            if on_ready is not None:
                on_ready(pending)
            while self._round_index < self._rounds:
                round_index = self._round_index
                with correlation_scope(round=round_index):
                    outcome = self.play_round()
                if on_round is not None:
                    on_round(round_index, outcome)
            self.shutdown()
            result = self.result()
            self._logger.info("match_finished", scores=list(result.scores))
        return result

    def result(self) -> MatchResult:
        return MatchResult(
            names=tuple(client.name for client in self._clients),
            scores=tuple(self._scores),
            outcomes=tuple(self._outcomes),
            final_states=tuple(client.state for client in self._clients),
        )

    def close(self) -> None:
        """Kill and reap every competitor process."""

        for client in self._clients:
            client.close()


def _spawner_for(config: Mapping[str, Any], base_dir: Path) -> ClientFactory:
    timeouts_section = config["timeouts"]
    timeouts = ClientTimeouts.from_milliseconds(
        handshake_ms=int(timeouts_section["handshake_ms"]),
        read_ms=int(timeouts_section["read_ms"]),
        write_ms=int(timeouts_section["write_ms"]),
    )
    image = config.get("image")
    runtime = str(config["container_runtime"])

    def spawn(program: str) -> CompetitorClient:
        return CompetitorClient.spawn(
            resolve_program_path(program, base_dir),
            name=program,
            image=image,
            container_runtime=runtime,
            timeouts=timeouts,
        )

    return spawn


__all__ = [
    "ClientFactory",
    "MatchOrchestrator",
    "MatchResult",
    "ReadyCallback",
    "RoundCallback",
]
