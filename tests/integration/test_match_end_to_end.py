"""
arena-orchestrator — end-to-end match contracts

Purpose
- Run real matches through the host-direct sandbox: every competitor is a
  Python script launched by re-invoking ``python -m arena_orchestrator`` in
  execute mode.

What this test file should cover
- Worked scenarios: duplicates, a unique higher value, an immediately exiting
  competitor, a single competitor.
- A silent competitor ends the readiness pass in INIT, then errors without
  aborting the match.
- Every competitor process is reaped when the match closes.
"""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from arena_orchestrator.competitor.protocol import ProtocolState
from arena_orchestrator.config import load_config
from arena_orchestrator.constants import SENTINEL_VALUE
from arena_orchestrator.match import MatchOrchestrator, MatchResult

PROJECT_ROOT = Path(__file__).resolve().parents[2]
SRC_PATH = PROJECT_ROOT / "src"

CONSTANT_BOT = """
import sys
print("ready", flush=True)
for line in sys.stdin:
    command = line.strip()
    if command == "game":
        print({value}, flush=True)
    elif command == "end":
        break
"""

RECORDING_BOT = """
import sys
from pathlib import Path
log = Path({log_path!r})
print("ready", flush=True)
for line in sys.stdin:
    command = line.strip()
    with log.open("a", encoding="utf-8") as handle:
        handle.write(command + "\\n")
    if command == "game":
        print({value}, flush=True)
    elif command == "end":
        break
"""


@pytest.fixture(autouse=True)
def _importable_package(monkeypatch: pytest.MonkeyPatch) -> None:
    existing = os.environ.get("PYTHONPATH")
    monkeypatch.setenv(
        "PYTHONPATH", str(SRC_PATH) if not existing else f"{SRC_PATH}{os.pathsep}{existing}"
    )
    monkeypatch.delenv("__RUN__", raising=False)


def _bot(tmp_path: Path, name: str, source: str) -> str:
    path = tmp_path / "bots" / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(source, encoding="utf-8")
    return f"bots/{name}"


def _play(
    tmp_path: Path,
    programs: list[str],
    *,
    rounds: int,
    handshake_ms: int = 10_000,
) -> tuple[MatchResult, MatchOrchestrator]:
    lines = ["programs:"] + [f"  - {program}" for program in programs]
    lines += [f"rounds: {rounds}", f"timeouts: {{handshake_ms: {handshake_ms}}}"]
    config_path = tmp_path / "arena.yaml"
    config_path.write_text("\n".join(lines) + "\n", encoding="utf-8")

    config = load_config(config_path, environ={})
    with MatchOrchestrator.from_config(config, base_dir=tmp_path) as match:
        result = match.run()
    return result, match


def test_duplicate_values_have_no_winner(tmp_path: Path) -> None:
    programs = [
        _bot(tmp_path, "three_a.py", CONSTANT_BOT.format(value=3)),
        _bot(tmp_path, "three_b.py", CONSTANT_BOT.format(value=3)),
    ]
    result, _ = _play(tmp_path, programs, rounds=1)

    assert result.scores == (0, 0)
    assert result.names == ("bots/three_a.py", "bots/three_b.py")
    assert result.outcomes[0].values == (3, 3)
    assert result.final_states == (ProtocolState.ENDED, ProtocolState.ENDED)


def test_unique_higher_value_wins(tmp_path: Path) -> None:
    programs = [
        _bot(tmp_path, "five.py", CONSTANT_BOT.format(value=5)),
        _bot(tmp_path, "two_a.py", CONSTANT_BOT.format(value=2)),
        _bot(tmp_path, "two_b.py", CONSTANT_BOT.format(value=2)),
    ]
    result, _ = _play(tmp_path, programs, rounds=2)
    assert result.scores == (2, 0, 0)


def test_immediately_exiting_competitor_is_contained(tmp_path: Path) -> None:
    programs = [
        _bot(tmp_path, "one.py", CONSTANT_BOT.format(value=1)),
        _bot(tmp_path, "quitter.py", "raise SystemExit(0)\n"),
        _bot(tmp_path, "four.py", CONSTANT_BOT.format(value=4)),
    ]
    result, match = _play(tmp_path, programs, rounds=3)

    assert result.final_states[1] is ProtocolState.ERROR
    assert all(outcome.values[1] == SENTINEL_VALUE for outcome in result.outcomes)
    assert result.scores == (3, 0, 0)
    assert all(client.returncode is not None for client in match.clients)


def test_single_competitor_wins_every_round(tmp_path: Path) -> None:
    result, _ = _play(tmp_path, [_bot(tmp_path, "seven.py", CONSTANT_BOT.format(value=7))], rounds=1)
    assert result.scores == (1,)


def test_competitors_receive_full_vector_and_end(tmp_path: Path) -> None:
    log_a, log_b = tmp_path / "a.log", tmp_path / "b.log"
    programs = [
        _bot(tmp_path, "a.py", RECORDING_BOT.format(log_path=str(log_a), value=6)),
        _bot(tmp_path, "b.py", RECORDING_BOT.format(log_path=str(log_b), value=9)),
    ]
    result, _ = _play(tmp_path, programs, rounds=2)

    expected = ["game", "6 9", "game", "6 9", "end"]
    assert log_a.read_text(encoding="utf-8").splitlines() == expected
    assert log_b.read_text(encoding="utf-8").splitlines() == expected
    assert result.scores == (2, 0)


def test_silent_competitor_does_not_abort_match(tmp_path: Path) -> None:
    programs = [
        _bot(tmp_path, "two.py", CONSTANT_BOT.format(value=2)),
        _bot(tmp_path, "silent.py", "import time\ntime.sleep(60)\n"),
    ]
    config_path = tmp_path / "arena.yaml"
    config_path.write_text(
        "programs: [" + ", ".join(programs) + "]\nrounds: 2\ntimeouts: {handshake_ms: 3000}\n",
        encoding="utf-8",
    )
    config = load_config(config_path, environ={})

    with MatchOrchestrator.from_config(config, base_dir=tmp_path) as match:
        assert match.wait_ready() == (1,)
        assert match.clients[1].is_init

        first = match.play_round()
        assert match.clients[1].is_errored
        assert first.winner == 0

        match.play_round()
        match.shutdown()
        result = match.result()

    assert result.scores == (2, 0)
    assert result.final_states == (ProtocolState.ENDED, ProtocolState.ERROR)
    assert all(client.returncode is not None for client in match.clients)
