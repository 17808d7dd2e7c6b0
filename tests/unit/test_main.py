"""Unit tests for the process exit-code contract of ``cli_entrypoint``."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from arena_orchestrator.main import ExitCode, cli_entrypoint


@pytest.fixture(autouse=True)
def _orchestrator_mode(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("__RUN__", raising=False)
    for name in ("ARENA_ROUNDS", "ARENA_IMAGE", "ARENA_LOGGING_LEVEL", "ARENA_LOGGING_FILE"):
        monkeypatch.delenv(name, raising=False)


def test_exit_code_contract_values() -> None:
    assert [int(code) for code in ExitCode] == [0, 1, 2, 3, 4]


def test_missing_config_maps_to_config_error(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    assert cli_entrypoint(["config", str(tmp_path / "missing.yaml")]) == ExitCode.CONFIG_ERROR
    assert "config file not found" in capsys.readouterr().err


def test_invalid_config_maps_to_config_error(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    config = tmp_path / "arena.yaml"
    config.write_text("programs: []\n", encoding="utf-8")

    assert cli_entrypoint(["config", str(config)]) == ExitCode.CONFIG_ERROR
    assert "programs" in capsys.readouterr().err


def test_unresolvable_container_script_maps_to_sandbox_error(tmp_path: Path) -> None:
    config = tmp_path / "arena.yaml"
    config.write_text(
        "programs: [missing.py]\nrounds: 1\nimage: arena:py3\nlogging: {level: ERROR, file: null}\n",
        encoding="utf-8",
    )
    assert cli_entrypoint(["run", str(config), "--no-color"]) == ExitCode.SANDBOX_ERROR


def test_usage_error_maps_to_config_error(capsys: pytest.CaptureFixture[str]) -> None:
    assert cli_entrypoint(["bogus"]) == ExitCode.CONFIG_ERROR
    assert "usage: arena" in capsys.readouterr().err


def test_config_command_prints_effective_config(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    config = tmp_path / "arena.yaml"
    config.write_text("programs: [a.py]\n", encoding="utf-8")

    assert cli_entrypoint(["config", str(config), "--rounds", "5"]) == ExitCode.SUCCESS
    payload = json.loads(capsys.readouterr().out)
    assert payload["rounds"] == 5
    assert payload["programs"] == ["a.py"]


def test_unopenable_log_file_maps_to_config_error(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    (tmp_path / "blocker").write_text("not a directory\n", encoding="utf-8")
    config = tmp_path / "arena.yaml"
    config.write_text(
        "programs: [a.py]\nrounds: 1\nlogging: {level: ERROR, file: blocker/match.jsonl}\n",
        encoding="utf-8",
    )

    assert cli_entrypoint(["run", str(config), "--no-color"]) == ExitCode.CONFIG_ERROR
    assert "error: unable to open log file" in capsys.readouterr().err


def test_execute_mode_forwards_script_exit_status(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    script = tmp_path / "bot.py"
    script.write_text("raise SystemExit(42)\n", encoding="utf-8")
    monkeypatch.setenv("__RUN__", "1")

    assert cli_entrypoint([str(script)]) == 42


def test_execute_mode_without_script_fails(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("__RUN__", "1")
    assert cli_entrypoint([]) == ExitCode.SCRIPT_FAILURE
