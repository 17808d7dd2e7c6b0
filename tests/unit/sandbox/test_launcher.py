"""
arena-orchestrator — unit tests for the sandbox launcher

What this test file should cover
- Strategy selection from the optional container image.
- Exact command plans for the host-direct and container-isolated strategies.
- Setup failures surface as SandboxSetupError.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from arena_orchestrator.sandbox.launcher import (
    ContainerIsolated,
    HostDirect,
    LaunchPlan,
    SandboxSetupError,
    plan_launch,
    select_strategy,
    spawn,
)


def test_no_image_selects_host_direct() -> None:
    assert select_strategy(None) == HostDirect(executable=sys.executable)


def test_image_selects_container_strategy() -> None:
    assert select_strategy(" arena:py3 ", container_runtime="podman") == ContainerIsolated(
        image="arena:py3", runtime="podman"
    )


def test_blank_image_is_a_setup_error() -> None:
    with pytest.raises(SandboxSetupError, match="image"):
        select_strategy("   ")


def test_host_direct_plan_reinvokes_package_in_execute_mode() -> None:
    plan = plan_launch("bots/a.py", HostDirect(executable="/usr/bin/python3"), environ={"HOME": "/h"})

    assert plan.command == ("/usr/bin/python3", "-m", "arena_orchestrator", "bots/a.py")
    assert plan.env == {"HOME": "/h", "__RUN__": "1"}


def test_plan_does_not_mutate_caller_environment() -> None:
    environ = {"PATH": "/bin"}
    plan_launch("a.py", HostDirect(), environ=environ)
    assert environ == {"PATH": "/bin"}


def test_container_plan_mounts_script_read_only(tmp_path: Path) -> None:
    script = tmp_path / "bots" / "lowest.py"
    script.parent.mkdir()
    script.write_text("print('ready')\n", encoding="utf-8")

    plan = plan_launch(script, ContainerIsolated(image="arena:py3"), environ={})

    assert plan.command == (
        "docker",
        "run",
        "--interactive",
        "--rm",
        "--env=__RUN__=1",
        f"--mount=type=bind,source={script.resolve()},target=/src/lowest.py,readonly=true",
        "arena:py3",
        "/src/lowest.py",
    )


def test_container_plan_resolves_relative_paths(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    (tmp_path / "bot.py").write_text("", encoding="utf-8")
    monkeypatch.chdir(tmp_path)

    plan = plan_launch("bot.py", ContainerIsolated(image="img", runtime="podman"), environ={})

    assert plan.command[0] == "podman"
    assert f"source={(tmp_path / 'bot.py').resolve()}," in plan.command[5]


def test_container_plan_requires_existing_script(tmp_path: Path) -> None:
    with pytest.raises(SandboxSetupError, match="resolve"):
        plan_launch(tmp_path / "missing.py", ContainerIsolated(image="img"), environ={})


@pytest.mark.parametrize("script", ["/", "bots/..", "../.."])
def test_container_plan_requires_file_name(script: str) -> None:
    with pytest.raises(SandboxSetupError, match="file name"):
        plan_launch(script, ContainerIsolated(image="img"), environ={})


def test_container_plan_rejects_directories(tmp_path: Path) -> None:
    (tmp_path / "bots").mkdir()
    with pytest.raises(SandboxSetupError, match="not a regular file"):
        plan_launch(tmp_path / "bots", ContainerIsolated(image="img"), environ={})


def test_spawn_failure_is_a_setup_error(tmp_path: Path) -> None:
    plan = LaunchPlan(
        strategy=HostDirect(),
        command=(str(tmp_path / "no-such-binary"), "x.py"),
        env={},
    )
    with pytest.raises(SandboxSetupError, match="failed to spawn"):
        spawn(plan)
