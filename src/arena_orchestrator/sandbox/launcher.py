"""Competitor process launcher with host-direct and container-isolated strategies."""

from __future__ import annotations

import os
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from arena_orchestrator.constants import (
    CONTAINER_SOURCE_DIR,
    DEFAULT_CONTAINER_RUNTIME,
    EXECUTE_MODE_ENV,
)

if TYPE_CHECKING:
    from collections.abc import Mapping


class SandboxError(RuntimeError):
    """Base error for sandbox launcher and executor failures."""


class SandboxSetupError(SandboxError):
    """Raised when a competitor process cannot be prepared or spawned."""


@dataclass(frozen=True, slots=True)
class HostDirect:
    """Re-launch the orchestrator itself in execute mode on the host."""

    executable: str = sys.executable


@dataclass(frozen=True, slots=True)
class ContainerIsolated:
    """Run the script inside ``image`` through a container runtime CLI."""

    image: str
    runtime: str = DEFAULT_CONTAINER_RUNTIME


SandboxStrategy = HostDirect | ContainerIsolated


@dataclass(frozen=True, slots=True)
class LaunchPlan:
    """Fully resolved command line and environment for one competitor."""

    strategy: SandboxStrategy
    command: tuple[str, ...]
    env: dict[str, str]


def select_strategy(
    image: str | None,
    *,
    container_runtime: str = DEFAULT_CONTAINER_RUNTIME,
) -> SandboxStrategy:
    """Pick the container strategy when an image is configured, host-direct otherwise."""

    if image is None:
        return HostDirect()
    normalized = image.strip()
    if not normalized:
        raise SandboxSetupError("container image name must not be empty")
    return ContainerIsolated(image=normalized, runtime=container_runtime)


def plan_launch(
    script_path: str | Path,
    strategy: SandboxStrategy,
    *,
    environ: Mapping[str, str] | None = None,
) -> LaunchPlan:
    """Build the command line for ``script_path`` without starting anything."""

    path = Path(script_path)
    env = dict(os.environ if environ is None else environ)
    env[EXECUTE_MODE_ENV] = "1"

    if isinstance(strategy, HostDirect):
        command = (strategy.executable, "-m", "arena_orchestrator", str(path))
    else:
        command = _container_command(path, strategy)
    return LaunchPlan(strategy=strategy, command=command, env=env)


def _container_command(path: Path, strategy: ContainerIsolated) -> tuple[str, ...]:
    if path.name in ("", ".."):
        raise SandboxSetupError(f"script path {str(path)!r} does not contain a file name")
    try:
        source = path.resolve(strict=True)
    except (OSError, RuntimeError) as exc:
        raise SandboxSetupError(f"failed to resolve full path of {str(path)!r}") from exc
    if not source.is_file():
        raise SandboxSetupError(f"script path {str(path)!r} is not a regular file")
    target = CONTAINER_SOURCE_DIR / path.name
    return (
        strategy.runtime,
        "run",
        "--interactive",
        "--rm",
        f"--env={EXECUTE_MODE_ENV}=1",
        f"--mount=type=bind,source={source},target={target},readonly=true",
        strategy.image,
        str(target),
    )


def launch(
    script_path: str | Path,
    *,
    image: str | None = None,
    container_runtime: str = DEFAULT_CONTAINER_RUNTIME,
    environ: Mapping[str, str] | None = None,
) -> subprocess.Popen[bytes]:
    """Start one competitor with piped stdin/stdout and inherited stderr.

    The process leads its own session on POSIX so teardown can signal the whole
    group, including the interpreter started by execute mode.
    """

    strategy = select_strategy(image, container_runtime=container_runtime)
    plan = plan_launch(script_path, strategy, environ=environ)
    return spawn(plan)


def spawn(plan: LaunchPlan) -> subprocess.Popen[bytes]:
    try:
        return subprocess.Popen(
            list(plan.command),
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            stderr=None,
            env=plan.env,
            start_new_session=os.name == "posix",
        )
    except OSError as exc:
        raise SandboxSetupError(f"failed to spawn {plan.command[0]!r}: {exc}") from exc


__all__ = [
    "ContainerIsolated",
    "HostDirect",
    "LaunchPlan",
    "SandboxError",
    "SandboxSetupError",
    "SandboxStrategy",
    "launch",
    "plan_launch",
    "select_strategy",
    "spawn",
]
