"""
Sandbox layer: competitor process launch strategies and execute mode.

Purpose
- Start each competitor either directly on the host (re-invoking this package
  in execute mode) or inside a container with a read-only bind mount.
- Run a script under the interpreter its kind requires when in execute mode.
"""

from arena_orchestrator.sandbox.executor import (
    PYTHON_KIND,
    ScriptKind,
    ScriptKindRegistry,
    ScriptLaunchError,
    UnknownScriptKindError,
    execute_mode_requested,
    run_execute_mode,
    run_script,
)
from arena_orchestrator.sandbox.launcher import (
    ContainerIsolated,
    HostDirect,
    LaunchPlan,
    SandboxError,
    SandboxSetupError,
    SandboxStrategy,
    launch,
    plan_launch,
    select_strategy,
    spawn,
)

__all__ = [
    "PYTHON_KIND",
    "ContainerIsolated",
    "HostDirect",
    "LaunchPlan",
    "SandboxError",
    "SandboxSetupError",
    "SandboxStrategy",
    "ScriptKind",
    "ScriptKindRegistry",
    "ScriptLaunchError",
    "UnknownScriptKindError",
    "execute_mode_requested",
    "launch",
    "plan_launch",
    "run_execute_mode",
    "run_script",
    "select_strategy",
    "spawn",
]
