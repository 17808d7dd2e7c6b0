"""Execute mode: run one competitor script under the interpreter its kind needs.

The launcher starts competitors by re-invoking this package with the
``__RUN__`` environment flag set. In that mode nothing of the orchestrator
runs; the script's kind is detected from its extension, the matching
interpreter runs it synchronously with the inherited standard streams, and
the script's exit status becomes the process exit status.

Standard output belongs to the competitor protocol here, so diagnostics are
written to standard error only.
"""

from __future__ import annotations

import os
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from arena_orchestrator.constants import EXECUTE_MODE_ENV
from arena_orchestrator.sandbox.launcher import SandboxError

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence


class UnknownScriptKindError(SandboxError):
    """Raised when no registered kind matches a script's extension."""


class ScriptLaunchError(SandboxError):
    """Raised when the interpreter for a script cannot be started."""


@dataclass(frozen=True, slots=True)
class ScriptKind:
    """One recognised script kind and the interpreter invocation that runs it."""

    name: str
    suffixes: tuple[str, ...]
    interpreter: tuple[str, ...]

    def command_for(self, path: Path) -> list[str]:
        return [*self.interpreter, str(path)]


PYTHON_KIND = ScriptKind(
    name="python",
    suffixes=(".py",),
    interpreter=(sys.executable or "python3", "-u"),
)


class ScriptKindRegistry:
    """Suffix-keyed mapping from script kinds to interpreter invocations."""

    def __init__(self, kinds: Iterable[ScriptKind] = ()) -> None:
        self._by_suffix: dict[str, ScriptKind] = {}
        for kind in kinds:
            self.register(kind)

    @classmethod
    def default(cls) -> ScriptKindRegistry:
        return cls((PYTHON_KIND,))

    @property
    def kinds(self) -> tuple[ScriptKind, ...]:
        unique: dict[str, ScriptKind] = {}
        for kind in self._by_suffix.values():
            unique.setdefault(kind.name, kind)
        return tuple(unique.values())

    def register(self, kind: ScriptKind) -> None:
        if not kind.suffixes:
            raise ValueError(f"script kind {kind.name!r} must declare at least one suffix")
        if not kind.interpreter:
            raise ValueError(f"script kind {kind.name!r} must declare an interpreter")
        for suffix in kind.suffixes:
            normalized = _normalize_suffix(suffix)
            existing = self._by_suffix.get(normalized)
            if existing is not None and existing.name != kind.name:
                raise ValueError(
                    f"suffix {normalized!r} is already registered for kind {existing.name!r}"
                )
            self._by_suffix[normalized] = kind

    def detect(self, path: Path) -> ScriptKind:
        kind = self._by_suffix.get(path.suffix.lower())
        if kind is None:
            raise UnknownScriptKindError(f"could not detect code kind for {path}")
        return kind


def execute_mode_requested(environ: Mapping[str, str] | None = None) -> bool:
    env = os.environ if environ is None else environ
    return EXECUTE_MODE_ENV in env


def run_script(path: Path, *, registry: ScriptKindRegistry | None = None) -> int:
    """Run ``path`` synchronously and return its exit status."""

    kinds = registry if registry is not None else ScriptKindRegistry.default()
    kind = kinds.detect(path)
    _write_stderr(f"{path} detected as {kind.name}")
    try:
        completed = subprocess.run(kind.command_for(path), check=False)
    except OSError as exc:
        raise ScriptLaunchError(f"failed to launch {kind.name} interpreter: {exc}") from exc
    return _exit_status(completed.returncode)


def run_execute_mode(
    argv: Sequence[str],
    *,
    registry: ScriptKindRegistry | None = None,
) -> int:
    """Entry point for execute mode; ``argv`` holds the script path only."""

    if not argv:
        _write_stderr("path to executed file not given")
        return 1
    try:
        return run_script(Path(argv[0]), registry=registry)
    except SandboxError as exc:
        _write_stderr(str(exc))
        return 1


def _exit_status(returncode: int) -> int:
    # Killed by a signal: report it the way a POSIX shell does.
    if returncode < 0:
        return 128 + abs(returncode)
    return returncode


def _normalize_suffix(suffix: str) -> str:
    normalized = suffix.strip().lower()
    if not normalized.startswith("."):
        normalized = f".{normalized}"
    return normalized


def _write_stderr(message: str) -> None:
    sys.stderr.write(message.rstrip("\n") + "\n")
    sys.stderr.flush()


__all__ = [
    "PYTHON_KIND",
    "ScriptKind",
    "ScriptKindRegistry",
    "ScriptLaunchError",
    "UnknownScriptKindError",
    "execute_mode_requested",
    "run_execute_mode",
    "run_script",
]
