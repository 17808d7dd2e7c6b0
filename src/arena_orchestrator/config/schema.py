"""
arena-orchestrator — match configuration schema and validation.

Purpose
- Define authoritative defaults and strict validation rules for match configs.

What should be included in this file
- Typed shape of the effective config.
- Validation for required fields, types and numeric constraints, reported as
  structured issues (field path + message).
- Deterministic deep-merge helper used by the loader's precedence chain.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Final, Literal, TypedDict

from arena_orchestrator.constants import (
    DEFAULT_CONTAINER_RUNTIME,
    HANDSHAKE_READ_DEADLINE_MS,
    READ_DEADLINE_MS,
    WRITE_DEADLINE_MS,
)

_LOG_LEVELS: Final[tuple[str, ...]] = ("DEBUG", "INFO", "WARNING", "ERROR")
_TOP_LEVEL_KEYS: Final[frozenset[str]] = frozenset(
    {"programs", "rounds", "image", "container_runtime", "timeouts", "logging"}
)
_TIMEOUT_KEYS: Final[tuple[str, ...]] = ("handshake_ms", "read_ms", "write_ms")
_LOGGING_KEYS: Final[frozenset[str]] = frozenset({"level", "file"})


class TimeoutsConfig(TypedDict):
    handshake_ms: int
    read_ms: int
    write_ms: int


class LoggingSection(TypedDict):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"]
    file: str | None


class ArenaConfig(TypedDict):
    programs: list[str]
    rounds: int
    image: str | None
    container_runtime: str
    timeouts: TimeoutsConfig
    logging: LoggingSection


DEFAULT_CONFIG: Final[dict[str, Any]] = {
    "programs": [],
    "image": None,
    "container_runtime": DEFAULT_CONTAINER_RUNTIME,
    "timeouts": {
        "handshake_ms": HANDSHAKE_READ_DEADLINE_MS,
        "read_ms": READ_DEADLINE_MS,
        "write_ms": WRITE_DEADLINE_MS,
    },
    "logging": {
        "level": "INFO",
        "file": None,
    },
}


@dataclass(frozen=True, slots=True)
class ConfigValidationIssue:
    """Single structured validation failure."""

    path: str
    message: str


class ConfigValidationError(ValueError):
    """Raised when strict config validation fails."""

    def __init__(self, issues: Sequence[ConfigValidationIssue]) -> None:
        self.issues = tuple(issues)
        if not self.issues:
            rendered = "unknown validation failure"
        else:
            rendered = "\n".join(f"- {item.path}: {item.message}" for item in self.issues)
        super().__init__(f"invalid config:\n{rendered}")


class _IssueCollector:
    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: list[ConfigValidationIssue] = []

    def add(self, path: str, message: str) -> None:
        self._items.append(ConfigValidationIssue(path=path, message=message))

    def items(self) -> tuple[ConfigValidationIssue, ...]:
        return tuple(self._items)


def default_config() -> dict[str, Any]:
    """Return a deep copy of the built-in defaults."""

    return copy.deepcopy(DEFAULT_CONFIG)


def merge_config(base: Mapping[str, object], overlay: Mapping[str, object]) -> dict[str, Any]:
    """Deterministically deep-merge ``overlay`` onto ``base``."""

    merged = copy.deepcopy(dict(base))
    _merge_into(merged, overlay)
    return merged


def validate_config(config: object) -> tuple[ConfigValidationIssue, ...]:
    """Return every validation issue found in ``config``; empty when valid."""

    issues = _IssueCollector()
    if not isinstance(config, Mapping):
        issues.add("<root>", "config root must be an object")
        return issues.items()

    for key in sorted(str(item) for item in config):
        if key not in _TOP_LEVEL_KEYS:
            issues.add(key, "unknown key")

    _validate_programs(config.get("programs"), issues)

    rounds = config.get("rounds")
    if "rounds" not in config:
        issues.add("rounds", "is required")
    elif not _is_int(rounds):
        issues.add("rounds", "must be an integer")
    elif rounds < 0:
        issues.add("rounds", "must be >= 0")

    image = config.get("image")
    if image is not None and (not isinstance(image, str) or not image.strip()):
        issues.add("image", "must be a non-empty string or null")

    runtime = config.get("container_runtime")
    if not isinstance(runtime, str) or not runtime.strip():
        issues.add("container_runtime", "must be a non-empty string")

    _validate_timeouts(config.get("timeouts"), issues)
    _validate_logging(config.get("logging"), issues)
    return issues.items()


def assert_valid_config(config: object) -> ArenaConfig:
    """Validate ``config`` and return it typed, or raise :class:`ConfigValidationError`."""

    issues = validate_config(config)
    if issues or not isinstance(config, Mapping):
        raise ConfigValidationError(issues)
    return _as_arena_config(config)


def _validate_programs(programs: object, issues: _IssueCollector) -> None:
    if not isinstance(programs, list):
        issues.add("programs", "must be a list of script paths")
        return
    if not programs:
        issues.add("programs", "must name at least one competitor script")
    for index, item in enumerate(programs):
        if not isinstance(item, str) or not item.strip():
            issues.add(f"programs[{index}]", "must be a non-empty string")


def _validate_timeouts(timeouts: object, issues: _IssueCollector) -> None:
    if not isinstance(timeouts, Mapping):
        issues.add("timeouts", "must be an object")
        return
    for key in sorted(str(item) for item in timeouts):
        if key not in _TIMEOUT_KEYS:
            issues.add(f"timeouts.{key}", "unknown key")
    for key in _TIMEOUT_KEYS:
        value = timeouts.get(key)
        if not _is_int(value):
            issues.add(f"timeouts.{key}", "must be an integer number of milliseconds")
        elif value <= 0:
            issues.add(f"timeouts.{key}", "must be > 0")


def _validate_logging(section: object, issues: _IssueCollector) -> None:
    if not isinstance(section, Mapping):
        issues.add("logging", "must be an object")
        return
    for key in sorted(str(item) for item in section):
        if key not in _LOGGING_KEYS:
            issues.add(f"logging.{key}", "unknown key")
    level = section.get("level")
    if not isinstance(level, str) or level.upper() not in _LOG_LEVELS:
        issues.add("logging.level", f"must be one of {', '.join(_LOG_LEVELS)}")
    log_file = section.get("file")
    if log_file is not None and (not isinstance(log_file, str) or not log_file.strip()):
        issues.add("logging.file", "must be a non-empty string or null")


def _as_arena_config(config: Mapping[str, Any]) -> ArenaConfig:
    timeouts = config["timeouts"]
    section = config["logging"]
    image = config.get("image")
    return {
        "programs": [str(item).strip() for item in config["programs"]],
        "rounds": int(config["rounds"]),
        "image": image.strip() if isinstance(image, str) else None,
        "container_runtime": str(config["container_runtime"]).strip(),
        "timeouts": {
            "handshake_ms": int(timeouts["handshake_ms"]),
            "read_ms": int(timeouts["read_ms"]),
            "write_ms": int(timeouts["write_ms"]),
        },
        "logging": {
            "level": section["level"].upper(),
            "file": section.get("file"),
        },
    }


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _merge_into(target: dict[str, Any], overlay: Mapping[str, object]) -> None:
    for key in sorted(overlay):
        value = overlay[key]
        existing = target.get(key)
        if isinstance(value, Mapping) and isinstance(existing, dict):
            _merge_into(existing, value)
        else:
            target[key] = copy.deepcopy(value)


__all__ = [
    "DEFAULT_CONFIG",
    "ArenaConfig",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "LoggingSection",
    "TimeoutsConfig",
    "assert_valid_config",
    "default_config",
    "merge_config",
    "validate_config",
]
