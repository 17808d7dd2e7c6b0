"""
arena-orchestrator — match config loader.

Purpose
- Load the effective match config from defaults, a YAML or TOML file, ``ARENA_``
  environment variables and CLI overrides.

What should be included in this file
- Precedence logic: CLI > env (ARENA_) > file > defaults.
- YAML loading via PyYAML ``safe_load`` and TOML loading via ``tomllib``.
- Deterministic environment variable mapping and coercion.
- Path resolution of competitor scripts and the log file relative to the config file.
"""

from __future__ import annotations

import json
import os
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Final, Literal

import yaml

from arena_orchestrator.config.schema import (
    ArenaConfig,
    assert_valid_config,
    default_config,
    merge_config,
)
from arena_orchestrator.constants import DEFAULT_CONFIG_FILE, ENV_PREFIX

_YAML_SUFFIXES: Final[frozenset[str]] = frozenset({".yaml", ".yml"})
_TOML_SUFFIXES: Final[frozenset[str]] = frozenset({".toml"})


@dataclass(frozen=True, slots=True)
class _Binding:
    path: tuple[str, ...]
    value_type: Literal["str", "int", "optional_str"]


# Competitor lists are file-only; everything scalar can be overridden from the environment.
_ENV_BINDINGS: Final[tuple[_Binding, ...]] = (
    _Binding(("rounds",), "int"),
    _Binding(("image",), "optional_str"),
    _Binding(("container_runtime",), "str"),
    _Binding(("timeouts", "handshake_ms"), "int"),
    _Binding(("timeouts", "read_ms"), "int"),
    _Binding(("timeouts", "write_ms"), "int"),
    _Binding(("logging", "level"), "str"),
    _Binding(("logging", "file"), "optional_str"),
)


class ConfigLoadError(ValueError):
    """Raised when config cannot be loaded or overrides cannot be coerced."""


def load_config(
    config_path: str | Path | None = None,
    *,
    cli_overrides: Mapping[str, object] | None = None,
    environ: Mapping[str, str] | None = None,
) -> ArenaConfig:
    """Load the effective config with precedence CLI > env > file > defaults."""

    resolved_path = resolve_config_path(config_path)
    env_map = os.environ if environ is None else environ

    merged = merge_config(default_config(), load_config_file(resolved_path))
    merged = merge_config(merged, _collect_env_overrides(env_map))
    merged = merge_config(merged, _materialize_cli_overrides(cli_overrides or {}))

    validated = assert_valid_config(merged)
    return normalize_paths(validated, base_dir=resolved_path.parent)


def load_config_file(path: str | Path) -> dict[str, Any]:
    """Parse a YAML or TOML config file into a plain mapping."""

    resolved = Path(path)
    if not resolved.exists():
        raise ConfigLoadError(f"config file not found: {resolved}")

    suffix = resolved.suffix.lower()
    try:
        if suffix in _TOML_SUFFIXES:
            with resolved.open("rb") as handle:
                parsed: object = tomllib.load(handle)
        elif suffix in _YAML_SUFFIXES:
            with resolved.open("r", encoding="utf-8") as handle:
                parsed = yaml.safe_load(handle)
        else:
            raise ConfigLoadError(
                f"unsupported config format {suffix or '<none>'!r}; use .yaml, .yml or .toml"
            )
    except tomllib.TOMLDecodeError as exc:
        raise ConfigLoadError(f"invalid TOML in {resolved}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigLoadError(f"invalid YAML in {resolved}: {exc}") from exc
    except OSError as exc:
        raise ConfigLoadError(f"unable to read config file {resolved}: {exc}") from exc

    if parsed is None:
        return {}
    if not isinstance(parsed, dict):
        raise ConfigLoadError(f"config root must be an object: {resolved}")
    return parsed


def normalize_paths(config: ArenaConfig, *, base_dir: Path) -> ArenaConfig:
    """Resolve a relative log file path against ``base_dir``.

    Program paths stay as configured; they double as competitor display names
    and are resolved only at launch, see :func:`resolve_program_path`.
    """

    normalized: ArenaConfig = merge_config({}, config)  # type: ignore[assignment]
    log_file = config["logging"]["file"]
    if log_file is not None:
        normalized["logging"]["file"] = _normalize_one_path(log_file, base_dir)
    return normalized


def dump_effective_config(config: Mapping[str, object]) -> str:
    """Return a deterministic JSON dump of the effective config."""

    return json.dumps(config, sort_keys=True, indent=2, ensure_ascii=False)


def resolve_config_path(config_path: str | Path | None) -> Path:
    """Return the absolute config file path; ``./arena.yaml`` when none is given."""

    if config_path is None:
        return (Path.cwd() / DEFAULT_CONFIG_FILE).resolve()
    return Path(config_path).expanduser().resolve()


def resolve_program_path(program: str, base_dir: Path) -> str:
    """Return the launch path of a configured program relative to ``base_dir``."""

    return _normalize_one_path(program, base_dir)


def env_name_for_path(path: tuple[str, ...]) -> str:
    return ENV_PREFIX + "_".join(part.upper() for part in path)


def _collect_env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    for binding in _ENV_BINDINGS:
        env_name = env_name_for_path(binding.path)
        raw = environ.get(env_name)
        if raw is None:
            continue
        _set_nested(overrides, binding.path, _coerce_env(raw, binding, env_name))
    return overrides


def _coerce_env(raw: str, binding: _Binding, env_name: str) -> object:
    value = raw.strip()
    if binding.value_type == "int":
        try:
            return int(value)
        except ValueError as exc:
            raise ConfigLoadError(
                f"{env_name} -> {'.'.join(binding.path)} must be an integer"
            ) from exc
    if binding.value_type == "optional_str":
        return value or None
    return value


def _materialize_cli_overrides(cli_overrides: Mapping[str, object]) -> dict[str, Any]:
    payload: dict[str, Any] = {}
    for key in sorted(cli_overrides):
        value = cli_overrides[key]
        if value is None:
            continue
        path = tuple(part for part in key.split(".") if part)
        if not path:
            raise ConfigLoadError(f"invalid CLI override key {key!r}")
        _set_nested(payload, path, value)
    return payload


def _set_nested(target: dict[str, Any], path: tuple[str, ...], value: object) -> None:
    cursor = target
    for part in path[:-1]:
        next_node = cursor.get(part)
        if not isinstance(next_node, dict):
            next_node = {}
            cursor[part] = next_node
        cursor = next_node
    cursor[path[-1]] = value


def _normalize_one_path(raw: str, base_dir: Path) -> str:
    expanded = os.path.expandvars(raw)
    candidate = Path(expanded).expanduser()
    if not candidate.is_absolute():
        candidate = base_dir / candidate
    return Path(os.path.normpath(str(candidate))).as_posix()


__all__ = [
    "ConfigLoadError",
    "dump_effective_config",
    "env_name_for_path",
    "load_config",
    "load_config_file",
    "normalize_paths",
    "resolve_config_path",
    "resolve_program_path",
]
