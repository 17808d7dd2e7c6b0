"""
arena-orchestrator config package public API.

Purpose
- Export config loading/validation entrypoints and public error types.

Functional requirements
- Support loading from a YAML or TOML match file + ``ARENA_`` env overrides.
- Fail fast with clear structured validation/load errors.
"""

from arena_orchestrator.config.loader import (
    ConfigLoadError,
    dump_effective_config,
    env_name_for_path,
    load_config,
    load_config_file,
    normalize_paths,
    resolve_config_path,
    resolve_program_path,
)
from arena_orchestrator.config.schema import (
    DEFAULT_CONFIG,
    ArenaConfig,
    ConfigValidationError,
    ConfigValidationIssue,
    LoggingSection,
    TimeoutsConfig,
    assert_valid_config,
    default_config,
    merge_config,
    validate_config,
)

__all__ = [
    "DEFAULT_CONFIG",
    "ArenaConfig",
    "ConfigLoadError",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "LoggingSection",
    "TimeoutsConfig",
    "assert_valid_config",
    "default_config",
    "dump_effective_config",
    "env_name_for_path",
    "load_config",
    "load_config_file",
    "merge_config",
    "normalize_paths",
    "resolve_config_path",
    "resolve_program_path",
    "validate_config",
]
