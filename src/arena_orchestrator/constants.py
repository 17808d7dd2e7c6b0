"""Stable constants shared by the sandbox, competitor and match layers."""

from __future__ import annotations

from pathlib import PurePosixPath
from typing import Final

# Environment flag that switches the entrypoint into script execute mode.
EXECUTE_MODE_ENV: Final[str] = "__RUN__"

# Largest value in the unsigned 32-bit guess domain; marks "no usable value".
SENTINEL_VALUE: Final[int] = 2**32 - 1

# Deadlines for competitor I/O, in milliseconds.
HANDSHAKE_READ_DEADLINE_MS: Final[int] = 10_000
READ_DEADLINE_MS: Final[int] = 1_000
WRITE_DEADLINE_MS: Final[int] = 100

# Longest competitor line accepted, in bytes (newline included).
MAX_LINE_BYTES: Final[int] = 4096

# Container sandbox layout.
DEFAULT_CONTAINER_RUNTIME: Final[str] = "docker"
CONTAINER_SOURCE_DIR: Final[PurePosixPath] = PurePosixPath("/src")

# Config file lookup and environment overrides.
DEFAULT_CONFIG_FILE: Final[str] = "arena.yaml"
ENV_PREFIX: Final[str] = "ARENA_"

__all__ = [
    "CONTAINER_SOURCE_DIR",
    "DEFAULT_CONFIG_FILE",
    "DEFAULT_CONTAINER_RUNTIME",
    "ENV_PREFIX",
    "EXECUTE_MODE_ENV",
    "HANDSHAKE_READ_DEADLINE_MS",
    "MAX_LINE_BYTES",
    "READ_DEADLINE_MS",
    "SENTINEL_VALUE",
    "WRITE_DEADLINE_MS",
]
