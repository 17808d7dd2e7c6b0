"""Utility exports for deadline-bounded background calls."""

from arena_orchestrator.utils.concurrency import (
    BackgroundCall,
    CompletionFlag,
    DeadlineExceeded,
)

__all__ = [
    "BackgroundCall",
    "CompletionFlag",
    "DeadlineExceeded",
]
