"""
arena-orchestrator — lowest-unique-integer bot match orchestrator.

Purpose
- Drive untrusted competitor programs over a line protocol on their standard
  streams, bound every read and write with a deadline, and score matches with
  the lowest-unique-value elimination rule.

Import boundary
- Must not have side effects at import time (no config loading, no logging init).
"""

__version__ = "1.0.0"

__all__ = ["__version__"]
