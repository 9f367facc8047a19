"""Run outcomes.

RunResults live in memory for the duration of a context and are never
persisted; recovery works on step values, not on computation results.
"""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class RunResult:
    """Value produced by one completed computation."""

    name: str
    value: Any
