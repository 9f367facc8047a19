"""Shared contracts for cross-boundary data types.

Everything that crosses between the engine, the recovery store and
callers is defined here: enums, errors, the snapshot shape and run
results.

Import pattern:
    from stepsnap.contracts import DebugLevel, Snapshot, RunResult
"""

from stepsnap.contracts.enums import DebugLevel
from stepsnap.contracts.errors import (
    BaseComputationError,
    ComputationDefinitionError,
    ComputationFailedError,
    StepsnapError,
)
from stepsnap.contracts.results import RunResult
from stepsnap.contracts.snapshot import ErrorDescription, Snapshot

__all__ = [
    "BaseComputationError",
    "ComputationDefinitionError",
    "ComputationFailedError",
    "DebugLevel",
    "ErrorDescription",
    "RunResult",
    "Snapshot",
    "StepsnapError",
]
