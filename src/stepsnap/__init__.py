"""
stepsnap: resumable multi-step computations.

Runs an ordered sequence of computations whose individual steps are
checkpointed to a snapshot, so a restarted run replays recorded step
values instead of recomputing them.
"""

__version__ = "0.1.0"

from stepsnap.contracts import (  # noqa: E402
    BaseComputationError,
    ComputationDefinitionError,
    ComputationFailedError,
    DebugLevel,
    RunResult,
    Snapshot,
    StepsnapError,
)
from stepsnap.core.config import ContextOptions  # noqa: E402
from stepsnap.engine import ComputationContext, PersistentComputation  # noqa: E402

PCContext = ComputationContext
PCContextOptions = ContextOptions
PC = PersistentComputation

__all__ = [
    "PC",
    "BaseComputationError",
    "ComputationContext",
    "ComputationDefinitionError",
    "ComputationFailedError",
    "ContextOptions",
    "DebugLevel",
    "PCContext",
    "PCContextOptions",
    "PersistentComputation",
    "RunResult",
    "Snapshot",
    "StepsnapError",
    "__version__",
]
