"""Engine: ComputationContext and the PersistentComputation contract."""

from stepsnap.engine.computation import PersistentComputation, computation_name
from stepsnap.engine.context import ComputationContext, ComputationEntry

__all__ = [
    "ComputationContext",
    "ComputationEntry",
    "PersistentComputation",
    "computation_name",
]
