"""Exception hierarchy for stepsnap.

Only computation failures are wrapped. Transport and codec faults
propagate to the caller unmodified.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from stepsnap.engine.computation import PersistentComputation


class StepsnapError(Exception):
    """Root of all errors raised by stepsnap itself."""

    pass


class BaseComputationError(StepsnapError):
    """Base class for errors raised from inside a computation.

    Business logic may raise this (or a subclass) to signal a failure
    that the context should record and report.
    """

    pass


class ComputationDefinitionError(StepsnapError, TypeError):
    """Raised when a computation does not honour the computation contract.

    Examples: a run list entry that is neither a computation class nor
    an instance, or a computation without a stable ``name``.
    """

    pass


class ComputationFailedError(BaseComputationError):
    """Raised by ``ComputationContext.run`` when a computation fails.

    The original exception is chained as ``__cause__``. If persisting
    the snapshot after the failure also failed, that second error is
    kept in ``persistence_error`` and the message says so.

    Attributes:
        computation: The computation instance that failed
        computation_name: Its snapshot key
        persistence_error: Error raised while saving partial state, if any
    """

    def __init__(
        self,
        error: BaseException,
        computation: PersistentComputation,
        *,
        persistence_error: BaseException | None = None,
    ) -> None:
        self.computation = computation
        self.computation_name = computation.name
        self.persistence_error = persistence_error

        message = (
            f"Computation failed on step {computation.name} "
            f"due to this error: {error}"
        )
        if persistence_error is not None:
            message += (
                "; partial state could not be saved: "
                f"{type(persistence_error).__name__}: {persistence_error}"
            )
        super().__init__(message)
