# src/stepsnap/engine/computation.py
"""Base class for checkpointed computations.

A computation is one named unit in a context's run list. Its ``run``
method does the work and wraps every piece it wants checkpointed in
``await self.step(fn)``. Step results are recorded positionally: the
Nth ``step`` call of a computation maps to the Nth recorded value for
that computation's ``name``.

Known limitation: nothing detects a computation whose sequence of step
calls changed between runs. Replays are only correct if the step calls
happen in the same order every time; change a dependency entry (e.g., a
version number) when the steps change.

Example:
    class FetchAndScore(PersistentComputation):
        name = "fetch_and_score"

        async def run(self, input_value):
            rows = await self.step(lambda: fetch_rows(input_value))
            score = await self.step(lambda: score_rows(rows))
            return score
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, ClassVar, TypeVar

from stepsnap.contracts import ComputationDefinitionError
from stepsnap.core.awaitables import resolve

if TYPE_CHECKING:
    from stepsnap.engine.context import ComputationContext

T = TypeVar("T")


def computation_name(computation: type[PersistentComputation] | PersistentComputation) -> str:
    """Return the stable snapshot key declared by a computation.

    Raises:
        ComputationDefinitionError: If no non-empty string ``name`` is declared
    """
    name = getattr(computation, "name", None)
    if not isinstance(name, str) or not name:
        label = computation.__name__ if isinstance(computation, type) else type(computation).__name__
        raise ComputationDefinitionError(
            f"{label} must declare a non-empty string class attribute 'name'; "
            "it is the key its steps are recorded under"
        )
    return name


class PersistentComputation:
    """Base class for computations run by a ComputationContext.

    Subclasses must set ``name`` (a stable identifier, independent of
    the class name) and override ``run``.

    A computation can be listed in a run either as a class, which the
    context constructs with no arguments, or as an already-constructed
    instance (useful when it needs constructor arguments). Either way
    the context binds it before running, which resets the step cursor.
    """

    name: ClassVar[str]

    def __init__(self, context: ComputationContext | None = None) -> None:
        self._context = context
        self._recovered = False
        self._step_index = 0

    @property
    def context(self) -> ComputationContext:
        """The context this computation is bound to.

        Raises:
            ComputationDefinitionError: If the computation is not bound
        """
        if self._context is None:
            raise ComputationDefinitionError(
                f"{type(self).__name__} is not bound to a ComputationContext"
            )
        return self._context

    @property
    def step_index(self) -> int:
        """Number of steps executed or replayed so far."""
        return self._step_index

    @property
    def recovered(self) -> bool:
        """True if the context adopted a snapshot for this run.

        Informational only: whether an individual step is replayed is
        decided per step.
        """
        return self._recovered

    def bind(self, context: ComputationContext) -> None:
        """Attach to a context and reset per-run state."""
        self._context = context
        self._recovered = False
        self._step_index = 0

    def mark_recovered(self) -> None:
        self._recovered = True

    async def run(self, input_value: Any = None) -> Any:
        """Do the computation's work.

        Args:
            input_value: The previous computation's result, or the
                context's initial input for the first computation

        Returns:
            This computation's result, handed to the next computation
        """
        raise NotImplementedError(
            f"{type(self).__name__} must override the run() method of PersistentComputation"
        )

    async def step(self, fn: Callable[[], T | Awaitable[T]]) -> T:
        """Run one checkpointed unit of work.

        If the context holds a recorded value for this position it is
        returned without calling ``fn``, whatever the value is (None,
        False and empty values are replayed too). Otherwise ``fn`` is
        called, awaited if it returns an awaitable, and its result is
        recorded before being returned.

        Step values must be encodable by the context's codec.
        """
        context = self.context

        if context.has_step_data(self):
            recorded: T = context.get_step_value(self)
            self._step_index += 1
            return recorded

        result = await resolve(fn())
        context.record(self, result=result)
        self._step_index += 1
        return result
