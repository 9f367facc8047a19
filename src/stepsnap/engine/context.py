# src/stepsnap/engine/context.py
"""ComputationContext: runs computations with step-level recovery.

Lifecycle of ``run``:
1. Recovery decision (``maybe_recover``): adopt the stored snapshot
   if, and only if, it exists, is not falsy, and was recorded under a
   structurally equal dependency description. All or nothing.
2. Execution: each computation runs in order, receiving the previous
   result. Its steps consult the context's snapshot and either replay
   a recorded value or compute and record a new one.
3. Failure: the error is recorded into the snapshot, the snapshot is
   written out once, and ComputationFailedError is raised. Nothing
   after the failing computation runs.

A successful run writes nothing; call ``flush`` to persist progress
explicitly.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Literal, NoReturn

import numpy as np

from stepsnap.contracts import (
    ComputationDefinitionError,
    ComputationFailedError,
    DebugLevel,
    RunResult,
    Snapshot,
)
from stepsnap.contracts.snapshot import describe_error
from stepsnap.core.codec import Codec
from stepsnap.core.config import ContextOptions
from stepsnap.core.dependencies import dependencies_equal
from stepsnap.core.logging import get_logger
from stepsnap.core.store import RecoveryStore
from stepsnap.engine.computation import PersistentComputation, computation_name

logger = get_logger(__name__)

# A run list entry: a computation class or a ready-made instance
ComputationLike = type[PersistentComputation] | PersistentComputation

_MISSING: Any = object()


@dataclass(frozen=True)
class ComputationEntry:
    """A resolved run list entry.

    ``kind == "class"``: construct ``target`` with no arguments.
    ``kind == "instance"``: use ``target`` as-is (re-bound to the context).
    """

    kind: Literal["class", "instance"]
    target: ComputationLike
    name: str

    @classmethod
    def of(cls, item: Any) -> ComputationEntry:
        """Classify a run list item.

        Raises:
            ComputationDefinitionError: If the item is neither a
                PersistentComputation subclass nor an instance of one,
                or declares no name
        """
        if isinstance(item, type) and issubclass(item, PersistentComputation):
            return cls(kind="class", target=item, name=computation_name(item))
        if isinstance(item, PersistentComputation):
            return cls(kind="instance", target=item, name=computation_name(item))
        raise ComputationDefinitionError(
            "Run list entries must be PersistentComputation subclasses or instances, "
            f"got {item!r}"
        )

    def instantiate(self, context: ComputationContext) -> PersistentComputation:
        if self.kind == "class":
            assert isinstance(self.target, type)  # Guaranteed by of()
            computation = self.target(context)
        else:
            assert isinstance(self.target, PersistentComputation)  # Guaranteed by of()
            computation = self.target
        computation.bind(context)
        return computation


def _is_falsy(value: Any) -> bool:
    # Arrays have no single truth value; an empty one counts as falsy
    if isinstance(value, np.ndarray):
        return value.size == 0
    return not value


class ComputationContext:
    """Runs an ordered list of computations against one recovery location.

    The context owns the working snapshot and the list of run results.
    Computations only touch the snapshot through ``has_step_data``,
    ``get_step_value`` and ``record``.

    A single context (and a single recovery location) must not be used
    by concurrent runs; nothing guards against it.

    Usage:
        ctx = ComputationContext(
            {"recovery_location": "state/.recovery"},
            dependencies={"model_version": 3},
        )
        result = await ctx.run([LoadData, TrainModel], input_value=config)
        print(result.value)
    """

    def __init__(
        self,
        options: ContextOptions | Mapping[str, Any] | None = None,
        dependencies: Mapping[str, Any] | None = None,
        **overrides: Any,
    ) -> None:
        """Initialize context.

        Args:
            options: ContextOptions, or a mapping of option values (None
                values fall back to defaults)
            dependencies: Description of the inputs a stored snapshot must
                have been recorded under to be reused
            **overrides: Individual option values, applied last

        Raises:
            ValidationError: If an option is invalid or unknown
        """
        if isinstance(options, ContextOptions):
            if overrides:
                options = ContextOptions.create(
                    {field: getattr(options, field) for field in ContextOptions.model_fields},
                    **overrides,
                )
        else:
            options = ContextOptions.create(options, **overrides)

        self.options: ContextOptions = options
        self._logger = options.logger
        self._store = RecoveryStore(options.recovery_location, options.transport, options.codec)
        self._snapshot = Snapshot(dependencies=dict(dependencies or {}))
        self._dependencies = MappingProxyType(dict(self._snapshot.dependencies))
        self._results: list[RunResult] = []
        self._recovered = False

    # === Accessors ===

    @property
    def codec(self) -> Codec:
        codec: Codec = self.options.codec
        return codec

    @property
    def store(self) -> RecoveryStore:
        return self._store

    @property
    def snapshot(self) -> Snapshot:
        """The working snapshot (read it, do not mutate it)."""
        return self._snapshot

    @property
    def dependencies(self) -> Mapping[str, Any]:
        return self._dependencies

    @property
    def recovered(self) -> bool:
        """Outcome of the last recovery decision."""
        return self._recovered

    @property
    def results(self) -> tuple[RunResult, ...]:
        return tuple(self._results)

    # === Running ===

    async def run(
        self,
        computations: Iterable[ComputationLike],
        input_value: Any = None,
    ) -> RunResult | None:
        """Run computations in order, replaying recorded steps.

        Args:
            computations: Computation classes and/or instances
            input_value: Input for the first computation

        Returns:
            RunResult of the last computation (None if nothing has run)

        Raises:
            ComputationFailedError: If a computation raises; partial
                progress has been persisted (see ``persistence_error``)
            ComputationDefinitionError: If a run list entry is invalid;
                raised before anything runs
        """
        entries = [ComputationEntry.of(item) for item in computations]

        recovered = await self.maybe_recover()
        self._recovered = recovered
        value = input_value

        for entry in entries:
            computation = entry.instantiate(self)

            try:
                if recovered:
                    computation.mark_recovered()

                self.debug(f"Running {computation.name}")
                value = await computation.run(value)
            except Exception as error:
                self.debug("Failed to run computation")
                await self._fail(error, computation)

            self._push_result(computation, value)

        return self.get_last_result()

    def run_sync(
        self,
        computations: Iterable[ComputationLike],
        input_value: Any = None,
    ) -> RunResult | None:
        """Blocking wrapper around ``run`` for callers without an event loop."""
        return asyncio.run(self.run(computations, input_value))

    async def _fail(self, error: Exception, computation: PersistentComputation) -> NoReturn:
        """Persist partial progress for a failed computation, then raise.

        A failure to persist does not hide the computation error: the
        raised ComputationFailedError still has the computation error as
        its cause and carries the write error in ``persistence_error``.
        """
        self.record(computation, error=error)
        try:
            await self.flush()
        except Exception as persistence_error:
            logger.warning(
                "Failed to persist recovery data after computation failure",
                computation=computation.name,
                location=str(self.options.recovery_location),
                error=str(error),
                persistence_error=f"{type(persistence_error).__name__}: {persistence_error}",
            )
            raise ComputationFailedError(
                error, computation, persistence_error=persistence_error
            ) from error
        raise ComputationFailedError(error, computation) from error

    # === Recovery ===

    async def maybe_recover(self) -> bool:
        """Decide whether the stored snapshot applies, adopting it if so.

        Issues at most one existence check and one read. Transport and
        codec errors propagate.

        Returns:
            True if the stored snapshot replaced the working snapshot
        """
        if self.options.from_scratch:
            self.debug("Forced to start from scratch by setting from_scratch to True")
            return False

        location = self.options.recovery_location
        self.debug(f"Trying to recover from {location}")

        if not await self._store.exists():
            self.debug("No recovery data found")
            return False

        recovery_data = await self._store.read()

        if _is_falsy(recovery_data):
            self.debug("Recovery data object is falsy, skipping recovery")
            return False

        if not isinstance(recovery_data, Mapping):
            self.debug(
                f"Recovery data is a {type(recovery_data).__name__}, not a snapshot, skipping recovery"
            )
            return False

        recovered_dependencies = recovery_data.get("dependencies")
        if dependencies_equal(self._snapshot.dependencies, recovered_dependencies):
            self.debug("Got the same dependencies as in the recovery data, applying")
            self.verbose(recovery_data)
            self._snapshot = Snapshot.from_dict(recovery_data)
            return True

        self.debug("Got different dependencies in the recovery data")
        self.verbose("Current dependencies", self._snapshot.dependencies)
        self.verbose("Recovered dependencies", recovered_dependencies)
        return False

    # === Snapshot access for computations ===

    def has_step_data(self, computation: PersistentComputation) -> bool:
        """True if a value is recorded at the computation's cursor."""
        step_data = self._snapshot.steps_for(computation.name)
        if step_data is None:
            return False

        if len(step_data) <= computation.step_index:
            self.verbose(f"No data for step {computation.step_index}")
            return False

        self.verbose("Trying to recover step, found data:", step_data)
        return True

    def get_step_value(self, computation: PersistentComputation) -> Any:
        """Return the value recorded at the computation's cursor."""
        self.verbose(
            f"Getting recovery data for {computation.name}, step {computation.step_index}"
        )
        return self._snapshot.computations[computation.name][computation.step_index]

    def record(
        self,
        computation: PersistentComputation,
        *,
        error: BaseException | None = None,
        result: Any = _MISSING,
    ) -> None:
        """Mutate the working snapshot.

        Args:
            computation: The computation the update belongs to
            error: If given, stored as the snapshot's last error
            result: If given (None included), appended to the
                computation's step list
        """
        if error is not None:
            self._snapshot.error = describe_error(error, computation.name)

        if result is not _MISSING:
            self._snapshot.append_step(computation.name, result)

    async def flush(self) -> None:
        """Write the working snapshot to the recovery location now."""
        await self._store.save(self._snapshot)

    async def clear(self) -> bool:
        """Delete the stored snapshot and reset the working snapshot.

        Returns:
            True if a stored snapshot was deleted

        Raises:
            NotImplementedError: If the transport cannot delete
        """
        deleted = await self._store.delete()
        self._snapshot = Snapshot(dependencies=dict(self._dependencies))
        self._recovered = False
        return deleted

    # === Results ===

    def _push_result(self, computation: PersistentComputation, value: Any) -> None:
        self._results.append(RunResult(name=computation.name, value=value))

    def get_result(self, computation: ComputationLike) -> RunResult | None:
        """Return the first result recorded for a computation class or instance."""
        return self.get_result_by_name(computation_name(computation))

    def get_result_by_name(self, name: str) -> RunResult | None:
        return next((result for result in self._results if result.name == name), None)

    def get_last_result(self) -> RunResult | None:
        return self._results[-1] if self._results else None

    # === Logging ===

    def debug(self, *parts: Any) -> None:
        if self.options.debug_level >= DebugLevel.DEBUG:
            self.log("debug", *parts)

    def verbose(self, *parts: Any) -> None:
        if self.options.debug_level >= DebugLevel.VERBOSE:
            self.log("verbose", *parts)

    def log(self, prefix: str, *parts: Any) -> None:
        self._logger.log(prefix, *parts)
