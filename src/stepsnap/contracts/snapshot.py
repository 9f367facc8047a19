"""The persisted recovery state.

A Snapshot is the unit the recovery store reads and writes: the
dependency description it was produced under, the ordered step results
of every computation, and the last computation error. It always crosses
the codec boundary as a plain dict (``to_dict`` / ``from_dict``) so any
codec that handles builtin containers can encode it.
"""

from __future__ import annotations

import traceback
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, TypedDict


class ErrorDescription(TypedDict):
    """Schema for the error stored in a snapshot.

    Plain strings only: the live exception object is never persisted.
    """

    computation: str  # Snapshot key of the failed computation
    type: str  # Exception class name (e.g., "ValueError")
    message: str  # str(exception)
    traceback: str  # Formatted traceback, empty if unavailable


def describe_error(error: BaseException, computation_name: str) -> ErrorDescription:
    """Build an ErrorDescription from a live exception."""
    return ErrorDescription(
        computation=computation_name,
        type=type(error).__name__,
        message=str(error),
        traceback="".join(traceback.format_exception(error)),
    )


@dataclass
class Snapshot:
    """Recovery state for one recovery location.

    ``computations`` maps a computation name to its step results in call
    order: the Nth entry is the value returned by that computation's Nth
    ``step`` call.
    """

    dependencies: dict[str, Any] = field(default_factory=dict)
    computations: dict[str, list[Any]] = field(default_factory=dict)
    error: ErrorDescription | None = None

    def steps_for(self, name: str) -> list[Any] | None:
        """Return the recorded step list for a computation, if any."""
        return self.computations.get(name)

    def step_count(self, name: str) -> int:
        steps = self.computations.get(name)
        return 0 if steps is None else len(steps)

    def append_step(self, name: str, value: Any) -> int:
        """Append a step result and return its position."""
        steps = self.computations.setdefault(name, [])
        steps.append(value)
        return len(steps) - 1

    def to_dict(self) -> dict[str, Any]:
        """Convert to the persisted shape.

        ``error`` is omitted while no computation has failed.
        """
        data: dict[str, Any] = {
            "dependencies": self.dependencies,
            "computations": self.computations,
        }
        if self.error is not None:
            data["error"] = self.error
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Snapshot:
        """Rebuild a snapshot from its persisted shape.

        Missing sections default to empty. Step lists are copied so the
        decoded value can be discarded by the caller.
        """
        dependencies = data.get("dependencies")
        computations = data.get("computations")
        return cls(
            dependencies=dict(dependencies) if dependencies else {},
            computations={
                str(name): list(steps) for name, steps in (computations or {}).items()
            },
            error=data.get("error"),
        )
