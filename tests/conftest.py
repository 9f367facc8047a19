"""Shared test fixtures.

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/
"""

import os
import pickle
from collections.abc import Callable
from typing import Any
from unittest.mock import MagicMock

import pytest
from hypothesis import Phase, Verbosity, settings

# =============================================================================
# Hypothesis Configuration
# =============================================================================

settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,  # Disable deadline for CI (timing varies)
)

settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))


# =============================================================================
# Transports
# =============================================================================


def _mock_transport(
    *,
    exists: bool = True,
    stored: Any = None,
    read: Callable[[Any], bytes] | None = None,
) -> MagicMock:
    """Build a transport whose calls can be counted.

    ``stored`` is pickled and returned by ``read`` unless ``read`` is given.
    Written bytes are kept in ``transport.written``.
    """
    transport = MagicMock(spec=["exists", "read", "write"])
    transport.written = []
    transport.exists.return_value = exists
    if read is not None:
        transport.read.side_effect = read
    else:
        payload = {"dependencies": {}} if stored is None else stored
        transport.read.return_value = pickle.dumps(payload)
    transport.write.side_effect = lambda location, data: transport.written.append(data)
    return transport


@pytest.fixture
def mock_transport() -> Callable[..., MagicMock]:
    """Factory for call-counting transports (see _mock_transport)."""
    return _mock_transport


@pytest.fixture
def transport_with_data() -> Callable[..., MagicMock]:
    """Factory for a transport holding a snapshot with the given step data."""

    def factory(
        computations: dict[str, list[Any]] | None = None,
        dependencies: dict[str, Any] | None = None,
    ) -> MagicMock:
        return _mock_transport(
            stored={
                "dependencies": dependencies or {},
                "computations": computations or {},
            }
        )

    return factory


@pytest.fixture
def recording_logger() -> MagicMock:
    """Logger capability that records calls."""
    return MagicMock(spec=["log"])
