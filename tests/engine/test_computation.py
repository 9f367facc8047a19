"""Tests for PersistentComputation."""

from typing import Any
from unittest.mock import MagicMock

import pytest

from stepsnap.contracts import ComputationDefinitionError
from stepsnap.core.transport import InMemoryTransport
from stepsnap.engine import ComputationContext, PersistentComputation, computation_name


class OneStep(PersistentComputation):
    name = "one_step"

    async def run(self, input_value: Any = None) -> Any:
        return await self.step(lambda: {"data": 42})


class Nameless(PersistentComputation):
    async def run(self, input_value: Any = None) -> Any:
        return None


@pytest.fixture
def ctx() -> ComputationContext:
    return ComputationContext(transport=InMemoryTransport())


class TestComputationName:
    def test_class_and_instance(self) -> None:
        assert computation_name(OneStep) == "one_step"
        assert computation_name(OneStep()) == "one_step"

    def test_name_is_independent_of_class_name(self) -> None:
        class Renamed(OneStep):
            pass

        assert computation_name(Renamed) == "one_step"

    def test_missing_name(self) -> None:
        with pytest.raises(ComputationDefinitionError, match="Nameless must declare"):
            computation_name(Nameless)

    def test_empty_name(self) -> None:
        class Empty(PersistentComputation):
            name = ""

        with pytest.raises(ComputationDefinitionError):
            computation_name(Empty())


class TestPersistentComputation:
    @pytest.mark.asyncio
    async def test_run_must_be_overridden(self, ctx: ComputationContext) -> None:
        computation = PersistentComputation(ctx)

        with pytest.raises(NotImplementedError, match="must override the run"):
            await computation.run()

    def test_mark_recovered(self, ctx: ComputationContext) -> None:
        computation = OneStep(ctx)

        assert computation.recovered is False
        computation.mark_recovered()
        assert computation.recovered is True

    def test_bind_resets_state(self, ctx: ComputationContext) -> None:
        computation = OneStep()
        computation.mark_recovered()

        computation.bind(ctx)

        assert computation.context is ctx
        assert computation.recovered is False
        assert computation.step_index == 0

    def test_unbound_context_raises(self) -> None:
        with pytest.raises(ComputationDefinitionError, match="not bound"):
            _ = OneStep().context


class TestStep:
    @pytest.mark.asyncio
    async def test_increments_step_index_and_records(self, ctx: ComputationContext) -> None:
        computation = OneStep(ctx)
        step_function = MagicMock(return_value="value")
        ctx.record = MagicMock(wraps=ctx.record)  # type: ignore[method-assign]

        assert computation.step_index == 0

        result = await computation.step(step_function)

        assert result == "value"
        assert computation.step_index == 1
        step_function.assert_called_once_with()
        ctx.record.assert_called_once_with(computation, result="value")
        assert ctx.snapshot.steps_for("one_step") == ["value"]

    @pytest.mark.asyncio
    async def test_none_result_is_recorded(self, ctx: ComputationContext) -> None:
        computation = OneStep(ctx)

        await computation.step(lambda: None)

        assert ctx.snapshot.steps_for("one_step") == [None]

    @pytest.mark.asyncio
    async def test_awaits_coroutine_results(self, ctx: ComputationContext) -> None:
        computation = OneStep(ctx)

        async def fetch() -> int:
            return 7

        assert await computation.step(fetch) == 7
        assert ctx.snapshot.steps_for("one_step") == [7]

    @pytest.mark.asyncio
    async def test_replays_recorded_value(self, ctx: ComputationContext) -> None:
        ctx.snapshot.append_step("one_step", "recorded")
        computation = OneStep(ctx)
        step_function = MagicMock(return_value="fresh")

        assert await computation.step(step_function) == "recorded"
        assert await computation.step(step_function) == "fresh"

        step_function.assert_called_once_with()
        assert computation.step_index == 2
        assert ctx.snapshot.steps_for("one_step") == ["recorded", "fresh"]

    @pytest.mark.asyncio
    async def test_step_errors_propagate_unrecorded(self, ctx: ComputationContext) -> None:
        computation = OneStep(ctx)

        def explode() -> None:
            raise ValueError("boom")

        with pytest.raises(ValueError, match="boom"):
            await computation.step(explode)

        assert computation.step_index == 0
        assert ctx.snapshot.steps_for("one_step") is None

    @pytest.mark.asyncio
    async def test_unbound_step_raises(self) -> None:
        with pytest.raises(ComputationDefinitionError):
            await OneStep().step(lambda: 1)
