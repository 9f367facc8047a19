"""Tests for the Snapshot contract and error descriptions."""

from stepsnap.contracts import Snapshot
from stepsnap.contracts.snapshot import describe_error


class TestSnapshot:
    def test_new_snapshot_is_empty(self) -> None:
        snapshot = Snapshot()

        assert snapshot.dependencies == {}
        assert snapshot.computations == {}
        assert snapshot.error is None

    def test_append_step_creates_list_and_returns_position(self) -> None:
        snapshot = Snapshot()

        assert snapshot.append_step("load", {"rows": 3}) == 0
        assert snapshot.append_step("load", False) == 1
        assert snapshot.computations == {"load": [{"rows": 3}, False]}
        assert snapshot.step_count("load") == 2
        assert snapshot.step_count("missing") == 0
        assert snapshot.steps_for("missing") is None

    def test_to_dict_omits_error_until_set(self) -> None:
        snapshot = Snapshot(dependencies={"v": 1})

        assert snapshot.to_dict() == {"dependencies": {"v": 1}, "computations": {}}

        snapshot.error = describe_error(ValueError("boom"), "train")
        assert snapshot.to_dict()["error"]["message"] == "boom"

    def test_from_dict_fills_missing_sections(self) -> None:
        snapshot = Snapshot.from_dict({"dependencies": {"v": 1}})

        assert snapshot.dependencies == {"v": 1}
        assert snapshot.computations == {}
        assert snapshot.error is None

    def test_from_dict_copies_step_lists(self) -> None:
        steps = [1, 2]
        snapshot = Snapshot.from_dict({"dependencies": {}, "computations": {"a": steps}})

        snapshot.append_step("a", 3)

        assert steps == [1, 2]


class TestDescribeError:
    def test_captures_type_message_and_traceback(self) -> None:
        try:
            raise KeyError("missing column")
        except KeyError as e:
            description = describe_error(e, "parse")

        assert description["computation"] == "parse"
        assert description["type"] == "KeyError"
        assert description["message"] == "'missing column'"
        assert "KeyError" in description["traceback"]

    def test_unraised_error_has_minimal_traceback(self) -> None:
        description = describe_error(RuntimeError("never raised"), "x")

        assert description["traceback"].strip() == "RuntimeError: never raised"
