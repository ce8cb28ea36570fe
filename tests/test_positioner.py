"""Tests for fractional task positioning (board/positioner.py)."""

from __future__ import annotations

import pytest

from taskboard.board.errors import InvalidArgumentError, TaskNotFoundError
from taskboard.board.model import Task, TaskStatus
from taskboard.board.positioner import (
    column_tasks,
    compute_move,
    group_by_column,
    needs_renormalization,
    next_position,
    renormalize_column,
)


def _t(tid: str, status: str, position: float) -> dict:
    return {"id": tid, "status": status, "position": position}


def _order_after(tasks: list[dict], result) -> list[str]:
    moved = [
        {**t, "status": result.status.value, "position": result.position} if t["id"] == result.task_id else t
        for t in tasks
    ]
    return [t["id"] for t in column_tasks(moved, result.status)]


@pytest.fixture
def board() -> list[dict]:
    return [
        _t("a", "TODO", 1000),
        _t("b", "TODO", 2000),
        _t("c", "TODO", 3000),
        _t("x", "IN_PROGRESS", 1000),
        _t("y", "to do", 4000),  # free-form status still lands in TODO
    ]


class TestComputeMove:
    def test_insert_between(self) -> None:
        tasks = [_t("a", "TODO", 1000), _t("b", "TODO", 2000), _t("c", "IN_PROGRESS", 1000)]
        result = compute_move(tasks, "c", "TODO", 1)
        assert result.status == TaskStatus.TODO
        assert result.position == 1500
        assert _order_after(tasks, result) == ["a", "c", "b"]
        assert not result.needs_renormalize

    def test_empty_column(self) -> None:
        tasks = [_t("d", "TODO", 1000)]
        result = compute_move(tasks, "d", "DONE", 0)
        assert result.status == TaskStatus.DONE
        assert result.position == 1000

    def test_only_moved_task_in_column(self) -> None:
        tasks = [_t("d", "DONE", 7000)]
        assert compute_move(tasks, "d", "DONE", 3).position == 1000

    def test_top(self, board: list[dict]) -> None:
        result = compute_move(board, "x", "TODO", 0)
        assert result.position == 500
        assert result.position < 1000

    def test_bottom(self, board: list[dict]) -> None:
        result = compute_move(board, "x", "TODO", 4)
        assert result.position == 5000
        assert _order_after(board, result)[-1] == "x"

    def test_index_past_end_clamps_to_bottom(self, board: list[dict]) -> None:
        result = compute_move(board, "x", "TODO", 99)
        assert result.position == 5000
        assert result.index == 4

    def test_reorder_within_column_excludes_self(self, board: list[dict]) -> None:
        # a moves below b: others are [b, c, y]
        result = compute_move(board, "a", "TODO", 1)
        assert result.position == 2500
        assert _order_after(board, result) == ["b", "a", "c", "y"]

    @pytest.mark.parametrize("index", [0, 1, 2, 3, 4])
    def test_lands_at_requested_index(self, board: list[dict], index: int) -> None:
        result = compute_move(board, "x", "TODO", index)
        assert _order_after(board, result).index("x") == index

    def test_other_tasks_untouched(self, board: list[dict]) -> None:
        before = [dict(t) for t in board]
        compute_move(board, "x", "TODO", 2)
        assert board == before

    def test_accepts_task_objects(self) -> None:
        tasks = [
            Task(id="a", title="A", status=TaskStatus.TODO, position=1000),
            Task(id="b", title="B", status=TaskStatus.TODO, position=2000),
            Task(id="c", title="C", status=TaskStatus.DONE, position=1000),
        ]
        result = compute_move(tasks, "c", TaskStatus.TODO, 1)
        assert result.position == 1500
        assert result.as_changes() == {"status": "TODO", "position": 1500}

    def test_custom_step(self) -> None:
        tasks = [_t("a", "TODO", 10), _t("b", "DONE", 1)]
        assert compute_move(tasks, "b", "TODO", 1, step=10).position == 20
        assert compute_move([_t("b", "DONE", 1)], "b", "TODO", 0, step=10).position == 10


class TestComputeMoveErrors:
    def test_unknown_task(self, board: list[dict]) -> None:
        with pytest.raises(TaskNotFoundError) as excinfo:
            compute_move(board, "missing", "TODO", 0)
        assert excinfo.value.task_id == "missing"

    def test_negative_index(self, board: list[dict]) -> None:
        with pytest.raises(InvalidArgumentError):
            compute_move(board, "a", "TODO", -1)

    def test_non_integer_index(self, board: list[dict]) -> None:
        with pytest.raises(InvalidArgumentError):
            compute_move(board, "a", "TODO", 1.5)  # type: ignore[arg-type]
        with pytest.raises(InvalidArgumentError):
            compute_move(board, "a", "TODO", True)  # type: ignore[arg-type]

    def test_unknown_column(self, board: list[dict]) -> None:
        with pytest.raises(InvalidArgumentError, match="Unknown column"):
            compute_move(board, "a", "ARCHIVE", 0)


class TestRenormalization:
    def test_repeated_top_inserts_eventually_flag(self) -> None:
        tasks = [_t("t0", "TODO", 1000)]
        flagged_at = None
        for i in range(1, 200):
            tasks.append(_t(f"t{i}", "DONE", 1))
            result = compute_move(tasks, f"t{i}", "TODO", 0)
            if result.needs_renormalize:
                flagged_at = i
                break
            assert result.position < tasks[-2]["position"]
            tasks[-1] = {**tasks[-1], "status": "TODO", "position": result.position}
        assert flagged_at is not None
        assert flagged_at > 20

    def test_non_positive_first_position_flags(self) -> None:
        tasks = [_t("a", "TODO", 0), _t("b", "DONE", 1000)]
        result = compute_move(tasks, "b", "TODO", 0)
        assert result.needs_renormalize

    def test_duplicate_neighbours_flag(self) -> None:
        tasks = [_t("a", "TODO", 1000), _t("b", "TODO", 1000), _t("c", "DONE", 1)]
        assert compute_move(tasks, "c", "TODO", 1).needs_renormalize

    def test_needs_renormalization(self) -> None:
        assert needs_renormalization([_t("a", "TODO", 1.0), _t("b", "TODO", 1.0 + 1e-9)], "TODO")
        assert not needs_renormalization([_t("a", "TODO", 1.0), _t("b", "TODO", 2.0)], "TODO")
        assert not needs_renormalization([], "TODO")

    def test_renormalize_preserves_order(self) -> None:
        tasks = [_t("a", "TODO", 0.5), _t("b", "TODO", 0.5000000001), _t("c", "TODO", 3), _t("z", "DONE", 1)]
        positions = renormalize_column(tasks, "TODO")
        assert positions == {"a": 1000, "b": 2000, "c": 3000}

    def test_renormalize_with_moved_task(self) -> None:
        tasks = [_t("a", "TODO", 1), _t("b", "TODO", 2), _t("m", "DONE", 5)]
        positions = renormalize_column(tasks, TaskStatus.TODO, step=10, moved=("m", 1))
        assert positions == {"a": 10, "m": 20, "b": 30}


class TestColumnHelpers:
    def test_group_by_column_has_all_columns(self, board: list[dict]) -> None:
        grouped = group_by_column(board)
        assert list(grouped) == [TaskStatus.TODO, TaskStatus.IN_PROGRESS, TaskStatus.IN_REVIEW, TaskStatus.DONE]
        assert [t["id"] for t in grouped[TaskStatus.TODO]] == ["a", "b", "c", "y"]
        assert grouped[TaskStatus.DONE] == []

    def test_next_position(self, board: list[dict]) -> None:
        assert next_position(board, "TODO") == 5000
        assert next_position(board, "DONE") == 1000
