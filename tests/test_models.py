"""Tests for plan and result models."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from dirmirror.core.models import (
    Action,
    ActionKind,
    FileRecord,
    MirrorPlan,
    MirrorProgress,
    MirrorResult,
)


def _record(path: str, size: int = 0, is_directory: bool = False) -> FileRecord:
    return FileRecord(
        relative_name=Path(path).name,
        relative_path=path,
        absolute_path=Path("/tmp") / path,
        access_time=0,
        modified_time=0,
        size=size,
        is_directory=is_directory,
    )


class TestMirrorPlan:
    def test_counts_and_bytes(self) -> None:
        plan = MirrorPlan(Path("/src"), Path("/dst"))
        plan.append(Action(ActionKind.COPY, _record("dir", is_directory=True), True))
        plan.append(Action(ActionKind.COPY, _record("a", size=10)))
        plan.append(Action(ActionKind.UPDATE, _record("b", size=5)))
        plan.append(Action(ActionKind.DELETE, _record("c", size=99)))

        assert plan.total_items == len(plan) == 4
        assert plan.copy_count == 2
        assert plan.update_count == 1
        assert plan.delete_count == 1
        assert plan.total_bytes == 15
        assert [a.relative_path for a in plan.iter_by_kind(ActionKind.COPY)] == ["dir", "a"]

    def test_empty_plan(self) -> None:
        plan = MirrorPlan(Path("/src"), Path("/dst"))

        assert plan.is_empty
        assert list(plan) == []


class TestAction:
    def test_describe_marks_directories(self) -> None:
        action = Action(ActionKind.COPY, _record("dir", is_directory=True), True)

        assert action.describe() == "COPY dir/"
        assert action.is_copy
        assert not action.is_delete

    def test_delete_is_not_a_copy(self) -> None:
        action = Action(ActionKind.DELETE, _record("old.txt"))

        assert action.describe() == "DELETE old.txt"
        assert action.is_delete
        assert not action.is_copy


class TestProgressAndResult:
    def test_progress_percent(self) -> None:
        assert MirrorProgress("a", 1, 4, 0).percent_items == 25.0
        assert MirrorProgress("a", 3, 0, 0).is_indeterminate
        assert MirrorProgress("a", 3, 0, 0).percent_items == 0.0

    def test_result_success_tracks_failures(self) -> None:
        result = MirrorResult()
        assert result.success
        assert not result.has_errors

        result.items_failed = 1
        result.errors.append(("a", "boom"))

        assert not result.success
        assert result.has_errors
        assert "1 failed" in result.summary()


class TestFileRecord:
    def test_modified_datetime_follows_nanosecond_time(self) -> None:
        record = FileRecord(
            relative_name="a.txt",
            relative_path="a.txt",
            absolute_path=Path("/tmp/a.txt"),
            access_time=0,
            modified_time=1_600_000_000 * 1_000_000_000,
        )

        assert record.modified_datetime == datetime.fromtimestamp(1_600_000_000)
