"""Tests for the single-level scanner and pattern matching."""

from __future__ import annotations

import logging
import os
from pathlib import Path

import pytest

from dirmirror.core.folder.scanner import (
    LevelScanner,
    PatternMatcher,
    ScanOptions,
    read_pattern_file,
)

T0 = 1_600_000_000 * 1_000_000_000


def _by_path(records):
    return {record.relative_path: record for record in records}


class TestLevelScanner:
    def test_lists_direct_children_only(self, source: Path, make_file) -> None:
        make_file(source / "a.txt", "hello")
        make_file(source / "sub" / "b.txt")

        records = _by_path(LevelScanner().scan(source, source))

        assert set(records) == {"a.txt", "sub"}
        assert records["a.txt"].size == 5
        assert not records["a.txt"].is_directory
        assert records["sub"].is_directory

    def test_records_carry_stat_data(self, source: Path, make_file) -> None:
        path = make_file(source / "a.txt", "hello", mtime_ns=T0)

        (record,) = LevelScanner().scan(source, source)

        assert record.relative_name == "a.txt"
        assert record.absolute_path == path
        assert record.modified_time == T0
        assert record.access_time == T0

    def test_relative_paths_are_based_on_root(self, source: Path, make_file) -> None:
        make_file(source / "sub" / "inner" / "c.txt")

        records = _by_path(LevelScanner().scan(source / "sub", source))

        inner = os.path.join("sub", "inner")
        assert set(records) == {inner}
        assert records[inner].relative_name == "inner"

    def test_directory_size_is_zero(self, source: Path, make_file) -> None:
        make_file(source / "sub" / "big.txt", "x" * 10000)

        (record,) = LevelScanner().scan(source, source)

        assert record.is_directory
        assert record.size == 0

    def test_missing_directory_is_empty(self, tmp_path: Path) -> None:
        assert LevelScanner().scan(tmp_path / "missing", tmp_path) == []

    def test_file_instead_of_directory_is_empty(self, source: Path, make_file) -> None:
        path = make_file(source / "a.txt")
        assert LevelScanner().scan(path, source) == []

    def test_empty_directory(self, source: Path) -> None:
        assert LevelScanner().scan(source, source) == []

    def test_hidden_entries_included_by_default(self, source: Path, make_file) -> None:
        make_file(source / ".hidden")
        assert _by_path(LevelScanner().scan(source, source)).keys() == {".hidden"}

    def test_hidden_entries_can_be_skipped(self, source: Path, make_file) -> None:
        make_file(source / ".hidden")
        make_file(source / "visible")

        scanner = LevelScanner(ScanOptions(include_hidden=False))

        assert _by_path(scanner.scan(source, source)).keys() == {"visible"}

    def test_excluded_entries_are_skipped(self, source: Path, make_file) -> None:
        make_file(source / "keep.txt")
        make_file(source / "drop.tmp")
        make_file(source / "cache" / "x")

        scanner = LevelScanner(ScanOptions(exclude_patterns=["*.tmp", "cache/"]))

        assert _by_path(scanner.scan(source, source)).keys() == {"keep.txt"}

    def test_broken_symlink_is_skipped_with_warning(
        self, source: Path, make_file, caplog: pytest.LogCaptureFixture
    ) -> None:
        make_file(source / "ok.txt")
        try:
            os.symlink(source / "nowhere", source / "dangling")
        except (OSError, NotImplementedError):
            pytest.skip("symlinks not supported")

        with caplog.at_level(logging.WARNING):
            records = _by_path(LevelScanner().scan(source, source))

        assert records.keys() == {"ok.txt"}
        assert "dangling" in caplog.text

    def test_symlinked_directory_is_not_a_traversal_root(self, tmp_path: Path, source: Path, make_file) -> None:
        make_file(tmp_path / "elsewhere" / "x.txt")
        try:
            os.symlink(tmp_path / "elsewhere", source / "link", target_is_directory=True)
        except (OSError, NotImplementedError):
            pytest.skip("symlinks not supported")

        assert LevelScanner().scan(source, source) == []

        following = LevelScanner(ScanOptions(follow_symlinks=True))
        (record,) = following.scan(source, source)
        assert record.relative_path == "link"
        assert record.is_directory

    def test_symlinked_file_uses_target_data(self, source: Path, make_file) -> None:
        target = make_file(source / "target.txt", "twelve bytes", mtime_ns=T0)
        try:
            os.symlink(target, source / "link.txt")
        except (OSError, NotImplementedError):
            pytest.skip("symlinks not supported")

        records = _by_path(LevelScanner().scan(source, source))

        assert records["link.txt"].size == 12
        assert records["link.txt"].modified_time == T0
        assert not records["link.txt"].is_directory


class TestPatternMatcher:
    def test_simple_glob_matches_at_any_depth(self) -> None:
        matcher = PatternMatcher(["*.tmp"])

        assert matcher.matches("a.tmp")
        assert matcher.matches("deep/down/b.tmp")
        assert not matcher.matches("a.txt")

    def test_directory_only_pattern(self) -> None:
        matcher = PatternMatcher(["build/"])

        assert matcher.matches("build", is_dir=True)
        assert not matcher.matches("build", is_dir=False)

    def test_anchored_pattern(self) -> None:
        matcher = PatternMatcher(["/top"])

        assert matcher.matches("top")
        assert not matcher.matches("nested/top")

    def test_double_star(self) -> None:
        matcher = PatternMatcher(["**/cache"])

        assert matcher.matches("cache")
        assert matcher.matches("a/b/cache")

    def test_negation_reincludes(self) -> None:
        matcher = PatternMatcher(["*.log", "!keep.log"])

        assert matcher.matches("debug.log")
        assert not matcher.matches("keep.log")

    def test_character_class_and_single_char(self) -> None:
        matcher = PatternMatcher(["file[0-9].?xt"])

        assert matcher.matches("file1.txt")
        assert not matcher.matches("fileA.txt")

    def test_blank_and_comment_lines_are_ignored(self) -> None:
        matcher = PatternMatcher(["", "   ", "# comment"])

        assert not matcher
        assert not matcher.matches("anything")

    def test_os_separators_are_normalized(self) -> None:
        matcher = PatternMatcher(["a/b.txt"])
        assert matcher.matches(os.path.join("a", "b.txt"))

    def test_from_file(self, tmp_path: Path) -> None:
        pattern_file = tmp_path / "excludes"
        pattern_file.write_text("# generated\n*.bak\n\nnode_modules/\n")

        assert read_pattern_file(pattern_file) == ["*.bak", "node_modules/"]

        matcher = PatternMatcher.from_file(pattern_file)
        assert matcher.matches("x.bak")
        assert matcher.matches("node_modules", is_dir=True)

    def test_from_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(OSError):
            PatternMatcher.from_file(tmp_path / "missing")
