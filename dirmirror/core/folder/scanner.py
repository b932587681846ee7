"""
Single-level directory scanner for mirroring.

Reads the immediate children of one directory and turns them into
FileRecords keyed by their path relative to the tree root. Provides:
- Pattern-based exclusion (gitignore-style)
- Hidden entry filtering
- Symlink handling
- Error resilience (unreadable entries are skipped)
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dirmirror.core.models import FileRecord


@dataclass
class ScanOptions:
    """Options for directory scanning."""
    include_hidden: bool = True
    follow_symlinks: bool = False

    # Excluded entries are invisible on both sides of a mirror,
    # so they are neither copied nor deleted.
    exclude_patterns: list[str] = field(default_factory=list)


class PatternMatcher:
    """
    Gitignore-style pattern matcher.

    Supports:
    - * (matches any characters except /)
    - ** (matches any characters including /)
    - ? (matches single character)
    - [abc] (character class)
    - ! (negation)
    - / prefix (anchored to root)
    - / suffix (directory only)
    """

    def __init__(self, patterns: list[str]):
        self._positive_patterns: list[tuple[re.Pattern, bool]] = []  # (regex, dir_only)
        self._negative_patterns: list[tuple[re.Pattern, bool]] = []

        for pattern in patterns:
            self._compile_pattern(pattern)

    def __bool__(self) -> bool:
        return bool(self._positive_patterns)

    def _compile_pattern(self, pattern: str) -> None:
        """Compile a single pattern line to a regex."""
        pattern = pattern.strip()
        if not pattern or pattern.startswith('#'):
            return

        is_negative = pattern.startswith('!')
        if is_negative:
            pattern = pattern[1:]

        dir_only = pattern.endswith('/')
        if dir_only:
            pattern = pattern.rstrip('/')

        anchored = pattern.startswith('/')
        if anchored:
            pattern = pattern.lstrip('/')

        if not pattern:
            return

        compiled = re.compile(self._pattern_to_regex(pattern, anchored))

        if is_negative:
            self._negative_patterns.append((compiled, dir_only))
        else:
            self._positive_patterns.append((compiled, dir_only))

    @staticmethod
    def _pattern_to_regex(pattern: str, anchored: bool) -> str:
        """Translate glob syntax to a regex over '/'-separated relative paths."""
        result = []
        i = 0

        while i < len(pattern):
            c = pattern[i]

            if pattern.startswith('**/', i):
                result.append('(?:.*/)?')
                i += 3
                continue
            if pattern.startswith('**', i):
                result.append('.*')
                i += 2
                continue

            if c == '*':
                result.append('[^/]*')
            elif c == '?':
                result.append('[^/]')
            elif c == '[':
                end = pattern.find(']', i + 1)
                if end == -1:
                    result.append(re.escape(c))
                else:
                    body = pattern[i + 1:end]
                    if body.startswith('!'):
                        body = '^' + body[1:]
                    result.append('[' + body.replace('\\', '\\\\') + ']')
                    i = end
            else:
                result.append(re.escape(c))

            i += 1

        prefix = '^' if anchored else '(?:^|/)'
        return prefix + ''.join(result) + '(?:/.*)?$'

    def matches(self, path: str, is_dir: bool = False) -> bool:
        """
        Check if a relative path matches the patterns.

        Returns True if the path should be excluded.
        """
        path = path.replace(os.sep, '/').lstrip('/')

        excluded = any(
            regex.search(path)
            for regex, dir_only in self._positive_patterns
            if is_dir or not dir_only
        )
        if not excluded:
            return False

        reincluded = any(
            regex.search(path)
            for regex, dir_only in self._negative_patterns
            if is_dir or not dir_only
        )
        return not reincluded

    @classmethod
    def from_file(cls, pattern_file: Path | str) -> 'PatternMatcher':
        """Create a matcher from a file with one pattern per line."""
        return cls(read_pattern_file(pattern_file))


def read_pattern_file(pattern_file: Path | str) -> list[str]:
    """
    Read exclusion patterns from a file.

    Blank lines and '#' comments are dropped. Raises OSError if the
    file cannot be read.
    """
    patterns = []
    with open(pattern_file, 'r', encoding='utf-8', errors='ignore') as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith('#'):
                patterns.append(line)
    return patterns


class LevelScanner:
    """
    Scans exactly one directory level.

    The scan is read-only. A path that does not exist or is not a
    directory produces an empty listing, which lets callers treat a
    destination subdirectory that has not been created yet like an
    empty one. The order of the returned records is not defined.
    """

    def __init__(self, options: Optional[ScanOptions] = None):
        self.options = options or ScanOptions()
        self._matcher = PatternMatcher(self.options.exclude_patterns)

    def scan(self, directory: Path | str, root: Path | str) -> list[FileRecord]:
        """
        Scan the direct children of a directory.

        Args:
            directory: Directory to list
            root: Tree root that relative paths are computed against

        Returns:
            One FileRecord per readable, non-excluded child entry
        """
        directory = Path(directory)
        root = Path(root)

        if not directory.is_dir():
            logging.debug(f"LevelScanner - Not a directory, treating as empty: {directory}")
            return []

        try:
            with os.scandir(directory) as iterator:
                entries = list(iterator)
        except OSError as e:
            logging.warning(f"LevelScanner - Could not list {directory}: {e}")
            return []

        records: list[FileRecord] = []
        for entry in entries:
            try:
                record = self._make_record(entry, root)
            except OSError as e:
                logging.warning(f"LevelScanner - Skipping unreadable entry {entry.path}: {e}")
                continue

            if record is not None:
                records.append(record)

        return records

    def _make_record(self, entry: os.DirEntry, root: Path) -> Optional[FileRecord]:
        """Build a record for one entry, or None if it is filtered out."""
        if not self.options.include_hidden and entry.name.startswith('.'):
            return None

        if entry.is_symlink() and not self.options.follow_symlinks:
            if entry.is_dir(follow_symlinks=True):
                logging.debug(f"LevelScanner - Skipping symlinked directory {entry.path}")
                return None

        is_directory = entry.is_dir(follow_symlinks=self.options.follow_symlinks)
        relative_path = str(Path(entry.path).relative_to(root))

        if self._matcher and self._matcher.matches(relative_path, is_directory):
            logging.debug(f"LevelScanner - Excluded by pattern: {relative_path}")
            return None

        # Follows links, so a link to a file is recorded with its target's data
        stat_result = entry.stat(follow_symlinks=True)

        return FileRecord(
            relative_name=entry.name,
            relative_path=relative_path,
            absolute_path=Path(entry.path),
            access_time=stat_result.st_atime_ns,
            modified_time=stat_result.st_mtime_ns,
            size=0 if is_directory else stat_result.st_size,
            is_directory=is_directory,
        )
