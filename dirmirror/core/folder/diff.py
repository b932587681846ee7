"""
Mirror diff engine.

Walks a source tree and a destination tree level by level and
produces the ordered actions that turn the destination into an
image of the source:
- Copy for entries missing from the destination
- Update for entries whose source copy is strictly newer
- Delete for destination entries with no source counterpart

Staleness is judged by size and modification time only; file
contents are never read.
"""

from __future__ import annotations

import logging
import os
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Optional

from dirmirror.core.models import Action, ActionKind, FileRecord, MirrorPlan
from dirmirror.core.folder.scanner import LevelScanner, ScanOptions


@dataclass
class DiffOptions:
    """Options for computing a mirror diff."""
    # Timestamps closer than this many seconds compare equal.
    modify_window: float = 0.0
    scan_options: ScanOptions = field(default_factory=ScanOptions)


def validate_roots(source_root: Path | str, destination_root: Path | str) -> tuple[Path, Path]:
    """
    Resolve both roots and check that they are existing directories.

    Raises:
        FileNotFoundError: a root does not exist
        NotADirectoryError: a root exists but is not a directory
    """
    source_root = Path(source_root).resolve()
    destination_root = Path(destination_root).resolve()

    for label, path in (("Source", source_root), ("Destination", destination_root)):
        if not path.exists():
            logging.error(f"DiffEngine - {label} path not found: {path}")
            raise FileNotFoundError(f"{label} path not found: {path}")
        if not path.is_dir():
            logging.error(f"DiffEngine - {label} path is not a directory: {path}")
            raise NotADirectoryError(f"{label} path is not a directory: {path}")

    return source_root, destination_root


class DiffEngine:
    """
    Computes mirror actions for a pair of directory trees.

    Directory pairs are compared breadth-first. A directory's own
    Copy/Update action is emitted while its parent level is compared,
    before the pair is dequeued, so it always precedes the actions for
    anything below it.
    """

    def __init__(
        self,
        options: Optional[DiffOptions] = None,
        scanner: Optional[LevelScanner] = None
    ):
        self.options = options or DiffOptions()
        self.scanner = scanner or LevelScanner(self.options.scan_options)
        self._window_ns = int(self.options.modify_window * 1_000_000_000)

    def diff(self, source_root: Path | str, destination_root: Path | str) -> MirrorPlan:
        """
        Compute the full action list for two trees.

        Args:
            source_root: Directory to mirror from
            destination_root: Directory to mirror into

        Returns:
            MirrorPlan holding the actions in execution order
        """
        source_root, destination_root = validate_roots(source_root, destination_root)

        plan = MirrorPlan(source_root=source_root, destination_root=destination_root)
        for action in self._walk(source_root, destination_root):
            plan.append(action)

        logging.info(
            f"DiffEngine - Planned {plan.copy_count} copies, {plan.update_count} updates, "
            f"{plan.delete_count} deletions"
        )
        return plan

    def iter_actions(
        self,
        source_root: Path | str,
        destination_root: Path | str
    ) -> Iterator[Action]:
        """
        Lazily yield actions level by level.

        The roots are validated when this method is called, not when
        the first action is requested.
        """
        source_root, destination_root = validate_roots(source_root, destination_root)
        return self._walk(source_root, destination_root)

    def _walk(self, source_root: Path, destination_root: Path) -> Iterator[Action]:
        """Breadth-first traversal over matching directory pairs."""
        pending: deque[tuple[Path, Path]] = deque([(source_root, destination_root)])
        visited: set[str] = {os.path.realpath(source_root)}

        while pending:
            source_dir, destination_dir = pending.popleft()
            logging.debug(f"DiffEngine - Comparing {source_dir} -> {destination_dir}")

            source_records = self.scanner.scan(source_dir, source_root)
            destination_records = {
                record.relative_path: record
                for record in self.scanner.scan(destination_dir, destination_root)
            }

            for record in source_records:
                if record.is_directory:
                    self._enqueue(record, destination_root, destination_records, pending, visited)

                action = self._compare_entry(record, destination_records)
                if action is not None:
                    yield action

            # Whatever is left has no counterpart in the source
            for record in destination_records.values():
                yield from self._delete_actions(record, destination_root)

    def _enqueue(
        self,
        record: FileRecord,
        destination_root: Path,
        destination_records: dict[str, FileRecord],
        pending: deque[tuple[Path, Path]],
        visited: set[str]
    ) -> None:
        """Queue a source directory for comparison, whether or not the destination has it yet."""
        counterpart = destination_records.get(record.relative_path)
        if counterpart is not None and not counterpart.is_directory:
            # A file sits where the directory should go; nothing below it can be written
            return

        real_path = os.path.realpath(record.absolute_path)
        if real_path in visited:
            logging.warning(f"DiffEngine - Directory already visited, not descending: {record.absolute_path}")
            return

        visited.add(real_path)
        pending.append((record.absolute_path, destination_root / record.relative_path))

    def _compare_entry(
        self,
        source: FileRecord,
        destination_records: dict[str, FileRecord]
    ) -> Optional[Action]:
        """
        Match one source record against the destination level.

        A matched destination record is removed from the mapping in
        every case, so it is never scheduled for deletion.
        """
        destination = destination_records.pop(source.relative_path, None)

        if destination is None:
            return Action(ActionKind.COPY, source, source.is_directory)

        delta = source.modified_time - destination.modified_time

        if delta > self._window_ns:
            return Action(ActionKind.UPDATE, source, source.is_directory)

        if source.is_directory != destination.is_directory:
            logging.warning(
                f"DiffEngine - Type mismatch and source is not newer, leaving destination untouched: "
                f"{source.relative_path}"
            )
            return None

        if source.size == destination.size and abs(delta) <= self._window_ns:
            logging.debug(f"DiffEngine - No changes needed: {source.relative_path}")
            return None

        logging.warning(
            f"DiffEngine - Destination is not older "
            f"(source {source.modified_datetime:%Y-%m-%d %H:%M:%S}, "
            f"destination {destination.modified_datetime:%Y-%m-%d %H:%M:%S}), leaving untouched: {source.relative_path}"
        )
        return None

    def _delete_actions(self, record: FileRecord, destination_root: Path) -> Iterator[Action]:
        """Delete actions for a destination entry, contents before the directory itself."""
        if record.is_directory:
            for child in self.scanner.scan(record.absolute_path, destination_root):
                yield from self._delete_actions(child, destination_root)

        yield Action(ActionKind.DELETE, record, record.is_directory)
