"""
Mirror execution engine.

Applies an ordered action list to the destination tree with:
- Per-action error isolation (a failed action never aborts the run)
- Preview mode
- Progress reporting
- Timestamp preservation
"""

from __future__ import annotations

import logging
import os
import shutil
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Optional

from dirmirror.core.models import (
    Action,
    ActionKind,
    FileRecord,
    MirrorPlan,
    MirrorProgress,
    MirrorResult,
)
from dirmirror.core.folder.diff import DiffEngine, DiffOptions


@dataclass
class SyncOptions:
    """Options for applying mirror actions."""
    preview_only: bool = False        # Log actions, don't touch the filesystem
    preserve_timestamps: bool = True  # Copy access/modified times from source


class MirrorExecutor:
    """
    Runs mirror actions against the destination tree, in list order.

    Copy/Update of a directory creates it if absent; Copy/Update of a
    file copies its bytes and then its timestamps; Delete removes a
    file or an empty directory. Directory timestamps are applied once
    every action has run, deepest directory first, because writing
    children into a directory changes its modification time. Existing
    directories that only had their contents changed get their
    previous timestamps back.
    """

    def __init__(self, options: Optional[SyncOptions] = None):
        self.options = options or SyncOptions()

    def execute(
        self,
        actions: Iterable[Action],
        destination_root: Path | str,
        progress_callback: Optional[Callable[[MirrorProgress], None]] = None,
        total_items: int = 0
    ) -> MirrorResult:
        """
        Execute actions against the destination.

        Args:
            actions: Actions in execution order (a plan or a lazy stream)
            destination_root: Root of the tree being mirrored into
            progress_callback: Called before each action
            total_items: Number of actions if known, 0 when streaming

        Returns:
            MirrorResult with execution details
        """
        start_time = time.time()
        destination_root = Path(destination_root)

        if isinstance(actions, MirrorPlan) and not total_items:
            total_items = actions.total_items

        result = MirrorResult()
        directory_times: list[tuple[Path, FileRecord]] = []
        parent_times: dict[Path, tuple[int, int]] = {}

        for index, action in enumerate(actions):
            if progress_callback:
                progress_callback(MirrorProgress(
                    current_item=action.relative_path,
                    items_completed=index,
                    total_items=total_items,
                    bytes_copied=result.bytes_copied,
                    current_action=action.kind.name,
                ))

            result.items_processed += 1

            if self.options.preview_only:
                logging.info(f"MirrorExecutor - Would {action.describe()}")
                result.items_skipped += 1
                continue

            if action.is_delete:
                self._remember_parent(action.target.absolute_path, parent_times)
            else:
                self._remember_parent(destination_root / action.relative_path, parent_times)

            try:
                if action.is_delete:
                    self._delete(action, result)
                elif action.is_directory:
                    destination = self._create_directory(action, destination_root, result)
                    directory_times.append((destination, action.target))
                else:
                    self._copy_file(action, destination_root, result)
            except OSError as e:
                result.items_failed += 1
                result.errors.append((action.relative_path, str(e)))
                logging.error(f"MirrorExecutor - Failed to {action.describe()}: {e}")

        self._restore_parent_times(parent_times, result)

        # Breadth-first order reversed puts children before their parents
        for destination, record in reversed(directory_times):
            self._apply_times(destination, record, result)

        result.duration = time.time() - start_time
        logging.info(f"MirrorExecutor - Finished: {result.summary()}")
        return result

    def _remember_parent(self, path: Path, parent_times: dict[Path, tuple[int, int]]) -> None:
        """Record a directory's timestamps before the first change inside it."""
        if not self.options.preserve_timestamps:
            return

        parent = path.parent
        if parent in parent_times:
            return

        try:
            stat_result = parent.stat()
        except OSError:
            # Parent is gone, nothing to restore
            return
        parent_times[parent] = (stat_result.st_atime_ns, stat_result.st_mtime_ns)

    def _restore_parent_times(self, parent_times: dict[Path, tuple[int, int]], result: MirrorResult) -> None:
        """Put back the timestamps of directories this run wrote into."""
        for directory, times in parent_times.items():
            if not directory.is_dir():
                continue
            try:
                os.utime(directory, ns=times)
            except OSError as e:
                result.warnings.append((str(directory), f"Could not restore timestamps: {e}"))
                logging.warning(f"MirrorExecutor - Could not restore timestamps on {directory}: {e}")

    def _create_directory(self, action: Action, destination_root: Path, result: MirrorResult) -> Path:
        """Create a directory if absent."""
        destination = destination_root / action.relative_path

        if destination.is_dir():
            logging.debug(f"MirrorExecutor - Directory already present: {action.relative_path}")
        else:
            destination.mkdir()
            result.directories_created += 1
            logging.info(f"MirrorExecutor - Created directory: {action.relative_path}")

        return destination

    def _copy_file(self, action: Action, destination_root: Path, result: MirrorResult) -> None:
        """Copy file bytes, then the source timestamps."""
        record = action.target
        destination = destination_root / action.relative_path

        shutil.copyfile(record.absolute_path, destination)
        result.bytes_copied += record.size

        if action.kind == ActionKind.UPDATE:
            result.files_updated += 1
            logging.info(f"MirrorExecutor - Updated: {action.relative_path}")
        else:
            result.files_copied += 1
            logging.info(f"MirrorExecutor - Copied: {action.relative_path}")

        self._apply_times(destination, record, result)

    def _delete(self, action: Action, result: MirrorResult) -> None:
        """Remove a file or an empty directory, tolerating it being gone already."""
        path = action.target.absolute_path

        if not os.path.lexists(path):
            logging.debug(f"MirrorExecutor - Already removed: {action.relative_path}")
            result.items_skipped += 1
            return

        if path.is_dir() and not path.is_symlink():
            path.rmdir()
        else:
            path.unlink()

        result.items_deleted += 1
        logging.info(f"MirrorExecutor - Deleted: {action.relative_path}")

    def _apply_times(self, destination: Path, record: FileRecord, result: MirrorResult) -> None:
        """Set access/modified times from the source record. Failures are warnings only."""
        if not self.options.preserve_timestamps:
            return

        try:
            os.utime(destination, ns=(record.access_time, record.modified_time))
        except OSError as e:
            result.warnings.append((record.relative_path, f"Could not set timestamps: {e}"))
            logging.warning(f"MirrorExecutor - Could not set timestamps on {record.relative_path}: {e}")


class MirrorSync:
    """
    One-way mirror synchronization.

    Makes the destination an exact copy of the source, including
    deletions, by running the diff engine and then the executor.
    """

    def __init__(
        self,
        diff_options: Optional[DiffOptions] = None,
        sync_options: Optional[SyncOptions] = None
    ):
        self.engine = DiffEngine(diff_options)
        self.executor = MirrorExecutor(sync_options)

    def plan(self, source: Path | str, destination: Path | str) -> MirrorPlan:
        """Compute the plan without executing it."""
        return self.engine.diff(source, destination)

    def mirror(
        self,
        source: Path | str,
        destination: Path | str,
        progress_callback: Optional[Callable[[MirrorProgress], None]] = None,
        stream: bool = False
    ) -> MirrorResult:
        """
        Mirror source into destination.

        With ``stream`` set, each action is executed as soon as the
        diff engine produces it instead of after the whole tree has
        been compared.
        """
        if stream:
            actions = self.engine.iter_actions(source, destination)
            return self.executor.execute(actions, Path(destination).resolve(), progress_callback)

        plan = self.plan(source, destination)
        return self.executor.execute(plan, plan.destination_root, progress_callback)
