"""
Core data models for the directory mirroring tool.

This module defines the data structures shared by the scanner,
the diff engine and the executor:
- Scanned entry records
- Mirror actions and plans
- Execution progress and results

All models are designed to be:
- Independent of the CLI (usable from any caller)
- Immutable where practical
- Type-hinted for IDE support
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto
from pathlib import Path
from typing import Iterator


# =============================================================================
# Enumerations
# =============================================================================

class ActionKind(Enum):
    """Kind of work the executor has to perform for one entry."""
    COPY = auto()    # Entry exists only in source
    UPDATE = auto()  # Source entry is newer than destination entry
    DELETE = auto()  # Entry exists only in destination


# =============================================================================
# Scan Models
# =============================================================================

@dataclass(frozen=True)
class FileRecord:
    """
    One entry scanned from a directory level.

    Timestamps are nanoseconds since the epoch, as reported by
    ``st_atime_ns`` / ``st_mtime_ns``, so they can be written back
    exactly with ``os.utime(ns=...)``.
    """
    relative_name: str
    relative_path: str
    absolute_path: Path
    access_time: int
    modified_time: int
    size: int = 0
    is_directory: bool = False

    @property
    def modified_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.modified_time / 1e9)


# =============================================================================
# Action Models
# =============================================================================

@dataclass(frozen=True)
class Action:
    """
    A pending unit of work.

    ``target`` is the source-side record for COPY/UPDATE and the
    destination-side record for DELETE.
    """
    kind: ActionKind
    target: FileRecord
    is_directory: bool = False

    @property
    def relative_path(self) -> str:
        return self.target.relative_path

    @property
    def is_copy(self) -> bool:
        return self.kind in (ActionKind.COPY, ActionKind.UPDATE)

    @property
    def is_delete(self) -> bool:
        return self.kind == ActionKind.DELETE

    def describe(self) -> str:
        """Short human-readable form used in log lines."""
        suffix = "/" if self.is_directory else ""
        return f"{self.kind.name} {self.relative_path}{suffix}"


@dataclass
class MirrorPlan:
    """Ordered list of actions that turns the destination into the source's image."""
    source_root: Path
    destination_root: Path
    actions: list[Action] = field(default_factory=list)

    @property
    def total_items(self) -> int:
        return len(self.actions)

    @property
    def is_empty(self) -> bool:
        return not self.actions

    @property
    def copy_count(self) -> int:
        return sum(1 for action in self.actions if action.kind == ActionKind.COPY)

    @property
    def update_count(self) -> int:
        return sum(1 for action in self.actions if action.kind == ActionKind.UPDATE)

    @property
    def delete_count(self) -> int:
        return sum(1 for action in self.actions if action.is_delete)

    @property
    def total_bytes(self) -> int:
        """Total bytes to be copied."""
        return sum(
            action.target.size
            for action in self.actions
            if action.is_copy and not action.is_directory
        )

    def append(self, action: Action) -> None:
        self.actions.append(action)

    def iter_by_kind(self, kind: ActionKind) -> Iterator[Action]:
        """Iterate over actions of the given kind, in plan order."""
        for action in self.actions:
            if action.kind == kind:
                yield action

    def __iter__(self) -> Iterator[Action]:
        return iter(self.actions)

    def __len__(self) -> int:
        return len(self.actions)


# =============================================================================
# Execution Models
# =============================================================================

@dataclass
class MirrorProgress:
    """Progress information for plan execution."""
    current_item: str
    items_completed: int
    total_items: int
    bytes_copied: int
    current_action: str = ""

    @property
    def is_indeterminate(self) -> bool:
        return self.total_items == 0

    @property
    def percent_items(self) -> float:
        if self.total_items == 0:
            return 0.0
        return (self.items_completed / self.total_items) * 100


@dataclass
class MirrorResult:
    """Result of executing a mirror plan."""
    items_processed: int = 0
    files_copied: int = 0
    files_updated: int = 0
    directories_created: int = 0
    items_deleted: int = 0
    items_skipped: int = 0
    items_failed: int = 0
    bytes_copied: int = 0
    errors: list[tuple[str, str]] = field(default_factory=list)    # (path, error)
    warnings: list[tuple[str, str]] = field(default_factory=list)  # (path, warning)
    duration: float = 0.0

    @property
    def success(self) -> bool:
        return self.items_failed == 0

    @property
    def has_errors(self) -> bool:
        return len(self.errors) > 0

    def summary(self) -> str:
        return (
            f"{self.files_copied} copied, {self.files_updated} updated, "
            f"{self.directories_created} directories, {self.items_deleted} deleted, "
            f"{self.items_skipped} skipped, {self.items_failed} failed "
            f"({self.bytes_copied} bytes in {self.duration:.2f}s)"
        )
