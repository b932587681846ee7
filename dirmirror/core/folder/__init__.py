"""
Folder mirroring module.

Provides functionality for:
- Single-level directory scanning
- Breadth-first tree diffing into mirror actions
- File filtering with gitignore-style patterns
- Applying actions to the destination tree
"""

from dirmirror.core.folder.scanner import (
    LevelScanner,
    ScanOptions,
    PatternMatcher,
)
from dirmirror.core.folder.diff import (
    DiffEngine,
    DiffOptions,
)
from dirmirror.core.folder.sync import (
    MirrorExecutor,
    MirrorSync,
    SyncOptions,
)

__all__ = [
    # Scanner
    'LevelScanner',
    'ScanOptions',
    'PatternMatcher',
    # Diff
    'DiffEngine',
    'DiffOptions',
    # Sync
    'MirrorExecutor',
    'MirrorSync',
    'SyncOptions',
]
