"""
Core mirroring logic, independent of the command line.
"""

from dirmirror.core.models import (
    Action,
    ActionKind,
    FileRecord,
    MirrorPlan,
    MirrorProgress,
    MirrorResult,
)

__all__ = [
    'Action',
    'ActionKind',
    'FileRecord',
    'MirrorPlan',
    'MirrorProgress',
    'MirrorResult',
]
