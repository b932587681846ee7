"""
One-way directory mirroring.

Makes a destination tree structurally and temporally identical to a
source tree, judging staleness by size and modification time only.
"""

__version__ = "1.0.0"
