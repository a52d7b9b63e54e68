"""Filesystem scanning"""

from picsort.core.scanner.walker import WalkEntry, walk

__all__ = ["WalkEntry", "walk"]
