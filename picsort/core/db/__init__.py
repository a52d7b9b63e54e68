"""Database components for picsort.

Components:
- writer: Single-threaded write serialization with retry logic
"""

from picsort.core.db.writer import SQLiteWriter, WriterStoppedError

__all__ = ["SQLiteWriter", "WriterStoppedError"]
