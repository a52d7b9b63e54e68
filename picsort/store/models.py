"""Store data models"""

from dataclasses import dataclass, field
from typing import Any, List, Sequence, Tuple


@dataclass(frozen=True)
class FileRecord:
    """One row of the files table"""
    id: int
    source: str
    path: str
    hash: str


@dataclass
class ResultSet:
    """Column names and raw rows returned by a read query"""
    column_names: List[str] = field(default_factory=list)
    rows: List[Tuple[Any, ...]] = field(default_factory=list)

    @property
    def row_count(self) -> int:
        return len(self.rows)

    def display_rows(self) -> List[List[str]]:
        """Rows with every field converted to its display string"""
        return [[to_display(value) for value in row] for row in self.rows]


def to_display(value: Any) -> str:
    """Convert a SQLite field value to a display string.

    NULL renders as an empty string and BLOBs as lowercase hex.
    """
    if value is None:
        return ""
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).hex()
    return str(value)


def rows_to_records(rows: Sequence[Sequence[Any]]) -> List[FileRecord]:
    return [FileRecord(id=r[0], source=r[1], path=r[2], hash=r[3]) for r in rows]
