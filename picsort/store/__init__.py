"""Store module - SQLite index of file fingerprints

The index lives in a single ``files`` table. All writes go through one
SQLiteWriter owned by the store, so any number of threads may call insert()
concurrently. Reads open a short-lived connection per call.
"""

import logging
import os
import sqlite3
from contextlib import closing
from pathlib import Path
from typing import List, Optional, Tuple, Union

from picsort.core.config import PicsortConfig, get_config
from picsort.core.db import SQLiteWriter
from picsort.core.exceptions import (
    InsertError,
    QueryError,
    StoreCloseError,
    StoreError,
    StoreOpenError,
)
from picsort.store.models import FileRecord, ResultSet, rows_to_records

logger = logging.getLogger(__name__)

__all__ = [
    "IndexStore",
    "FileRecord",
    "ResultSet",
    "FILES_TABLE",
    "path_text",
]

FILES_TABLE = "files"

SIDECAR_SUFFIXES = ("-wal", "-shm", "-journal")

CREATE_FILES_SQL = f"""
    CREATE TABLE IF NOT EXISTS {FILES_TABLE} (
        id INTEGER NOT NULL PRIMARY KEY AUTOINCREMENT,
        source TEXT,
        path TEXT,
        hash TEXT
    )
"""

INSERT_FILE_SQL = f"INSERT INTO {FILES_TABLE} (source, path, hash) VALUES (?, ?, ?)"


class IndexStore:
    """Handle to an opened index store.

    Create it with IndexStore.open(); pass the handle to whoever needs it and
    close it once at shutdown.
    """

    def __init__(self, db_path: Path, writer: SQLiteWriter, config: PicsortConfig):
        self._db_path = db_path
        self._writer = writer
        self._config = config
        self._closed = False

    @classmethod
    def open(
        cls,
        path: Union[str, Path],
        truncate: bool = False,
        config: Optional[PicsortConfig] = None,
    ) -> "IndexStore":
        """Open (and create if needed) the store at ``path``.

        Args:
            path: Store file
            truncate: Remove any existing store file before opening
            config: Settings; defaults to the global configuration

        Raises:
            StoreOpenError: On filesystem or engine failure
        """
        config = config or get_config()
        db_path = Path(path)

        try:
            if truncate and db_path.exists():
                for f in _backing_files(db_path):
                    if f.exists():
                        f.unlink()
                logger.info(f"Truncated store: {db_path}")
            db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StoreOpenError(f"Cannot prepare store {db_path}: {e}") from e

        writer = SQLiteWriter(
            db_path=str(db_path),
            busy_timeout=config.busy_timeout,
            max_retry=config.max_retry,
            initial_delay=config.initial_delay,
            max_delay=config.max_delay,
        )

        try:
            writer.start()
        except sqlite3.Error as e:
            raise StoreOpenError(f"Cannot open store {db_path}: {e}") from e

        try:
            writer.submit(lambda conn: conn.execute(CREATE_FILES_SQL))
        except sqlite3.Error as e:
            writer.stop()
            raise StoreOpenError(f"Cannot create schema in {db_path}: {e}") from e

        logger.info(f"Store opened: {db_path}")
        return cls(db_path, writer, config)

    @property
    def path(self) -> Path:
        return self._db_path

    @property
    def closed(self) -> bool:
        return self._closed

    def backing_files(self) -> Tuple[Path, ...]:
        """The store file and the journal files SQLite keeps next to it"""
        return _backing_files(self._db_path)

    def insert(self, source: str, path: Union[str, Path], file_hash: str) -> int:
        """Append one row and return its id.

        Safe to call from many threads; writes are linearized by the writer.

        Raises:
            InsertError: If the row cannot be written
        """
        text = path_text(path)

        def _insert(conn: sqlite3.Connection) -> int:
            return conn.execute(INSERT_FILE_SQL, (source, text, file_hash)).lastrowid

        try:
            return self._writer.submit(_insert, timeout=self._config.insert_timeout)
        except Exception as e:
            raise InsertError(f"Cannot insert {path}: {e}") from e

    def query(self, sql: str) -> ResultSet:
        """Execute a read statement verbatim.

        Raises:
            QueryError: If the engine rejects the statement
        """
        self._check_open()
        try:
            with closing(self._read_connection()) as conn:
                cursor = conn.execute(sql)
                columns = [d[0] for d in cursor.description] if cursor.description else []
                rows = [tuple(row) for row in cursor.fetchall()]
        except sqlite3.Error as e:
            raise QueryError(str(e), sql=sql) from e

        return ResultSet(column_names=columns, rows=rows)

    def count(self, source: Optional[str] = None) -> int:
        """Number of rows, optionally restricted to one source tag"""
        self._check_open()
        sql = f"SELECT COUNT(*) FROM {FILES_TABLE}"
        params: Tuple = ()
        if source is not None:
            sql += " WHERE source = ?"
            params = (source,)
        with closing(self._read_connection()) as conn:
            return conn.execute(sql, params).fetchone()[0]

    def records(self, source: Optional[str] = None) -> List[FileRecord]:
        """All rows as FileRecord, ordered by id"""
        self._check_open()
        sql = f"SELECT id, source, path, hash FROM {FILES_TABLE}"
        params: Tuple = ()
        if source is not None:
            sql += " WHERE source = ?"
            params = (source,)
        sql += " ORDER BY id"
        with closing(self._read_connection()) as conn:
            return rows_to_records(conn.execute(sql, params).fetchall())

    def close(self) -> None:
        """Stop the writer and release the store. A second call is a no-op.

        Raises:
            StoreCloseError: If the writer cannot be shut down
        """
        if self._closed:
            return
        self._closed = True

        try:
            self._writer.stop()
        except Exception as e:
            raise StoreCloseError(f"Cannot close store {self._db_path}: {e}") from e

        stats = self._writer.get_stats()
        logger.info(
            f"Store closed: {self._db_path} (writes={stats['total_writes']}, "
            f"failed={stats['failed_writes']}, retries={stats['total_retries']})"
        )

    def _read_connection(self) -> sqlite3.Connection:
        conn = sqlite3.connect(
            str(self._db_path),
            timeout=self._config.busy_timeout / 1000.0,
        )
        conn.execute("PRAGMA query_only=ON")
        return conn

    def _check_open(self) -> None:
        if self._closed:
            raise StoreError(f"Store is closed: {self._db_path}")

    def __enter__(self) -> "IndexStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"<IndexStore {self._db_path} ({state})>"


def _backing_files(db_path: Path) -> Tuple[Path, ...]:
    return (db_path,) + tuple(Path(f"{db_path}{suffix}") for suffix in SIDECAR_SUFFIXES)


def path_text(path: Union[str, Path]) -> str:
    """Path as storable text.

    Names that are not valid UTF-8 reach Python as surrogate escapes, which
    SQLite cannot encode; their raw bytes are kept as ``\\xNN`` escapes.
    """
    return os.fsencode(path).decode("utf-8", "backslashreplace")
