import logging
import sqlite3
import sys
from pathlib import Path

import pytest

from picsort.core.config import PicsortConfig
from picsort.core.exceptions import (
    InsertError,
    QueryError,
    StoreError,
    StoreOpenError,
)
from picsort.store import FileRecord, IndexStore
from picsort.store.models import ResultSet, to_display


def _config(db_path: Path) -> PicsortConfig:
    return PicsortConfig(db_path=db_path)


def _open(db_path: Path, truncate: bool = False) -> IndexStore:
    return IndexStore.open(db_path, truncate=truncate, config=_config(db_path))


def test_open_creates_files_table(tmp_path: Path) -> None:
    db_path = tmp_path / "index.db"
    with _open(db_path) as store:
        rs = store.query("PRAGMA table_info(files)")
    assert db_path.exists()
    assert [row[1] for row in rs.rows] == ["id", "source", "path", "hash"]


def test_open_creates_missing_parent_directories(tmp_path: Path) -> None:
    db_path = tmp_path / "nested" / "dir" / "index.db"
    with _open(db_path):
        pass
    assert db_path.exists()


def test_insert_appends_rows_with_increasing_ids(tmp_path: Path) -> None:
    with _open(tmp_path / "index.db") as store:
        first = store.insert("s1", "/x/a", "aa")
        second = store.insert("s1", "/x/b", "bb")
        records = store.records()
    assert second > first
    assert records == [
        FileRecord(id=first, source="s1", path="/x/a", hash="aa"),
        FileRecord(id=second, source="s1", path="/x/b", hash="bb"),
    ]


def test_duplicate_rows_are_permitted(tmp_path: Path) -> None:
    with _open(tmp_path / "index.db") as store:
        store.insert("s1", "/x/a", "aa")
        store.insert("s1", "/x/a", "aa")
        store.insert("s2", "/x/a", "aa")
        assert store.count() == 3
        assert store.count("s1") == 2
        assert len(store.records("s2")) == 1


def test_rows_persist_across_reopen(tmp_path: Path) -> None:
    db_path = tmp_path / "index.db"
    with _open(db_path) as store:
        store.insert("s", "/p", "h")
    with _open(db_path) as store:
        assert store.count() == 1


def test_truncate_removes_prior_rows(tmp_path: Path) -> None:
    db_path = tmp_path / "index.db"
    with _open(db_path) as store:
        store.insert("s", "/p", "h")
        store.insert("s", "/q", "h")
    with _open(db_path, truncate=True) as store:
        assert store.count() == 0
        store.insert("s", "/r", "h")
        assert [r.path for r in store.records()] == ["/r"]


def test_truncate_without_existing_store_creates_one(tmp_path: Path) -> None:
    db_path = tmp_path / "fresh.db"
    with _open(db_path, truncate=True) as store:
        assert store.count() == 0


def test_open_fails_when_path_is_a_directory(tmp_path: Path) -> None:
    with pytest.raises(StoreOpenError):
        IndexStore.open(tmp_path, config=_config(tmp_path))


def test_open_fails_when_parent_is_a_file(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    with pytest.raises(StoreOpenError):
        _open(blocker / "index.db")


def test_open_fails_on_non_database_file(tmp_path: Path) -> None:
    db_path = tmp_path / "garbage.db"
    db_path.write_bytes(b"this is definitely not an sqlite database" * 100)
    with pytest.raises(StoreOpenError):
        _open(db_path)


def test_query_returns_columns_and_rows(tmp_path: Path) -> None:
    with _open(tmp_path / "index.db") as store:
        store.insert("t1", "/a.txt", "49f68a5c8493ec2c0bf489821c21fc3b")
        rs = store.query("select source, path, hash from files")
    assert rs.column_names == ["source", "path", "hash"]
    assert rs.rows == [("t1", "/a.txt", "49f68a5c8493ec2c0bf489821c21fc3b")]
    assert rs.row_count == 1


def test_query_syntax_error_raises_query_error(tmp_path: Path) -> None:
    with _open(tmp_path / "index.db") as store:
        with pytest.raises(QueryError) as exc_info:
            store.query("selec * frm files")
    assert exc_info.value.sql == "selec * frm files"
    assert isinstance(exc_info.value.__cause__, sqlite3.Error)


def test_query_unknown_column_raises_query_error(tmp_path: Path) -> None:
    with _open(tmp_path / "index.db") as store:
        with pytest.raises(QueryError, match="no such column"):
            store.query("select size from files")


def test_query_rejects_writes(tmp_path: Path) -> None:
    with _open(tmp_path / "index.db") as store:
        store.insert("s", "/p", "h")
        with pytest.raises(QueryError):
            store.query("delete from files")
        assert store.count() == 1


def test_close_twice_is_a_noop(tmp_path: Path) -> None:
    store = _open(tmp_path / "index.db")
    store.close()
    store.close()
    assert store.closed


def test_insert_after_close_raises_insert_error(tmp_path: Path) -> None:
    store = _open(tmp_path / "index.db")
    store.close()
    with pytest.raises(InsertError):
        store.insert("s", "/p", "h")


@pytest.mark.skipif(sys.platform == "win32", reason="undecodable file names are POSIX-only")
def test_insert_keeps_undecodable_path_bytes_as_escapes(tmp_path: Path) -> None:
    # os.walk hands back b"bad\xff.txt" as a surrogate-escaped str
    path = "/photos/" + "bad\udcff.txt"
    with _open(tmp_path / "index.db") as store:
        store.insert("s", path, "h")
        (record,) = store.records()
    assert record.path == "/photos/bad\\xff.txt"


def test_insert_wraps_non_sqlite_errors(tmp_path: Path) -> None:
    with _open(tmp_path / "index.db") as store:
        with pytest.raises(InsertError) as exc_info:
            store.insert("bad\udcff", "/p", "h")
        assert isinstance(exc_info.value.__cause__, UnicodeEncodeError)
        assert store.count() == 0


def test_close_logs_write_counters(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    store = _open(tmp_path / "index.db")
    store.insert("s", "/a", "h")
    store.insert("s", "/b", "h")
    with caplog.at_level(logging.INFO, logger="picsort.store"):
        store.close()
    assert "writes=3" in caplog.text
    assert "failed=0" in caplog.text


def test_query_after_close_raises_store_error(tmp_path: Path) -> None:
    store = _open(tmp_path / "index.db")
    store.close()
    with pytest.raises(StoreError):
        store.query("select * from files")


def test_backing_files_include_sidecars(tmp_path: Path) -> None:
    db_path = tmp_path / "index.db"
    with _open(db_path) as store:
        names = [p.name for p in store.backing_files()]
    assert names == ["index.db", "index.db-wal", "index.db-shm", "index.db-journal"]


def test_display_conversion() -> None:
    rs = ResultSet(column_names=["a", "b", "c"], rows=[(None, 3, b"\x01\xff")])
    assert rs.display_rows() == [["", "3", "01ff"]]
    assert to_display("x") == "x"
