import hashlib
import os
from pathlib import Path

import pytest

from picsort.core.exceptions import FileReadError
from picsort.core.fingerprint import fingerprint

HI_MD5 = "49f68a5c8493ec2c0bf489821c21fc3b"
EMPTY_MD5 = "d41d8cd98f00b204e9800998ecf8427e"


def test_fingerprint_known_digest(tmp_path: Path) -> None:
    p = tmp_path / "a.txt"
    p.write_bytes(b"hi")
    assert fingerprint(p) == HI_MD5


def test_fingerprint_empty_file(tmp_path: Path) -> None:
    p = tmp_path / "empty"
    p.write_bytes(b"")
    assert fingerprint(p) == EMPTY_MD5


def test_fingerprint_is_deterministic(tmp_path: Path) -> None:
    p = tmp_path / "data.bin"
    p.write_bytes(os.urandom(4096))
    assert fingerprint(p) == fingerprint(p)


def test_identical_content_same_digest_regardless_of_path(tmp_path: Path) -> None:
    payload = b"same bytes\n" * 100
    a = tmp_path / "a" / "one.txt"
    b = tmp_path / "b" / "two.dat"
    a.parent.mkdir()
    b.parent.mkdir()
    a.write_bytes(payload)
    b.write_bytes(payload)
    assert fingerprint(a) == fingerprint(b)


def test_one_byte_difference_changes_digest(tmp_path: Path) -> None:
    a = tmp_path / "a"
    b = tmp_path / "b"
    a.write_bytes(b"hello world")
    b.write_bytes(b"hello worle")
    assert fingerprint(a) != fingerprint(b)


def test_chunked_read_matches_whole_content_digest(tmp_path: Path) -> None:
    data = os.urandom(100_003)
    p = tmp_path / "big.bin"
    p.write_bytes(data)
    expected = hashlib.md5(data).hexdigest()
    assert fingerprint(p, chunk_size=7) == expected
    assert fingerprint(p) == expected


def test_digest_is_lowercase_hex_of_fixed_length(tmp_path: Path) -> None:
    p = tmp_path / "x"
    p.write_bytes(b"\x00\xff" * 10)
    digest = fingerprint(p)
    assert len(digest) == 32
    assert digest == digest.lower()
    int(digest, 16)


def test_missing_file_raises_file_read_error(tmp_path: Path) -> None:
    missing = tmp_path / "nope.txt"
    with pytest.raises(FileReadError) as exc_info:
        fingerprint(missing)
    assert isinstance(exc_info.value, OSError)
    assert exc_info.value.path == str(missing)


def test_directory_raises_file_read_error(tmp_path: Path) -> None:
    with pytest.raises(FileReadError):
        fingerprint(tmp_path)
