"""Content fingerprinting"""

import hashlib
import logging
from pathlib import Path
from typing import Union

from picsort.core.exceptions import FileReadError

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 1024 * 1024


def fingerprint(path: Union[str, Path], chunk_size: int = DEFAULT_CHUNK_SIZE) -> str:
    """Compute the MD5 hex digest of a file's content.

    The file is streamed in ``chunk_size`` blocks so memory use stays
    bounded regardless of file size.

    Args:
        path: File to read
        chunk_size: Bytes read per iteration

    Returns:
        Lowercase 32-character hex digest

    Raises:
        FileReadError: If the file cannot be opened or a read fails
    """
    md5 = hashlib.md5(usedforsecurity=False)

    try:
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(chunk_size), b""):
                md5.update(chunk)
    except OSError as e:
        raise FileReadError(f"Cannot read {path}: {e}", path=str(path)) from e

    digest = md5.hexdigest()
    logger.debug(f"{path}: {digest}")
    return digest
