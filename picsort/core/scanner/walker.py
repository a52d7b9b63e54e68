"""Directory walker

Enumerates entries below a root directory the way the OS reports them:
symlinked directories are listed but not descended into, symlinked files
are reported as files, and special files (FIFOs, sockets, devices) are
skipped because reading them can block indefinitely.
"""

import logging
import os
import stat
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Iterator, Optional, Union

from picsort.core.exceptions import WalkError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass(frozen=True)
class WalkEntry:
    """One entry discovered below the walk root.

    Attributes:
        path: Path joined from the root as given (absolute only if the root is)
        is_dir: True for directories, including symlinked ones
        stat: Result of following the entry, None if the target is missing
    """
    path: str
    is_dir: bool
    stat: Optional[os.stat_result]


Visitor = Callable[[WalkEntry], None]


def walk(
    root: PathLike,
    visit: Visitor,
    recursive: bool = True,
    include_files: bool = True,
    exclude: Iterable[PathLike] = (),
) -> None:
    """Walk ``root`` and call ``visit`` for each entry below it.

    Directories are always visited; files only when ``include_files`` is set.
    Entries whose resolved path is in ``exclude`` are skipped. Exceptions
    raised by ``visit`` stop the walk and propagate to the caller.

    Raises:
        WalkError: If the root does not exist or cannot be read
    """
    excluded = {os.path.realpath(p) for p in exclude}
    for entry in _iter_entries(root, recursive, include_files):
        if excluded and os.path.realpath(entry.path) in excluded:
            logger.debug(f"Excluded: {entry.path}")
            continue
        visit(entry)


def _iter_entries(root: PathLike, recursive: bool, include_files: bool) -> Iterator[WalkEntry]:
    top = os.fspath(root)

    try:
        top_stat = os.stat(top)
    except OSError as e:
        raise WalkError(f"Cannot access {top}: {e}", root=top) from e

    if not stat.S_ISDIR(top_stat.st_mode):
        # A plain file as root is its own single entry
        if include_files and stat.S_ISREG(top_stat.st_mode):
            yield WalkEntry(top, False, top_stat)
        return

    if not os.access(top, os.R_OK | os.X_OK):
        raise WalkError(f"Directory is not readable: {top}", root=top)

    def onerror(err: OSError) -> None:
        if err.filename is not None and os.path.normpath(err.filename) == os.path.normpath(top):
            raise WalkError(f"Cannot read {top}: {err}", root=top) from err
        logger.warning(f"Skipping unreadable directory {err.filename}: {err.strerror}")

    for dirpath, dirnames, filenames in os.walk(top, onerror=onerror, followlinks=False):
        dirnames.sort()

        for name in dirnames:
            path = os.path.join(dirpath, name)
            yield WalkEntry(path, True, _stat_or_none(path))

        if include_files:
            for name in sorted(filenames):
                entry = _file_entry(os.path.join(dirpath, name))
                if entry is not None:
                    yield entry

        if not recursive:
            break


def _file_entry(path: str) -> Optional[WalkEntry]:
    st = _stat_or_none(path)
    if st is None:
        # Dangling symlink: report it so the reader surfaces the failure
        return WalkEntry(path, False, None)
    if stat.S_ISREG(st.st_mode):
        return WalkEntry(path, False, st)
    logger.debug(f"Skipping non-regular file: {path}")
    return None


def _stat_or_none(path: str) -> Optional[os.stat_result]:
    try:
        return os.stat(path)
    except OSError:
        return None
