"""Ingestion coordinator

Walks a directory tree and fans out one thread per discovered file. Each
thread fingerprints its file and appends a row to the index store. A failure
in one file is logged and collected in the IngestReport; it never stops the
other threads or the walk.
"""

import logging
import os
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

from picsort.core.config import PicsortConfig, get_config
from picsort.core.exceptions import ValidationError
from picsort.core.fingerprint import fingerprint
from picsort.core.scanner import WalkEntry, walk
from picsort.store import IndexStore, path_text

logger = logging.getLogger(__name__)

STAGE_READ = "read"
STAGE_INSERT = "insert"


class WaitGroup:
    """Counter barrier: add() before launching work, done() when it ends,
    wait() blocks until the counter is back to zero."""

    def __init__(self):
        self._count = 0
        self._cond = threading.Condition()

    def add(self, delta: int = 1) -> None:
        with self._cond:
            self._count += delta
            if self._count < 0:
                raise ValueError("WaitGroup counter went negative")
            if self._count == 0:
                self._cond.notify_all()

    def done(self) -> None:
        self.add(-1)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the counter reaches zero. Returns False on timeout."""
        with self._cond:
            return self._cond.wait_for(lambda: self._count == 0, timeout=timeout)

    @property
    def pending(self) -> int:
        with self._cond:
            return self._count


@dataclass
class IngestFailure:
    """A file that could not be fingerprinted or stored"""
    path: str
    stage: str  # read, insert
    error: Exception

    @property
    def message(self) -> str:
        return str(self.error)


@dataclass
class IngestReport:
    """Outcome of one ingestion run"""
    source: str
    root: str
    launched: int = 0
    inserted: int = 0
    failures: List[IngestFailure] = field(default_factory=list)
    elapsed: float = 0.0

    @property
    def failed(self) -> int:
        return len(self.failures)

    @property
    def ok(self) -> bool:
        return not self.failures


class IngestionCoordinator:
    """Drives walk -> fingerprint -> insert for one store.

    Args:
        store: Opened index store; also used to exclude the store's own files
        config: Settings; defaults to the global configuration
    """

    def __init__(self, store: IndexStore, config: Optional[PicsortConfig] = None):
        self._store = store
        self._config = config or get_config()

    def ingest(self, source: str, root_dir: Union[str, Path]) -> IngestReport:
        """Index every file below ``root_dir`` under the tag ``source``.

        Blocks until every launched file task has finished.

        Raises:
            ValidationError: If the source tag is blank or the root is missing
            WalkError: If the root cannot be traversed
        """
        self._validate(source, root_dir)

        root = os.fspath(root_dir)
        report = IngestReport(source=source, root=root)
        report_lock = threading.Lock()
        wg = WaitGroup()
        slots = None
        if self._config.max_workers:
            slots = threading.BoundedSemaphore(self._config.max_workers)

        def visit(entry: WalkEntry) -> None:
            if entry.is_dir:
                return

            if slots is not None:
                slots.acquire()
            wg.add(1)
            report.launched += 1

            thread = threading.Thread(
                target=self._process,
                args=(source, entry.path, report, report_lock, wg, slots),
                daemon=True,
            )
            try:
                thread.start()
            except BaseException:
                report.launched -= 1
                if slots is not None:
                    slots.release()
                wg.done()
                raise

        logger.info(f"Ingesting {root} as source '{source}'")
        started = time.monotonic()
        try:
            walk(root, visit, exclude=self._store.backing_files())
        finally:
            wg.wait()
            report.elapsed = time.monotonic() - started

        if report.failures:
            logger.warning(
                f"Ingested {report.inserted}/{report.launched} files from {root}, "
                f"{report.failed} failed ({report.elapsed:.2f}s)"
            )
        else:
            logger.info(
                f"Ingested {report.inserted} files from {root} ({report.elapsed:.2f}s)"
            )
        return report

    def _process(
        self,
        source: str,
        path: str,
        report: IngestReport,
        report_lock: threading.Lock,
        wg: WaitGroup,
        slots: Optional[threading.BoundedSemaphore],
    ) -> None:
        stage = STAGE_READ
        try:
            digest = fingerprint(path, chunk_size=self._config.chunk_size)
            stage = STAGE_INSERT
            self._store.insert(source, path, digest)
        except Exception as e:
            # launched == inserted + failed must hold for every run
            self._record_failure(report, report_lock, path, stage, e)
        else:
            with report_lock:
                report.inserted += 1
        finally:
            if slots is not None:
                slots.release()
            wg.done()

    @staticmethod
    def _record_failure(
        report: IngestReport,
        report_lock: threading.Lock,
        path: str,
        stage: str,
        error: Exception,
    ) -> None:
        logger.warning(f"Skipping {path_text(path)} ({stage} failed): {error}")
        with report_lock:
            report.failures.append(IngestFailure(path=path, stage=stage, error=error))

    @staticmethod
    def _validate(source: str, root_dir: Union[str, Path]) -> None:
        if root_dir is None or not os.path.exists(root_dir):
            raise ValidationError(f"File not found: {root_dir}")
        if not source or not source.strip():
            raise ValidationError(f"Undefined source: '{source or ''}'")
