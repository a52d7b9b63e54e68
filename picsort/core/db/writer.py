"""Single-threaded SQLite write serializer with retry logic.

This module provides SQLiteWriter, which serializes all write operations to a
SQLite database file through a dedicated background thread. Concurrent
callers never touch the write connection themselves; they hand a function to
submit() and block until the writer thread has run it.

Usage Example:
    from picsort.core.db import SQLiteWriter

    writer = SQLiteWriter(db_path="index.db")
    writer.start()

    def insert_file(conn):
        cur = conn.execute(
            "INSERT INTO files (source, path, hash) VALUES (?, ?, ?)",
            ("photos", "/tmp/a.jpg", "0cc175b9c0f1b6a831c399e269772661")
        )
        return cur.lastrowid

    row_id = writer.submit(insert_file)

    writer.stop()

Thread Safety:
    - All write operations are serialized through a single background thread
    - Multiple threads can safely call submit() concurrently
    - Each submitted function runs in its own BEGIN IMMEDIATE transaction

Error Handling:
    - Transient errors (locked/busy) trigger automatic retry with exponential backoff
    - Non-transient errors are propagated to the caller of submit()
    - A failure to open the connection is raised from start()
"""

import logging
import queue
import sqlite3
import threading
import time
from dataclasses import dataclass
from sqlite3 import Connection
from typing import Any, Callable, Optional, Tuple

logger = logging.getLogger(__name__)


@dataclass
class WriteJob:
    """Represents a write operation to be executed by the background thread.

    Attributes:
        fn: Callable that accepts a Connection and performs write operations
        result_q: Queue to receive execution result as (success, result) tuple
    """
    fn: Callable[[Connection], Any]
    result_q: "queue.Queue[Tuple[bool, Any]]"


class WriterStoppedError(RuntimeError):
    """Raised when a job is submitted to a writer that is not running"""
    pass


class SQLiteWriter:
    """Single-threaded SQLite write serializer.

    One instance owns the only write connection to ``db_path``. The instance
    is an explicit handle: whoever opens the store creates it, passes it
    along, and stops it at shutdown.

    Parameters:
        db_path: Path to the SQLite database file
        busy_timeout: SQLite busy timeout in milliseconds (default: 30000)
        max_retry: Maximum retry attempts for locked operations (default: 8)
        initial_delay: Initial retry delay in seconds (default: 0.02)
        max_delay: Maximum retry delay in seconds (default: 0.5)
    """

    def __init__(
        self,
        db_path: str,
        busy_timeout: int = 30000,
        max_retry: int = 8,
        initial_delay: float = 0.02,
        max_delay: float = 0.5,
    ):
        self.db_path = str(db_path)
        self.busy_timeout = busy_timeout
        self.max_retry = max_retry
        self.initial_delay = initial_delay
        self.max_delay = max_delay

        self._queue: "queue.Queue[Optional[WriteJob]]" = queue.Queue()
        self._thread: Optional[threading.Thread] = None
        self._ready = threading.Event()
        self._open_error: Optional[BaseException] = None
        self._accepting = False
        self._state_lock = threading.Lock()

        # Monitoring metrics
        self._total_writes = 0
        self._total_retries = 0
        self._failed_writes = 0

    def _open(self) -> Connection:
        """Open database connection with write-oriented PRAGMA settings.

        Returns:
            sqlite3.Connection in autocommit mode; transactions are explicit
        """
        conn = sqlite3.connect(self.db_path, isolation_level=None)

        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA synchronous=NORMAL")
        conn.execute("PRAGMA temp_store=MEMORY")
        conn.execute(f"PRAGMA busy_timeout={int(self.busy_timeout)}")

        logger.debug(f"Write connection opened: {self.db_path}")
        return conn

    def start(self) -> None:
        """Start the background writer thread and wait until it is ready.

        Raises:
            sqlite3.Error: If the write connection cannot be opened
        """
        with self._state_lock:
            if self._thread is not None and self._thread.is_alive():
                return

            self._ready.clear()
            self._open_error = None
            self._thread = threading.Thread(
                target=self._run, daemon=True, name="picsort-writer"
            )
            self._thread.start()

        self._ready.wait()
        if self._open_error is not None:
            self._thread.join()
            raise self._open_error

        with self._state_lock:
            self._accepting = True
        logger.debug("Background writer thread started")

    def _run(self) -> None:
        """Background thread main loop - processes write jobs until the sentinel."""
        try:
            conn = self._open()
        except Exception as e:
            self._open_error = e
            self._ready.set()
            return

        self._ready.set()
        try:
            while True:
                job = self._queue.get()
                if job is None:  # Sentinel for shutdown
                    break

                success, result = self._exec_with_retry(conn, job.fn, self.max_retry)
                job.result_q.put((success, result))

        except Exception as e:
            logger.error(f"Fatal error in writer thread: {e}", exc_info=True)
        finally:
            conn.close()
            logger.debug("Write connection closed")

    def _exec_with_retry(
        self,
        conn: Connection,
        fn: Callable[[Connection], Any],
        max_retry: int,
    ) -> Tuple[bool, Any]:
        """Execute write function with exponential backoff retry.

        Wraps the function in a transaction with BEGIN IMMEDIATE to acquire
        the write lock early. Retries on transient lock errors only.

        Returns:
            Tuple of (success: bool, result: Any)
            - If successful, returns (True, function_result)
            - If failed, returns (False, exception)
        """
        delay = self.initial_delay

        for attempt in range(max_retry):
            try:
                if attempt > 0:
                    self._total_retries += 1

                conn.execute("BEGIN IMMEDIATE")

                try:
                    result = fn(conn)
                    conn.commit()
                except Exception:
                    conn.rollback()
                    raise

                self._total_writes += 1
                return (True, result)

            except sqlite3.OperationalError as e:
                error_msg = str(e).lower()

                if "locked" in error_msg or "busy" in error_msg:
                    if attempt < max_retry - 1:
                        logger.warning(
                            f"Database locked, retry {attempt + 1}/{max_retry} "
                            f"after {delay:.3f}s: {e}"
                        )
                        time.sleep(delay)
                        delay = min(delay * 2, self.max_delay)
                        continue
                    logger.error(f"Database locked after {max_retry} retries: {e}")
                else:
                    logger.debug(f"SQLite operational error: {e}")
                self._failed_writes += 1
                return (False, e)

            except Exception as e:
                logger.debug(f"Write operation failed: {e}")
                self._failed_writes += 1
                return (False, e)

        error = RuntimeError("Unexpected: exceeded max retry without returning")
        self._failed_writes += 1
        return (False, error)

    def submit(
        self,
        fn: Callable[[Connection], Any],
        timeout: Optional[float] = None,
    ) -> Any:
        """Submit a write operation and block until it has been executed.

        Args:
            fn: Callable that accepts a Connection and performs write operations
            timeout: Maximum time to wait in seconds, None to wait indefinitely

        Returns:
            The return value of fn() if successful

        Raises:
            WriterStoppedError: If the writer is not running
            TimeoutError: If operation doesn't complete within timeout
            Exception: Any exception raised by fn() is re-raised here
        """
        result_q: "queue.Queue[Tuple[bool, Any]]" = queue.Queue()
        job = WriteJob(fn=fn, result_q=result_q)

        with self._state_lock:
            if not self._accepting:
                raise WriterStoppedError(f"Writer for {self.db_path} is not running")
            self._queue.put(job)

        try:
            success, result = result_q.get(timeout=timeout)
        except queue.Empty:
            raise TimeoutError(f"Write operation timed out after {timeout}s")

        if not success:
            raise result

        return result

    def stop(self, timeout: Optional[float] = None) -> None:
        """Drain queued jobs and stop the background writer thread.

        Jobs submitted before stop() are still executed. Calling stop() on a
        writer that is not running is a no-op.
        """
        with self._state_lock:
            if not self._accepting:
                return
            self._accepting = False
            self._queue.put(None)

        self._thread.join(timeout=timeout)

        if self._thread.is_alive():
            logger.warning(f"Writer thread did not stop within {timeout}s")
        else:
            logger.debug(f"Writer stopped: {self.db_path}")

    def get_stats(self) -> dict:
        """Write counters, reported by the store when it closes."""
        return {
            "total_writes": self._total_writes,
            "total_retries": self._total_retries,
            "failed_writes": self._failed_writes,
        }
