import logging
import queue
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Union

from tanuki.errors import ConnectionPoolExhausted

_logger = logging.getLogger(__name__)

MEMORY_DATABASE = ":memory:"


class ConnectionPool:
    """Small pool of SQLite connections shared between threads.

    Every connection runs with WAL journaling and foreign keys enabled.
    ``:memory:`` databases are shared through a URI so that all pooled
    connections see the same data.
    """

    def __init__(self, db_path: Union[Path, str], pool_size: int = 5, timeout: float = 30.0):
        self._db_path = db_path
        self._pool_size = pool_size
        self._timeout = timeout
        self._pool: queue.Queue = queue.Queue(maxsize=pool_size)
        self._created = 0
        self._lock = threading.Lock()
        # Keeps a shared in-memory database alive for the pool's lifetime.
        self._anchor = None
        if str(db_path) == MEMORY_DATABASE:
            self._uri = f"file:tanuki-{id(self)}?mode=memory&cache=shared"
            self._anchor = self._create_connection()
        else:
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
            self._uri = None

    @property
    def db_path(self) -> Union[Path, str]:
        return self._db_path

    def _create_connection(self) -> sqlite3.Connection:
        if self._uri is not None:
            conn = sqlite3.connect(self._uri, uri=True, check_same_thread=False)
        else:
            conn = sqlite3.connect(self._db_path, check_same_thread=False)
            conn.execute("PRAGMA journal_mode = WAL")
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def _acquire(self) -> sqlite3.Connection:
        # Try to get an existing connection without blocking
        try:
            return self._pool.get_nowait()
        except queue.Empty:
            pass

        # Lazily create a new connection if under the limit
        with self._lock:
            if self._created < self._pool_size:
                self._created += 1
                return self._create_connection()

        # All connections created and in use; wait with timeout
        try:
            return self._pool.get(timeout=self._timeout)
        except queue.Empty:
            raise ConnectionPoolExhausted(
                f"No connections available within {self._timeout}s "
                f"(pool_size={self._pool_size})"
            )

    def _release(self, conn: sqlite3.Connection):
        try:
            self._pool.put_nowait(conn)
        except queue.Full:
            conn.close()

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        conn = self._acquire()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            self._release(conn)

    def close_all(self):
        while not self._pool.empty():
            try:
                conn = self._pool.get_nowait()
                conn.close()
            except queue.Empty:
                break
        with self._lock:
            self._created = 0
        if self._anchor is not None:
            self._anchor.close()
            self._anchor = None
        _logger.debug("[POOL] closed connections for %s", self._db_path)
