from __future__ import annotations

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, Sequence, TypeVar

from .cursor import Cursor
from .log import get_logger
from .model import BookmarkNodeType, BookmarkRoots

log = get_logger(__name__)

T = TypeVar("T")

_SCHEMA = """
CREATE TABLE IF NOT EXISTS favicons (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    url TEXT NOT NULL UNIQUE,
    width INTEGER,
    height INTEGER,
    type INTEGER NOT NULL,
    date REAL NOT NULL
);
CREATE TABLE IF NOT EXISTS bookmarks (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    guid TEXT NOT NULL UNIQUE,
    type TINYINT NOT NULL,
    url TEXT,
    parent INTEGER NOT NULL,
    faviconID INTEGER,
    title TEXT
);
CREATE INDEX IF NOT EXISTS idx_bookmarks_parent ON bookmarks(parent);
CREATE INDEX IF NOT EXISTS idx_bookmarks_url ON bookmarks(url);
"""

_ROOT_ROWS = [
    (BookmarkRoots.ROOT_ID, BookmarkRoots.ROOT_GUID, BookmarkRoots.ROOT_ID, ""),
    (BookmarkRoots.MOBILE_ID, BookmarkRoots.MOBILE_GUID, BookmarkRoots.ROOT_ID, "Mobile Bookmarks"),
    (BookmarkRoots.MENU_ID, BookmarkRoots.MENU_GUID, BookmarkRoots.ROOT_ID, "Bookmarks Menu"),
    (BookmarkRoots.TOOLBAR_ID, BookmarkRoots.TOOLBAR_GUID, BookmarkRoots.ROOT_ID, "Bookmarks Toolbar"),
    (BookmarkRoots.UNFILED_ID, BookmarkRoots.UNFILED_GUID, BookmarkRoots.ROOT_ID, "Unsorted Bookmarks"),
]


class BrowserDB:
    """Hands out short-lived connections to the browser database.

    Readers get their own read-only connection and may overlap. Writers are
    serialized through a lock and run in a single transaction that commits on
    normal exit and rolls back when the block raises.
    """

    def __init__(self, db_path: Path | str, *, busy_timeout_ms: int = 5000):
        self.db_path = Path(db_path)
        self.busy_timeout_ms = max(0, int(busy_timeout_ms))
        self._write_lock = threading.Lock()

    @contextmanager
    def readable(self) -> Iterator[sqlite3.Connection]:
        conn = self._connect("ro")
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def writable(self) -> Iterator[sqlite3.Connection]:
        with self._write_lock:
            conn = self._connect("rw")
            try:
                conn.execute("BEGIN IMMEDIATE")
                yield conn
                conn.execute("COMMIT")
            except BaseException as e:
                if conn.in_transaction:
                    log.debug("Write transaction failed, rolling back: %s", e)
                    conn.execute("ROLLBACK")
                raise
            finally:
                conn.close()

    def create_tables(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._write_lock:
            conn = self._connect("rwc")
            try:
                conn.executescript(_SCHEMA)
                conn.execute("BEGIN IMMEDIATE")
                conn.executemany(
                    "INSERT OR IGNORE INTO bookmarks (id, guid, type, parent, title) VALUES (?, ?, ?, ?, ?)",
                    [(rid, guid, int(BookmarkNodeType.FOLDER), parent, title) for rid, guid, parent, title in _ROOT_ROWS],
                )
                conn.execute("COMMIT")
            finally:
                conn.close()
        log.debug("Bookmark tables ready in %s", self.db_path)

    def _connect(self, mode: str) -> sqlite3.Connection:
        uri = f"file:{self.db_path.as_posix()}?mode={mode}"
        timeout_s = max(0.1, self.busy_timeout_ms / 1000.0) if self.busy_timeout_ms > 0 else 0.1
        conn = sqlite3.connect(uri, uri=True, timeout=timeout_s, isolation_level=None)
        conn.row_factory = sqlite3.Row
        try:
            if self.busy_timeout_ms > 0:
                conn.execute(f"PRAGMA busy_timeout = {self.busy_timeout_ms}")
        except sqlite3.Error:
            conn.close()
            raise
        return conn


def execute_query(
    conn: sqlite3.Connection,
    sql: str,
    args: Sequence[object],
    factory: Callable[[sqlite3.Row], T],
    *,
    skip_invalid: bool = False,
) -> Cursor[T]:
    try:
        rows = conn.execute(sql, tuple(args)).fetchall()
    except sqlite3.Error as e:
        log.warning("Query failed: %s", e)
        return Cursor.failure(str(e))

    values = []
    for row in rows:
        try:
            values.append(factory(row))
        except ValueError as e:
            if not skip_invalid:
                raise
            log.warning("Skipping invalid row: %s", e)
    return Cursor(values)


def execute_change(conn: sqlite3.Connection, sql: str, args: Sequence[object]) -> int:
    c = conn.execute(sql, tuple(args))
    return max(0, int(c.rowcount))
