from __future__ import annotations

import sqlite3
from datetime import timezone
from typing import Protocol, runtime_checkable

from .log import get_logger
from .model import Favicon

log = get_logger(__name__)


@runtime_checkable
class FaviconStore(Protocol):
    """Somewhere to record an icon before a bookmark row points at it."""

    def add_favicon(self, icon: Favicon, conn: sqlite3.Connection) -> int:
        """Store `icon` using the caller's write connection and return its id."""
        ...


class SQLiteFavicons:
    """Favicon rows in the same database as the bookmarks that reference them."""

    def add_favicon(self, icon: Favicon, conn: sqlite3.Connection) -> int:
        url = (icon.url or "").strip()
        if not url:
            raise ValueError("favicon URL cannot be empty")
        date = (icon.date if icon.date.tzinfo is not None else icon.date.replace(tzinfo=timezone.utc)).timestamp()
        row = conn.execute("SELECT id FROM favicons WHERE url = ? LIMIT 1", (url,)).fetchone()
        if row:
            icon_id = int(row["id"])
            conn.execute(
                "UPDATE favicons SET date = ?, type = ? WHERE id = ?",
                (date, int(icon.type), icon_id),
            )
            log.debug("Refreshed favicon %d (%s)", icon_id, url)
            return icon_id
        c = conn.execute(
            "INSERT INTO favicons (url, type, date) VALUES (?, ?, ?)",
            (url, int(icon.type), date),
        )
        icon_id = int(c.lastrowid)
        log.debug("Inserted favicon %d (%s)", icon_id, url)
        return icon_id
