from __future__ import annotations

import sqlite3
from typing import Any, Callable, Optional, Sequence, Union

from .config import Settings
from .cursor import Cursor
from .db import BrowserDB, execute_change, execute_query
from .favicons import FaviconStore, SQLiteFavicons
from .guid import generate_guid
from .log import get_logger
from .model import (
    BookmarkFolder,
    BookmarkItem,
    BookmarkNode,
    BookmarkNodeType,
    BookmarkRoots,
    BookmarksModel,
    FailureCallback,
    ModelCallback,
    ShareItem,
)
from .rows import UNTITLED_FOLDER, decode_row

log = get_logger(__name__)

DoneCallback = Callable[[bool], None]


class SQLiteBookmarks:
    """Bookmark tree reads and writes on top of a `BrowserDB`.

    Every public operation reports through exactly one of its `success` or
    `failure` callbacks. Database errors become `failure`; rows that cannot
    describe a bookmark raise `InvalidBookmarkRow` unless `skip_invalid_rows`
    is set.
    """

    def __init__(
        self,
        db: BrowserDB,
        favicons: Optional[FaviconStore] = None,
        *,
        include_icons: bool = True,
        skip_invalid_rows: bool = False,
        untitled_title: str = UNTITLED_FOLDER,
        share_parent_id: int = BookmarkRoots.MOBILE_ID,
        guid_factory: Callable[[], str] = generate_guid,
    ):
        self.db = db
        self.favicons: FaviconStore = favicons if favicons is not None else SQLiteFavicons()
        self.include_icons = include_icons
        self.skip_invalid_rows = skip_invalid_rows
        self.untitled_title = untitled_title
        self.share_parent_id = share_parent_id
        self.guid_factory = guid_factory

    @classmethod
    def from_settings(cls, settings: Settings) -> "SQLiteBookmarks":
        return cls(
            BrowserDB(settings.db_path, busy_timeout_ms=settings.busy_timeout_ms),
            include_icons=settings.include_icons,
            skip_invalid_rows=settings.skip_invalid_rows,
            untitled_title=settings.untitled_folder_title,
            share_parent_id=settings.share_parent_id,
        )

    # Tree queries

    def _factory(self, row: sqlite3.Row) -> BookmarkNode:
        return decode_row(row, untitled_title=self.untitled_title)

    def _children_where(self, where: str, args: Sequence[object]) -> Cursor[BookmarkNode]:
        inner = f"SELECT id, type, guid, url, title, faviconID FROM bookmarks WHERE {where}"
        if self.include_icons:
            sql = (
                "SELECT bookmarks.id AS id, bookmarks.type AS type, guid, bookmarks.url AS url, title, "
                "favicons.url AS iconURL, favicons.date AS iconDate, favicons.type AS iconType "
                f"FROM ({inner}) AS bookmarks "
                "LEFT OUTER JOIN favicons ON bookmarks.faviconID = favicons.id"
            )
        else:
            sql = inner
        try:
            with self.db.readable() as conn:
                return execute_query(conn, sql, args, self._factory, skip_invalid=self.skip_invalid_rows)
        except sqlite3.Error as e:
            log.warning("Could not read bookmarks from %s: %s", self.db.db_path, e)
            return Cursor.failure(str(e))

    def _root_children(self) -> Cursor[BookmarkNode]:
        return self._children_where("parent = ? AND id IS NOT ?", (BookmarkRoots.ROOT_ID, BookmarkRoots.ROOT_ID))

    def _folder_children(self, guid: str) -> Cursor[BookmarkNode]:
        return self._children_where(
            "parent IS NOT NULL AND parent = (SELECT id FROM bookmarks WHERE guid = ?)",
            (guid,),
        )

    # Models

    def model_for_root(self, success: ModelCallback, failure: FailureCallback) -> None:
        children = self._root_children()
        if not children.ok:
            failure(children.status_message)
            return
        folder = BookmarkFolder(guid=BookmarkRoots.ROOT_GUID, title="Root", id=BookmarkRoots.ROOT_ID, children=children)
        success(BookmarksModel(self, folder))

    def model_for_folder(
        self,
        folder: Union[BookmarkFolder, str],
        success: ModelCallback,
        failure: FailureCallback,
    ) -> None:
        if isinstance(folder, BookmarkFolder):
            guid, title, folder_id = folder.guid, folder.title or "", folder.id
        else:
            guid, title, folder_id = folder, "", None
        children = self._folder_children(guid)
        if not children.ok:
            failure(children.status_message)
            return
        success(BookmarksModel(self, BookmarkFolder(guid=guid, title=title, id=folder_id, children=children)))

    @property
    def null_model(self) -> BookmarksModel:
        children: Cursor[BookmarkNode] = Cursor.failure("Null model")
        return BookmarksModel(self, BookmarkFolder(guid="Null", title="Null", children=children))

    def is_bookmarked(self, url: str, success: DoneCallback, failure: FailureCallback) -> None:
        try:
            with self.db.readable() as conn:
                c = execute_query(
                    conn,
                    "SELECT id FROM bookmarks WHERE url = ? LIMIT 1",
                    (url,),
                    lambda row: int(row["id"]),
                )
        except sqlite3.Error as e:
            c = Cursor.failure(str(e))
        if c.ok:
            success(c.count > 0)
        else:
            failure(c.status_message)

    # Mutations

    def _run_change(self, sql: str, args: Sequence[object], success: DoneCallback, failure: FailureCallback) -> None:
        try:
            with self.db.writable() as conn:
                changed = execute_change(conn, sql, args)
        except sqlite3.Error as e:
            log.error("Bookmark change failed: %s", e)
            failure(e)
            return
        log.debug("%d bookmark row(s) affected.", changed)
        success(True)

    def remove_by_url(self, url: str, success: DoneCallback, failure: FailureCallback) -> None:
        log.debug("Removing bookmarks for %s.", url)
        self._run_change("DELETE FROM bookmarks WHERE url = ?", (url,), success, failure)

    def remove(self, node: BookmarkNode, success: DoneCallback, failure: FailureCallback) -> None:
        if isinstance(node, BookmarkItem):
            log.debug("Removing bookmark %s.", node.url)
        if node.id is not None:
            self._run_change("DELETE FROM bookmarks WHERE id = ?", (node.id,), success, failure)
        else:
            self._run_change("DELETE FROM bookmarks WHERE guid = ?", (node.guid,), success, failure)

    def share_item(
        self,
        item: ShareItem,
        success: Optional[DoneCallback] = None,
        failure: Optional[FailureCallback] = None,
    ) -> None:
        """Add `item` to the mobile bookmarks folder.

        The favicon row (if any) and the bookmark row are written in one
        transaction, so a failure in either leaves neither behind.
        """
        try:
            with self.db.writable() as conn:
                icon_id: Optional[int] = None
                if item.favicon is not None:
                    icon_id = self.favicons.add_favicon(item.favicon, conn)
                log.debug("Inserting bookmark %s with icon %s", item.url, icon_id)
                execute_change(
                    conn,
                    "INSERT INTO bookmarks (guid, type, url, title, parent, faviconID) VALUES (?, ?, ?, ?, ?, ?)",
                    (
                        self.guid_factory(),
                        int(BookmarkNodeType.BOOKMARK),
                        item.url,
                        item.title if item.title is not None else item.url,
                        self.share_parent_id,
                        icon_id,
                    ),
                )
        except (sqlite3.Error, ValueError) as e:
            log.error("Error inserting %s. Got %s.", item.url, e)
            _notify(failure, e)
            return
        _notify(success, True)


def _notify(callback: Optional[Callable[[Any], None]], value: Any) -> None:
    if callback is not None:
        callback(value)
