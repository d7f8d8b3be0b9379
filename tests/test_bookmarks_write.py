import calendar
import sqlite3
from datetime import datetime, timezone
from pathlib import Path

import pytest

from treemarks.bookmarks import SQLiteBookmarks
from treemarks.db import BrowserDB
from treemarks.model import BookmarkItem, BookmarkNodeType, BookmarkRoots, Favicon, IconType, ShareItem


def _rows(db: BrowserDB, sql: str, args=()):
    conn = sqlite3.connect(db.db_path)
    conn.row_factory = sqlite3.Row
    try:
        return conn.execute(sql, args).fetchall()
    finally:
        conn.close()


def _bookmark_rows(db: BrowserDB, url: str):
    return _rows(db, "SELECT * FROM bookmarks WHERE url = ?", (url,))


def _icon(url: str = "https://example.com/favicon.ico") -> Favicon:
    return Favicon(url=url, date=datetime(2015, 5, 1, tzinfo=timezone.utc), type=IconType.ICON)


def test_share_item_without_favicon(browser_db, bookmarks, cb):
    bookmarks.share_item(ShareItem(url="https://example.com"), cb.success, cb.failure)
    assert cb.value is True

    rows = _bookmark_rows(browser_db, "https://example.com")
    assert len(rows) == 1
    row = rows[0]
    assert row["faviconID"] is None
    assert row["title"] == "https://example.com"
    assert row["type"] == int(BookmarkNodeType.BOOKMARK)
    assert row["parent"] == BookmarkRoots.MOBILE_ID
    assert len(row["guid"]) == 12


def test_share_item_with_favicon_links_store_id(browser_db, bookmarks, cb):
    bookmarks.share_item(
        ShareItem(url="https://example.com/a", title="A", favicon=_icon()),
        cb.success,
        cb.failure,
    )
    assert cb.value is True

    icons = _rows(browser_db, "SELECT id, url, type, date FROM favicons")
    assert len(icons) == 1
    rows = _bookmark_rows(browser_db, "https://example.com/a")
    assert len(rows) == 1
    assert rows[0]["faviconID"] == icons[0]["id"]
    assert rows[0]["title"] == "A"
    assert icons[0]["date"] == pytest.approx(datetime(2015, 5, 1, tzinfo=timezone.utc).timestamp())


def test_shared_favicon_row_is_reused(browser_db, bookmarks):
    bookmarks.share_item(ShareItem(url="https://example.com/a", favicon=_icon()))
    bookmarks.share_item(ShareItem(url="https://example.com/b", favicon=_icon()))
    icons = _rows(browser_db, "SELECT id FROM favicons")
    assert len(icons) == 1
    a = _bookmark_rows(browser_db, "https://example.com/a")[0]
    b = _bookmark_rows(browser_db, "https://example.com/b")[0]
    assert a["faviconID"] == b["faviconID"] == icons[0]["id"]


def test_shared_item_reads_back_with_favicon(bookmarks, cb):
    bookmarks.share_item(ShareItem(url="https://example.com/i", favicon=_icon()))
    bookmarks.model_for_folder(BookmarkRoots.MOBILE_GUID, cb.success, cb.failure)
    (item,) = list(cb.value.root)
    assert isinstance(item, BookmarkItem)
    assert item.favicon == _icon()


def test_shared_item_shows_up_under_mobile_folder(bookmarks, new_cb):
    bookmarks.share_item(ShareItem(url="https://example.com", title=None))

    root = new_cb()
    bookmarks.model_for_root(root.success, root.failure)
    mobile = next(n for n in root.value.root if n.guid == BookmarkRoots.MOBILE_GUID)

    folder = new_cb()
    root.value.select_folder(mobile, folder.success, folder.failure)
    (item,) = list(folder.value.root)
    assert isinstance(item, BookmarkItem)
    assert item.title == "https://example.com"


def test_shared_item_at_root_level(tmp_path: Path, cb):
    db = BrowserDB(tmp_path / "bare.db")
    conn = sqlite3.connect(db.db_path)
    try:
        conn.executescript(
            """
            CREATE TABLE favicons (id INTEGER PRIMARY KEY, url TEXT UNIQUE, width INTEGER,
                                   height INTEGER, type INTEGER, date REAL);
            CREATE TABLE bookmarks (id INTEGER PRIMARY KEY, guid TEXT UNIQUE, type INTEGER,
                                    url TEXT, parent INTEGER, faviconID INTEGER, title TEXT);
            INSERT INTO bookmarks(id, guid, type, parent, title) VALUES (0, 'root________', 2, 0, '');
            """
        )
    finally:
        conn.close()
    at_root = SQLiteBookmarks(db, share_parent_id=BookmarkRoots.ROOT_ID)
    at_root.share_item(ShareItem(url="https://example.com", title=None))

    at_root.model_for_root(cb.success, cb.failure)
    nodes = list(cb.value.root)
    assert len(nodes) == 1
    assert isinstance(nodes[0], BookmarkItem)
    assert nodes[0].title == "https://example.com"


class _BrokenFavicons:
    def add_favicon(self, icon, conn):
        raise sqlite3.OperationalError("favicon store unavailable")


def test_favicon_failure_inserts_nothing(browser_db, cb):
    broken = SQLiteBookmarks(browser_db, favicons=_BrokenFavicons())
    broken.share_item(ShareItem(url="https://example.com/x", favicon=_icon()), cb.success, cb.failure)
    assert cb.successes == []
    assert len(cb.failures) == 1
    assert _bookmark_rows(browser_db, "https://example.com/x") == []


def test_bookmark_insert_failure_rolls_back_favicon(browser_db, cb):
    duplicate_guid = SQLiteBookmarks(browser_db, guid_factory=lambda: BookmarkRoots.ROOT_GUID)
    duplicate_guid.share_item(ShareItem(url="https://example.com/y", favicon=_icon()), cb.success, cb.failure)
    assert cb.successes == []
    assert isinstance(cb.failures[0], sqlite3.IntegrityError)
    assert _rows(browser_db, "SELECT id FROM favicons") == []
    assert _bookmark_rows(browser_db, "https://example.com/y") == []


def test_empty_favicon_url_is_rejected(browser_db, bookmarks, cb):
    bookmarks.share_item(ShareItem(url="https://example.com/z", favicon=_icon(url="  ")), cb.success, cb.failure)
    assert isinstance(cb.failures[0], ValueError)
    assert _bookmark_rows(browser_db, "https://example.com/z") == []


def test_share_item_callbacks_are_optional(browser_db, bookmarks):
    bookmarks.share_item(ShareItem(url="https://example.com/quiet"))
    assert len(_bookmark_rows(browser_db, "https://example.com/quiet")) == 1


def test_remove_by_url_removes_every_match(browser_db, bookmarks, new_cb):
    bookmarks.share_item(ShareItem(url="https://dup.com"))
    bookmarks.share_item(ShareItem(url="https://dup.com", title="again"))
    bookmarks.share_item(ShareItem(url="https://keep.com"))
    assert len(_bookmark_rows(browser_db, "https://dup.com")) == 2

    done = new_cb()
    bookmarks.remove_by_url("https://dup.com", done.success, done.failure)
    assert done.value is True
    assert _bookmark_rows(browser_db, "https://dup.com") == []
    assert len(_bookmark_rows(browser_db, "https://keep.com")) == 1


def test_remove_by_id_then_not_bookmarked(bookmarks, new_cb):
    bookmarks.share_item(ShareItem(url="https://gone.example/"))
    listing = new_cb()
    bookmarks.model_for_folder(BookmarkRoots.MOBILE_GUID, listing.success, listing.failure)
    (item,) = list(listing.value.root)
    assert item.id is not None

    removed = new_cb()
    bookmarks.remove(item, removed.success, removed.failure)
    assert removed.value is True

    check = new_cb()
    bookmarks.is_bookmarked("https://gone.example/", check.success, check.failure)
    assert check.value is False


def test_remove_by_guid_when_id_is_unknown(browser_db, bookmarks, new_cb):
    bookmarks.share_item(ShareItem(url="https://guid.example/"))
    guid = _bookmark_rows(browser_db, "https://guid.example/")[0]["guid"]

    removed = new_cb()
    bookmarks.remove(BookmarkItem(guid=guid, url="https://guid.example/"), removed.success, removed.failure)
    assert removed.value is True
    assert _bookmark_rows(browser_db, "https://guid.example/") == []


def test_remove_missing_node_still_succeeds(bookmarks, new_cb):
    by_id = new_cb()
    bookmarks.remove(BookmarkItem(guid="nope", id=424242), by_id.success, by_id.failure)
    assert by_id.value is True

    by_guid = new_cb()
    bookmarks.remove(BookmarkItem(guid="nope"), by_guid.success, by_guid.failure)
    assert by_guid.value is True


def test_write_to_missing_database_reports_failure(tmp_path: Path, new_cb):
    broken = SQLiteBookmarks(BrowserDB(tmp_path / "missing.db"))

    removed = new_cb()
    broken.remove_by_url("https://example.com/", removed.success, removed.failure)
    assert removed.successes == []
    assert isinstance(removed.failures[0], sqlite3.Error)

    shared = new_cb()
    broken.share_item(ShareItem(url="https://example.com/"), shared.success, shared.failure)
    assert shared.successes == []
    assert len(shared.failures) == 1


def test_naive_favicon_date_is_stored_and_read_back_as_utc(browser_db, bookmarks, cb):
    icon = Favicon(url="https://example.com/naive.ico", date=datetime(2015, 5, 1, 12, 0), type=IconType.GUESS)
    assert icon.date == datetime(2015, 5, 1, 12, 0, tzinfo=timezone.utc)

    bookmarks.share_item(ShareItem(url="https://example.com/naive", favicon=icon))
    stored = _rows(browser_db, "SELECT date FROM favicons WHERE url = ?", ("https://example.com/naive.ico",))
    assert stored[0]["date"] == pytest.approx(calendar.timegm((2015, 5, 1, 12, 0, 0)))

    bookmarks.model_for_folder(BookmarkRoots.MOBILE_GUID, cb.success, cb.failure)
    (item,) = list(cb.value.root)
    assert item.favicon == icon
