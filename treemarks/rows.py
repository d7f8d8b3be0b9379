"""Turn `bookmarks` rows (optionally joined with `favicons`) into nodes."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from .model import BookmarkFolder, BookmarkItem, BookmarkNode, BookmarkNodeType, Favicon, IconType

UNTITLED_FOLDER = "Untitled"

_MISSING = object()


class InvalidBookmarkRow(ValueError):
    """A row that cannot describe a bookmark node. Never expected from a healthy database."""


def decode_row(row: Any, *, untitled_title: str = UNTITLED_FOLDER) -> BookmarkNode:
    return normalize_title(_decode_raw(row), untitled_title=untitled_title)


def normalize_title(node: BookmarkNode, *, untitled_title: str = UNTITLED_FOLDER) -> BookmarkNode:
    if node.title is not None:
        return node
    if isinstance(node, BookmarkItem):
        node.title = node.url
    elif isinstance(node, BookmarkFolder):
        node.title = untitled_title
    return node


def _decode_raw(row: Any) -> BookmarkNode:
    type_code = _column(row, "type")
    if not _is_int(type_code):
        raise InvalidBookmarkRow(f"invalid bookmark data: type={type_code!r}")
    try:
        node_type = BookmarkNodeType(type_code)
    except ValueError:
        raise InvalidBookmarkRow(f"unknown bookmark type code: {type_code}") from None

    row_id = _column(row, "id")
    guid = _column(row, "guid")
    if not _is_int(row_id):
        raise InvalidBookmarkRow(f"invalid bookmark id: {row_id!r}")
    if not isinstance(guid, str) or not guid:
        raise InvalidBookmarkRow(f"invalid bookmark guid for id {row_id}: {guid!r}")

    title = _column(row, "title")
    if title is _MISSING:
        title = None
    if title is not None and not isinstance(title, str):
        raise InvalidBookmarkRow(f"invalid title for {guid}: {title!r}")

    if node_type == BookmarkNodeType.BOOKMARK:
        url = _column(row, "url")
        if not isinstance(url, str):
            raise InvalidBookmarkRow(f"bookmark {guid} has no url")
        return BookmarkItem(guid=guid, title=title, id=int(row_id), url=url, favicon=_decode_favicon(row, guid))
    if node_type == BookmarkNodeType.FOLDER:
        return BookmarkFolder(guid=guid, title=title, id=int(row_id))
    if node_type == BookmarkNodeType.SEPARATOR:
        raise InvalidBookmarkRow(f"separators are not supported: {guid}")
    raise InvalidBookmarkRow(f"dynamic containers are not supported: {guid}")


def _decode_favicon(row: Any, guid: str) -> Optional[Favicon]:
    icon_url = _column(row, "iconURL")
    icon_date = _column(row, "iconDate")
    icon_type = _column(row, "iconType")
    values = (icon_url, icon_date, icon_type)
    # No join match, or a query run without the favicon join.
    if any(v is None or v is _MISSING for v in values):
        return None

    if not isinstance(icon_url, str):
        raise InvalidBookmarkRow(f"invalid favicon url for {guid}: {icon_url!r}")
    if isinstance(icon_date, bool) or not isinstance(icon_date, (int, float)):
        raise InvalidBookmarkRow(f"invalid favicon date for {guid}: {icon_date!r}")
    if not _is_int(icon_type):
        raise InvalidBookmarkRow(f"invalid favicon type for {guid}: {icon_type!r}")
    try:
        kind = IconType(icon_type)
    except ValueError:
        raise InvalidBookmarkRow(f"unknown favicon type code for {guid}: {icon_type}") from None
    try:
        date = datetime.fromtimestamp(float(icon_date), tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        raise InvalidBookmarkRow(f"favicon date out of range for {guid}: {icon_date!r}") from None
    return Favicon(url=icon_url, date=date, type=kind)


def _column(row: Any, name: str) -> Any:
    try:
        return row[name]
    except (IndexError, KeyError):
        return _MISSING


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)
