from __future__ import annotations

import argparse
from datetime import datetime, timezone
from typing import List

from . import __version__
from .bookmarks import SQLiteBookmarks
from .config import load_settings
from .log import LogConfig, get_logger, setup_logging
from .model import BookmarkFolder, BookmarkItem, BookmarksModel, Favicon, IconType, ShareItem

log = get_logger(__name__)


def main(argv: List[str] | None = None) -> int:
    p = argparse.ArgumentParser(
        prog="treemarks",
        description="Browse and edit a SQLite bookmark tree.",
    )
    p.add_argument("-V", "--version", action="version", version=f"treemarks {__version__}")
    p.add_argument("--config", default=None, help="YAML config file (optional). Env vars override defaults.")
    p.add_argument("--db", default=None, help="Bookmark database path (overrides env/config).")
    p.add_argument("--log-level", default=None, help="DEBUG/INFO/WARN/ERROR (overrides env/config).")
    p.add_argument("--no-color", action="store_true", help="Disable colored logging.")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("init", help="Create the bookmark tables and root folders.")

    ls = sub.add_parser("ls", help="List the children of the root or of a folder.")
    ls.add_argument("guid", nargs="?", default=None, help="Folder GUID (default: root).")

    check = sub.add_parser("check", help="Exit 0 when the URL is bookmarked, 1 otherwise.")
    check.add_argument("url")

    add = sub.add_parser("add", help="Add a bookmark to the mobile bookmarks folder.")
    add.add_argument("url")
    add.add_argument("--title", default=None)
    add.add_argument("--icon-url", default=None)
    add.add_argument("--icon-type", type=int, default=int(IconType.ICON), help="Icon type code (default: 0).")

    rm = sub.add_parser("rm", help="Remove bookmarks.")
    target = rm.add_mutually_exclusive_group(required=True)
    target.add_argument("--url", default=None, help="Remove every bookmark with this exact URL.")
    target.add_argument("--guid", default=None)
    target.add_argument("--id", type=int, default=None)

    args = p.parse_args(argv)
    cfg = load_settings(args.config)
    if args.db:
        cfg.db_path = args.db
    if args.log_level:
        cfg.log_level = args.log_level
    if args.no_color:
        cfg.no_color = True
    setup_logging(LogConfig.from_settings(cfg))

    bookmarks = SQLiteBookmarks.from_settings(cfg)
    if args.cmd == "init":
        bookmarks.db.create_tables()
        log.info("Initialized bookmark database: %s", cfg.db_path)
        return 0
    if args.cmd == "ls":
        return _cmd_ls(bookmarks, args.guid)
    if args.cmd == "check":
        return _cmd_check(bookmarks, args.url)
    if args.cmd == "add":
        return _cmd_add(bookmarks, args)
    if args.cmd == "rm":
        return _cmd_rm(bookmarks, args)
    return 2


def _cmd_ls(bookmarks: SQLiteBookmarks, guid: str | None) -> int:
    models: List[BookmarksModel] = []
    errors: List[object] = []
    if guid:
        bookmarks.model_for_folder(guid, models.append, errors.append)
    else:
        bookmarks.model_for_root(models.append, errors.append)
    if errors:
        log.error("Could not read bookmarks: %s", errors[0])
        return 2
    for node in models[0].root:
        print(_format_node(node))
    return 0


def _cmd_check(bookmarks: SQLiteBookmarks, url: str) -> int:
    found: List[bool] = []
    errors: List[object] = []
    bookmarks.is_bookmarked(url, found.append, errors.append)
    if errors:
        log.error("Could not query bookmarks: %s", errors[0])
        return 2
    print("yes" if found[0] else "no")
    return 0 if found[0] else 1


def _cmd_add(bookmarks: SQLiteBookmarks, args) -> int:
    favicon = None
    if args.icon_url:
        try:
            icon_type = IconType(args.icon_type)
        except ValueError:
            log.error("Unknown icon type: %s", args.icon_type)
            return 2
        favicon = Favicon(url=args.icon_url, date=datetime.now(timezone.utc), type=icon_type)
    errors: List[object] = []
    bookmarks.share_item(ShareItem(url=args.url, title=args.title, favicon=favicon), failure=errors.append)
    if errors:
        return 2
    log.info("Bookmarked %s", args.url)
    return 0


def _cmd_rm(bookmarks: SQLiteBookmarks, args) -> int:
    errors: List[object] = []
    if args.url:
        bookmarks.remove_by_url(args.url, lambda _ok: None, errors.append)
    else:
        node = BookmarkItem(guid=args.guid or "", id=args.id)
        bookmarks.remove(node, lambda _ok: None, errors.append)
    if errors:
        return 2
    return 0


def _format_node(node) -> str:
    if isinstance(node, BookmarkFolder):
        return f"[{node.guid}] {node.title}/"
    icon = " *" if node.favicon is not None else ""
    return f"[{node.guid}] {node.title} <{node.url}>{icon}"
