from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import IntEnum
from typing import TYPE_CHECKING, Any, Callable, Iterator, Optional, Union

from .cursor import Cursor

if TYPE_CHECKING:
    from .bookmarks import SQLiteBookmarks


class BookmarkNodeType(IntEnum):
    BOOKMARK = 1
    FOLDER = 2
    SEPARATOR = 3
    DYNAMIC_CONTAINER = 4


class IconType(IntEnum):
    ICON = 0
    APPLE_ICON = 1
    APPLE_ICON_PRECOMPOSED = 2
    GUESS = 3
    LOCAL = 4
    NONE_FOUND = 5


class BookmarkRoots:
    ROOT_ID = 0
    MOBILE_ID = 1
    MENU_ID = 2
    TOOLBAR_ID = 3
    UNFILED_ID = 4

    ROOT_GUID = "root________"
    MOBILE_GUID = "mobile______"
    MENU_GUID = "menu________"
    TOOLBAR_GUID = "toolbar_____"
    UNFILED_GUID = "unfiled_____"


@dataclass
class Favicon:
    url: str
    date: datetime
    type: IconType = IconType.ICON

    def __post_init__(self) -> None:
        # Stored dates are seconds since the epoch; naive values are taken as UTC.
        if self.date.tzinfo is None:
            self.date = self.date.replace(tzinfo=timezone.utc)


@dataclass
class BookmarkNode:
    guid: str
    title: Optional[str] = None
    id: Optional[int] = None


@dataclass
class BookmarkItem(BookmarkNode):
    url: str = ""
    favicon: Optional[Favicon] = None


@dataclass
class BookmarkFolder(BookmarkNode):
    children: Cursor["BookmarkNode"] = field(default_factory=Cursor.empty, compare=False, repr=False)

    @property
    def count(self) -> int:
        return self.children.count

    def __getitem__(self, index: int) -> BookmarkNode:
        return self.children[index]

    def __iter__(self) -> Iterator[BookmarkNode]:
        return iter(self.children)


@dataclass
class ShareItem:
    url: str
    title: Optional[str] = None
    favicon: Optional[Favicon] = None


ModelCallback = Callable[["BookmarksModel"], None]
FailureCallback = Callable[[Any], None]


class BookmarksModel:
    """A folder snapshot plus the factory used to navigate away from it."""

    def __init__(self, factory: "SQLiteBookmarks", root: BookmarkFolder):
        self.factory = factory
        self.root = root

    @property
    def current(self) -> BookmarkFolder:
        return self.root

    def select_folder(
        self,
        folder: Union[BookmarkFolder, str],
        success: ModelCallback,
        failure: FailureCallback,
    ) -> None:
        self.factory.model_for_folder(folder, success, failure)

    def select_root(self, success: ModelCallback, failure: FailureCallback) -> None:
        self.factory.model_for_root(success, failure)

    def reload(self, success: ModelCallback, failure: FailureCallback) -> None:
        if self.root.guid == BookmarkRoots.ROOT_GUID:
            self.factory.model_for_root(success, failure)
        else:
            self.factory.model_for_folder(self.root, success, failure)
