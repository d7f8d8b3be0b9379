import sys
from pathlib import Path

import pytest

# Allow `import treemarks` without installing the package.
ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from treemarks.bookmarks import SQLiteBookmarks  # noqa: E402
from treemarks.db import BrowserDB  # noqa: E402


@pytest.fixture
def browser_db(tmp_path: Path) -> BrowserDB:
    db = BrowserDB(tmp_path / "browser.db")
    db.create_tables()
    return db


@pytest.fixture
def bookmarks(browser_db: BrowserDB) -> SQLiteBookmarks:
    return SQLiteBookmarks(browser_db)


class Callbacks:
    """Records what a callback-style operation reported."""

    def __init__(self):
        self.successes = []
        self.failures = []

    def success(self, value):
        self.successes.append(value)

    def failure(self, value):
        self.failures.append(value)

    @property
    def value(self):
        assert self.failures == [], f"unexpected failure: {self.failures}"
        assert len(self.successes) == 1
        return self.successes[0]


@pytest.fixture
def cb() -> Callbacks:
    return Callbacks()


@pytest.fixture
def new_cb():
    return Callbacks
