from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml


def _env_int(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None or v == "":
        return default
    try:
        return int(v)
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    v = os.getenv(name)
    if v is None or v == "":
        return default
    return v.strip().lower() in ("1", "true", "yes", "y", "on")


def _env_str(name: str, default: str) -> str:
    v = os.getenv(name)
    return default if v is None else v


@dataclass
class Settings:
    # Storage
    db_path: str = "browser.db"
    busy_timeout_ms: int = 5000

    # Tree reads
    include_icons: bool = True
    skip_invalid_rows: bool = False
    untitled_folder_title: str = "Untitled"

    # Writes
    share_parent_id: int = 1  # BookmarkRoots.MOBILE_ID

    # Logging / UX
    log_level: str = "INFO"
    no_color: bool = False

    @staticmethod
    def from_env() -> "Settings":
        s = Settings()
        s.db_path = _env_str("TREEMARKS_DB", s.db_path)
        s.busy_timeout_ms = _env_int("TREEMARKS_BUSY_TIMEOUT_MS", s.busy_timeout_ms)

        s.include_icons = _env_bool("TREEMARKS_INCLUDE_ICONS", s.include_icons)
        s.skip_invalid_rows = _env_bool("TREEMARKS_SKIP_INVALID_ROWS", s.skip_invalid_rows)
        s.untitled_folder_title = _env_str("TREEMARKS_UNTITLED_FOLDER_TITLE", s.untitled_folder_title)

        s.share_parent_id = _env_int("TREEMARKS_SHARE_PARENT_ID", s.share_parent_id)

        s.log_level = _env_str("TREEMARKS_LOG_LEVEL", s.log_level)
        s.no_color = _env_bool("TREEMARKS_NO_COLOR", s.no_color)
        return s

    @staticmethod
    def from_file(path: Path) -> "Settings":
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        s = Settings.from_env()
        for k, v in data.items():
            if hasattr(s, k):
                setattr(s, k, v)
        return s


def load_settings(config_path: Optional[str]) -> Settings:
    if config_path:
        return Settings.from_file(Path(config_path))
    return Settings.from_env()
