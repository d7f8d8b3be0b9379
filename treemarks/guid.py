from __future__ import annotations

import base64
import os


def generate_guid() -> str:
    # Same shape as Firefox bookmark GUIDs: 12 URL-safe characters.
    raw = os.urandom(9)
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")
