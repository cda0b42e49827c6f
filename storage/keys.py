"""
Attachment key layout.

Keys look like ``<namespace>/<unix millis>/<filename>`` where the
namespace is ``user-<account id>`` or ``list-<list id>``.  Downloads are
only served when the key sits under the caller's own namespace.
"""

from __future__ import annotations

import re
import time
from typing import Optional

_UNSAFE = re.compile(r"[^A-Za-z0-9._ -]+")
_MAX_FILENAME = 200


def user_namespace(account_id: int) -> str:
    return f"user-{account_id}"


def list_namespace(list_id: str) -> str:
    return f"list-{list_id}"


def sanitize_filename(filename: Optional[str]) -> str:
    """Reduce an uploaded filename to a safe basename."""
    name = (filename or "").replace("\\", "/").rsplit("/", 1)[-1]
    name = _UNSAFE.sub("_", name).strip(" .")
    return name[:_MAX_FILENAME] or "file"


def make_key(namespace: str, filename: Optional[str], now_ms: Optional[int] = None) -> str:
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"{namespace}/{stamp}/{sanitize_filename(filename)}"


def belongs_to(key: str, namespace: str) -> bool:
    parts = key.split("/")
    return len(parts) == 3 and parts[0] == namespace and parts[1].isdigit() and bool(parts[2])


def parse_filename(key: str) -> str:
    """Recover the filename from a key; opaque keys are returned as-is."""
    parts = key.split("/", 2)
    return parts[2] if len(parts) == 3 and parts[2] else key
