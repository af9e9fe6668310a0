"""
Path helpers shared by the dashboard registry and the legacy redirect map.

Matching is segment-aware and case-sensitive: "/clinic" owns "/clinic" and
"/clinic/patients", never "/clinical".
"""

from __future__ import annotations

import re
from typing import Iterable, TypeVar

T = TypeVar("T")

_SLASH_RUN = re.compile(r"/{2,}")


def normalize_path(path: str) -> str:
    """Drop query/fragment, collapse slashes, strip the trailing slash."""
    path = path.split("?", 1)[0].split("#", 1)[0]
    path = _SLASH_RUN.sub("/", path)
    if not path.startswith("/"):
        path = "/" + path
    if len(path) > 1:
        path = path.rstrip("/") or "/"
    return path


def split_target(target: str) -> tuple[str, str]:
    """Split a request target into (path, query). The path is NOT normalised."""
    target = target.split("#", 1)[0]
    path, _, query = target.partition("?")
    return path or "/", query


def is_under(path: str, prefix: str) -> bool:
    """True if normalised *path* equals *prefix* or lies beneath it."""
    if prefix == "/":
        return True
    return path == prefix or path.startswith(prefix + "/")


def longest_prefix_match(path: str, entries: Iterable[tuple[str, T]]) -> tuple[str, T] | None:
    """Return the (prefix, value) whose prefix owns *path* with the most characters."""
    path = normalize_path(path)
    best: tuple[str, T] | None = None
    for prefix, value in entries:
        if is_under(path, prefix) and (best is None or len(prefix) > len(best[0])):
            best = (prefix, value)
    return best


def is_safe_next(value: object) -> bool:
    """Only same-origin relative paths: one leading slash, never two."""
    if not isinstance(value, str) or not value:
        return False
    if not value.startswith("/") or value.startswith("//"):
        return False
    # Browsers treat a backslash like a slash, so "/\\evil.com" is protocol-relative too.
    return not value.startswith("/\\")


def safe_next(value: object, default: str) -> str:
    return value if is_safe_next(value) else default
