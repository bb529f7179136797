"""Path resolution and content-type helpers shared across server modules."""

import os
from pathlib import Path
from types import MappingProxyType

from config import DEFAULT_DOCUMENT

DEFAULT_CONTENT_TYPE = "text/plain"

MIME_TYPES = MappingProxyType(
    {
        ".html": "text/html",
        ".css": "text/css",
        ".js": "text/javascript",
        ".woff": "application/font-woff",
        ".ttf": "application/x-font-ttf",
        ".svg": "application/octet-stream",
    }
)


def get_content_type(file_path: str | Path) -> str:
    # Extension match is case-sensitive: ".HTML" is not ".html".
    _root, extension = os.path.splitext(str(file_path))
    return MIME_TYPES.get(extension, DEFAULT_CONTENT_TYPE)


def resolve_request_path(request_path: str, base_dir: str, mount_prefix: str = "") -> str | None:
    """Map a request path to a filesystem path under ``base_dir``.

    ``/`` becomes the default document before the mount prefix is stripped.
    A prefix ending in ``/`` keeps that separator on the remainder, any other
    prefix is removed whole. Returns None when the request path lies outside
    the mount prefix. No existence or containment check happens here.
    """
    if request_path == "/":
        request_path = "/" + DEFAULT_DOCUMENT

    if mount_prefix:
        if not request_path.startswith(mount_prefix):
            return None
        strip_length = len(mount_prefix)
        if mount_prefix.endswith("/"):
            strip_length -= 1
        remainder = request_path[strip_length:]
    else:
        remainder = request_path

    return base_dir.rstrip("/") + "/" + remainder.lstrip("/")


def is_within_directory(candidate: str | Path, base_dir: str | Path) -> bool:
    """Return True when ``candidate`` stays inside ``base_dir`` after ``..`` collapsing.

    The check is lexical so symlinks placed inside the served tree keep working.
    """
    root = os.path.normpath(os.path.abspath(base_dir))
    normalized = os.path.normpath(os.path.abspath(candidate))
    return os.path.commonpath([root, normalized]) == root
