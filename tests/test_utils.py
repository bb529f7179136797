"""Unit tests for request path resolution and content types."""

import pytest

from utils import get_content_type, is_within_directory, resolve_request_path


def test_prefix_with_trailing_separator_keeps_leading_slash() -> None:
    assert resolve_request_path("/app/x.css", "/srv", "/app/") == "/srv/x.css"


def test_prefix_without_trailing_separator_strips_full_length() -> None:
    assert resolve_request_path("/appx.css", "/srv", "/app") == "/srv/x.css"


def test_prefix_without_trailing_separator_nested_path() -> None:
    assert resolve_request_path("/app/js/main.js", "/srv", "/app") == "/srv/js/main.js"


def test_root_maps_to_default_document() -> None:
    assert resolve_request_path("/", "/srv") == "/srv/index.html"
    assert resolve_request_path("/", "/srv") == resolve_request_path("/index.html", "/srv")


def test_root_is_rewritten_before_prefix_is_stripped() -> None:
    assert resolve_request_path("/", "/srv", "/app/") is None
    assert resolve_request_path("/", "/srv", "/") == "/srv/index.html"


def test_path_outside_prefix_does_not_resolve() -> None:
    assert resolve_request_path("/other/x.css", "/srv", "/app/") is None


def test_trailing_separator_on_base_dir_is_not_doubled() -> None:
    assert resolve_request_path("/x.css", "/srv/", "") == "/srv/x.css"


def test_dot_dot_segments_are_left_in_place() -> None:
    assert resolve_request_path("/../etc/passwd", "/srv") == "/srv/../etc/passwd"


@pytest.mark.parametrize(
    ("file_name", "expected"),
    [
        ("index.html", "text/html"),
        ("site.css", "text/css"),
        ("bundle.js", "text/javascript"),
        ("font.woff", "application/font-woff"),
        ("font.ttf", "application/x-font-ttf"),
        ("logo.svg", "application/octet-stream"),
        ("data.json", "text/plain"),
        ("README", "text/plain"),
        ("INDEX.HTML", "text/plain"),
    ],
)
def test_get_content_type(file_name: str, expected: str) -> None:
    assert get_content_type(f"/srv/{file_name}") == expected


def test_is_within_directory_rejects_escape() -> None:
    assert is_within_directory("/srv/a/b.css", "/srv")
    assert is_within_directory("/srv/a/../b.css", "/srv")
    assert not is_within_directory("/srv/../etc/passwd", "/srv")
    assert not is_within_directory("/srv-other/x.css", "/srv")
