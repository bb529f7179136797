"""Unit tests for HTTP response serialization."""

from response import HTTPResponse


def test_response_serialization_sets_length_and_default_content_type() -> None:
    response = HTTPResponse(status_code=404, body="404 - Not found")

    raw = response.to_bytes()

    assert raw.startswith(b"HTTP/1.1 404 Not Found\r\n")
    assert b"Content-Type: text/plain; charset=utf-8\r\n" in raw
    assert b"Content-Length: 15\r\n" in raw
    assert raw.endswith(b"\r\n\r\n404 - Not found")


def test_response_serialization_preserves_custom_content_type() -> None:
    response = HTTPResponse(
        status_code=200,
        headers={"Content-Type": "text/javascript"},
        body=b"console.log(1);",
    )

    raw = response.to_bytes()

    assert raw.startswith(b"HTTP/1.1 200 OK\r\n")
    assert b"Content-Type: text/javascript\r\n" in raw
    assert b"Content-Length: 15\r\n" in raw


def test_without_body_keeps_headers_and_length() -> None:
    response = HTTPResponse(
        status_code=200,
        headers={"Content-Type": "text/css"},
        body=b"body{}",
    )

    head_only = response.without_body()
    raw = head_only.to_bytes()

    assert head_only.body == b""
    assert b"Content-Type: text/css\r\n" in raw
    assert b"Content-Length: 6\r\n" in raw
    assert raw.endswith(b"\r\n\r\n")
