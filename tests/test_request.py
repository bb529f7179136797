"""Unit tests for HTTP request parsing."""

import pytest

from request import HTTPRequest, HTTPRequestParseError


def test_parse_get_strips_query_string() -> None:
    raw = (
        b"GET /app/main.js?v=3 HTTP/1.1\r\n"
        b"Host: localhost\r\n"
        b"User-Agent: pytest\r\n"
        b"\r\n"
    )

    request = HTTPRequest.from_bytes(raw)

    assert request.method == "GET"
    assert request.path == "/app/main.js"
    assert request.raw_target == "/app/main.js?v=3"
    assert request.http_version == "HTTP/1.1"
    assert request.headers["host"] == "localhost"


def test_parse_percent_decodes_path() -> None:
    raw = b"GET /my%20file.css HTTP/1.1\r\nHost: localhost\r\n\r\n"

    request = HTTPRequest.from_bytes(raw)

    assert request.path == "/my file.css"


def test_parse_absolute_form_target() -> None:
    raw = b"GET http://localhost:8080/index.html HTTP/1.1\r\nHost: localhost\r\n\r\n"

    request = HTTPRequest.from_bytes(raw)

    assert request.path == "/index.html"


def test_parse_lowercases_method() -> None:
    raw = b"get / HTTP/1.0\r\n\r\n"

    request = HTTPRequest.from_bytes(raw)

    assert request.method == "GET"
    assert request.path == "/"


def test_parse_invalid_request_line_raises_value_error() -> None:
    raw = b"BROKEN-LINE\r\nHost: localhost\r\n\r\n"

    with pytest.raises(ValueError, match="Invalid request line"):
        HTTPRequest.from_bytes(raw)


def test_parse_unknown_method_is_not_implemented() -> None:
    raw = b"BREW /pot HTTP/1.1\r\nHost: localhost\r\n\r\n"

    with pytest.raises(HTTPRequestParseError) as exc_info:
        HTTPRequest.from_bytes(raw)

    assert exc_info.value.status_code == 501


def test_parse_unsupported_version_returns_505() -> None:
    raw = b"GET / HTTP/2.0\r\nHost: localhost\r\n\r\n"

    with pytest.raises(HTTPRequestParseError) as exc_info:
        HTTPRequest.from_bytes(raw)

    assert exc_info.value.status_code == 505


def test_parse_http11_requires_host_header() -> None:
    raw = b"GET / HTTP/1.1\r\n\r\n"

    with pytest.raises(HTTPRequestParseError, match="Host header required"):
        HTTPRequest.from_bytes(raw)


def test_parse_malformed_header_line() -> None:
    raw = b"GET / HTTP/1.1\r\nHost localhost\r\n\r\n"

    with pytest.raises(HTTPRequestParseError, match="Malformed header line"):
        HTTPRequest.from_bytes(raw)
