"""Unit tests for HTTP request parsing."""

import pytest

from request import HTTPRequest, HTTPRequestParseError


def test_parse_get_strips_query_string_from_path() -> None:
    raw = (
        b"GET /search.html?q=hello&q=world HTTP/1.1\r\n"
        b"Host: localhost\r\n"
        b"User-Agent: pytest\r\n"
        b"\r\n"
    )

    request = HTTPRequest.from_bytes(raw)

    assert request.method == "GET"
    assert request.path == "/search.html"
    assert request.http_version == "HTTP/1.1"
    assert request.headers["host"] == "localhost"
    assert request.body == b""


def test_parse_post_with_body() -> None:
    raw = (
        b"POST /submit HTTP/1.1\r\n"
        b"Host: localhost\r\n"
        b"Content-Length: 9\r\n"
        b"\r\n"
        b"name=test"
    )

    request = HTTPRequest.from_bytes(raw)

    assert request.method == "POST"
    assert request.body == b"name=test"


def test_any_method_token_is_accepted() -> None:
    request = HTTPRequest.from_bytes(b"brew /pot HTTP/1.0\r\n\r\n")

    assert request.method == "BREW"
    assert request.path == "/pot"


def test_parse_invalid_request_line_raises_value_error() -> None:
    with pytest.raises(ValueError, match="Invalid request line"):
        HTTPRequest.from_bytes(b"BROKEN-LINE\r\nHost: localhost\r\n\r\n")


def test_parse_invalid_content_length_raises_value_error() -> None:
    raw = (
        b"POST /submit HTTP/1.1\r\n"
        b"Host: localhost\r\n"
        b"Content-Length: abc\r\n"
        b"\r\n"
        b"name=test"
    )

    with pytest.raises(ValueError, match="Invalid Content-Length"):
        HTTPRequest.from_bytes(raw)


def test_unsupported_version_carries_505() -> None:
    with pytest.raises(HTTPRequestParseError) as exc_info:
        HTTPRequest.from_bytes(b"GET / HTTP/2.0\r\n\r\n")

    assert exc_info.value.status_code == 505
