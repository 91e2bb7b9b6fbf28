"""Integration tests for server start/stop and requests over real sockets."""

from __future__ import annotations

import re
import socket
import time
from collections.abc import Iterator
from concurrent.futures import Future
from pathlib import Path

import pytest

from event_hub import LifecycleEvent
from server import ServerNotRunningError, StaticServer
from server_config import ServerConfig, ServerConfigError


def _recv_http_response(sock: socket.socket) -> bytes:
    buffer = bytearray()
    while True:
        chunk = sock.recv(4096)
        if not chunk:
            break
        buffer.extend(chunk)
    return bytes(buffer)


def _request(server: StaticServer, raw: bytes) -> tuple[bytes, dict[bytes, bytes], bytes]:
    with socket.create_connection((server.host, server.port), timeout=3) as sock:
        sock.sendall(raw)
        response = _recv_http_response(sock)

    head, _, body = response.partition(b"\r\n\r\n")
    lines = head.split(b"\r\n")
    headers = {}
    for line in lines[1:]:
        key, value = line.split(b":", 1)
        headers[key.strip().lower()] = value.strip()
    return lines[0], headers, body


def _get(server: StaticServer, path: str, method: str = "GET") -> tuple[bytes, dict[bytes, bytes], bytes]:
    raw = f"{method} {path} HTTP/1.1\r\nHost: localhost\r\n\r\n".encode("ascii")
    return _request(server, raw)


@pytest.fixture()
def site_root(tmp_path: Path) -> Path:
    (tmp_path / "index.html").write_text("<h1>Home</h1>", encoding="utf-8")
    (tmp_path / "404.html").write_text("<h1>Missing</h1>", encoding="utf-8")
    (tmp_path / "data.json").write_text('{"ok": true}', encoding="utf-8")
    (tmp_path / "font.woff2").write_bytes(b"wOF2\x00\x01")
    return tmp_path


@pytest.fixture()
def running_server(site_root: Path) -> Iterator[StaticServer]:
    server = StaticServer(root_dir=str(site_root), port=0)
    server.start().result(timeout=3)
    try:
        yield server
    finally:
        server.stop().result(timeout=5)


def test_start_and_stop_emit_lifecycle_events(site_root: Path) -> None:
    server = StaticServer(ServerConfig(root_dir=str(site_root), port=0))
    started: list[LifecycleEvent] = []
    stopped: list[LifecycleEvent] = []
    server.on("start", started.append)
    server.on("stop", stopped.append)

    start_event = server.start().result(timeout=3)
    origin = server.origin
    stop_event = server.stop().result(timeout=5)

    assert re.fullmatch(r"http://127\.0\.0\.1:\d+", start_event.origin)
    assert start_event.origin == origin
    assert start_event.message == f"Server started on {origin}"
    assert stop_event.origin == origin
    assert stop_event.message == f"Server on {origin} stopped"
    assert started == [start_event]
    assert stopped == [stop_event]
    assert not server.is_running


def test_unsubscribed_listener_is_not_called(site_root: Path) -> None:
    server = StaticServer(root_dir=str(site_root), port=0)
    seen: list[LifecycleEvent] = []
    unsubscribe = server.on("start", seen.append)
    unsubscribe()

    server.start().result(timeout=3)
    server.stop().result(timeout=5)

    assert seen == []


def test_get_existing_file(running_server: StaticServer, site_root: Path) -> None:
    status, headers, body = _get(running_server, "/data.json")

    assert status == b"HTTP/1.1 200 OK"
    assert headers[b"content-type"] == b"application/json"
    assert headers[b"content-length"] == str(len(body)).encode("ascii")
    assert body == (site_root / "data.json").read_bytes()


def test_root_path_serves_index(running_server: StaticServer) -> None:
    status, headers, body = _get(running_server, "/")

    assert status == b"HTTP/1.1 200 OK"
    assert headers[b"content-type"] == b"text/html; charset=utf-8"
    assert body == b"<h1>Home</h1>"


def test_binary_file_is_served_byte_for_byte(running_server: StaticServer) -> None:
    status, headers, body = _get(running_server, "/font.woff2")

    assert status == b"HTTP/1.1 200 OK"
    assert headers[b"content-type"] == b"font/woff2"
    assert body == b"wOF2\x00\x01"


def test_missing_file_returns_default_not_found(running_server: StaticServer) -> None:
    status, headers, body = _get(running_server, "/missing.css")

    assert status == b"HTTP/1.1 404 Not Found"
    assert headers[b"content-type"] == b"text/plain"
    assert body == b"Page Not Found"


def test_missing_file_returns_custom_not_found_page(site_root: Path) -> None:
    server = StaticServer({"rootDir": str(site_root), "notFoundFile": "404.html", "port": 0})
    server.start().result(timeout=3)
    try:
        status, headers, body = _get(server, "/missing.css")
    finally:
        server.stop().result(timeout=5)

    assert status == b"HTTP/1.1 404 Not Found"
    assert headers[b"content-type"] == b"text/html; charset=utf-8"
    assert body == b"<h1>Missing</h1>"


def test_post_is_served_like_get(running_server: StaticServer) -> None:
    raw = (
        b"POST /data.json HTTP/1.1\r\n"
        b"Host: localhost\r\n"
        b"Content-Length: 3\r\n"
        b"\r\n"
        b"a=1"
    )

    status, _headers, body = _request(running_server, raw)

    assert status == b"HTTP/1.1 200 OK"
    assert body == b'{"ok": true}'


def test_head_keeps_headers_without_body(running_server: StaticServer) -> None:
    status, headers, body = _get(running_server, "/index.html", method="HEAD")

    assert status == b"HTTP/1.1 200 OK"
    assert headers[b"content-length"] == b"13"
    assert body == b""


def test_malformed_request_gets_bad_request(running_server: StaticServer) -> None:
    status, _headers, _body = _request(running_server, b"NONSENSE\r\n\r\n")

    assert status == b"HTTP/1.1 400 Bad Request"


def test_bind_failure_fails_start_future(site_root: Path) -> None:
    first = StaticServer(root_dir=str(site_root), port=0)
    first.start().result(timeout=3)
    try:
        second = StaticServer(root_dir=str(site_root), port=first.port)
        with pytest.raises(OSError):
            second.start().result(timeout=3)
    finally:
        first.stop().result(timeout=5)


def test_stop_before_start_fails(site_root: Path) -> None:
    server = StaticServer(root_dir=str(site_root))

    with pytest.raises(ServerNotRunningError):
        server.stop().result(timeout=3)


def test_construction_errors_are_raised_synchronously(site_root: Path) -> None:
    with pytest.raises(ServerConfigError):
        StaticServer(port=0)
    with pytest.raises(ServerConfigError):
        StaticServer(root_dir=str(site_root), protocol="gopher")


def test_server_exposes_configuration(site_root: Path) -> None:
    server = StaticServer(
        root_dir=str(site_root),
        port=4040,
        index_file="home.html",
        mime_types={"html": "application/xhtml+xml"},
    )

    assert server.origin == "http://127.0.0.1:4040"
    assert server.root_dir == str(site_root)
    assert server.index_file == "home.html"
    assert server.not_found_file is None
    assert server.mime_types.lookup("html") == "application/xhtml+xml"


def test_stop_right_after_bind_does_not_hang(site_root: Path) -> None:
    for _ in range(25):
        server = StaticServer(root_dir=str(site_root), port=0)
        start_future = server.start()
        deadline = time.time() + 3
        while server._server_socket is None and time.time() < deadline:
            time.sleep(0)

        stop_event = server.stop().result(timeout=3)

        assert start_future.result(timeout=3).origin == stop_event.origin
        assert not server.is_running


def test_stop_from_start_listener_completes(site_root: Path) -> None:
    server = StaticServer(root_dir=str(site_root), port=0)
    stop_futures: list[Future[LifecycleEvent]] = []
    server.on("start", lambda _event: stop_futures.append(server.stop()))

    server.start().result(timeout=3)
    stop_event = stop_futures[0].result(timeout=3)

    assert stop_event.message.endswith("stopped")
    assert not server.is_running
