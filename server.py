"""Static file server entry point and connection lifecycle orchestration."""

from __future__ import annotations

import argparse
import json
import logging
import socket
import ssl
import threading
import time
from collections.abc import Callable, Mapping
from concurrent.futures import Future
from typing import Any

from config import (
    ACCEPT_POLL_SECS,
    HOST,
    LISTEN_BACKLOG,
    LOG_FORMAT,
    PORT,
    SHUTDOWN_TIMEOUT_SECS,
    SOCKET_TIMEOUT_SECS,
)
from content_loader import ContentLoader
from event_hub import EVENT_START, EVENT_STOP, EventHub, LifecycleEvent, Listener
from handlers.static_handler import StaticRequestHandler
from mime_types import MimeRegistry
from request import HTTPRequest, HTTPRequestParseError
from response import REASON_PHRASES, HTTPResponse
from server_config import PROTOCOL_HTTP, PROTOCOL_HTTPS, ServerConfig, ServerConfigError
from socket_handler import (
    HeaderTooLargeError,
    HTTPReadError,
    MalformedRequestError,
    PayloadTooLargeError,
    SocketTimeoutError,
    read_http_request,
    write_http_response_message,
)
from thread_pool import ThreadPool

logger = logging.getLogger(__name__)

_READ_ERROR_STATUS: dict[type[HTTPReadError], int] = {
    MalformedRequestError: 400,
    SocketTimeoutError: 408,
    PayloadTooLargeError: 413,
    HeaderTooLargeError: 431,
}


class ServerNotRunningError(OSError):
    """Raised by stop() when the server has no open listener."""


def _plain_response(status_code: int) -> HTTPResponse:
    return HTTPResponse(
        status_code=status_code,
        headers={"Content-Type": "text/plain; charset=utf-8"},
        body=REASON_PHRASES.get(status_code, "Error"),
    )


class StaticServer:
    """Serve a directory over HTTP or HTTPS.

    ``start()`` and ``stop()`` return futures that resolve to a
    :class:`LifecycleEvent`; the same event is published to listeners
    registered with :meth:`on`.
    """

    PROTOCOL_HTTP = PROTOCOL_HTTP
    PROTOCOL_HTTPS = PROTOCOL_HTTPS

    def __init__(
        self,
        config: ServerConfig | Mapping[str, Any] | None = None,
        **options: Any,
    ) -> None:
        if isinstance(config, ServerConfig):
            if options:
                raise ServerConfigError("Pass either a ServerConfig or keyword options")
            self.config = config
        else:
            self.config = ServerConfig.from_mapping({**(config or {}), **options})

        self.loader = ContentLoader(self.config)
        self.handler = StaticRequestHandler(self.config, self.loader)
        self.events = EventHub()

        self._server_socket: socket.socket | None = None
        self._ssl_context: ssl.SSLContext | None = None
        self._pool: ThreadPool | None = None
        self._accept_thread: threading.Thread | None = None
        self._bound_port: int | None = None
        self._running = False

    @property
    def protocol(self) -> str:
        return self.config.protocol

    @property
    def host(self) -> str:
        return self.config.host

    @property
    def port(self) -> int:
        """Configured port, or the bound one once listening (useful with port 0)."""
        if self._bound_port is not None:
            return self._bound_port
        return self.config.port

    @property
    def origin(self) -> str:
        return f"{self.protocol}://{self.host}:{self.port}"

    @property
    def root_dir(self) -> str:
        return self.config.root_dir

    @property
    def index_file(self) -> str:
        return self.config.index_file

    @property
    def not_found_file(self) -> str | None:
        return self.config.not_found_file

    @property
    def mime_types(self) -> MimeRegistry:
        return self.config.mime_types

    @property
    def is_running(self) -> bool:
        return self._running

    def on(self, event_type: str, listener: Listener) -> Callable[[], None]:
        """Subscribe to "start" or "stop"; returns an unsubscribe callable."""
        return self.events.subscribe(event_type, listener)

    def off(self, event_type: str, listener: Listener) -> None:
        self.events.unsubscribe(event_type, listener)

    def start(self) -> Future[LifecycleEvent]:
        """Bind the listener in the background and serve until stop()."""
        future: Future[LifecycleEvent] = Future()
        future.set_running_or_notify_cancel()
        self._accept_thread = threading.Thread(
            target=self._serve,
            args=(future,),
            name="static-server-accept",
            daemon=True,
        )
        self._accept_thread.start()
        return future

    def stop(self) -> Future[LifecycleEvent]:
        """Close the listener in the background and wait for workers to finish."""
        future: Future[LifecycleEvent] = Future()
        future.set_running_or_notify_cancel()
        if self._server_socket is None:
            future.set_exception(ServerNotRunningError(f"Server on {self.origin} is not running"))
            return future

        threading.Thread(
            target=self._shutdown,
            args=(future,),
            name="static-server-stop",
            daemon=True,
        ).start()
        return future

    def _open_listener(self) -> socket.socket:
        if self.protocol == PROTOCOL_HTTPS:
            self._ssl_context = self._build_ssl_context()

        server_socket = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            server_socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            server_socket.bind((self.host, self.config.port))
            server_socket.listen(LISTEN_BACKLOG)
            server_socket.settimeout(ACCEPT_POLL_SECS)
        except OSError:
            server_socket.close()
            raise
        return server_socket

    def _build_ssl_context(self) -> ssl.SSLContext:
        if not self.config.tls_cert_file:
            raise ServerConfigError("https requires tls_cert_file")
        context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
        context.load_cert_chain(
            certfile=self.config.tls_cert_file,
            keyfile=self.config.tls_key_file,
        )
        return context

    def _serve(self, future: Future[LifecycleEvent]) -> None:
        try:
            server_socket = self._open_listener()
        except (OSError, ValueError) as exc:
            logger.error("Server failed to start on %s: %s", self.origin, exc)
            future.set_exception(exc)
            return

        self._running = True
        self._bound_port = server_socket.getsockname()[1]
        pool = ThreadPool(
            worker_count=self.config.worker_count,
            queue_size=self.config.request_queue_size,
            handler=self._handle_client,
            reject=self._reject_client,
        )
        pool.start()
        self._pool = pool
        # Must follow "_running = True": stop() refuses to run until the listener is set.
        self._server_socket = server_socket

        event = LifecycleEvent(origin=self.origin, message=f"Server started on {self.origin}")
        logger.info(event.message)
        self.events.publish(EVENT_START, event)
        future.set_result(event)

        try:
            while self._running:
                try:
                    client_socket, address = server_socket.accept()
                except socket.timeout:
                    continue
                except OSError:
                    break

                if not pool.submit(client_socket, address):
                    self._reject_client(client_socket, address)
        finally:
            self._running = False
            pool.shutdown(timeout=SHUTDOWN_TIMEOUT_SECS)
            self._pool = None

    def _shutdown(self, future: Future[LifecycleEvent]) -> None:
        origin = self.origin
        self._running = False
        try:
            # Closing the listener makes a pending accept() fail and ends the loop.
            if self._server_socket is not None:
                self._server_socket.close()
            if self._accept_thread is not None:
                self._accept_thread.join(timeout=SHUTDOWN_TIMEOUT_SECS + ACCEPT_POLL_SECS)
                if self._accept_thread.is_alive():
                    logger.warning("Accept loop on %s did not exit in time", origin)
        except OSError as exc:
            logger.error("Server on %s failed to stop: %s", origin, exc)
            future.set_exception(exc)
            return
        finally:
            self._server_socket = None
            self._accept_thread = None
            self._bound_port = None

        event = LifecycleEvent(origin=origin, message=f"Server on {origin} stopped")
        logger.info(event.message)
        self.events.publish(EVENT_STOP, event)
        future.set_result(event)

    def _reject_client(self, client_socket: socket.socket, address: tuple[str, int]) -> None:
        with client_socket:
            try:
                write_http_response_message(client_socket, _plain_response(503))
            except OSError:
                pass
        logger.warning("Rejected connection from %s with 503", address[0])

    def _handle_client(self, client_socket: socket.socket, address: tuple[str, int]) -> None:
        connection = client_socket
        try:
            client_socket.settimeout(SOCKET_TIMEOUT_SECS)
            if self._ssl_context is not None:
                connection = self._ssl_context.wrap_socket(client_socket, server_side=True)
            self._serve_connection(connection, address)
        except OSError as exc:
            logger.debug("Connection from %s dropped: %s", address[0], exc)
        except Exception:
            logger.exception("Unhandled error while serving %s", address[0])
        finally:
            connection.close()
            if connection is not client_socket:
                client_socket.close()

    def _serve_connection(self, connection: socket.socket, address: tuple[str, int]) -> None:
        started_at = time.perf_counter()
        try:
            raw_request = read_http_request(connection)
        except HTTPReadError as exc:
            response = _plain_response(_READ_ERROR_STATUS.get(type(exc), 400))
            bytes_sent = write_http_response_message(connection, response)
            self._log_request(address, "-", "-", response, bytes_sent, started_at)
            return

        if not raw_request:
            return

        try:
            request = HTTPRequest.from_bytes(raw_request)
        except HTTPRequestParseError as exc:
            response = _plain_response(exc.status_code)
            bytes_sent = write_http_response_message(connection, response)
            self._log_request(address, "-", "-", response, bytes_sent, started_at)
            return

        response = self.handler(request)
        bytes_sent = write_http_response_message(
            connection,
            response,
            include_body=request.method != "HEAD",
        )
        self._log_request(address, request.method, request.path, response, bytes_sent, started_at)

    def _log_request(
        self,
        address: tuple[str, int],
        method: str,
        path: str,
        response: HTTPResponse,
        bytes_sent: int,
        started_at: float,
    ) -> None:
        duration_ms = (time.perf_counter() - started_at) * 1000
        event = {
            "client": address[0],
            "method": method,
            "path": path,
            "status": response.status_code,
            "content_type": response.content_type,
            "bytes_out": bytes_sent,
            "latency_ms": round(duration_ms, 3),
        }
        if self.config.log_format == "json":
            logger.info(json.dumps(event, sort_keys=True))
            return

        logger.info(
            "client=%s method=%s path=%s status=%s content_type=%s bytes_out=%s duration_ms=%.2f",
            event["client"],
            event["method"],
            event["path"],
            event["status"],
            event["content_type"],
            event["bytes_out"],
            duration_ms,
        )


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Serve a directory of static files")
    parser.add_argument("--root-dir", default="./public")
    parser.add_argument("--protocol", choices=[PROTOCOL_HTTP, PROTOCOL_HTTPS], default=PROTOCOL_HTTP)
    parser.add_argument("--host", default=HOST)
    parser.add_argument("--port", type=int, default=PORT)
    parser.add_argument("--index-file", default=None)
    parser.add_argument("--not-found-file", default=None)
    parser.add_argument("--tls-cert-file", default=None)
    parser.add_argument("--tls-key-file", default=None)
    parser.add_argument("--strict-paths", action="store_true")
    parser.add_argument("--log-format", choices=["plain", "json"], default=LOG_FORMAT)
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    logging.basicConfig(level=logging.INFO)
    server = StaticServer(
        ServerConfig(
            root_dir=args.root_dir,
            protocol=args.protocol,
            host=args.host,
            port=args.port,
            index_file=args.index_file,
            not_found_file=args.not_found_file,
            tls_cert_file=args.tls_cert_file,
            tls_key_file=args.tls_key_file,
            strict_paths=args.strict_paths,
            log_format=args.log_format,
        )
    )
    server.start().result()
    try:
        while server.is_running:
            time.sleep(0.5)
    except KeyboardInterrupt:
        server.stop().result()


if __name__ == "__main__":
    main()
