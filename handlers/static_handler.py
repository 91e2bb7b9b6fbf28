"""Static file request handler with not-found fallback."""

from __future__ import annotations

import enum
import logging
from urllib.parse import unquote

from config import DEFAULT_NOT_FOUND_MESSAGE
from content_loader import ContentLoader, ContentReadError, ContentResult
from mime_types import DEFAULT_CONTENT_TYPE
from request import HTTPRequest
from response import HTTPResponse
from server_config import ServerConfig

logger = logging.getLogger(__name__)

STATUS_CODE_OK = 200
STATUS_CODE_NOT_FOUND = 404


class HandlerState(enum.Enum):
    RESOLVING_PRIMARY = "resolving_primary"
    RESPONDING_OK = "responding_ok"
    RESOLVING_FALLBACK = "resolving_fallback"
    RESPONDING_NOT_FOUND = "responding_not_found"
    RESPONDING_DEFAULT_NOT_FOUND = "responding_default_not_found"


def request_file_name(request_path: str, index_file: str) -> str:
    """Drop the leading slash from a request path, defaulting to the index file."""
    file_name = unquote(request_path[1:] if request_path.startswith("/") else request_path)
    return file_name or index_file


class StaticRequestHandler:
    """Serve files from the configured root, degrading every failure to a 404.

    The primary file is tried first. If anything goes wrong the configured
    not-found file is served with status 404, and if that fails too the client
    gets a plain-text "Page Not Found".
    """

    def __init__(self, config: ServerConfig, loader: ContentLoader | None = None) -> None:
        self.config = config
        self.loader = loader or ContentLoader(config)

    def __call__(self, request: HTTPRequest) -> HTTPResponse:
        return self.handle(request)

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        response, state = self.handle_with_state(request)
        logger.debug("%s %s -> %s", request.method, request.path, state.name)
        return response

    def handle_with_state(self, request: HTTPRequest) -> tuple[HTTPResponse, HandlerState]:
        try:
            file_name = request_file_name(request.path, self.config.index_file)
            logger.debug("%s: %s", HandlerState.RESOLVING_PRIMARY.name, file_name)
            result = self.loader.load(file_name)
        except ContentReadError as exc:
            logger.debug("Primary load failed for %s: %s", request.path, exc)
        except Exception:
            logger.exception("Unexpected error while loading %s", request.path)
        else:
            return _build_response(STATUS_CODE_OK, result), HandlerState.RESPONDING_OK

        return self._handle_fallback()

    def _handle_fallback(self) -> tuple[HTTPResponse, HandlerState]:
        logger.debug("%s: %s", HandlerState.RESOLVING_FALLBACK.name, self.config.not_found_file)
        if self.config.not_found_file is not None:
            try:
                result = self.loader.load(self.config.not_found_file)
            except ContentReadError as exc:
                logger.debug("Not-found file unavailable: %s", exc)
            except Exception:
                logger.exception("Unexpected error while loading not-found file")
            else:
                return (
                    _build_response(STATUS_CODE_NOT_FOUND, result),
                    HandlerState.RESPONDING_NOT_FOUND,
                )

        default = ContentResult(
            content=DEFAULT_NOT_FOUND_MESSAGE.encode("utf-8"),
            content_type=DEFAULT_CONTENT_TYPE,
        )
        return (
            _build_response(STATUS_CODE_NOT_FOUND, default),
            HandlerState.RESPONDING_DEFAULT_NOT_FOUND,
        )


def _build_response(status_code: int, result: ContentResult) -> HTTPResponse:
    return HTTPResponse(
        status_code=status_code,
        headers={"Content-Type": result.content_type},
        body=result.content,
    )
