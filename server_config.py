"""Validated, immutable configuration for a static server instance."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from typing import Any

from config import (
    DEFAULT_INDEX_FILE,
    HOST,
    LOG_FORMAT,
    PORT,
    PROTOCOL,
    REQUEST_QUEUE_SIZE,
    WORKER_COUNT,
)
from mime_types import MimeRegistry

PROTOCOL_HTTP = "http"
PROTOCOL_HTTPS = "https"
SUPPORTED_PROTOCOLS = (PROTOCOL_HTTP, PROTOCOL_HTTPS)
LOG_FORMATS = ("plain", "json")

_CAMEL_CASE_KEYS = {
    "rootDir": "root_dir",
    "indexFile": "index_file",
    "notFoundFile": "not_found_file",
    "mimeTypes": "mime_types",
    "tlsCertFile": "tls_cert_file",
    "tlsKeyFile": "tls_key_file",
    "strictPaths": "strict_paths",
    "workerCount": "worker_count",
    "requestQueueSize": "request_queue_size",
    "logFormat": "log_format",
}


class ServerConfigError(ValueError):
    """Raised when a server cannot be built from the given configuration."""


@dataclass(frozen=True, slots=True)
class ServerConfig:
    root_dir: str
    protocol: str = PROTOCOL
    host: str = HOST
    port: int = PORT
    index_file: str = DEFAULT_INDEX_FILE
    not_found_file: str | None = None
    mime_types: Mapping[str, str] = field(default_factory=MimeRegistry)
    tls_cert_file: str | None = None
    tls_key_file: str | None = None
    strict_paths: bool = False
    worker_count: int = WORKER_COUNT
    request_queue_size: int = REQUEST_QUEUE_SIZE
    log_format: str = LOG_FORMAT

    def __post_init__(self) -> None:
        if not self.root_dir:
            raise ServerConfigError("root_dir is required")
        if not self.protocol:
            object.__setattr__(self, "protocol", PROTOCOL)
        if self.protocol not in SUPPORTED_PROTOCOLS:
            raise ServerConfigError(
                f"Unsupported protocol {self.protocol!r}, expected http or https"
            )

        # Falsy optional values fall back to their defaults.
        if not self.host:
            object.__setattr__(self, "host", HOST)
        if not self.index_file:
            object.__setattr__(self, "index_file", DEFAULT_INDEX_FILE)
        if not self.not_found_file:
            object.__setattr__(self, "not_found_file", None)
        if self.port is None:
            object.__setattr__(self, "port", PORT)

        if isinstance(self.port, bool) or not isinstance(self.port, int):
            raise ServerConfigError(f"port must be an integer, got {self.port!r}")
        if not 0 <= self.port <= 65535:
            raise ServerConfigError(f"port out of range: {self.port}")
        if self.worker_count <= 0:
            raise ServerConfigError("worker_count must be positive")
        if self.request_queue_size <= 0:
            raise ServerConfigError("request_queue_size must be positive")
        if self.log_format not in LOG_FORMATS:
            raise ServerConfigError(f"Unsupported log format {self.log_format!r}")

        if not isinstance(self.mime_types, MimeRegistry):
            object.__setattr__(self, "mime_types", MimeRegistry(self.mime_types or None))

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "ServerConfig":
        """Build a config from snake_case or camelCase keys."""
        known = {item.name for item in fields(cls)}
        kwargs: dict[str, Any] = {}
        for key, value in values.items():
            name = _CAMEL_CASE_KEYS.get(key, key)
            if name not in known:
                raise ServerConfigError(f"Unknown configuration key: {key}")
            kwargs[name] = value
        if "root_dir" not in kwargs:
            raise ServerConfigError("root_dir is required")
        return cls(**kwargs)
