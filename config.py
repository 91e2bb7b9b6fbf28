"""Configuration constants for the static file server."""

HOST: str = "127.0.0.1"
PORT: int = 3030
PROTOCOL: str = "http"
DEFAULT_INDEX_FILE: str = "index.html"
DEFAULT_NOT_FOUND_MESSAGE: str = "Page Not Found"
DEFAULT_CHARSET: str = "utf-8"
READ_CHUNK_SIZE: int = 4096
SOCKET_TIMEOUT_SECS: int = 5
ACCEPT_POLL_SECS: float = 0.2
SHUTDOWN_TIMEOUT_SECS: float = 10.0
MAX_HEADER_BYTES: int = 16_384
MAX_BODY_BYTES: int = 524_288
MAX_TARGET_LENGTH: int = 8192
WORKER_COUNT: int = 8
REQUEST_QUEUE_SIZE: int = 64
LISTEN_BACKLOG: int = 128
SERVER_NAME: str = "StaticServer/1.0"
LOG_FORMAT: str = "plain"
