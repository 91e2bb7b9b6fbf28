"""Read a file under the server root together with its content type."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from config import DEFAULT_CHARSET
from server_config import ServerConfig
from utils import get_extension, resolve_path

logger = logging.getLogger(__name__)

TEXT_TYPE_PREFIX = "text"


class ContentReadError(Exception):
    """Raised when a file cannot be resolved or read."""

    def __init__(self, message: str, *, file_path: str | None = None) -> None:
        super().__init__(message)
        self.file_path = file_path


@dataclass(frozen=True, slots=True)
class ContentResult:
    content: bytes
    content_type: str


class ContentLoader:
    def __init__(self, config: ServerConfig) -> None:
        self.config = config

    def content_type_for(self, extension: str | None, charset: str | None = DEFAULT_CHARSET) -> str:
        mime_type = self.config.mime_types.lookup(extension)
        # Lexical prefix: any type string starting with "text" gets a charset.
        if charset and mime_type.startswith(TEXT_TYPE_PREFIX):
            return f"{mime_type}; charset={charset}"
        return mime_type

    def resolve(self, file_path: str) -> str:
        return resolve_path(file_path, self.config.root_dir, strict=self.config.strict_paths)

    def load(self, file_path: str | None) -> ContentResult:
        """Read the whole file and derive its content type."""
        if not file_path:
            raise ContentReadError("No file path given")

        try:
            resolved = self.resolve(file_path)
        except (OSError, ValueError) as exc:
            raise ContentReadError(str(exc), file_path=file_path) from exc

        content_type = self.content_type_for(get_extension(resolved))
        try:
            content = Path(resolved).read_bytes()
        except (OSError, ValueError) as exc:
            raise ContentReadError(
                f"Cannot read {resolved!r}: {getattr(exc, 'strerror', None) or exc}",
                file_path=resolved,
            ) from exc

        logger.debug("Loaded %s (%d bytes, %s)", resolved, len(content), content_type)
        return ContentResult(content=content, content_type=content_type)
