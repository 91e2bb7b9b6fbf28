"""Extension to content-type table and the per-server MIME registry."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from types import MappingProxyType

DEFAULT_CONTENT_TYPE = "text/plain"

DEFAULT_MIME_TYPES: Mapping[str, str] = MappingProxyType(
    {
        # Web documents
        "htm": "text/html",
        "html": "text/html",
        "xhtml": "application/xhtml+xml",
        "xml": "application/xml",
        "css": "text/css",
        "js": "text/javascript",
        "mjs": "text/javascript",
        "json": "application/json",
        "jsonld": "application/ld+json",
        # Fonts
        "ttf": "font/ttf",
        "woff": "font/woff",
        "woff2": "font/woff2",
        "otf": "font/otf",
        "eot": "application/vnd.ms-fontobject",
        # Images
        "ico": "image/ico",
        "png": "image/png",
        "gif": "image/gif",
        "jpeg": "image/jpeg",
        "jpg": "image/jpeg",
        "webp": "image/webp",
        "tif": "image/tiff",
        "tiff": "image/tiff",
        "bmp": "image/bmp",
        "svg": "image/svg+xml",
        # Audio
        "aac": "audio/aac",
        "mp3": "audio/mpeg",
        "weba": "audio/webm",
        "wav": "audio/wav",
        "opus": "audio/opus",
        "oga": "audio/ogg",
        "mid": "audio/midi",
        "midi": "audio/midi",
        # Video
        "mpeg": "video/mpeg",
        "webm": "video/webm",
        "avi": "video/x-msvideo",
        "ogv": "video/ogg",
        "ogx": "application/ogg",
        # Archives
        "tar": "application/x-tar",
        "gz": "application/gzip",
        "bz": "application/x-bzip",
        "bz2": "application/x-bzip2",
        "zip": "application/zip",
        "7z": "application/x-7z-compressed",
        "rar": "application/vnd.rar",
        "jar": "application/java-archive",
        "arc": "application/x-freearc",
        # Office documents
        "csv": "text/csv",
        "doc": "application/msword",
        "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "xls": "application/vnd.ms-excel",
        "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        "rtf": "application/rtf",
        "ppt": "application/vnd.ms-powerpoint",
        "pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
        "odt": "application/vnd.oasis.opendocument.text",
        "ods": "application/vnd.oasis.opendocument.spreadsheet",
        "odp": "application/vnd.oasis.opendocument.presentation",
        "vsd": "application/vnd.visio",
        "abw": "application/x-abiword",
        # Reading documents
        "pdf": "application/pdf",
        "epub": "application/epub+zip",
        # Misc
        "txt": "text/plain",
        "php": "application/php",
        "swf": "application/x-shockwave-flash",
    }
)


class MimeRegistry(Mapping[str, str]):
    """Read-only merge of the built-in table with caller overrides."""

    def __init__(
        self,
        overrides: Mapping[str, str] | None = None,
        *,
        default_content_type: str = DEFAULT_CONTENT_TYPE,
    ) -> None:
        merged = dict(DEFAULT_MIME_TYPES)
        if overrides:
            merged.update(overrides)
        self._types: Mapping[str, str] = MappingProxyType(merged)
        self.default_content_type = default_content_type

    def lookup(self, extension: str | None) -> str:
        """Return the base content type for an extension, matched case-sensitively."""
        if extension is None:
            return self.default_content_type
        return self._types.get(extension) or self.default_content_type

    def __getitem__(self, extension: str) -> str:
        return self._types[extension]

    def __iter__(self) -> Iterator[str]:
        return iter(self._types)

    def __len__(self) -> int:
        return len(self._types)

    def __repr__(self) -> str:
        return f"MimeRegistry({len(self._types)} types)"
