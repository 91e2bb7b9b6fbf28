"""Path helpers shared by the content loader and request handler."""

import os

EXTENSION_SEPARATOR = "."


class PathOutsideRootError(ValueError):
    """Raised in strict mode when a resolved path escapes the root directory."""


def resolve_path(raw_path: str, root_dir: str, *, strict: bool = False) -> str:
    """Turn a request-relative path into an absolute path under ``root_dir``.

    A path that already starts with ``root_dir`` is returned untouched. This is a
    plain string prefix check, so ``/srv/app-secret`` passes for a ``/srv/app``
    root. Pass ``strict=True`` to canonicalise the result and reject anything
    outside the real root instead.
    """
    if raw_path.startswith(root_dir):
        resolved = raw_path
    else:
        resolved = os.path.normpath(os.path.join(os.path.abspath(root_dir), raw_path))

    if not strict:
        return resolved

    real_root = os.path.realpath(root_dir)
    candidate = os.path.realpath(resolved)
    if os.path.commonpath([real_root, candidate]) != real_root:
        raise PathOutsideRootError(f"{raw_path!r} resolves outside {root_dir!r}")
    return candidate


def get_extension(file_path: str) -> str | None:
    """Return the text after the last dot of the file name, or None."""
    name = os.path.basename(file_path)
    separator_index = name.rfind(EXTENSION_SEPARATOR)
    if separator_index == -1:
        return None
    return name[separator_index + 1 :]

