# File: site_cache/filenames.py
"""site_cache.filenames: Преобразование URL в безопасное имя файла."""

from __future__ import annotations

import re
from typing import Sequence
from urllib.parse import unquote, urlsplit

__all__: Sequence[str] = ("DEFAULT_EXTENSION", "sanitize_filename", "build_filename_from_url")

DEFAULT_EXTENSION = ".html"

_ILLEGAL_RE = re.compile(r'[/?<>\\:*|"]')
_CONTROL_RE = re.compile(r"[\x00-\x1f\x80-\x9f]")
_RESERVED_RE = re.compile(r"^\.+$")
_WINDOWS_RESERVED_RE = re.compile(r"^(con|prn|aux|nul|com[0-9]|lpt[0-9])(\..*)?$", re.IGNORECASE)
_WINDOWS_TRAILING_RE = re.compile(r"[. ]+$")
_MAX_BYTES = 255


def _truncate_utf8(value: str, limit: int = _MAX_BYTES) -> str:
    encoded = value.encode("utf-8")
    if len(encoded) <= limit:
        return value
    return encoded[:limit].decode("utf-8", errors="ignore")


def sanitize_filename(name: str, replacement: str = "-") -> str:
    """Заменяет символы, недопустимые в имени файла, на *replacement*.

    Rules do not depend on the platform or locale: path separators, ``?<>:*|"``,
    control characters, ``.``/``..``, Windows device names and trailing dots or
    spaces are all replaced; the result is cut to 255 UTF-8 bytes.
    """
    result = _ILLEGAL_RE.sub(replacement, name)
    result = _CONTROL_RE.sub(replacement, result)
    result = _RESERVED_RE.sub(replacement, result)
    result = _WINDOWS_RESERVED_RE.sub(replacement, result)
    result = _WINDOWS_TRAILING_RE.sub(replacement, result)
    return _truncate_utf8(result)


def build_filename_from_url(url: str, extension: str | None = None) -> str:
    """Возвращает имя файла для *url*.

    ``http://example.com`` → ``index.html``; ``http://example.com/a/b`` →
    ``a-b.html``. An empty sanitized name is returned as ``""`` and must be
    treated as an error by the caller.
    """
    if extension is None:
        extension = DEFAULT_EXTENSION

    path = unquote(urlsplit(url).path)
    filename = path.strip("/\\")
    if not filename:
        filename = "index"

    filename = sanitize_filename(filename)
    if not filename:
        return filename

    if filename.lower().endswith(extension.lower()):
        return filename
    # name + extension must still fit the 255-byte limit
    filename = _truncate_utf8(filename, _MAX_BYTES - len(extension.encode("utf-8")))
    return filename + extension
