"""site_cache.errors: Иерархия исключений SiteCache."""

from __future__ import annotations

__all__ = [
    "SiteCacheError",
    "ConfigurationError",
    "HttpNavigationError",
    "SessionFault",
    "AuthenticationError",
    "FilesystemError",
    "SerializationError",
]


class SiteCacheError(Exception):
    """Base class for all site-cache errors."""


class ConfigurationError(SiteCacheError, ValueError):
    """Required option missing or invalid; raised before any I/O starts."""


class HttpNavigationError(SiteCacheError):
    """A tracked navigation answered with HTTP status >= 400."""

    def __init__(self, url: str, status: int) -> None:
        super().__init__(f"HTTP {status} while loading {url}")
        self.url = url
        self.status = status


class SessionFault(SiteCacheError):
    """The automation session failed (browser crash, script error, bad verb)."""


class AuthenticationError(SessionFault):
    """Auth step could not produce a usable session."""


class FilesystemError(SiteCacheError, OSError):
    """Directory creation, cleanup, file write or stat failed."""


class SerializationError(SiteCacheError):
    """Sitemap or link-rewrite transformation failed."""
