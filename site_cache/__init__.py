# site_cache/__init__.py
"""
SiteCache package initializer.
Defines package version and exposes the engine facade and CLI.
"""
__version__ = "0.1.0"

from site_cache.engine import SiteCache

# Expose CLI entry point; the name must not shadow the `site_cache.cli` module
from site_cache.cli import cli as main_cli

__all__ = ["__version__", "SiteCache", "main_cli"]
