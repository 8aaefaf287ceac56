# File: site_cache/sitemap.py
"""site_cache.sitemap: Построение sitemap.xml по дереву сохранённых файлов."""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Union
from urllib.parse import quote

from lxml import etree

from site_cache.config import MatchOptions, SitemapOptions
from site_cache.errors import SerializationError
from site_cache.fsutils import FileStat, glob_stat, write_file
from site_cache.logger import logger

__all__: Sequence[str] = (
    "SITEMAP_NS",
    "SitemapEntry",
    "to_iso8601",
    "build_entries",
    "collect_entries",
    "serialize_sitemap",
    "build_sitemap",
    "save_sitemap",
)

SITEMAP_NS = "http://www.sitemaps.org/schemas/sitemap/0.9"
# file names hold decoded text; a literal "%" must be encoded too
_LOC_SAFE = "/:@!$&'()*+,;=-._~"


@dataclass(frozen=True, slots=True)
class SitemapEntry:
    """URL относительно сайта и время последнего изменения (ISO-8601)."""

    url: str
    lastmod: str


def to_iso8601(timestamp: Optional[float]) -> str:
    """UTC, millisecond precision, ``Z`` suffix; current time when *timestamp* is falsy."""
    moment = datetime.fromtimestamp(timestamp or time.time(), tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_entries(files: Iterable[FileStat]) -> List[SitemapEntry]:
    entries: List[SitemapEntry] = []
    for file in files:
        path = file.path.replace("\\", "/").lstrip("/")
        entries.append(SitemapEntry(url="/" + path, lastmod=to_iso8601(file.mtime)))
    return entries


def serialize_sitemap(host: str, entries: Iterable[SitemapEntry]) -> str:
    """Сериализует записи в документ sitemap (схема sitemaps.org 0.9).

    Args:
        host: схема и хост, например ``https://example.com``; слеш в конце удаляется.
        entries: записи sitemap.

    Returns:
        XML-документ строкой, с объявлением ``<?xml ...?>``.
    """
    hostname = host.rstrip("/")
    try:
        urlset = etree.Element("urlset", nsmap={None: SITEMAP_NS})
        for entry in entries:
            node = etree.SubElement(urlset, "url")
            etree.SubElement(node, "loc").text = hostname + quote(entry.url, safe=_LOC_SAFE)
            etree.SubElement(node, "lastmod").text = entry.lastmod
        data = etree.tostring(urlset, xml_declaration=True, encoding="UTF-8", pretty_print=True)
    except (ValueError, TypeError, etree.LxmlError) as exc:
        raise SerializationError(f"Sitemap serialization failed: {exc}") from exc
    return data.decode("utf-8")


async def collect_entries(pattern: str, match_options: Optional[MatchOptions] = None) -> List[SitemapEntry]:
    """Находит файлы по *pattern* и превращает их в записи sitemap."""
    match = match_options or MatchOptions()
    files = await glob_stat(pattern, match.root, match.include_hidden)
    entries = build_entries(files)
    logger.debug("Sitemap: %d files matched %s under %s", len(entries), pattern, match.root)
    return entries


async def build_sitemap(
    pattern: str,
    match_options: Optional[MatchOptions] = None,
    sitemap_options: Optional[SitemapOptions] = None,
) -> str:
    """Находит файлы по *pattern* и возвращает текст sitemap."""
    options = sitemap_options or SitemapOptions()
    entries = await collect_entries(pattern, match_options)
    return serialize_sitemap(options.base_url, entries)


async def save_sitemap(
    pattern: str,
    match_options: Optional[MatchOptions] = None,
    sitemap_options: Optional[SitemapOptions] = None,
    dest_file: Union[str, Path, None] = None,
) -> Path:
    """Строит sitemap и записывает его в *dest_file* (по умолчанию ``sitemap.xml``)."""
    if dest_file is None:
        dest_file = "sitemap.xml"
    data = await build_sitemap(pattern, match_options, sitemap_options)
    return await write_file(dest_file, data)
