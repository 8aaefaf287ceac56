# site_cache/links.py
"""
Rewrites relative links in an HTML document to absolute ones.
"""
from __future__ import annotations

import re
from typing import List
from urllib.parse import urljoin

from bs4 import BeautifulSoup
from bs4.element import Tag

from site_cache.errors import SerializationError

__all__ = ["URL_ATTRIBUTES", "absolutize", "rel_to_abs"]

#: attributes holding a single URL
URL_ATTRIBUTES = ("href", "src", "action", "poster", "background", "data", "formaction", "cite")

_SKIP_PREFIXES = ("#", "data:", "mailto:", "javascript:", "tel:", "about:")
_CSS_URL_RE = re.compile(r"""url\(\s*(['"]?)(.*?)\1\s*\)""", re.IGNORECASE)


def absolutize(link: str, base_url: str) -> str:
    """Return *link* resolved against *base_url*; anchors and data-URIs stay as-is."""
    raw = link.strip()
    if not raw or raw.lower().startswith(_SKIP_PREFIXES):
        return link
    return urljoin(base_url, raw)


def _rewrite_srcset(value: str, base_url: str) -> str:
    candidates: List[str] = []
    for candidate in value.split(","):
        parts = candidate.strip().split(None, 1)
        if not parts:
            continue
        parts[0] = absolutize(parts[0], base_url)
        candidates.append(" ".join(parts))
    return ", ".join(candidates)


def _rewrite_css(css: str, base_url: str) -> str:
    def repl(match: re.Match[str]) -> str:
        quote, target = match.group(1), match.group(2)
        return f"url({quote}{absolutize(target, base_url)}{quote})"

    return _CSS_URL_RE.sub(repl, css)


def rel_to_abs(html: str, base_url: str) -> str:
    """
    Convert relative URLs in tag attributes, ``srcset`` and inline CSS of *html*.

    Ignores anchors, ``mailto:``, ``javascript:`` and ``data:`` links.
    """
    if not base_url:
        raise SerializationError("rel_to_abs() `base_url` is required")
    try:
        soup = BeautifulSoup(html, "html.parser")
        base = base_url if base_url.endswith("/") else base_url + "/"
        for tag in soup.find_all(True):
            if not isinstance(tag, Tag):
                continue
            for attr in URL_ATTRIBUTES:
                value = tag.get(attr)
                if isinstance(value, str):
                    tag[attr] = absolutize(value, base)
            srcset = tag.get("srcset")
            if isinstance(srcset, str):
                tag["srcset"] = _rewrite_srcset(srcset, base)
            style = tag.get("style")
            if isinstance(style, str) and "url(" in style:
                tag["style"] = _rewrite_css(style, base)
            if tag.name == "style" and tag.string:
                tag.string.replace_with(type(tag.string)(_rewrite_css(str(tag.string), base)))
        return str(soup)
    except (TypeError, ValueError) as exc:
        raise SerializationError(f"Link rewrite failed for base {base_url}: {exc}") from exc
