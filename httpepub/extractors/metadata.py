"""Title / author / publish-date resolution.

Each field is resolved by an ordered list of candidate steps; the first step
returning a non-empty value wins:

    title:  user override → readability title → "Unknown"
    author: readability author → <head> meta tags → "http-epub"
    date:   readability date → <head> meta tags → absent
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable
from datetime import UTC, datetime
from typing import Any, TypeVar

import dateparser
from bs4 import BeautifulSoup, Tag

from httpepub.settings import DEFAULT_AUTHOR, DEFAULT_TITLE

logger = logging.getLogger(__name__)

T = TypeVar("T")

# (attribute, value) pairs, in priority order
AUTHOR_META_SELECTORS: tuple[tuple[str, str], ...] = (
    ("name", "author"),
    ("property", "article:author"),
    ("name", "dc.creator"),
    ("name", "dcterms.creator"),
    ("property", "author"),
)

DATE_META_SELECTORS: tuple[tuple[str, str], ...] = (
    ("property", "article:published_time"),
    ("name", "publish-date"),
    ("name", "date"),
)

# Tried after RFC 3339, in order
DATE_FORMATS: tuple[str, ...] = (
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%dT%H:%M:%S.%f%z",
    "%Y-%m-%d %H:%M:%S%z",
    "%B %d, %Y",
    "%b %d, %Y",
    "%Y-%m-%d",
)

_RFC3339_RE = re.compile(
    r"^\d{4}-\d{2}-\d{2}[Tt ]\d{2}:\d{2}:\d{2}(\.\d+)?([Zz]|[+-]\d{2}:\d{2})$",
)
_WHITESPACE_RE = re.compile(r"\s+")

# Only the explicit formats are tried; naive results are read as UTC
_DATEPARSER_SETTINGS: dict[str, Any] = {
    "PARSERS": ["custom-formats"],
    "TIMEZONE": "UTC",
    "RETURN_AS_TIMEZONE_AWARE": True,
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _safe_str(val: Any, default: str = "") -> str:
    """Safely convert a BeautifulSoup attribute value (str | list | None) to str."""
    if val is None:
        return default
    if isinstance(val, list):
        return " ".join(str(v) for v in val)
    return str(val)


def _first_of(steps: Iterable[Callable[[], T | None]]) -> T | None:
    """Evaluate *steps* in order and return the first truthy result."""
    for step in steps:
        value = step()
        if value:
            return value
    return None


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None


def meta_content(head: BeautifulSoup | Tag | None, selectors: Iterable[tuple[str, str]]) -> str | None:
    """Return the first non-empty ``content`` among ``<meta>`` tags matching *selectors*.

    Attribute values are matched case-insensitively (``DC.creator`` and
    ``dc.creator`` are the same tag in the wild).
    """
    if head is None:
        return None
    for attr, value in selectors:
        pattern = re.compile(rf"^{re.escape(value)}$", re.IGNORECASE)
        for tag in head.find_all("meta", attrs={attr: pattern}):
            if not isinstance(tag, Tag):
                continue
            content = _safe_str(tag.get("content")).strip()
            if content:
                return content
    return None


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------

def _parse_rfc3339(raw: str) -> datetime | None:
    if not _RFC3339_RE.match(raw):
        return None
    normalized = raw[:-1] + "+00:00" if raw[-1] in "Zz" else raw
    try:
        return datetime.fromisoformat(normalized.replace("t", "T"))
    except ValueError:
        return None


def _parse_with_formats(raw: str) -> datetime | None:
    try:
        return dateparser.parse(
            raw,
            date_formats=list(DATE_FORMATS),
            languages=["en"],
            settings=_DATEPARSER_SETTINGS,
        )
    except Exception as exc:
        logger.debug("Date parse failed for %r: %s", raw, exc)
        return None


def parse_date(raw: str | None) -> datetime | None:
    """Parse a publish-date string.

    RFC 3339 first, then each of :data:`DATE_FORMATS` (dateparser restricted
    to those formats, so relative or free-form text never matches).  Values
    without an offset are taken as UTC, so date-only strings become
    midnight UTC.  Returns ``None`` when nothing matches.
    """
    if not raw:
        return None
    raw = _WHITESPACE_RE.sub(" ", raw.strip())
    if not raw:
        return None

    parsed = _first_of([
        lambda: _parse_rfc3339(raw),
        lambda: _parse_with_formats(raw),
    ])
    if parsed is None:
        logger.debug("Unparseable date %r", raw)
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


# ---------------------------------------------------------------------------
# Fallback chains
# ---------------------------------------------------------------------------

def resolve_title(user_title: str | None, library_title: str | None) -> str:
    return _first_of([
        lambda: _clean(user_title),
        lambda: _clean(library_title),
    ]) or DEFAULT_TITLE


def resolve_author(library_author: str | None, head: BeautifulSoup | Tag | None) -> str:
    return _first_of([
        lambda: _clean(library_author),
        lambda: meta_content(head, AUTHOR_META_SELECTORS),
    ]) or DEFAULT_AUTHOR


def resolve_published_at(
    library_date: str | None,
    head: BeautifulSoup | Tag | None,
) -> datetime | None:
    return _first_of([
        lambda: parse_date(library_date),
        lambda: parse_date(meta_content(head, DATE_META_SELECTORS)),
    ])
