"""Readability service: main-content HTML plus whatever metadata it can infer.

Article HTML comes from readability-lxml (Mozilla Readability algorithm);
title falls back to readability's ``<title>`` heuristic.  Author, date and
the thumbnail (``og:image``) come from trafilatura's metadata extractor.
Either library failing only leaves its fields empty; the caller decides
whether a missing article body is fatal.
"""

from __future__ import annotations

import contextlib
import logging
import re
from typing import NamedTuple

from bs4 import BeautifulSoup, Tag

logger = logging.getLogger(__name__)

# readability-lxml's placeholder when a page has no <title>
_NO_TITLE = "[no-title]"

# ---------------------------------------------------------------------------
# Cookie-consent / GDPR overlay removal
# ---------------------------------------------------------------------------

_COOKIE_CONSENT_SELECTORS: tuple[str, ...] = (
    ".cky-consent-container", ".cookieyes-modal",
    "#cookie-law-info-bar", ".cli-modal",
    "#CybotCookiebotDialog",
    "#onetrust-consent-sdk", "#onetrust-banner-sdk",
    "#cmplz-cookiebanner-container",
    "#BorlabsCookieBox",
    ".cookie-banner", ".cookie-notice", ".cookie-consent",
    "#cookie-notice", "#cookie-banner",
    ".gdpr-banner",
)

_TEMPLATE_RE = re.compile(r"<template\b[^>]*>.*?</template>", re.DOTALL | re.IGNORECASE)


def _preprocess_html(html: str) -> str:
    """Strip ``<template>`` blocks and cookie-consent overlays from *html*.

    Templates are removed with a regex before parsing: lxml re-parents
    ``<template>`` children into the body, so ``decompose()`` would miss them.
    """
    html = _TEMPLATE_RE.sub("", html)
    try:
        soup = BeautifulSoup(html, "lxml")
    except Exception as exc:
        logger.debug("HTML pre-processing failed: %s", exc)
        return html

    removed = 0
    for selector in _COOKIE_CONSENT_SELECTORS:
        with contextlib.suppress(Exception):
            for el in soup.select(selector):
                if isinstance(el, Tag):
                    el.decompose()
                    removed += 1
    if not removed:
        return html
    return str(soup)


class ReadableResult(NamedTuple):
    html: str | None
    title: str | None
    author: str | None
    date: str | None
    thumbnail_url: str | None


# ---------------------------------------------------------------------------
# readability-lxml
# ---------------------------------------------------------------------------

def _try_readability(html: str, url: str) -> tuple[str | None, str | None]:
    """Return ``(article_html, title)`` from readability-lxml."""
    try:
        from readability import Document  # type: ignore[import-untyped]

        doc = Document(html, url=url or None)
        content = doc.summary(html_partial=False)
        title = (doc.short_title() or "").strip()
    except Exception as exc:
        logger.debug("readability failed for %s: %s", url, exc)
        return None, None
    if title == _NO_TITLE:
        title = ""
    return (content or None), (title or None)


# ---------------------------------------------------------------------------
# trafilatura metadata
# ---------------------------------------------------------------------------

def _try_trafilatura_metadata(html: str, url: str) -> dict[str, str | None]:
    empty: dict[str, str | None] = {"title": None, "author": None, "date": None, "image": None}
    try:
        from trafilatura.metadata import extract_metadata  # type: ignore[import-untyped]

        meta = extract_metadata(html, default_url=url or None)
    except Exception as exc:
        logger.debug("trafilatura metadata failed for %s: %s", url, exc)
        return empty
    if meta is None:
        return empty
    return {key: (getattr(meta, key, None) or None) for key in empty}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def extract_readable(html: str, url: str = "") -> ReadableResult:
    """Run the readability service over *html*.

    Works on full documents and on bare fragments (no ``<html>``/``<body>``).
    ``html`` in the result is ``None`` when no article could be produced.
    """
    cleaned = _preprocess_html(html) if html.strip() else html
    article_html, readability_title = _try_readability(cleaned, url)
    meta = _try_trafilatura_metadata(html, url) if html.strip() else {}

    title = readability_title or meta.get("title")
    logger.debug(
        "readability service: html=%s title=%r author=%r date=%r image=%r url=%s",
        bool(article_html), title, meta.get("author"), meta.get("date"),
        meta.get("image"), url,
    )
    return ReadableResult(
        html=article_html,
        title=title,
        author=meta.get("author"),
        date=meta.get("date"),
        thumbnail_url=meta.get("image"),
    )
