"""Turn a fetched page into a :class:`~httpepub.items.ParsedArticle`."""

from __future__ import annotations

import logging
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup, Tag

from httpepub.errors import ExtractionError
from httpepub.extractors.main_content import extract_readable
from httpepub.extractors.metadata import resolve_author, resolve_published_at, resolve_title
from httpepub.items import FetchedPage, ParsedArticle

logger = logging.getLogger(__name__)

_WEB_SCHEMES: frozenset[str] = frozenset({"http", "https"})


def resolve_url(base_url: str, ref: str) -> str | None:
    """Resolve *ref* against *base_url*.

    Returns ``None`` for empty refs and for anything that does not resolve
    to an http(s) URL (``data:``, ``file:``, ``javascript:`` …).
    """
    ref = (ref or "").strip()
    if not ref or ref.lower().startswith("data:"):
        return None
    try:
        url = urljoin(base_url, ref)
        scheme = urlparse(url).scheme.lower()
    except ValueError as exc:
        logger.warning("Failed to parse URL %r against %s: %s", ref, base_url, exc)
        return None
    if scheme not in _WEB_SCHEMES:
        logger.debug("Skipping non-web URL %s", url)
        return None
    return url


def find_image_urls(soup: BeautifulSoup | Tag, base_url: str) -> list[str]:
    """Absolute URLs of every ``<img src>`` in *soup*, deduplicated, in order."""
    seen: dict[str, None] = {}
    for img in soup.find_all("img"):
        if not isinstance(img, Tag):
            continue
        url = resolve_url(base_url, str(img.get("src") or ""))
        if url:
            seen.setdefault(url, None)
    return list(seen)


def _head_snapshot(raw_html: str) -> BeautifulSoup | None:
    """Parse ``<head>`` out of the page as fetched."""
    try:
        soup = BeautifulSoup(raw_html, "lxml")
    except Exception as exc:
        logger.debug("Could not parse <head>: %s", exc)
        return None
    head = soup.find("head")
    if not isinstance(head, Tag):
        return None
    return BeautifulSoup(str(head), "lxml")


def parse_article(page: FetchedPage, title: str | None = None) -> ParsedArticle:
    """Extract the article, its metadata and its image references from *page*.

    Args:
        page:  The fetched page.  Relative URLs are resolved against
               ``page.effective_url``.
        title: Optional title override; wins over anything found in the page.

    Raises:
        ExtractionError: when the readability service returns no HTML.
    """
    base_url = page.effective_url
    head = _head_snapshot(page.raw_html)

    result = extract_readable(page.raw_html, url=base_url)
    if not result.html:
        raise ExtractionError(f"No article content could be extracted from {base_url}", url=base_url)

    document = BeautifulSoup(result.html, "lxml")
    body = document.find("body")
    body_html = body.decode_contents() if isinstance(body, Tag) else result.html

    image_urls = find_image_urls(body if isinstance(body, Tag) else document, base_url)
    thumbnail_url = resolve_url(base_url, result.thumbnail_url or "")

    article = ParsedArticle(
        title=resolve_title(title, result.title),
        author=resolve_author(result.author, head),
        published_at=resolve_published_at(result.date, head),
        body_html=body_html,
        thumbnail_url=thumbnail_url,
        image_urls=image_urls,
        document=document,
        head=head,
    )
    logger.info(
        "Extracted %r by %s (%d image(s)%s)",
        article.title, article.author, len(image_urls),
        ", with thumbnail" if thumbnail_url else "",
    )
    return article
