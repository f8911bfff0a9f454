"""URL → EPUB pipeline.

Basic usage::

    from httpepub import url_to_epub

    path = url_to_epub("https://en.wikipedia.org/wiki/EPUB")
    print(path)          # EPUB.epub

Stages run strictly in order: fetch → extract → download images →
sanitize/rewrite → package.  Image downloads are the only concurrent
stage; the rewrite step reads their finished mapping.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from pydantic import ValidationError

from httpepub.epub import create_epub
from httpepub.errors import InputError
from httpepub.extractors.article import parse_article
from httpepub.extractors.sanitize import transform_body
from httpepub.fetch import download_images, fetch_page
from httpepub.items import ExtractedContent, FetchedPage, PageRequest

logger = logging.getLogger(__name__)


def parse_request(url: str) -> PageRequest:
    """Validate *url*.  Raises :class:`InputError` for anything but absolute http(s)."""
    try:
        return PageRequest(url=url)
    except ValidationError as exc:
        message = exc.errors()[0].get("msg", str(exc)) if exc.errors() else str(exc)
        raise InputError(f"Invalid URL {url!r}: {message}", url=str(url)) from exc


def extract_content(page: FetchedPage, title: str | None = None) -> ExtractedContent:
    """Extract, download images for, and clean up an already-fetched page."""
    article = parse_article(page, title=title)

    images = download_images(article.download_urls)

    body_html = transform_body(article.body_html, page.effective_url, images)
    return ExtractedContent(
        title=article.title,
        author=article.author,
        published_at=article.published_at,
        original_url=page.original_url,
        thumbnail_url=article.thumbnail_url,
        body_html=body_html,
        images=images,
    )


def convert(url: str, title: str | None = None) -> ExtractedContent:
    """Fetch *url* and return everything needed to build its EPUB."""
    request = parse_request(url)
    page = fetch_page(request.url)
    return extract_content(page, title=title)


def url_to_epub(
    url: str,
    output: str | os.PathLike[str] | None = None,
    title: str | None = None,
    *,
    directory: str | os.PathLike[str] | None = None,
) -> Path:
    """Convert the page at *url* into an EPUB and return the file's path.

    Args:
        url:       Absolute http(s) URL of the page.
        output:    Output file.  Defaults to ``<title>.epub``.
        title:     Title override.
        directory: Where the default-named file goes (working directory
                   when omitted).  Ignored when *output* is given.

    Raises:
        InputError, FetchError, ExtractionError, TemplateError,
        PackagingError: all fatal; nothing is written.
    """
    content = convert(url, title=title)
    return create_epub(content, output, directory=directory)
