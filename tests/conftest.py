"""Shared pytest fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from httpepub.items import ExtractedContent, FetchedPage, ImageAsset, ImageMime

FIXTURES_DIR = Path(__file__).parent / "fixtures"

PAGE_URL = "https://blog.example.com/posts/http-caching"

# Smallest well-formed PNG header; image bytes are never decoded
PNG_BYTES = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01"
JPEG_BYTES = b"\xff\xd8\xff\xe0\x00\x10JFIF\x00"


def _read_fixture(name: str) -> str:
    return (FIXTURES_DIR / name).read_text(encoding="utf-8")


@pytest.fixture
def article_html() -> str:
    return _read_fixture("article.html")


@pytest.fixture
def fragment_html() -> str:
    return _read_fixture("fragment.html")


@pytest.fixture
def fetched_page(article_html) -> FetchedPage:
    return FetchedPage(original_url=PAGE_URL, effective_url=PAGE_URL, raw_html=article_html)


def make_asset(url: str, local_path: str, mime: ImageMime = ImageMime.PNG) -> ImageAsset:
    data = JPEG_BYTES if mime is ImageMime.JPEG else PNG_BYTES
    return ImageAsset(source_url=url, local_path=local_path, data=data, mime_type=mime)


@pytest.fixture
def extracted_content() -> ExtractedContent:
    cover_url = "https://blog.example.com/static/cover.jpg"
    inline_url = "https://blog.example.com/img/diagram.png"
    return ExtractedContent(
        title="How HTTP Caching Works",
        author="Jane Smith",
        original_url=PAGE_URL,
        thumbnail_url=cover_url,
        body_html='<p>Caching.</p><p><img src="images/diagram.png" alt="Diagram"/></p>',
        images={
            inline_url: make_asset(inline_url, "images/diagram.png"),
            cover_url: make_asset(cover_url, "images/cover.jpg", ImageMime.JPEG),
        },
    )
