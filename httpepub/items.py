"""Pydantic models passed between the pipeline stages."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any
from urllib.parse import urlparse

from bs4 import BeautifulSoup
from pydantic import BaseModel, ConfigDict, Field, field_validator

from httpepub.settings import DEFAULT_AUTHOR, DEFAULT_TITLE


class ImageMime(str, Enum):
    JPEG = "image/jpeg"
    PNG = "image/png"
    GIF = "image/gif"
    SVG = "image/svg+xml"
    WEBP = "image/webp"

    @property
    def extension(self) -> str:
        return _EXTENSIONS[self]


_EXTENSIONS: dict[ImageMime, str] = {
    ImageMime.JPEG: "jpg",
    ImageMime.PNG: "png",
    ImageMime.GIF: "gif",
    ImageMime.SVG: "svg",
    ImageMime.WEBP: "webp",
}


# ---------------------------------------------------------------------------
# Input
# ---------------------------------------------------------------------------

class PageRequest(BaseModel):
    """A URL the user asked to convert."""

    model_config = ConfigDict(frozen=True)

    url: str

    @field_validator("url", mode="before")
    @classmethod
    def check_absolute(cls, v: Any) -> Any:
        if not isinstance(v, str):
            raise ValueError("URL must be a string")
        v = v.strip()
        parsed = urlparse(v)
        if parsed.scheme.lower() not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"not an absolute http(s) URL: {v!r}")
        return v


class FetchedPage(BaseModel):
    model_config = ConfigDict(frozen=True)

    original_url: str
    effective_url: str
    raw_html: str


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------

class ParsedArticle(BaseModel):
    """Extractor output, before images are downloaded.

    ``head`` is parsed from the page as fetched, not from the readability
    output, which drops most of ``<head>``.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    title: str | None = None
    author: str | None = None
    published_at: datetime | None = None
    body_html: str
    thumbnail_url: str | None = None
    image_urls: list[str] = Field(default_factory=list)
    document: BeautifulSoup
    head: BeautifulSoup | None = None

    @property
    def download_urls(self) -> list[str]:
        """Inline images plus the thumbnail, deduplicated, in discovery order."""
        urls = list(self.image_urls)
        if self.thumbnail_url and self.thumbnail_url not in urls:
            urls.append(self.thumbnail_url)
        return urls


class ImageAsset(BaseModel):
    model_config = ConfigDict(frozen=True)

    source_url: str
    local_path: str
    data: bytes
    mime_type: ImageMime


class ExtractedContent(BaseModel):
    """Everything the packager needs; owned by a single conversion."""

    title: str = DEFAULT_TITLE
    author: str = DEFAULT_AUTHOR
    published_at: datetime | None = None
    original_url: str
    thumbnail_url: str | None = None
    body_html: str = ""
    images: dict[str, ImageAsset] = Field(default_factory=dict)

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip() or DEFAULT_TITLE
        return v or DEFAULT_TITLE

    @field_validator("author", mode="before")
    @classmethod
    def strip_author(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip() or DEFAULT_AUTHOR
        return v or DEFAULT_AUTHOR

    @property
    def cover_asset(self) -> ImageAsset | None:
        if not self.thumbnail_url:
            return None
        return self.images.get(self.thumbnail_url)
