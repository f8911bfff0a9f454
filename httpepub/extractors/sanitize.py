"""Whitelist sanitization and XHTML-friendly rewriting of article bodies.

Order of operations (see :func:`transform_body`):

1. ``<video>`` → paragraph with a link to the video (or a placeholder)
2. tag / attribute / protocol whitelist (bleach)
3. ``&nbsp;`` → ``&#160;`` (XHTML has no named nbsp entity)
4. trim
5. ``<img src>`` → bundled ``images/...`` path, once downloads are done
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

import bleach
from bs4 import BeautifulSoup, NavigableString, Tag

from httpepub.extractors.article import resolve_url
from httpepub.items import ImageAsset

logger = logging.getLogger(__name__)

VIDEO_UNAVAILABLE_TEXT = "[Video content unavailable]"

ALLOWED_TAGS: frozenset[str] = frozenset(
    {
        # block
        "p", "h1", "h2", "h3", "h4", "h5", "h6",
        "ul", "ol", "li", "dl", "dt", "dd",
        "blockquote", "pre", "code", "hr", "br",
        # inline
        "a", "span", "em", "strong", "b", "i", "sub", "sup",
        # media
        "img", "figure", "figcaption",
        "video", "source",
        # tables
        "table", "caption", "thead", "tbody", "tfoot", "tr", "th", "td",
        "colgroup", "col",
    },
)

ALLOWED_ATTRIBUTES: dict[str, list[str]] = {
    "a": ["href", "title"],
    "img": ["src", "alt", "title", "width", "height"],
    "ol": ["start"],
    "td": ["colspan", "rowspan"],
    "th": ["colspan", "rowspan", "scope"],
    "col": ["span"],
    "colgroup": ["span"],
    "video": ["src"],
    "source": ["src", "type"],
}

ALLOWED_PROTOCOLS: frozenset[str] = frozenset({"http", "https", "mailto"})

# Content (not just markup) of these is dropped before whitelisting
_DROP_WITH_CONTENT: tuple[str, ...] = ("script", "style", "noscript", "template")


def _fragment(html: str) -> BeautifulSoup:
    # html.parser does not wrap fragments in <html><body>
    return BeautifulSoup(html, "html.parser")


def _normalize_entities(html: str) -> str:
    return html.replace("&nbsp;", "&#160;").replace("\xa0", "&#160;")


# ---------------------------------------------------------------------------
# Step 1: video downgrade
# ---------------------------------------------------------------------------

def _video_url(video: Tag, base_url: str) -> str | None:
    src = str(video.get("src") or "").strip()
    if not src:
        source = video.find("source")
        if isinstance(source, Tag):
            src = str(source.get("src") or "").strip()
    if not src:
        return None
    return resolve_url(base_url, src)


def downgrade_videos(html: str, base_url: str) -> str:
    """Replace every ``<video>`` with ``<p><a href=URL>Video: URL</a></p>``.

    The URL comes from the video's own ``src``, else its first ``<source>``,
    resolved against *base_url*.  Videos with neither get a placeholder.
    A video already inside a ``<p>`` is replaced by the bare link or text.
    Script/style blocks are removed in the same pass.
    """
    soup = _fragment(html)
    for tag_name in _DROP_WITH_CONTENT:
        for el in soup.find_all(tag_name):
            el.decompose()

    for video in soup.find_all("video"):
        if not isinstance(video, Tag):
            continue
        url = _video_url(video, base_url)
        if url:
            replacement = soup.new_tag("a", href=url)
            replacement.string = f"Video: {url}"
        else:
            replacement = NavigableString(VIDEO_UNAVAILABLE_TEXT)
        # <p> cannot nest; inside one the link goes in bare
        if not video.find_parent("p"):
            para = soup.new_tag("p")
            para.append(replacement)
            replacement = para
        video.replace_with(replacement)
    return str(soup)


# ---------------------------------------------------------------------------
# Steps 2-4
# ---------------------------------------------------------------------------

def sanitize_html(html: str, base_url: str) -> str:
    """Run steps 1-4: video downgrade, whitelist, entity fix, trim."""
    downgraded = downgrade_videos(html, base_url)
    cleaned = bleach.clean(
        downgraded,
        tags=ALLOWED_TAGS,
        attributes=ALLOWED_ATTRIBUTES,
        protocols=ALLOWED_PROTOCOLS,
        strip=True,
        strip_comments=True,
    )
    return _normalize_entities(cleaned).strip()


# ---------------------------------------------------------------------------
# Step 5: image rewrite
# ---------------------------------------------------------------------------

def rewrite_image_urls(html: str, base_url: str, images: Mapping[str, ImageAsset]) -> str:
    """Point ``<img src>`` at bundled copies.

    Each non-``data:`` src is resolved against *base_url* and looked up in
    *images*; misses (failed or skipped downloads) keep their original src.
    *images* is only read.
    """
    soup = _fragment(html)
    rewritten = 0
    for img in soup.find_all("img"):
        if not isinstance(img, Tag):
            continue
        url = resolve_url(base_url, str(img.get("src") or ""))
        if url is None:
            continue
        asset = images.get(url)
        if asset is None:
            logger.debug("No local copy for %s; keeping remote src", url)
            continue
        img["src"] = asset.local_path
        rewritten += 1
    logger.debug("Rewrote %d image reference(s)", rewritten)
    return _normalize_entities(str(soup))


def transform_body(html: str, base_url: str, images: Mapping[str, ImageAsset]) -> str:
    """Sanitize *html* and rewrite its images to their bundled paths."""
    return rewrite_image_urls(sanitize_html(html, base_url), base_url, images)
