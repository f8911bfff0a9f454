"""Rendering of the cover and article XHTML pages.

Templates live in ``httpepub/templates`` and use ``string.Template``
placeholders.  Optional pieces (author, publish date, cover image) are
rendered here as fragments and substituted as empty strings when absent.
"""

from __future__ import annotations

import html
import logging
from datetime import UTC, datetime
from functools import lru_cache
from importlib import resources
from string import Template

from httpepub.errors import TemplateError
from httpepub.extractors.urlnorm import extract_domain
from httpepub.items import ExtractedContent
from httpepub.settings import DEFAULT_AUTHOR

logger = logging.getLogger(__name__)

ARTICLE_TEMPLATE = "article.xhtml"
COVER_TEMPLATE = "cover.xhtml"

DATE_DISPLAY_FORMAT = "%B %d, %Y at %I:%M %p"


@lru_cache(maxsize=None)
def load_template(name: str) -> Template:
    try:
        text = resources.files("httpepub").joinpath("templates", name).read_text(encoding="utf-8")
    except (OSError, ModuleNotFoundError) as exc:
        raise TemplateError(f"Could not load template {name}: {exc}") from exc
    return Template(text)


def _render(name: str, **values: str) -> str:
    try:
        return load_template(name).substitute(**values)
    except (KeyError, ValueError) as exc:
        raise TemplateError(f"Failed to render {name}: {exc}") from exc


def _esc(value: str) -> str:
    return html.escape(value, quote=True)


def format_datetime(value: datetime) -> str:
    return value.strftime(DATE_DISPLAY_FORMAT)


def render_article(title: str, body_html: str) -> str:
    """Article page; *body_html* must already be sanitized."""
    return _render(ARTICLE_TEMPLATE, title=_esc(title), content=body_html)


def render_cover(
    content: ExtractedContent,
    cover_image_path: str | None = None,
    *,
    now: datetime | None = None,
) -> str:
    """Cover page: title, optional image, author, source link and dates.

    The author line is left out for the ``"http-epub"`` placeholder author.
    *now* defaults to the current UTC time.
    """
    author = content.author.strip()
    author_html = ""
    if author and author != DEFAULT_AUTHOR:
        author_html = f'  <p class="author">{_esc(author)}</p>'

    image_html = ""
    if cover_image_path:
        image_html = (
            f'  <div class="cover-image"><img src="{_esc(cover_image_path)}" '
            f'alt="{_esc(content.title)}"/></div>'
        )

    date_html = ""
    if content.published_at is not None:
        date_html = (
            f'  <p class="meta published">Published {_esc(format_datetime(content.published_at))}</p>'
        )

    domain = extract_domain(content.original_url) or content.original_url
    generated_at = now or datetime.now(UTC)

    return _render(
        COVER_TEMPLATE,
        title=_esc(content.title),
        cover_image=image_html,
        author=author_html,
        original_url=_esc(content.original_url),
        original_url_domain=_esc(domain),
        date_published=date_html,
        generated_at=_esc(format_datetime(generated_at)),
    )
