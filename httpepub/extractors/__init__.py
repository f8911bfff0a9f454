"""Extraction sub-package: URL rewriting, article extraction, metadata, sanitization."""

from .article import find_image_urls, parse_article, resolve_url
from .main_content import extract_readable
from .metadata import parse_date, resolve_author, resolve_published_at, resolve_title
from .sanitize import rewrite_image_urls, sanitize_html, transform_body
from .urlnorm import print_friendly_url, register_rule, sanitize_filename

__all__ = [
    "extract_readable",
    "find_image_urls",
    "parse_article",
    "parse_date",
    "print_friendly_url",
    "register_rule",
    "resolve_author",
    "resolve_published_at",
    "resolve_title",
    "resolve_url",
    "rewrite_image_urls",
    "sanitize_filename",
    "sanitize_html",
    "transform_body",
]
