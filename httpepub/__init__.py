"""httpepub - turn a single web page into a readable EPUB.

Quick usage::

    from httpepub import url_to_epub

    path = url_to_epub("https://example.com/blog/some-post")
    print(path)

Step by step::

    from httpepub import create_epub, convert

    content = convert("https://example.com/blog/some-post", title="My copy")
    print(content.title, content.author, len(content.images))
    create_epub(content, "my-copy.epub")
"""

from httpepub.convert import convert, extract_content, url_to_epub
from httpepub.epub import create_epub, resolve_output_path
from httpepub.errors import (
    ExtractionError,
    FetchError,
    HttpEpubError,
    ImageDownloadError,
    InputError,
    PackagingError,
    TemplateError,
)
from httpepub.extractors.article import parse_article
from httpepub.extractors.sanitize import rewrite_image_urls, sanitize_html
from httpepub.extractors.urlnorm import print_friendly_url, register_rule
from httpepub.fetch import download_images, fetch_page
from httpepub.items import ExtractedContent, FetchedPage, ImageAsset, ParsedArticle

__version__ = "0.1.0"
__all__ = [
    "ExtractedContent",
    "ExtractionError",
    "FetchError",
    "FetchedPage",
    "HttpEpubError",
    "ImageAsset",
    "ImageDownloadError",
    "InputError",
    "PackagingError",
    "ParsedArticle",
    "TemplateError",
    "convert",
    "create_epub",
    "download_images",
    "extract_content",
    "fetch_page",
    "parse_article",
    "print_friendly_url",
    "register_rule",
    "resolve_output_path",
    "rewrite_image_urls",
    "sanitize_html",
    "url_to_epub",
]
