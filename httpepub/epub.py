"""EPUB packaging.

Builds the book in memory with ebooklib, writes it to a temporary file
beside the destination, then renames it into place.  A failure at any
point removes the temporary file, so no half-written book is ever left at
the output path.
"""

from __future__ import annotations

import contextlib
import logging
import os
import tempfile
from datetime import UTC, datetime
from pathlib import Path

from ebooklib import epub

from httpepub import settings
from httpepub.errors import HttpEpubError, PackagingError
from httpepub.extractors.urlnorm import sanitize_filename
from httpepub.items import ExtractedContent, ImageAsset
from httpepub.templates import render_article, render_cover

logger = logging.getLogger(__name__)

COVER_PAGE = "cover.xhtml"
ARTICLE_PAGE = "article.xhtml"
COVER_IMAGE_ID = "cover-img"


# ---------------------------------------------------------------------------
# Output path
# ---------------------------------------------------------------------------

def resolve_output_path(
    title: str,
    output: str | os.PathLike[str] | None = None,
    directory: str | os.PathLike[str] | None = None,
) -> Path:
    """Pick a path that does not exist yet.

    *output* is used as given; otherwise the file is named after the
    sanitized *title* inside *directory* (default: the working directory).
    Existing files are never overwritten: ``Title (1).epub``,
    ``Title (2).epub``, … are tried until one is free.
    """
    if output is not None:
        path = Path(output)
    else:
        name = sanitize_filename(title) + settings.EPUB_EXTENSION
        path = Path(directory) / name if directory is not None else Path(name)

    if not path.exists():
        return path

    stem, suffix = path.stem, path.suffix
    counter = 1
    while True:
        candidate = path.with_name(f"{stem} ({counter}){suffix}")
        if not candidate.exists():
            return candidate
        counter += 1


# ---------------------------------------------------------------------------
# Book assembly
# ---------------------------------------------------------------------------

def _set_metadata(book: epub.EpubBook, content: ExtractedContent) -> None:
    book.set_identifier(content.original_url)
    book.set_title(content.title)
    book.set_language(settings.EPUB_LANGUAGE)
    book.add_author(content.author)
    if content.published_at is not None:
        book.add_metadata("DC", "date", content.published_at.isoformat())


def _set_cover_image(book: epub.EpubBook, content: ExtractedContent) -> ImageAsset | None:
    if not content.thumbnail_url:
        return None
    asset = content.cover_asset
    if asset is None:
        logger.warning(
            "Thumbnail %s was not downloaded; the book will have no cover image",
            content.thumbnail_url,
        )
        return None
    logger.debug("Setting cover image: %s", asset.local_path)
    book.set_cover(asset.local_path, asset.data, create_page=False)
    cover_item = book.get_item_with_id(COVER_IMAGE_ID)
    if cover_item is not None:
        cover_item.media_type = asset.mime_type.value
    return asset


def build_book(content: ExtractedContent, *, now: datetime | None = None) -> epub.EpubBook:
    """Assemble the in-memory EPUB for *content*."""
    now = now or datetime.now(UTC)
    book = epub.EpubBook()
    _set_metadata(book, content)

    cover_asset = _set_cover_image(book, content)
    cover_path = cover_asset.local_path if cover_asset else None

    cover_page = epub.EpubHtml(
        uid="cover-page",
        title="Cover",
        file_name=COVER_PAGE,
        lang=settings.EPUB_LANGUAGE,
    )
    cover_page.content = render_cover(content, cover_path, now=now).encode("utf-8")
    book.add_item(cover_page)
    book.guide.append({"type": "cover", "href": COVER_PAGE, "title": "Cover"})

    for index, asset in enumerate(content.images.values()):
        if cover_path is not None and asset.local_path == cover_path:
            logger.debug("Skipping cover image resource: %s", asset.local_path)
            continue
        logger.debug("Adding image resource: %s", asset.local_path)
        book.add_item(
            epub.EpubImage(
                uid=f"img-{index}",
                file_name=asset.local_path,
                media_type=asset.mime_type.value,
                content=asset.data,
            ),
        )

    article_page = epub.EpubHtml(
        uid="article",
        title=content.title,
        file_name=ARTICLE_PAGE,
        lang=settings.EPUB_LANGUAGE,
    )
    article_page.content = render_article(content.title, content.body_html).encode("utf-8")
    book.add_item(article_page)
    book.guide.append({"type": "text", "href": ARTICLE_PAGE, "title": content.title})

    book.toc = (article_page,)
    book.add_item(epub.EpubNcx())
    book.add_item(epub.EpubNav())
    book.spine = [cover_page, "nav", article_page]
    return book


def _write_book(book: epub.EpubBook, path: Path, now: datetime) -> None:
    # EpubWriter directly: epub.write_epub() swallows IOError
    writer = epub.EpubWriter(str(path), book, {"mtime": now})
    writer.process()
    writer.write()


def _make_parents(directory: Path) -> list[Path]:
    """Create *directory* and its missing parents; return the ones created, innermost first."""
    missing: list[Path] = []
    current = directory
    while not current.exists():
        missing.append(current)
        if current.parent == current:
            break
        current = current.parent
    directory.mkdir(parents=True, exist_ok=True)
    return missing


def _discard(tmp_path: Path | None, created_dirs: list[Path]) -> None:
    if tmp_path is not None:
        with contextlib.suppress(OSError):
            tmp_path.unlink()
    for directory in created_dirs:
        with contextlib.suppress(OSError):
            directory.rmdir()


def create_epub(
    content: ExtractedContent,
    output: str | os.PathLike[str] | None = None,
    *,
    directory: str | os.PathLike[str] | None = None,
) -> Path:
    """Package *content* and return the path of the written ``.epub``.

    The book is assembled before anything touches the filesystem.  Output
    directories created here are removed again if writing fails.

    Raises:
        PackagingError: when the book cannot be assembled or written.  No
            file is left at the returned path in that case.
    """
    final_path = resolve_output_path(content.title, output, directory)
    now = datetime.now(UTC)

    try:
        book = build_book(content, now=now)
    except HttpEpubError:
        raise
    except Exception as exc:
        raise PackagingError(
            f"Failed to assemble EPUB {final_path}: {exc}", url=content.original_url,
        ) from exc

    created_dirs: list[Path] = []
    tmp_path: Path | None = None
    try:
        created_dirs = _make_parents(final_path.parent)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{final_path.stem[:40]}.", suffix=".part", dir=final_path.parent,
        )
        os.close(fd)
        tmp_path = Path(tmp_name)
        _write_book(book, tmp_path, now)
        if final_path.exists():
            final_path = resolve_output_path(content.title, final_path)
        os.replace(tmp_path, final_path)
    except HttpEpubError:
        _discard(tmp_path, created_dirs)
        raise
    except Exception as exc:
        _discard(tmp_path, created_dirs)
        raise PackagingError(
            f"Failed to write EPUB {final_path}: {exc}", url=content.original_url,
        ) from exc

    logger.info("EPUB written to %s", final_path)
    return final_path
