"""Tests for cover/article rendering and EPUB packaging."""

from __future__ import annotations

import logging
import zipfile
from datetime import UTC, datetime
from unittest.mock import patch

import pytest
from ebooklib import epub

from httpepub.epub import build_book, create_epub, resolve_output_path
from httpepub.errors import PackagingError, TemplateError
from httpepub.items import ExtractedContent
from httpepub.templates import format_datetime, render_article, render_cover

from .conftest import PAGE_URL

NOW = datetime(2024, 5, 6, 14, 30, tzinfo=UTC)


def _names(path) -> list[str]:
    with zipfile.ZipFile(path) as zf:
        return zf.namelist()


def _read(path, name: str) -> str:
    with zipfile.ZipFile(path) as zf:
        return zf.read(name).decode("utf-8")


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------

class TestRenderCover:
    def test_contains_title_author_and_source(self, extracted_content):
        page = render_cover(extracted_content, "images/cover.jpg", now=NOW)
        assert "How HTTP Caching Works" in page
        assert '<p class="author">Jane Smith</p>' in page
        assert f'href="{PAGE_URL}"' in page
        assert ">blog.example.com</a>" in page
        assert 'src="images/cover.jpg"' in page
        assert "Converted on May 06, 2024 at 02:30 PM" in page

    def test_source_domain_is_lowercased_host(self):
        content = ExtractedContent(original_url="https://Blog.Example.com:8443/x?y=1")
        page = render_cover(content, now=NOW)
        assert ">blog.example.com</a>" in page

    def test_placeholder_author_is_omitted(self):
        content = ExtractedContent(original_url=PAGE_URL)
        page = render_cover(content, now=NOW)
        assert 'class="author"' not in page
        assert "http-epub" not in page.split("<body", 1)[1]

    def test_no_cover_image_without_path(self, extracted_content):
        assert "<img" not in render_cover(extracted_content, None, now=NOW)

    def test_published_date_rendered_when_known(self, extracted_content):
        content = extracted_content.model_copy(
            update={"published_at": datetime(2024, 3, 1, 10, 0, tzinfo=UTC)},
        )
        page = render_cover(content, now=NOW)
        assert "Published March 01, 2024 at 10:00 AM" in page

    def test_no_published_line_when_unknown(self, extracted_content):
        assert "Published" not in render_cover(extracted_content, now=NOW)

    def test_values_are_escaped(self):
        content = ExtractedContent(
            title="Tags <b> & \"quotes\"", author="A & B", original_url=PAGE_URL,
        )
        page = render_cover(content, now=NOW)
        assert "Tags &lt;b&gt; &amp; &quot;quotes&quot;" in page
        assert "A &amp; B" in page


class TestRenderArticle:
    def test_body_inserted_verbatim_and_title_escaped(self):
        page = render_article("Q&A", "<p>Hello <em>there</em></p>")
        assert "<h1>Q&amp;A</h1>" in page
        assert "<p>Hello <em>there</em></p>" in page

    def test_dollar_signs_in_body_survive(self):
        page = render_article("Prices", "<p>It costs $5 or ${price}</p>")
        assert "<p>It costs $5 or ${price}</p>" in page


def test_format_datetime():
    assert format_datetime(datetime(2024, 12, 25, 9, 5, tzinfo=UTC)) == "December 25, 2024 at 09:05 AM"


# ---------------------------------------------------------------------------
# Output path
# ---------------------------------------------------------------------------

class TestResolveOutputPath:
    def test_named_after_sanitized_title(self, tmp_path):
        assert resolve_output_path("What? A/B", directory=tmp_path) == tmp_path / "What AB.epub"

    def test_collisions_get_counter(self, tmp_path):
        (tmp_path / "My Title.epub").write_bytes(b"x")
        (tmp_path / "My Title (1).epub").write_bytes(b"x")
        assert resolve_output_path("My Title", directory=tmp_path) == tmp_path / "My Title (2).epub"

    def test_explicit_output_used(self, tmp_path):
        target = tmp_path / "custom.epub"
        assert resolve_output_path("ignored", target) == target

    def test_explicit_output_not_overwritten(self, tmp_path):
        target = tmp_path / "custom.epub"
        target.write_bytes(b"x")
        assert resolve_output_path("ignored", target) == tmp_path / "custom (1).epub"


# ---------------------------------------------------------------------------
# Packaging
# ---------------------------------------------------------------------------

class TestCreateEpub:
    def test_writes_container(self, extracted_content, tmp_path):
        path = create_epub(extracted_content, directory=tmp_path)
        assert path == tmp_path / "How HTTP Caching Works.epub"
        names = _names(path)
        assert names[0] == "mimetype"
        assert "EPUB/cover.xhtml" in names
        assert "EPUB/article.xhtml" in names
        assert "EPUB/images/diagram.png" in names

    def test_cover_image_stored_once(self, extracted_content, tmp_path):
        names = _names(create_epub(extracted_content, directory=tmp_path))
        assert names.count("EPUB/images/cover.jpg") == 1

    def test_second_run_does_not_overwrite(self, extracted_content, tmp_path):
        first = create_epub(extracted_content, directory=tmp_path)
        second = create_epub(extracted_content, directory=tmp_path)
        assert first.name == "How HTTP Caching Works.epub"
        assert second.name == "How HTTP Caching Works (1).epub"
        assert first.exists() and second.exists()

    def test_no_temporary_files_left(self, extracted_content, tmp_path):
        path = create_epub(extracted_content, directory=tmp_path)
        assert list(tmp_path.iterdir()) == [path]

    def test_metadata_round_trip(self, extracted_content, tmp_path):
        path = create_epub(extracted_content, directory=tmp_path)
        book = epub.read_epub(str(path), options={"ignore_ncx": True})
        assert book.get_metadata("DC", "title")[0][0] == "How HTTP Caching Works"
        assert book.get_metadata("DC", "creator")[0][0] == "Jane Smith"
        assert book.get_metadata("DC", "identifier")[0][0] == PAGE_URL
        assert book.get_metadata("DC", "language")[0][0] == "en"

    def test_publish_date_and_modified_time(self, extracted_content, tmp_path):
        content = extracted_content.model_copy(
            update={"published_at": datetime(2024, 3, 1, 10, 0, tzinfo=UTC)},
        )
        opf = _read(create_epub(content, directory=tmp_path), "EPUB/content.opf")
        assert "<dc:date>2024-03-01T10:00:00+00:00</dc:date>" in opf
        assert 'property="dcterms:modified"' in opf

    def test_article_references_bundled_image(self, extracted_content, tmp_path):
        article = _read(create_epub(extracted_content, directory=tmp_path), "EPUB/article.xhtml")
        assert 'src="images/diagram.png"' in article
        assert "Caching." in article

    def test_cover_page_links_cover_image(self, extracted_content, tmp_path):
        cover = _read(create_epub(extracted_content, directory=tmp_path), "EPUB/cover.xhtml")
        assert "images/cover.jpg" in cover
        assert "Jane Smith" in cover

    def test_missing_cover_asset_warns(self, extracted_content, tmp_path, caplog):
        images = {
            url: asset for url, asset in extracted_content.images.items()
            if url != extracted_content.thumbnail_url
        }
        content = extracted_content.model_copy(update={"images": images})
        with caplog.at_level(logging.WARNING, logger="httpepub.epub"):
            path = create_epub(content, directory=tmp_path)
        assert "no cover image" in caplog.text
        names = _names(path)
        assert "EPUB/cover.xhtml" in names
        assert "EPUB/images/cover.jpg" not in names
        assert "<img" not in _read(path, "EPUB/cover.xhtml")

    def test_no_images_at_all(self, tmp_path):
        content = ExtractedContent(original_url=PAGE_URL, body_html="<p>Plain text.</p>")
        path = create_epub(content, directory=tmp_path)
        assert path.name == "Unknown.epub"
        assert not [n for n in _names(path) if n.startswith("EPUB/images/")]

    def test_write_failure_raises_packaging_error(self, extracted_content, tmp_path):
        with patch("httpepub.epub._write_book", side_effect=OSError("disk full")), \
                pytest.raises(PackagingError) as exc_info:
            create_epub(extracted_content, directory=tmp_path)
        assert exc_info.value.stage == "package"
        assert isinstance(exc_info.value.__cause__, OSError)
        assert list(tmp_path.iterdir()) == []

    def test_template_failure_propagates(self, extracted_content, tmp_path):
        with patch("httpepub.epub.render_article", side_effect=TemplateError("bad template")), \
                pytest.raises(TemplateError):
            create_epub(extracted_content, directory=tmp_path)
        assert list(tmp_path.iterdir()) == []


    def test_write_failure_removes_created_directories(self, extracted_content, tmp_path):
        target = tmp_path / "new" / "deeper" / "book.epub"
        with patch("httpepub.epub._write_book", side_effect=OSError("disk full")), \
                pytest.raises(PackagingError):
            create_epub(extracted_content, target)
        assert not (tmp_path / "new").exists()

    def test_build_failure_creates_no_directories(self, extracted_content, tmp_path):
        target = tmp_path / "new" / "book.epub"
        with patch("httpepub.epub.render_article", side_effect=TemplateError("bad template")), \
                pytest.raises(TemplateError):
            create_epub(extracted_content, target)
        assert list(tmp_path.iterdir()) == []

    def test_missing_output_directory_is_created(self, extracted_content, tmp_path):
        path = create_epub(extracted_content, tmp_path / "out" / "book.epub")
        assert path == tmp_path / "out" / "book.epub"
        assert "mimetype" in _names(path)


def test_build_book_spine_order(extracted_content):
    book = build_book(extracted_content, now=NOW)
    spine_ids = [
        entry[0] if isinstance(entry, tuple) else getattr(entry, "id", entry)
        for entry in book.spine
    ]
    assert spine_ids == ["cover-page", "nav", "article"]
    assert book.get_item_with_id("cover-img").media_type == "image/jpeg"
