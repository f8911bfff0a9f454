"""HTTP fetching for pages and images.

Uses only the stdlib (``urllib``).  Every request is a single attempt:
a failed page fetch raises :class:`~httpepub.errors.FetchError`, a failed
image download is logged and the image is left out of the result mapping.
"""

from __future__ import annotations

import gzip
import http.client
import logging
import re
import urllib.error
import urllib.request
import uuid
import zlib
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import PurePosixPath
from urllib.parse import unquote, urlparse

from httpepub import settings
from httpepub.errors import FetchError, ImageDownloadError
from httpepub.extractors.urlnorm import print_friendly_url
from httpepub.items import FetchedPage, ImageAsset, ImageMime

logger = logging.getLogger(__name__)

_PAGE_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"
_IMAGE_ACCEPT = "image/avif,image/webp,image/png,image/svg+xml,image/*;q=0.8,*/*;q=0.5"

# Substring → MIME, checked in order
_MIME_PATTERNS: tuple[tuple[tuple[str, ...], ImageMime], ...] = (
    (("jpeg", "jpg"), ImageMime.JPEG),
    (("png",), ImageMime.PNG),
    (("gif",), ImageMime.GIF),
    (("svg",), ImageMime.SVG),
    (("webp",), ImageMime.WEBP),
)

_IMAGE_SUFFIXES: frozenset[str] = frozenset(
    {".jpg", ".jpeg", ".png", ".gif", ".svg", ".webp"},
)
_UNSAFE_NAME_RE = re.compile(r"[^\w.\-]")


def _request(url: str, accept: str) -> urllib.request.Request:
    return urllib.request.Request(
        url,
        headers={
            "User-Agent": settings.USER_AGENT,
            "Accept": accept,
            "Accept-Language": "en-US,en;q=0.9",
            "Accept-Encoding": "gzip, deflate",
        },
    )


def _decompress(raw: bytes, headers: object | None) -> bytes:
    encoding = ""
    if headers is not None:
        try:
            encoding = str(headers.get("Content-Encoding", "")).lower().strip()
        except Exception:
            encoding = ""
    if encoding == "gzip":
        return gzip.decompress(raw)
    if encoding in ("deflate", "zlib"):
        return zlib.decompress(raw)
    return raw


def _decode_body(raw: bytes, headers: object | None) -> str:
    charset = "utf-8"
    if headers is not None:
        try:
            charset = headers.get_content_charset("utf-8") or "utf-8"
        except Exception:
            charset = "utf-8"
    try:
        return raw.decode(charset, errors="replace")
    except (LookupError, ValueError):
        return raw.decode("utf-8", errors="replace")


# ---------------------------------------------------------------------------
# Page
# ---------------------------------------------------------------------------

def fetch_html(url: str, *, timeout: int | None = None) -> str:
    """GET *url* and return the decoded body.

    Raises:
        FetchError: on unsupported scheme, HTTP error status, transport
            failure, or a body that cannot be decompressed.
    """
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https"):
        raise FetchError(f"Unsupported URL scheme: {parsed.scheme!r}", url=url)

    req = _request(url, _PAGE_ACCEPT)
    try:
        with urllib.request.urlopen(req, timeout=timeout or settings.TIMEOUT) as resp:
            raw: bytes = resp.read()
            headers = resp.headers
    except urllib.error.HTTPError as exc:
        body_text = None
        try:
            body_raw = exc.read()
            if body_raw:
                body_text = _decode_body(body_raw, exc.headers)
        except Exception:
            body_text = None
        raise FetchError(
            f"HTTP {exc.code} fetching {url}: {exc.reason}",
            url=url,
            status=exc.code,
            body=body_text,
        ) from exc
    except urllib.error.URLError as exc:
        raise FetchError(f"URL error fetching {url}: {exc.reason}", url=url) from exc
    except OSError as exc:
        raise FetchError(f"Network error fetching {url}: {exc}", url=url) from exc
    except http.client.HTTPException as exc:
        raise FetchError(f"Broken HTTP response from {url}: {exc!r}", url=url) from exc

    try:
        raw = _decompress(raw, headers)
    except (OSError, EOFError, zlib.error) as exc:
        raise FetchError(f"Could not decompress response from {url}: {exc}", url=url) from exc
    return _decode_body(raw, headers)


def fetch_page(url: str) -> FetchedPage:
    """Fetch the print-friendly variant of *url*."""
    effective_url = print_friendly_url(url)
    if effective_url != url:
        logger.info("Using print-friendly URL: %s", effective_url)
    logger.info("Fetching content from %s", effective_url)
    raw_html = fetch_html(effective_url)
    return FetchedPage(original_url=url, effective_url=effective_url, raw_html=raw_html)


# ---------------------------------------------------------------------------
# Images
# ---------------------------------------------------------------------------

def classify_mime(content_type: str | None) -> ImageMime:
    """Map a ``Content-Type`` header to one of the supported image types.

    Unknown or missing headers default to JPEG.
    """
    lowered = (content_type or "").lower()
    for needles, mime in _MIME_PATTERNS:
        if any(n in lowered for n in needles):
            return mime
    return ImageMime.JPEG


def local_filename(url: str) -> str:
    """Base name (without extension) for the bundled copy of an image.

    The last non-empty path segment of *url*, or a random token when the
    path has none.  A trailing image extension is dropped because the
    final extension comes from the response's MIME type.
    """
    try:
        segments = [s for s in urlparse(url).path.split("/") if s]
    except ValueError:
        segments = []
    if not segments:
        return uuid.uuid4().hex

    name = unquote(segments[-1])
    path = PurePosixPath(name)
    if path.suffix.lower() in _IMAGE_SUFFIXES and path.stem:
        name = path.stem
    name = _UNSAFE_NAME_RE.sub("_", name).strip("._")
    return name or uuid.uuid4().hex


def download_image(url: str, *, timeout: int | None = None) -> tuple[bytes, ImageMime]:
    """Download one image.  Raises :class:`ImageDownloadError` on any failure."""
    try:
        scheme = urlparse(url).scheme.lower()
    except ValueError as exc:
        raise ImageDownloadError(f"Invalid image URL {url}: {exc}", url=url) from exc
    if scheme not in ("http", "https"):
        raise ImageDownloadError(f"Unsupported image URL scheme: {scheme!r}", url=url)

    req = _request(url, _IMAGE_ACCEPT)
    try:
        with urllib.request.urlopen(req, timeout=timeout or settings.TIMEOUT) as resp:
            status = getattr(resp, "status", 200) or 200
            if not 200 <= status < 300:
                raise ImageDownloadError(f"HTTP {status} for image {url}", url=url, status=status)
            data: bytes = resp.read()
            content_type = resp.headers.get("Content-Type") if resp.headers else None
    except urllib.error.HTTPError as exc:
        raise ImageDownloadError(
            f"HTTP {exc.code} fetching image {url}: {exc.reason}", url=url, status=exc.code,
        ) from exc
    except urllib.error.URLError as exc:
        raise ImageDownloadError(f"URL error fetching image {url}: {exc.reason}", url=url) from exc
    except OSError as exc:
        raise ImageDownloadError(f"Network error fetching image {url}: {exc}", url=url) from exc
    except http.client.HTTPException as exc:
        raise ImageDownloadError(f"Broken HTTP response for image {url}: {exc!r}", url=url) from exc
    except ValueError as exc:
        # malformed URL (http.client.InvalidURL and friends)
        raise ImageDownloadError(f"Invalid image URL {url}: {exc}", url=url) from exc
    return data, classify_mime(content_type)


def _unique_path(base: str, ext: str, taken: set[str]) -> str:
    """``images/<base>.<ext>``, with -2, -3, … appended until unused."""
    candidate = f"{settings.IMAGES_DIR}/{base}.{ext}"
    counter = 2
    while candidate in taken:
        candidate = f"{settings.IMAGES_DIR}/{base}-{counter}.{ext}"
        counter += 1
    taken.add(candidate)
    return candidate


def download_images(
    urls: Iterable[str],
    *,
    max_workers: int | None = None,
) -> dict[str, ImageAsset]:
    """Download every URL in *urls* and return ``{source_url: ImageAsset}``.

    Downloads run on a bounded thread pool, one task per distinct URL.
    Failed downloads are logged and left out of the mapping.  Local paths
    are assigned afterwards, in input order, so they are deterministic.
    """
    unique = list(dict.fromkeys(u for u in urls if u))
    if not unique:
        return {}

    workers = max(1, min(max_workers or settings.IMAGE_WORKERS, len(unique)))
    downloaded: dict[str, tuple[bytes, ImageMime]] = {}

    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {executor.submit(download_image, url): url for url in unique}
        for future in as_completed(futures):
            url = futures[future]
            try:
                downloaded[url] = future.result()
            except ImageDownloadError as exc:
                logger.warning("Failed to download image %s: %s", url, exc)

    assets: dict[str, ImageAsset] = {}
    taken: set[str] = set()
    for url in unique:
        if url not in downloaded:
            continue
        data, mime = downloaded[url]
        assets[url] = ImageAsset(
            source_url=url,
            local_path=_unique_path(local_filename(url), mime.extension, taken),
            data=data,
            mime_type=mime,
        )
    logger.info("Downloaded %d of %d image(s)", len(assets), len(unique))
    return assets
