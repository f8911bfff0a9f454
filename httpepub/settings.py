"""Runtime settings for http-epub.

Values that make sense to tune per environment can be overridden with
``HTTPEPUB_*`` environment variables; they are read once at import time.
"""

from __future__ import annotations

import os


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------
USER_AGENT = os.getenv(
    "HTTPEPUB_USER_AGENT",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/122.0.0.0 Safari/537.36",
)

# Fixed per-request timeout (seconds). Not exposed on the command line.
TIMEOUT = _env_int("HTTPEPUB_TIMEOUT", 30)

# Bounded worker pool for image downloads
IMAGE_WORKERS = _env_int("HTTPEPUB_IMAGE_WORKERS", 4)

# ---------------------------------------------------------------------------
# Book defaults
# ---------------------------------------------------------------------------
DEFAULT_TITLE = "Unknown"
DEFAULT_AUTHOR = "http-epub"
EPUB_EXTENSION = ".epub"
EPUB_LANGUAGE = "en"
IMAGES_DIR = "images"
