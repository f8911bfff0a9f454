"""Exception hierarchy for the URL → EPUB pipeline.

Every fatal error carries the pipeline ``stage`` it came from and the URL
being processed, so the CLI can report *where* a conversion died as well as
*why* (the underlying cause is chained via ``raise ... from``).
"""

from __future__ import annotations


class HttpEpubError(RuntimeError):
    """Base class for all http-epub errors.

    Attributes:
        stage -- pipeline stage name ("input", "fetch", "extract", ...)
        url   -- the URL being processed ("" when not applicable)
    """

    stage = "internal"

    def __init__(self, message: str, url: str = "") -> None:
        super().__init__(message)
        self.url = url


class InputError(HttpEpubError, ValueError):
    """The input URL could not be parsed as an absolute http(s) URL."""

    stage = "input"


class FetchError(HttpEpubError):
    """The page could not be fetched or its body could not be decoded.

    Attributes:
        status -- HTTP status code (0 if no response was received)
        body   -- decoded error body, when the server sent one
    """

    stage = "fetch"

    def __init__(
        self,
        message: str,
        url: str = "",
        status: int = 0,
        body: str | None = None,
    ) -> None:
        super().__init__(message, url=url)
        self.status = status
        self.body = body


class ExtractionError(HttpEpubError):
    """The readability service produced no usable article HTML."""

    stage = "extract"


class ImageDownloadError(HttpEpubError):
    """A single image could not be downloaded. Never fatal for a conversion."""

    stage = "images"

    def __init__(self, message: str, url: str = "", status: int = 0) -> None:
        super().__init__(message, url=url)
        self.status = status


class TemplateError(HttpEpubError):
    stage = "template"


class PackagingError(HttpEpubError):
    stage = "package"
