"""Print-friendly URL rewriting and filename helpers.

Some sites serve a much cleaner page when asked for their mobile or print
edition.  :func:`print_friendly_url` walks an ordered table of host rules;
the first matching rule rewrites the URL, otherwise it is returned as-is.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from urllib.parse import ParseResult, parse_qsl, urlparse, urlunparse

logger = logging.getLogger(__name__)

HostPredicate = Callable[[str], bool]
Rewrite = Callable[[ParseResult], ParseResult]


# ---------------------------------------------------------------------------
# Rewrites
# ---------------------------------------------------------------------------

def _wikipedia_mobile(parsed: ParseResult) -> ParseResult:
    """en.wikipedia.org → en.m.wikipedia.org, de.wikipedia.org → de.m.wikipedia.org."""
    host = parsed.hostname or ""
    if host.startswith("en."):
        new_host = "en.m.wikipedia.org"
    elif ".m." not in host and "." in host:
        lang, _, domain = host.partition(".")
        new_host = f"{lang}.m.{domain}"
    else:
        return parsed
    return parsed._replace(netloc=_replace_host(parsed, new_host))


def _medium_print(parsed: ParseResult) -> ParseResult:
    return parsed._replace(query="format=print")


def _append_print_true(parsed: ParseResult) -> ParseResult:
    if ("print", "true") in parse_qsl(parsed.query, keep_blank_values=True):
        return parsed
    query = f"{parsed.query}&print=true" if parsed.query else "print=true"
    return parsed._replace(query=query)


def _replace_host(parsed: ParseResult, new_host: str) -> str:
    """Swap the host inside netloc, keeping any userinfo and port."""
    netloc = parsed.netloc
    userinfo, at, hostport = netloc.rpartition("@")
    port = f":{parsed.port}" if parsed.port is not None else ""
    if not re.fullmatch(r"[A-Za-z0-9.\-]+", new_host):
        raise ValueError(f"invalid host {new_host!r}")
    return f"{userinfo}{at}{new_host}{port}" if at else f"{new_host}{port}"


# ---------------------------------------------------------------------------
# Rule table (first match wins)
# ---------------------------------------------------------------------------

def _host_contains(*needles: str) -> HostPredicate:
    return lambda host: any(n in host for n in needles)


_RULES: list[tuple[HostPredicate, Rewrite]] = [
    (_host_contains("wikipedia.org"), _wikipedia_mobile),
    (_host_contains("medium.com"), _medium_print),
    (_host_contains("nytimes.com", "washingtonpost.com"), _append_print_true),
]


def register_rule(predicate: HostPredicate, rewrite: Rewrite) -> None:
    """Append a host rule.  Rules registered later have lower priority."""
    _RULES.append((predicate, rewrite))


def print_friendly_url(url: str) -> str:
    """Return the reader-friendly variant of *url*.

    Never raises: a rule that fails (bad host, unparsable port) leaves the
    URL unchanged.
    """
    try:
        parsed = urlparse(url)
        host = (parsed.hostname or "").lower()
    except ValueError:
        return url

    for matches, rewrite in _RULES:
        if not matches(host):
            continue
        try:
            return urlunparse(rewrite(parsed))
        except ValueError as exc:
            logger.debug("URL rewrite failed for %s: %s", url, exc)
            return url
    return url


# ---------------------------------------------------------------------------
# Filenames
# ---------------------------------------------------------------------------

_UNSAFE_FILENAME_RE = re.compile(r'[\x00-\x1f<>:"/\\|?*]')
_MULTI_SPACE_RE = re.compile(r"\s+")


def sanitize_filename(name: str, max_length: int = 150) -> str:
    """Make *name* safe to use as a file name on any common filesystem."""
    # whitespace first: \t and \n are also in the control-character range
    name = _MULTI_SPACE_RE.sub(" ", name or "")
    name = _UNSAFE_FILENAME_RE.sub("", name)
    name = _MULTI_SPACE_RE.sub(" ", name).strip().strip(".")
    name = name[:max_length].rstrip(" .")
    return name or "untitled"


def extract_domain(url: str) -> str:
    """Return the host component of a URL, lowercased."""
    try:
        return (urlparse(url).hostname or "").lower()
    except ValueError:
        return ""
