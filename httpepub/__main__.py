"""CLI entry point: python -m httpepub --url URL [options]"""

from __future__ import annotations

import argparse
import logging
import sys

from httpepub.errors import HttpEpubError

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="http-epub",
        description="Convert a web page into a readable, self-contained EPUB.",
    )
    parser.add_argument("-u", "--url", required=True, metavar="URL",
                        help="URL of the page to convert")
    parser.add_argument("-o", "--output", default=None, metavar="PATH",
                        help="Output file (default: <page title>.epub)")
    parser.add_argument("-t", "--title", default=None, metavar="TITLE",
                        help="Title for the EPUB (default: extracted from the page)")
    parser.add_argument("--log-level", default="WARNING",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        help="Logging verbosity (default: WARNING)")
    parser.add_argument("-q", "--quiet", action="store_true", default=False,
                        help="Only print the output path")
    return parser


def _configure_logging(level: str) -> None:
    try:
        from rich.logging import RichHandler

        logging.basicConfig(
            level=level,
            format="%(message)s",
            datefmt="[%X]",
            handlers=[RichHandler(show_path=False, rich_tracebacks=True)],
        )
    except ImportError:
        logging.basicConfig(
            level=level,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )


def _print_start(url: str) -> None:
    try:
        from rich.console import Console

        Console(stderr=True).print(f"[bold cyan]Processing URL:[/bold cyan] {url}")
    except ImportError:
        print(f"Processing URL: {url}", file=sys.stderr)


def _print_result(path: str) -> None:
    try:
        from rich.console import Console
        from rich.markup import escape

        Console().print(f"[bold green]EPUB successfully created at:[/bold green] {escape(path)}")
    except ImportError:
        print(f"EPUB successfully created at: {path}")


def _print_error(exc: HttpEpubError) -> None:
    where = f" ({exc.url})" if exc.url else ""
    cause = f"\n  caused by: {exc.__cause__}" if exc.__cause__ else ""
    message = f"ERROR [{exc.stage}]{where}: {exc}{cause}"
    try:
        from rich.console import Console
        from rich.markup import escape

        Console(stderr=True).print(f"[bold red]{escape(message)}[/bold red]")
    except ImportError:
        print(message, file=sys.stderr)


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.log_level)

    from httpepub.convert import url_to_epub

    if not args.quiet:
        _print_start(args.url)
    try:
        path = url_to_epub(args.url, output=args.output, title=args.title)
    except HttpEpubError as exc:
        logger.debug("Conversion failed", exc_info=True)
        _print_error(exc)
        return 1

    if args.quiet:
        print(path)
    else:
        _print_result(str(path))
    return 0


if __name__ == "__main__":
    sys.exit(main())
