#!/usr/bin/env python3
"""
Article Downloader - Entry Point

This module is the command line entry point. It can serve the local web page
(with live progress over server-sent events), run a single task with progress
printed to the terminal, or resolve a catalog page into a URL list file.
"""
import argparse
import asyncio
import logging
import os
import sys
import threading
import webbrowser
from pathlib import Path
from typing import List, Optional

import structlog
import uvicorn
from prometheus_client import start_http_server

from downloader import DEFAULT_URL_FILE
from downloader.catalog import load_links, resolve_catalog, save_links
from downloader.config import LogLevel, Settings, load_settings
from downloader.errors import InputError
from downloader.fetcher.browser import BrowserRenderer
from downloader.i18n import _
from downloader.progress import ProgressReporter, TextStreamConnection
from downloader.tasks import process_task, process_urls

# Set up structured logger
logger = structlog.get_logger()

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INPUT_ERROR = 2
EXIT_INTERRUPTED = 130


def setup_logging(settings: Settings) -> None:
    """Set up structured logging based on configuration."""
    log_level = settings.logging.log_level.value

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer() if settings.logging.structured_logging
            else structlog.dev.ConsoleRenderer()
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Logs go to stderr so stdout carries only progress lines
    numeric_level = getattr(logging, log_level, logging.INFO)
    logging.basicConfig(stream=sys.stderr, format="%(message)s", level=numeric_level)
    logging.getLogger().setLevel(numeric_level)

    logger.debug("Logging initialized", level=log_level)


def open_browser_later(url: str, delay: float) -> None:
    """Open the local page in the user's browser once the server has had time to start."""
    def _open():
        try:
            webbrowser.open(url)
        except webbrowser.Error as e:
            logger.warning("Could not open browser, please visit the page manually", url=url, error=str(e))

    timer = threading.Timer(delay, _open)
    timer.daemon = True
    timer.start()


def serve(settings: Settings, host: Optional[str], port: Optional[int], open_page: bool) -> int:
    """Run the web front end until interrupted."""
    from downloader.web.app import create_app

    host = host or settings.web.host
    port = port or settings.web.port
    page_url = f"http://{'localhost' if host in ('0.0.0.0', '127.0.0.1') else host}:{port}"

    logger.info("Starting web server", url=page_url)
    print("=" * 50)
    print(_("  {name} is running").format(name=settings.app_name))
    print(_("  Open {url} in your browser").format(url=page_url))
    print("=" * 50)

    if open_page:
        open_browser_later(page_url, settings.web.open_delay_seconds)

    uvicorn.run(
        create_app(settings),
        host=host,
        port=port,
        log_level=settings.logging.log_level.value.lower(),
    )
    return EXIT_OK


async def run_task(settings: Settings, input_text: Optional[str], url_file: Optional[Path]) -> int:
    """Run one download task with progress printed to stdout."""
    reporter = ProgressReporter(TextStreamConnection(sys.stdout), plain=True)

    if url_file is not None:
        try:
            urls = await load_links(url_file)
        except InputError as e:
            logger.error("Cannot read URL list", path=str(url_file), error=str(e))
            await reporter.emit(_("Cannot read URL list: {error}").format(error=e))
            return EXIT_INPUT_ERROR
        await reporter.emit(_("Found {count} links to process").format(count=len(urls)))
        result = await process_urls(urls, reporter, settings)
    else:
        result = await process_task(input_text or "", reporter, settings)

    return EXIT_OK if not result.skipped else EXIT_ERROR


async def collect_catalog(settings: Settings, catalog_url: str, output: Path) -> int:
    """Resolve a catalog page and save its article links for a later run."""
    reporter = ProgressReporter(TextStreamConnection(sys.stdout), plain=True)

    async with BrowserRenderer(settings.browser) as renderer:
        urls = await resolve_catalog(renderer, catalog_url, settings, reporter)

    if not urls:
        await reporter.emit(_("No valid article links found!"))
        return EXIT_ERROR

    path = await save_links(urls, output)
    await reporter.emit(_("Saved {count} links to {path}").format(count=len(urls), path=path))
    return EXIT_OK


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description=_("Article Downloader - Save rendered articles as Markdown")
    )

    parser.add_argument(
        "--log-level",
        choices=[level.value for level in LogLevel],
        default=None,
        help="Set the log level"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    serve_parser = subparsers.add_parser("serve", help="Run the local web page")
    serve_parser.add_argument("--host", default=None, help="Interface to bind")
    serve_parser.add_argument("--port", type=int, default=None, help="Port to listen on")
    serve_parser.add_argument(
        "--no-open",
        action="store_true",
        help="Don't open the page in a browser"
    )

    run_parser = subparsers.add_parser("run", help="Download articles once and exit")
    source = run_parser.add_mutually_exclusive_group(required=True)
    source.add_argument(
        "input",
        nargs="?",
        default=None,
        help="A catalog URL, or several article URLs separated by whitespace"
    )
    source.add_argument(
        "--file",
        type=Path,
        default=None,
        help="Text file with one article URL per line"
    )

    links_parser = subparsers.add_parser("links", help="Save the article links of a catalog page")
    links_parser.add_argument("catalog_url", help="Catalog page URL")
    links_parser.add_argument(
        "--output",
        type=Path,
        default=Path(DEFAULT_URL_FILE),
        help="File to write the links to"
    )

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the application."""
    # Ensure BROWSER environment variable does not interfere with Pydantic-settings
    os.environ.pop("BROWSER", None)
    try:
        args = parse_args(argv)
        settings = load_settings()

        if args.log_level:
            settings.logging.log_level = LogLevel(args.log_level)

        setup_logging(settings)

        logger.debug(
            "Article Downloader starting up",
            version=settings.version,
            command=args.command,
            python_version=sys.version
        )

        if settings.metrics.prometheus_enabled:
            start_http_server(settings.metrics.prometheus_port)
            logger.info("Prometheus metrics server started", port=settings.metrics.prometheus_port)

        if args.command == "serve":
            open_page = settings.web.open_browser and not args.no_open
            return serve(settings, args.host, args.port, open_page)
        if args.command == "links":
            return asyncio.run(collect_catalog(settings, args.catalog_url, args.output))
        return asyncio.run(run_task(settings, args.input, args.file))

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return EXIT_INTERRUPTED

    except Exception as e:
        logger.exception("Unhandled exception", error=str(e))
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
