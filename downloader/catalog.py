"""
Catalog resolution for the article downloader.

A catalog page is an article whose body links to other articles. The page is
rendered in the shared browser, anchors inside the content region are read
from the live DOM, and the targets are filtered down to an ordered,
duplicate-free list of article URLs.
"""
import asyncio
from pathlib import Path
from typing import Iterable, List, Optional, Union

import aiofiles
import structlog
from prometheus_client import Counter
from playwright.async_api import Error as PlaywrightError

from downloader.config import Settings
from downloader.errors import CatalogResolutionError, InputError
from downloader.fetcher.browser import BrowserRenderer
from downloader.i18n import _
from downloader.progress import ProgressReporter

# Set up structured logger
logger = structlog.get_logger()

CATALOGS_RESOLVED_TOTAL = Counter(
    'catalogs_resolved_total', 'Total number of catalog pages resolved', ['status']
)


def filter_links(links: Iterable[str], pattern: str) -> List[str]:
    """
    Keep links containing a pattern, dropping repeats.

    Args:
        links: Candidate link targets in document order
        pattern: Substring every target article URL contains

    Returns:
        List[str]: Matching links in first-seen order, each at most once
    """
    seen = set()
    valid_urls = []
    for link in links:
        if pattern not in link or link in seen:
            continue
        seen.add(link)
        valid_urls.append(link)
    return valid_urls


async def collect_links(
    renderer: BrowserRenderer,
    url: str,
    readiness_selector: str,
    scope_selector: str,
    timeout_seconds: float,
) -> List[str]:
    """
    Render a catalog page and return every anchor target inside the scope.

    Raises:
        CatalogResolutionError: If navigation fails or the page never becomes ready
    """
    try:
        async with renderer.session(timeout_seconds) as session:
            async def _load_and_collect() -> List[str]:
                await session.load(url, readiness_selector)
                return await session.evaluate_links(scope_selector)

            return await asyncio.wait_for(_load_and_collect(), timeout=timeout_seconds)
    except asyncio.TimeoutError as e:
        raise CatalogResolutionError(url, f"timed out after {timeout_seconds:g}s") from e
    except PlaywrightError as e:
        raise CatalogResolutionError(url, str(e)) from e


async def resolve_catalog(
    renderer: BrowserRenderer,
    url: str,
    settings: Settings,
    reporter: ProgressReporter,
) -> List[str]:
    """
    Resolve a catalog URL into the list of article URLs it links to.

    Failures are reported as a progress event and yield an empty list; they
    are never raised to the caller.

    Args:
        renderer: Shared renderer for the batch
        url: Catalog page URL
        settings: Application settings
        reporter: Progress reporter

    Returns:
        List[str]: Ordered, duplicate-free article URLs (possibly empty)
    """
    browser_config = settings.browser
    await reporter.emit(_("Opening catalog page in the browser..."), url=url)

    try:
        all_links = await collect_links(
            renderer,
            url,
            browser_config.readiness_selector,
            browser_config.link_scope_selector,
            browser_config.catalog_timeout_seconds,
        )
    except CatalogResolutionError as e:
        logger.error("Catalog resolution failed", url=url, error=e.reason)
        CATALOGS_RESOLVED_TOTAL.labels(status="error").inc()
        await reporter.emit(_("Failed to read catalog: {reason}").format(reason=e.reason))
        return []

    valid_urls = filter_links(all_links, settings.catalog.link_pattern)
    logger.info(
        "Catalog resolved",
        url=url,
        links_found=len(all_links),
        articles=len(valid_urls),
    )
    CATALOGS_RESOLVED_TOTAL.labels(status="success").inc()
    await reporter.emit(_("Catalog resolved, found {count} articles").format(count=len(valid_urls)))
    return valid_urls


async def save_links(urls: List[str], path: Union[str, Path]) -> Path:
    """Write a link list to a file, one URL per line, replacing its contents."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    async with aiofiles.open(path, "w", encoding="utf-8") as f:
        for url in urls:
            await f.write(url + "\n")
    logger.info("Saved link list", path=str(path), count=len(urls))
    return path


def read_url_lines(lines: Iterable[str]) -> List[str]:
    """Strip lines and drop blank ones."""
    return [line.strip() for line in lines if line.strip()]


async def load_links(path: Union[str, Path]) -> List[str]:
    """
    Read a URL list file, one URL per line; blank lines are ignored.

    Raises:
        InputError: If the file is missing or unreadable
    """
    path = Path(path)
    try:
        async with aiofiles.open(path, "r", encoding="utf-8") as f:
            content = await f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise InputError(f"Cannot read URL list {path}: {e}") from e
    return read_url_lines(content.splitlines())


def direct_links(text: str, host_pattern: str) -> List[str]:
    """Split pasted text on whitespace and keep tokens that look like article links."""
    return [token for token in text.split() if host_pattern in token]


def is_link_list(text: Optional[str]) -> bool:
    """A trimmed input containing whitespace is a pasted list, not a single catalog URL."""
    return bool(text) and any(ch.isspace() for ch in text.strip())
