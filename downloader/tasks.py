"""
Task orchestration for the article downloader.

This module contains the batch pipeline: it decides whether the user's input
is a catalog page or a pasted list of links, then downloads every article in
order, one isolated browser session at a time, reporting progress as it goes.
A failure on one article is reported and skipped; it never ends the batch.
"""
import asyncio
from functools import partial
from typing import Awaitable, Callable, List, Optional

import structlog
from prometheus_client import Counter

from downloader.catalog import direct_links, is_link_list, resolve_catalog
from downloader.config import BrowserConfig, Settings
from downloader.errors import ExtractionError, ItemFetchError, ItemTimeoutError, PersistError
from downloader.extractor.article_parser import extract_article
from downloader.fetcher.browser import BrowserRenderer, render_markup
from downloader.i18n import _
from downloader.models.article import OutputArtifact
from downloader.models.batch import BatchResult, ItemOutcome, ItemStatus
from downloader.progress import ProgressReporter
from downloader.storage import ArtifactWriter

# Set up structured logger
logger = structlog.get_logger()

# Define metrics
ARTICLES_PROCESSED_TOTAL = Counter(
    'articles_processed_total', 'Total number of articles processed', ['status']
)

RendererFactory = Callable[[BrowserConfig], BrowserRenderer]
Sleep = Callable[[float], Awaitable[None]]


async def process_url(
    url: str,
    position: str,
    renderer: BrowserRenderer,
    reporter: ProgressReporter,
    writer: ArtifactWriter,
    settings: Settings,
) -> ItemOutcome:
    """
    Download, extract and save a single article.

    Every failure is turned into exactly one progress event and an outcome;
    nothing is raised.
    """
    browser_config = settings.browser
    log = logger.bind(url=url)

    try:
        markup = await render_markup(
            renderer,
            url,
            browser_config.readiness_selector,
            browser_config.item_timeout_seconds,
        )
    except ItemTimeoutError as e:
        await reporter.emit(
            _("{position} Timed out after {seconds:g}s, skipped: {url}").format(
                position=position, seconds=browser_config.item_timeout_seconds, url=url
            ),
            error_type=e.kind,
        )
        return ItemOutcome(url=url, status=ItemStatus.TIMEOUT, error=str(e))
    except ItemFetchError as e:
        await reporter.emit(
            _("{position} Download failed, skipped: {reason}").format(position=position, reason=e.reason),
            error_type=e.kind,
        )
        return ItemOutcome(url=url, status=ItemStatus.FETCH_ERROR, error=str(e))

    loop = asyncio.get_running_loop()
    try:
        article = await loop.run_in_executor(
            None,
            partial(extract_article, markup, url, settings.output.placeholder_date),
        )
    except ExtractionError as e:
        log.warning("Article extraction failed", error=str(e))
        await reporter.emit(_("{position} Parse failed, skipped: {reason}").format(position=position, reason=e))
        return ItemOutcome(url=url, status=ItemStatus.EXTRACT_ERROR, error=str(e))

    artifact = OutputArtifact.from_article(article, url, writer.output_dir)
    try:
        path = await writer.write(artifact)
    except PersistError as e:
        await reporter.emit(_("{position} Failed to save file: {reason}").format(position=position, reason=e.reason))
        return ItemOutcome(url=url, status=ItemStatus.PERSIST_ERROR, error=str(e))

    log.info("Article saved", title=article.title, path=str(path))
    await reporter.emit(_("{position} Saved: {name}").format(position=position, name=path.stem))
    return ItemOutcome(url=url, status=ItemStatus.SAVED, path=path)


async def run_batch(
    urls: List[str],
    renderer: BrowserRenderer,
    reporter: ProgressReporter,
    settings: Settings,
    writer: Optional[ArtifactWriter] = None,
    sleep: Sleep = asyncio.sleep,
) -> BatchResult:
    """
    Download a list of articles strictly in order.

    Args:
        urls: Article URLs in processing order
        renderer: Shared renderer, already entered
        reporter: Progress reporter
        settings: Application settings
        writer: Artifact writer (one is created from settings if omitted)
        sleep: Coroutine used for the pause between articles

    Returns:
        BatchResult: One outcome per URL, in input order
    """
    result = BatchResult()
    if not urls:
        await reporter.emit(_("No valid article links found!"))
        return result

    if writer is None:
        writer = ArtifactWriter(settings.output.output_dir, settings.output.collision_policy)

    total = len(urls)
    delay = settings.batch.inter_item_delay_seconds
    logger.info("Starting batch", total=total, output_dir=str(writer.output_dir))

    for i, url in enumerate(urls, start=1):
        position = f"[{i}/{total}]"
        await reporter.emit(_("{position} Downloading: {url}").format(position=position, url=url))

        outcome = await process_url(url, position, renderer, reporter, writer, settings)
        result.outcomes.append(outcome)
        ARTICLES_PROCESSED_TOTAL.labels(status=outcome.status.value).inc()

        # Fixed throttle between articles, whatever the outcome
        if i < total and delay > 0:
            await sleep(delay)

    logger.info(
        "Batch finished",
        total=total,
        saved=len(result.saved),
        skipped=len(result.skipped),
    )
    await reporter.emit(
        _("All tasks finished! {saved}/{total} saved to the {output_dir} folder.").format(
            saved=len(result.saved), total=total, output_dir=writer.output_dir
        )
    )
    return result


async def process_task(
    input_text: str,
    reporter: ProgressReporter,
    settings: Settings,
    renderer_factory: RendererFactory = BrowserRenderer,
    sleep: Sleep = asyncio.sleep,
) -> BatchResult:
    """
    Run one user request end to end.

    Input containing whitespace is treated as a pasted list of article links;
    a single token is treated as a catalog page whose links are resolved
    first. The browser is launched once and shared by the whole batch.

    Args:
        input_text: A catalog URL or whitespace-separated article URLs
        reporter: Progress reporter bound to the caller's connection
        settings: Application settings
        renderer_factory: Builds the shared renderer from browser settings
        sleep: Coroutine used for the pause between articles

    Returns:
        BatchResult: Outcomes of the batch (empty if no links were found)
    """
    text = (input_text or "").strip()

    if is_link_list(text):
        urls = direct_links(text, settings.catalog.direct_host_pattern)
        await reporter.emit(_("Direct download mode ({count} links detected)").format(count=len(urls)))
        if not urls:
            await reporter.emit(_("No valid article links found!"))
            return BatchResult()
        async with renderer_factory(settings.browser) as renderer:
            return await run_batch(urls, renderer, reporter, settings, sleep=sleep)

    if not text:
        await reporter.emit(_("No valid article links found!"))
        return BatchResult()

    await reporter.emit(_("Catalog mode (resolving the catalog page...)"))
    async with renderer_factory(settings.browser) as renderer:
        urls = await resolve_catalog(renderer, text, settings, reporter)
        return await run_batch(urls, renderer, reporter, settings, sleep=sleep)


async def process_urls(
    urls: List[str],
    reporter: ProgressReporter,
    settings: Settings,
    renderer_factory: RendererFactory = BrowserRenderer,
    sleep: Sleep = asyncio.sleep,
) -> BatchResult:
    """Run a batch over an explicit URL list, e.g. one read from a file."""
    if not urls:
        await reporter.emit(_("No valid article links found!"))
        return BatchResult()
    async with renderer_factory(settings.browser) as renderer:
        return await run_batch(urls, renderer, reporter, settings, sleep=sleep)
