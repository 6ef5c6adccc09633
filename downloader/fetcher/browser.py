"""
Browser rendering module for the article downloader.

This module owns the headless browser used to render article and catalog
pages. One Playwright browser is launched per batch; every URL gets its own
isolated browser context and page (a FetchSession) that is closed before the
next one is opened, whatever the outcome of the fetch.
"""
import asyncio
import time
from contextlib import AsyncExitStack, asynccontextmanager
from typing import AsyncIterator, List, Optional

import structlog
from playwright.async_api import (
    Browser,
    BrowserContext,
    Error as PlaywrightError,
    Page,
    Playwright,
    Route,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)

from downloader.config import BrowserConfig
from downloader.errors import ItemFetchError, ItemTimeoutError

# Set up structured logger
logger = structlog.get_logger()

# Collects resolved anchor targets; the browser has already made them absolute
LINKS_SCRIPT = "anchors => anchors.map(a => a.href)"

AD_DOMAINS = [
    'googlesyndication.com',
    'googleadservices.com',
    'doubleclick.net',
    'adservice.google.com',
    'advertising.com',
]


class FetchSession:
    """
    One isolated interaction with the browser for a single URL.

    Wraps a Playwright browser context and its single page. Sessions are
    created by BrowserRenderer.session() and must not outlive that block.
    """

    def __init__(self, context: BrowserContext, page: Page):
        self.context = context
        self.page = page
        self.closed = False

    async def load(self, url: str, readiness_selector: str) -> None:
        """
        Navigate to a URL and wait until the readiness selector is visible.

        Args:
            url: Page to open
            readiness_selector: CSS selector that marks the page as rendered
        """
        await self.page.goto(url, wait_until="domcontentloaded")
        await self.page.wait_for_selector(readiness_selector, state="visible")

    async def outer_html(self) -> str:
        """Return the fully rendered document markup."""
        return await self.page.evaluate("() => document.documentElement.outerHTML")

    async def fetch(self, url: str, readiness_selector: str) -> str:
        """Load a page and capture its rendered markup."""
        await self.load(url, readiness_selector)
        return await self.outer_html()

    async def evaluate_links(self, scope_selector: str) -> List[str]:
        """
        Collect the href of every anchor matching a selector.

        Args:
            scope_selector: Selector for anchors inside the content region

        Returns:
            List[str]: Absolute link targets in document order
        """
        links = await self.page.eval_on_selector_all(scope_selector, LINKS_SCRIPT)
        return [link for link in links if isinstance(link, str)]

    async def close(self) -> None:
        """Close the page, then the browser context."""
        if self.closed:
            return
        self.closed = True

        try:
            await self.page.close()
        except PlaywrightError as e:
            logger.warning("Error closing page", error=str(e))

        try:
            await self.context.close()
        except PlaywrightError as e:
            logger.warning("Error closing browser context", error=str(e))


class BrowserRenderer:
    """
    Shared browser for one batch.

    Use as an async context manager: the browser is launched on entry and
    closed on exit. Per-URL sessions are opened with session(); only one may
    be open at a time.
    """

    def __init__(self, config: BrowserConfig):
        """
        Initialize the renderer.

        Args:
            config: Browser configuration
        """
        self.config = config
        self.playwright: Optional[Playwright] = None
        self.browser: Optional[Browser] = None
        self.sessions_opened = 0
        self.sessions_closed = 0
        self._active: Optional[FetchSession] = None

    async def __aenter__(self) -> "BrowserRenderer":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.shutdown()

    async def initialize(self) -> None:
        """Start Playwright and launch the browser."""
        if self.playwright is not None:
            return

        logger.info("Launching browser", browser_type=self.config.browser_type, headless=self.config.headless)

        self.playwright = await async_playwright().start()
        browser_type = getattr(self.playwright, self.config.browser_type)
        try:
            self.browser = await browser_type.launch(headless=self.config.headless)
        except Exception:
            await self.playwright.stop()
            self.playwright = None
            raise

        logger.info("Browser launched", browser_type=self.config.browser_type)

    async def shutdown(self) -> None:
        """Close the browser and stop Playwright."""
        if self._active is not None:
            await self._active.close()
            self._active = None

        if self.browser:
            try:
                await self.browser.close()
            except PlaywrightError as e:
                logger.warning("Error closing browser", error=str(e))
            self.browser = None

        if self.playwright:
            await self.playwright.stop()
            self.playwright = None

        logger.info(
            "Browser closed",
            sessions_opened=self.sessions_opened,
            sessions_closed=self.sessions_closed,
        )

    async def _new_context(self) -> BrowserContext:
        if not self.browser:
            await self.initialize()

        return await self.browser.new_context(
            viewport={
                "width": self.config.viewport_width,
                "height": self.config.viewport_height,
            },
            user_agent=self.config.user_agent,
            java_script_enabled=not self.config.disable_javascript,
        )

    async def _prepare_page(self, page: Page, timeout_seconds: Optional[float]) -> None:
        if timeout_seconds:
            page.set_default_timeout(timeout_seconds * 1000)
        if self.config.stealth_mode:
            await _apply_stealth_mode(page)
        if self.config.block_ads:
            await page.route('**/*', _block_ads)

    @asynccontextmanager
    async def session(self, timeout_seconds: Optional[float] = None) -> AsyncIterator[FetchSession]:
        """
        Open an isolated session for one URL.

        The session is closed when the block exits, on success and on error.

        Args:
            timeout_seconds: Default Playwright timeout for the session's page

        Yields:
            FetchSession: Fresh browser context and page
        """
        if self._active is not None:
            raise RuntimeError("A fetch session is already open")

        context = await self._new_context()
        try:
            page = await context.new_page()
            await self._prepare_page(page, timeout_seconds)
        except BaseException:
            await context.close()
            raise

        session = FetchSession(context, page)
        self._active = session
        self.sessions_opened += 1
        try:
            yield session
        finally:
            await session.close()
            self._active = None
            self.sessions_closed += 1


async def _apply_stealth_mode(page: Page) -> None:
    """Mask the most common automation fingerprints."""
    await page.add_init_script("""
    Object.defineProperty(navigator, 'webdriver', {
        get: () => false,
    });
    """)
    await page.add_init_script("""
    Object.defineProperty(navigator, 'languages', {
        get: () => ['zh-CN', 'zh', 'en-US', 'en'],
    });
    """)


async def _block_ads(route: Route) -> None:
    if any(ad in route.request.url for ad in AD_DOMAINS):
        await route.abort()
    else:
        await route.continue_()


async def render_markup(
    renderer: "BrowserRenderer",
    url: str,
    readiness_selector: str,
    timeout_seconds: float,
) -> str:
    """
    Fetch the rendered markup of one URL in its own bounded session.

    One deadline covers acquiring the session and driving it. The timeout
    scopes sit inside the session scope, so the deadline is cancelled before
    the session is closed on every exit path.

    Args:
        renderer: Shared renderer for the batch
        url: Article URL
        readiness_selector: Selector that marks the page as rendered
        timeout_seconds: Hard wall-clock budget for the whole fetch

    Returns:
        str: Rendered document markup

    Raises:
        ItemTimeoutError: If the budget was exceeded
        ItemFetchError: For any other renderer failure
    """
    start_time = time.time()
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout_seconds
    try:
        async with AsyncExitStack() as stack:
            session = await asyncio.wait_for(
                stack.enter_async_context(renderer.session(timeout_seconds)),
                timeout=timeout_seconds,
            )
            markup = await asyncio.wait_for(
                session.fetch(url, readiness_selector),
                timeout=max(deadline - loop.time(), 0),
            )
    except (asyncio.TimeoutError, PlaywrightTimeoutError) as e:
        logger.warning("Fetch timed out", url=url, timeout_seconds=timeout_seconds)
        raise ItemTimeoutError(url, timeout_seconds) from e
    except ItemFetchError:
        raise
    except Exception as e:
        logger.warning("Fetch failed", url=url, error=str(e))
        raise ItemFetchError(url, str(e)) from e

    logger.debug(
        "Page rendered",
        url=url,
        content_length=len(markup),
        load_time_seconds=time.time() - start_time,
    )
    return markup
