import asyncio
from unittest.mock import AsyncMock, MagicMock, call

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from downloader.config import BrowserConfig
from downloader.errors import ItemFetchError, ItemTimeoutError
from downloader.fetcher.browser import BrowserRenderer, FetchSession, render_markup

URL = "https://mp.weixin.qq.com/s/abc"


def make_page():
    page = MagicMock()
    page.close = AsyncMock()
    page.goto = AsyncMock()
    page.wait_for_selector = AsyncMock()
    page.evaluate = AsyncMock(return_value="<html><body>rendered</body></html>")
    page.eval_on_selector_all = AsyncMock(return_value=["https://a", None, "https://b"])
    page.add_init_script = AsyncMock()
    page.route = AsyncMock()
    return page


def make_renderer(config=None):
    config = config or BrowserConfig()
    renderer = BrowserRenderer(config)
    context = MagicMock()
    context.close = AsyncMock()
    page = make_page()
    context.new_page = AsyncMock(return_value=page)
    renderer.browser = MagicMock()
    renderer.browser.new_context = AsyncMock(return_value=context)
    return renderer, context, page


@pytest.mark.asyncio
async def test_session_closes_page_then_context():
    parent = MagicMock()
    page = make_page()
    context = MagicMock()
    context.close = AsyncMock()
    parent.attach_mock(page.close, "page_close")
    parent.attach_mock(context.close, "context_close")

    session = FetchSession(context, page)
    await session.close()
    await session.close()

    assert parent.mock_calls == [call.page_close(), call.context_close()]


@pytest.mark.asyncio
async def test_session_close_tolerates_playwright_errors():
    page = make_page()
    page.close.side_effect = PlaywrightError("Target closed")
    context = MagicMock()
    context.close = AsyncMock()

    await FetchSession(context, page).close()

    context.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_fetch_navigates_waits_and_captures():
    page = make_page()
    session = FetchSession(MagicMock(), page)

    markup = await session.fetch(URL, "#js_content")

    page.goto.assert_awaited_once_with(URL, wait_until="domcontentloaded")
    page.wait_for_selector.assert_awaited_once_with("#js_content", state="visible")
    assert "rendered" in markup


@pytest.mark.asyncio
async def test_evaluate_links_drops_non_strings():
    session = FetchSession(MagicMock(), make_page())
    assert await session.evaluate_links("#js_content a") == ["https://a", "https://b"]


@pytest.mark.asyncio
async def test_session_block_releases_on_error():
    renderer, context, page = make_renderer()

    with pytest.raises(ValueError):
        async with renderer.session(5):
            raise ValueError("boom")

    page.set_default_timeout.assert_called_once_with(5000)
    page.close.assert_awaited_once()
    context.close.assert_awaited_once()
    assert renderer.sessions_opened == renderer.sessions_closed == 1


@pytest.mark.asyncio
async def test_only_one_session_at_a_time():
    renderer, _, _ = make_renderer()

    async with renderer.session():
        with pytest.raises(RuntimeError):
            async with renderer.session():
                pass


@pytest.mark.asyncio
async def test_render_markup_classifies_timeout():
    renderer, context, page = make_renderer()

    async def never_loads(*args, **kwargs):
        await asyncio.sleep(10)

    page.goto.side_effect = never_loads

    with pytest.raises(ItemTimeoutError) as exc_info:
        await render_markup(renderer, URL, "#js_content", 0.05)

    assert exc_info.value.kind == "timeout"
    context.close.assert_awaited_once()
    assert renderer.sessions_opened == renderer.sessions_closed == 1


@pytest.mark.asyncio
async def test_render_markup_classifies_playwright_timeout_as_timeout():
    renderer, _, page = make_renderer()
    page.wait_for_selector.side_effect = PlaywrightTimeoutError("waiting for selector")

    with pytest.raises(ItemTimeoutError):
        await render_markup(renderer, URL, "#js_content", 5)


@pytest.mark.asyncio
async def test_render_markup_wraps_other_failures():
    renderer, context, page = make_renderer()
    page.goto.side_effect = PlaywrightError("net::ERR_CONNECTION_RESET")

    with pytest.raises(ItemFetchError) as exc_info:
        await render_markup(renderer, URL, "#js_content", 5)

    assert not isinstance(exc_info.value, ItemTimeoutError)
    assert exc_info.value.kind == "other"
    assert "ERR_CONNECTION_RESET" in exc_info.value.reason
    context.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_render_markup_deadline_covers_session_setup():
    renderer, context, page = make_renderer()

    async def hangs(*args, **kwargs):
        await asyncio.sleep(10)

    context.new_page.side_effect = hangs

    with pytest.raises(ItemTimeoutError):
        await render_markup(renderer, URL, "#js_content", 0.05)

    context.close.assert_awaited_once()
    page.goto.assert_not_awaited()
    assert renderer.sessions_opened == renderer.sessions_closed == 0
    assert renderer._active is None
