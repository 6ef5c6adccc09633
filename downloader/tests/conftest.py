import asyncio
from contextlib import asynccontextmanager
from typing import Dict, List, Optional, Union

import pytest
from playwright.async_api import Error as PlaywrightError

from downloader.config import BatchConfig, BrowserConfig, OutputConfig, Settings

ARTICLE_TEMPLATE = """
<html>
    <head>
        <title>ignored</title>
        <style>.rich_media {{ color: red; }}</style>
    </head>
    <body>
        <h1 id="activity-name">
            {title}
        </h1>
        <a id="js_name"> {author} </a>
        <div id="js_content">
            <h2>Section</h2>
            <p>{body}</p>
            <ul><li>first point</li><li>second point</li></ul>
            <script>var tracking = "should not appear";</script>
        </div>
    </body>
</html>
"""

TIMEOUT = "timeout"


def article_html(title: str = "Test Article", author: str = "Test Author", body: str = "Hello world.") -> str:
    return ARTICLE_TEMPLATE.format(title=title, author=author, body=body)


class FakeSession:
    """Stands in for a Playwright-backed FetchSession."""

    def __init__(self, renderer: "FakeRenderer"):
        self.renderer = renderer
        self.url: Optional[str] = None

    async def load(self, url: str, readiness_selector: str) -> None:
        self.url = url
        self.renderer.loaded.append(url)
        behaviour = self.renderer.pages.get(url)
        if behaviour == TIMEOUT:
            await asyncio.sleep(10)
        if isinstance(behaviour, Exception):
            raise behaviour

    async def outer_html(self) -> str:
        return self.renderer.pages[self.url]

    async def fetch(self, url: str, readiness_selector: str) -> str:
        await self.load(url, readiness_selector)
        return await self.outer_html()

    async def evaluate_links(self, scope_selector: str) -> List[str]:
        return list(self.renderer.links.get(self.url, []))


class FakeRenderer:
    """
    Renderer double that records session lifecycles.

    pages maps a URL to its markup, to TIMEOUT, or to an exception to raise.
    """

    def __init__(self, pages: Optional[Dict[str, Union[str, Exception]]] = None,
                 links: Optional[Dict[str, List[str]]] = None):
        self.pages = pages or {}
        self.links = links or {}
        self.loaded: List[str] = []
        self.sessions_opened = 0
        self.sessions_closed = 0
        self.entered = 0
        self.exited = 0
        self.open_sessions = 0

    def __call__(self, config: BrowserConfig) -> "FakeRenderer":
        # Lets the instance double as a renderer factory
        return self

    async def __aenter__(self) -> "FakeRenderer":
        self.entered += 1
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.exited += 1

    @asynccontextmanager
    async def session(self, timeout_seconds: Optional[float] = None):
        assert self.open_sessions == 0, "previous session was not released"
        self.open_sessions += 1
        self.sessions_opened += 1
        try:
            yield FakeSession(self)
        finally:
            self.open_sessions -= 1
            self.sessions_closed += 1


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        browser=BrowserConfig(item_timeout_seconds=0.05, catalog_timeout_seconds=0.05),
        output=OutputConfig(output_dir=tmp_path / "output"),
        batch=BatchConfig(inter_item_delay_seconds=0),
    )


@pytest.fixture
def network_error() -> PlaywrightError:
    return PlaywrightError("net::ERR_NAME_NOT_RESOLVED")
