"""
Fetcher package for the article downloader.

This package renders pages in a headless browser via Playwright. One browser
is shared by a batch; each URL is fetched in its own short-lived, isolated
session bounded by a hard timeout.
"""
from downloader.fetcher.browser import BrowserRenderer, FetchSession, render_markup

__all__ = [
    "BrowserRenderer",
    "FetchSession",
    "render_markup",
]
