"""
Exception hierarchy for the article downloader.

Every per-item error is recovered inside the batch loop and reported as a
single progress event; only InputError stops an invocation before a batch
starts.
"""
from typing import Optional


class DownloaderError(Exception):
    """Base exception for all downloader errors."""


class InputError(DownloaderError):
    """The URL list could not be read (missing or unreadable file)."""


class CatalogResolutionError(DownloaderError):
    """The catalog page could not be navigated or never became ready."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"Failed to resolve catalog {url}: {reason}")
        self.url = url
        self.reason = reason


class ItemFetchError(DownloaderError):
    """Rendering one article failed for a reason other than its time budget."""

    kind = "other"

    def __init__(self, url: str, reason: str = ""):
        message = f"Failed to fetch {url}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.url = url
        self.reason = reason


class ItemTimeoutError(ItemFetchError):
    """Rendering one article exceeded its time budget."""

    kind = "timeout"

    def __init__(self, url: str, timeout_seconds: Optional[float] = None):
        reason = f"timed out after {timeout_seconds:g}s" if timeout_seconds else "timed out"
        super().__init__(url, reason)
        self.timeout_seconds = timeout_seconds


class ExtractionError(DownloaderError):
    """Rendered markup could not be parsed into a document tree."""


class PersistError(DownloaderError):
    """An article file could not be written."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Failed to write {path}: {reason}")
        self.path = path
        self.reason = reason
