"""
Web front end for the article downloader.

This module provides the local page for submitting a download task and the
event stream that reports its progress.
"""
from downloader.web.app import create_app

__all__ = ["create_app"]
