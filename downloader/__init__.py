"""
Article Downloader

Resolves catalog pages into article links, renders each article in a headless
browser, and saves it as a Markdown file while streaming progress events.
"""

__version__ = "0.1.0"
__author__ = "Article Downloader Team"
__description__ = "A browser-driven article downloader with live progress streaming"
__license__ = "MIT"

# Package level constants
DEFAULT_OUTPUT_DIR = "output"
DEFAULT_URL_FILE = "urls.txt"
