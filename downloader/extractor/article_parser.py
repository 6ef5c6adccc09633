"""
Article parser module for the article downloader.

This module turns the fully rendered markup of an article page into an
Article record. BeautifulSoup builds the document tree, a per-publisher
strategy pulls metadata and strips noise, and html2text converts what is
left into Markdown that keeps heading, paragraph and list structure.
"""
import abc
import re
from typing import Dict, Optional, Union
from urllib.parse import urlparse

import html2text
import structlog
from bs4 import BeautifulSoup, Tag

from downloader.errors import ExtractionError
from downloader.models.article import Article

# Set up structured logger
logger = structlog.get_logger()

# HTML elements removed before conversion
NOISE_ELEMENTS = ['script', 'style']

DEFAULT_SOURCE_ID = "default"


class ExtractionStrategy(abc.ABC):
    """
    Per-publisher rules for pulling metadata out of a document and cleaning it.
    """

    @abc.abstractmethod
    def extract_title(self, soup: BeautifulSoup) -> str:
        pass

    @abc.abstractmethod
    def extract_author(self, soup: BeautifulSoup) -> str:
        pass

    def clean(self, soup: BeautifulSoup) -> None:
        """Remove noise nodes in place."""
        for tag in soup.find_all(NOISE_ELEMENTS):
            tag.decompose()


class SelectorStrategy(ExtractionStrategy):
    """Reads title and author from fixed CSS selectors."""

    def __init__(self, title_selector: str, author_selector: str):
        self.title_selector = title_selector
        self.author_selector = author_selector

    def extract_title(self, soup: BeautifulSoup) -> str:
        return _select_text(soup, self.title_selector)

    def extract_author(self, soup: BeautifulSoup) -> str:
        return _select_text(soup, self.author_selector)


# Official-account article layout
DEFAULT_STRATEGY = SelectorStrategy("#activity-name", "#js_name")

_STRATEGIES: Dict[str, ExtractionStrategy] = {DEFAULT_SOURCE_ID: DEFAULT_STRATEGY}


def register_strategy(source_id: str, strategy: ExtractionStrategy) -> None:
    """Register a cleaning strategy for a source (usually a URL host)."""
    _STRATEGIES[source_id.lower()] = strategy


def get_strategy(source_id: Optional[str] = None) -> ExtractionStrategy:
    """Look up the strategy for a source, falling back to the default one."""
    if source_id:
        strategy = _STRATEGIES.get(source_id.lower())
        if strategy is not None:
            return strategy
    return _STRATEGIES[DEFAULT_SOURCE_ID]


def source_id_for(url: Optional[str]) -> Optional[str]:
    """Derive the strategy key for a URL."""
    if not url:
        return None
    return urlparse(url).netloc.lower() or None


def _select_text(soup: BeautifulSoup, selector: str) -> str:
    node = soup.select_one(selector)
    if node is None:
        return ""
    return node.get_text().strip()


def parse_document(markup: Union[str, bytes]) -> BeautifulSoup:
    """
    Parse rendered markup into a document tree.

    Raises:
        ExtractionError: If no element tree can be built from the input
    """
    if isinstance(markup, bytes):
        markup = markup.decode("utf-8", errors="replace")
    if not isinstance(markup, str) or not markup.strip():
        raise ExtractionError("Empty HTML content")

    try:
        soup = BeautifulSoup(markup, "html.parser")
    except Exception as e:
        raise ExtractionError(f"Failed to parse HTML: {str(e)}") from e

    if soup.find() is None:
        raise ExtractionError("Markup contains no HTML elements")
    return soup


def extract_publish_date(soup: BeautifulSoup, placeholder: str) -> str:
    """
    Publish date extraction.

    Not implemented: the date lives in an inline script on these pages and no
    parsing rule has been settled, so the configured placeholder is returned.
    """
    logger.debug("Publish date extraction not implemented, using placeholder", date=placeholder)
    return placeholder


def to_long_text(tree: Union[BeautifulSoup, Tag]) -> str:
    """
    Convert a document tree to Markdown.

    Pure function: the tree is serialized, not modified.
    """
    converter = html2text.HTML2Text()
    converter.ignore_links = False
    converter.ignore_images = False
    converter.body_width = 0
    converter.unicode_snob = True
    markdown = converter.handle(str(tree))
    # Collapse excessive blank lines
    markdown = re.sub(r"\n{3,}", "\n\n", markdown)
    return markdown.strip()


def extract_article(
    markup: Union[str, bytes],
    source_url: Optional[str] = None,
    placeholder_date: str = "",
) -> Article:
    """
    Extract an Article from fully rendered page markup.

    Args:
        markup: Full document markup
        source_url: URL the markup came from; selects the cleaning strategy
        placeholder_date: Value stored in Article.date

    Returns:
        Article: Extracted article; missing metadata yields empty strings

    Raises:
        ExtractionError: If the markup cannot be parsed or converted
    """
    soup = parse_document(markup)
    strategy = get_strategy(source_id_for(source_url))

    try:
        title = strategy.extract_title(soup)
        author = strategy.extract_author(soup)
        date = extract_publish_date(soup, placeholder_date)

        strategy.clean(soup)
        body = soup.body or soup
        content = to_long_text(body)
    except Exception as e:
        logger.error("Error extracting article content", url=source_url, error=str(e))
        raise ExtractionError(f"Failed to extract article: {str(e)}") from e

    logger.debug(
        "Article extracted",
        url=source_url,
        title=title,
        content_length=len(content),
    )
    return Article(title=title, author=author, content=content, date=date)
