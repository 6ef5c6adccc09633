"""
Extractor package for the article downloader.

This package turns rendered article markup into Article records. Cleaning is
selected per publisher through a strategy registry keyed by URL host, with a
single default strategy for official-account article pages.
"""
from downloader.extractor.article_parser import (
    ExtractionStrategy,
    SelectorStrategy,
    extract_article,
    extract_publish_date,
    get_strategy,
    parse_document,
    register_strategy,
    to_long_text,
)

__all__ = [
    "ExtractionStrategy",
    "SelectorStrategy",
    "extract_article",
    "extract_publish_date",
    "get_strategy",
    "parse_document",
    "register_strategy",
    "to_long_text",
]
