"""
Central re-exports for the article downloader data models.
"""
from .article import Article, OutputArtifact
from .batch import BatchResult, ItemOutcome, ItemStatus

__all__ = [
    "Article",
    "OutputArtifact",
    "BatchResult",
    "ItemOutcome",
    "ItemStatus",
]
