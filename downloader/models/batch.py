"""
Batch result models returned by the orchestrator.
"""
from enum import Enum
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field


class ItemStatus(str, Enum):
    """Terminal status of one URL in a batch."""
    SAVED = "saved"
    TIMEOUT = "timeout"
    FETCH_ERROR = "fetch_error"
    EXTRACT_ERROR = "extract_error"
    PERSIST_ERROR = "persist_error"


class ItemOutcome(BaseModel):
    """What happened to a single URL."""
    url: str
    status: ItemStatus
    path: Optional[Path] = None
    error: Optional[str] = None


class BatchResult(BaseModel):
    """Summary of a finished batch, in processing order."""
    outcomes: List[ItemOutcome] = Field(default_factory=list)

    @property
    def saved(self) -> List[ItemOutcome]:
        return [o for o in self.outcomes if o.status == ItemStatus.SAVED]

    @property
    def skipped(self) -> List[ItemOutcome]:
        return [o for o in self.outcomes if o.status != ItemStatus.SAVED]

    @property
    def written_paths(self) -> List[Path]:
        return [o.path for o in self.saved if o.path is not None]
