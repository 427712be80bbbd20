"""Import queue and result models."""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from mangadrop.pairing.models import PairedSource


class ImportStatus(str, Enum):
    """Lifecycle states of a queued import."""

    QUEUED = "queued"
    DECOMPRESSING = "decompressing"
    PROCESSING = "processing"
    COMPLETE = "complete"
    ERROR = "error"


ACTIVE_STATUSES = frozenset({ImportStatus.DECOMPRESSING, ImportStatus.PROCESSING})
FINISHED_STATUSES = frozenset({ImportStatus.COMPLETE, ImportStatus.ERROR})


class ImportQueueItem(BaseModel):
    """A paired source waiting in, or moving through, the import queue.

    Attributes:
        id: Matches the wrapped source's id.
        source: Pairing to import.
        status: Current lifecycle state.
        progress: Completion percentage from 0 to 100.
        display_title: Name shown to the user.
        error_message: Failure reason when ``status`` is ``error``.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    source: PairedSource
    status: ImportStatus = ImportStatus.QUEUED
    progress: float = Field(default=0, ge=0, le=100)
    display_title: str = "Untitled"
    error_message: Optional[str] = None

    @classmethod
    def from_source(cls, source: PairedSource) -> "ImportQueueItem":
        return cls(id=source.id, source=source, display_title=source.display_title)


class SourceOutcome(BaseModel):
    """Result of processing one paired source."""

    success: bool
    imported: int = 0
    error: Optional[str] = None
    nested_sources: List[PairedSource] = Field(default_factory=list)


class DrainSummary(BaseModel):
    """Counters collected while draining the queue."""

    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    imported: int = 0
    errors: List[str] = Field(default_factory=list)


class ImportResult(BaseModel):
    """Outcome of an import request.

    Attributes:
        success: False when nothing importable was found or any unit failed.
        imported: Number of volumes written to the library.
        failed: Number of units that ended in error.
        errors: Failure messages.
        warnings: Non-fatal pairing warnings.
    """

    success: bool = True
    imported: int = 0
    failed: int = 0
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


__all__ = [
    "ImportStatus",
    "ACTIVE_STATUSES",
    "FINISHED_STATUSES",
    "ImportQueueItem",
    "SourceOutcome",
    "DrainSummary",
    "ImportResult",
]
