"""Import queue, orchestration, and the import service."""

from .models import (
    DrainSummary,
    ImportQueueItem,
    ImportResult,
    ImportStatus,
    SourceOutcome,
)
from .orchestrator import NO_VOLUMES_IN_ARCHIVE, ImportOrchestrator
from .prompts import AutoConfirm, ConfirmationPrompt, LoggingNotifier, Notifier
from .queue import ImportQueue
from .service import NO_VOLUMES_FOUND, NO_VOLUMES_SELECTED, ImportService

__all__ = [
    "AutoConfirm",
    "ConfirmationPrompt",
    "DrainSummary",
    "ImportOrchestrator",
    "ImportQueue",
    "ImportQueueItem",
    "ImportResult",
    "ImportService",
    "ImportStatus",
    "LoggingNotifier",
    "NO_VOLUMES_FOUND",
    "NO_VOLUMES_IN_ARCHIVE",
    "NO_VOLUMES_SELECTED",
    "Notifier",
    "SourceOutcome",
]
