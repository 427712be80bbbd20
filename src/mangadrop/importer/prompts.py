"""User-facing collaborators: confirmation prompts and notifications."""

from __future__ import annotations

import logging
from typing import Protocol, Sequence

from mangadrop.assembly.models import MissingFilesInfo, SeriesImportInfo

LOGGER = logging.getLogger(__name__)


class ConfirmationPrompt(Protocol):
    """Asks the user whether to continue; a False answer aborts one unit only."""

    def confirm_missing_files(self, info: MissingFilesInfo) -> bool: ...

    def confirm_image_only(self, series: Sequence[SeriesImportInfo], total_volumes: int) -> bool: ...


class Notifier(Protocol):
    """Fire-and-forget status messages."""

    def notify(self, message: str, *, level: str = "info") -> None: ...


class AutoConfirm:
    """Prompt that answers every question the same way."""

    def __init__(self, answer: bool = True) -> None:
        self.answer = answer

    def confirm_missing_files(self, info: MissingFilesInfo) -> bool:
        LOGGER.info(
            "Auto-%s import of %s with %d missing of %d pages",
            "accepting" if self.answer else "declining",
            info.volume_name,
            len(info.missing_files),
            info.total_pages,
        )
        return self.answer

    def confirm_image_only(self, series: Sequence[SeriesImportInfo], total_volumes: int) -> bool:
        LOGGER.info(
            "Auto-%s image-only import of %d volume(s) across %d series",
            "accepting" if self.answer else "declining",
            total_volumes,
            len(series),
        )
        return self.answer


class LoggingNotifier:
    """Notifier that writes messages to the log."""

    _LEVELS = {
        "debug": logging.DEBUG,
        "info": logging.INFO,
        "warning": logging.WARNING,
        "error": logging.ERROR,
    }

    def notify(self, message: str, *, level: str = "info") -> None:
        LOGGER.log(self._LEVELS.get(level, logging.INFO), message)


__all__ = ["ConfirmationPrompt", "Notifier", "AutoConfirm", "LoggingNotifier"]
