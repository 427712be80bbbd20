"""File discovery utilities."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable, Iterator

from .detectors import is_system_file
from .models import FileBlob, FileEntry

LOGGER = logging.getLogger(__name__)


def _is_hidden(relative: str) -> bool:
    return any(part.startswith(".") for part in relative.split("/") if part not in (".", ".."))


class DirectoryScanner:
    """Turn dropped files and folders into ``FileEntry`` objects.

    Entry paths mirror what a browser reports for a dropped folder: a folder
    ``SeriesA`` yields paths such as ``SeriesA/vol1.mokuro``, and a dropped
    file yields its bare name.
    """

    def __init__(self, *, include_hidden: bool = False, follow_symlinks: bool = False) -> None:
        self.include_hidden = include_hidden
        self.follow_symlinks = follow_symlinks

    def scan(self, root: Path) -> Iterator[FileEntry]:
        """Yield entries for ``root`` respecting the configured filters."""
        root = Path(root).expanduser()
        if not root.exists():
            LOGGER.warning("Skipping missing path %s", root)
            return

        if root.is_file():
            if is_system_file(root.name):
                return
            yield FileEntry(path=root.name, file=FileBlob.from_path(root))
            return

        anchor = root.resolve().parent
        for path in self._iter_files(root.resolve()):
            relative = path.relative_to(anchor).as_posix()
            if not self.include_hidden and _is_hidden(relative):
                continue
            if is_system_file(relative):
                continue
            try:
                blob = FileBlob.from_path(path)
            except OSError as exc:
                LOGGER.warning("Unable to read %s: %s", path, exc)
                continue
            yield FileEntry(path=relative, file=blob)

    def scan_all(self, roots: Iterable[Path]) -> list[FileEntry]:
        """Scan several dropped paths into one flat entry list."""
        entries: list[FileEntry] = []
        for root in roots:
            entries.extend(self.scan(root))
        return entries

    def _iter_files(self, root: Path) -> Iterator[Path]:
        for directory, dirnames, filenames in os.walk(root, followlinks=self.follow_symlinks):
            dirnames.sort()
            base = Path(directory)
            for filename in sorted(filenames):
                path = base / filename
                if path.is_symlink() and not self.follow_symlinks:
                    continue
                if path.is_file():
                    yield path
