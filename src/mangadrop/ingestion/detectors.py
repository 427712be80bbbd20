"""File classification helpers shared by local and archive-sourced listings."""

from __future__ import annotations

import re
from typing import Iterable, NamedTuple, Tuple

from .models import CategorizedFile, FileCategory, FileEntry

IMAGE_EXTENSIONS = frozenset({"jpg", "jpeg", "png", "webp", "gif", "bmp", "avif"})
ARCHIVE_EXTENSIONS = frozenset({"zip", "cbz", "cbr", "rar", "7z"})
METADATA_EXTENSIONS = frozenset({"mokuro"})

# Compared case-insensitively against every path segment.
SYSTEM_NAMES = frozenset(
    name.lower()
    for name in (
        "__MACOSX",
        ".DS_Store",
        ".Trashes",
        ".Spotlight-V100",
        ".fseventsd",
        ".TemporaryItems",
        ".Trash",
        ".Trash-1000",
        "System Volume Information",
        "$RECYCLE.BIN",
        "RECYCLER",
        "RECYCLED",
        "Thumbs.db",
        "desktop.ini",
        ".thumbnails",
        ".directory",
        ".dropbox",
        ".dropbox.cache",
        ".git",
        ".svn",
    )
)
SYSTEM_PREFIXES = ("._", "~$")
SYSTEM_SUFFIXES = ("~", ".bak", ".tmp", ".temp")

_DIGITS = re.compile(r"(\d+)")


class ParsedPath(NamedTuple):
    """Path segments extracted from a slash- or backslash-separated path."""

    parent_dir: str
    filename: str
    stem: str
    extension: str


def normalize_path(path: str) -> str:
    """Return ``path`` with forward slashes and no leading ``./`` or ``/``."""
    normalized = path.replace("\\", "/")
    while normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized.lstrip("/")


def parse_file_path(path: str) -> ParsedPath:
    """Split ``path`` into parent directory, filename, stem, and extension."""
    normalized = normalize_path(path)
    parent_dir, _, filename = normalized.rpartition("/")
    stem, dot, extension = filename.rpartition(".")
    if not dot:
        return ParsedPath(parent_dir, filename, filename, "")
    return ParsedPath(parent_dir, filename, stem, extension.lower())


def natural_sort_key(value: str) -> Tuple[object, ...]:
    """Return a key ordering ``page2`` before ``page10``, ignoring case."""
    parts = _DIGITS.split(value.replace("\\", "/"))
    return tuple(int(part) if index % 2 else part.casefold() for index, part in enumerate(parts))


def is_system_file(path: str) -> bool:
    """Return True when ``path`` is OS metadata, VCS data, or editor debris."""
    segments = [segment for segment in normalize_path(path).split("/") if segment]
    if not segments:
        return False
    if any(segment.lower() in SYSTEM_NAMES for segment in segments):
        return True
    filename = segments[-1].lower()
    return filename.startswith(SYSTEM_PREFIXES) or filename.endswith(SYSTEM_SUFFIXES)


def category_for_extension(extension: str) -> FileCategory:
    extension = extension.lower()
    if extension in METADATA_EXTENSIONS:
        return FileCategory.METADATA
    if extension in IMAGE_EXTENSIONS:
        return FileCategory.IMAGE
    if extension in ARCHIVE_EXTENSIONS:
        return FileCategory.ARCHIVE
    return FileCategory.OTHER


def is_image_path(path: str) -> bool:
    return parse_file_path(path).extension in IMAGE_EXTENSIONS


def is_archive_path(path: str) -> bool:
    return parse_file_path(path).extension in ARCHIVE_EXTENSIONS


class FileClassifier:
    """Assign categories and path segments to file entries."""

    def classify(self, entry: FileEntry) -> CategorizedFile:
        """Return the categorized form of ``entry``.

        Classification depends on the path alone, so repeated calls on the same
        entry produce equal results. Unknown extensions map to ``other``.
        """
        parsed = parse_file_path(entry.path)
        return CategorizedFile(
            path=normalize_path(entry.path),
            file=entry.file,
            category=category_for_extension(parsed.extension),
            parent_dir=parsed.parent_dir,
            filename=parsed.filename,
            stem=parsed.stem,
            extension=parsed.extension,
        )

    def classify_all(self, entries: Iterable[FileEntry]) -> list[CategorizedFile]:
        """Classify ``entries`` in order, dropping system and junk files first."""
        return [self.classify(entry) for entry in entries if not is_system_file(entry.path)]


__all__ = [
    "IMAGE_EXTENSIONS",
    "ARCHIVE_EXTENSIONS",
    "METADATA_EXTENSIONS",
    "ParsedPath",
    "normalize_path",
    "parse_file_path",
    "natural_sort_key",
    "is_system_file",
    "category_for_extension",
    "is_image_path",
    "is_archive_path",
    "FileClassifier",
]
