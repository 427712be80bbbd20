"""Series and volume naming helpers."""

from __future__ import annotations

import re
import uuid
from typing import NamedTuple

_SERIES_NAMESPACE = uuid.uuid5(uuid.NAMESPACE_URL, "mangadrop:series")
_ARCHIVE_SUFFIX = re.compile(r"\.(zip|cbz|cbr|rar|7z)$", re.IGNORECASE)
_VOLUME_MARKER = re.compile(r"^(.+?)\s+(vol\.?|volume|v\.?)\s*(\d+)$", re.IGNORECASE)

UNTITLED = "Untitled"


class VolumeInfo(NamedTuple):
    series: str
    volume: str


def _segments(path: str) -> list[str]:
    return [segment for segment in path.replace("\\", "/").split("/") if segment and segment != "."]


def extract_volume_info(base_path: str) -> VolumeInfo:
    """Derive names from a path: the last segment is the volume, the one before the series."""
    parts = _segments(base_path)
    if not parts:
        return VolumeInfo(UNTITLED, UNTITLED)
    if len(parts) == 1:
        return VolumeInfo(parts[0], parts[0])
    return VolumeInfo(parts[-2], parts[-1])


def extract_titles_from_path(path: str) -> VolumeInfo:
    """Derive series and volume titles for volumes that have no metadata.

    ``My Manga Vol 1.cbz`` yields ``("My Manga", "Volume 1")``; multi-segment
    paths use the parent segments, joined with `` - ``, as the series.
    """
    parts = _segments(_ARCHIVE_SUFFIX.sub("", path))
    if not parts:
        return VolumeInfo(UNTITLED, UNTITLED)
    if len(parts) == 1:
        name = parts[0]
        marker = _VOLUME_MARKER.match(name)
        if marker:
            return VolumeInfo(marker.group(1).strip(), f"Volume {marker.group(3)}")
        return VolumeInfo(name, name)
    return VolumeInfo(" - ".join(parts[:-1]), parts[-1])


def extract_series_name(path: str) -> str:
    """Return the series name used to group image-only volumes."""
    return extract_titles_from_path(path).series


def deterministic_uuid(text: str) -> str:
    """Return a UUID that is stable for the same trimmed, case-folded text."""
    return str(uuid.uuid5(_SERIES_NAMESPACE, text.strip().casefold()))


__all__ = [
    "UNTITLED",
    "VolumeInfo",
    "extract_volume_info",
    "extract_titles_from_path",
    "extract_series_name",
    "deterministic_uuid",
]
