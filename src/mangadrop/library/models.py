"""Stored volume records."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, Field


class VolumeRecord(BaseModel):
    """Metadata persisted in ``volume.json`` for each stored volume."""

    volume_uuid: str
    series_uuid: str
    series_title: str
    volume_title: str
    mokuro_version: str = ""
    page_count: int = 0
    character_count: int = 0
    page_char_counts: List[int] = Field(default_factory=list)
    thumbnail: Optional[str] = None
    thumbnail_width: int = 0
    thumbnail_height: int = 0
    missing_pages: int = 0
    missing_page_paths: List[str] = Field(default_factory=list)
    image_only: bool = False
    source_type: str = "local"
    files: List[str] = Field(default_factory=list)
    added_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


__all__ = ["VolumeRecord"]
