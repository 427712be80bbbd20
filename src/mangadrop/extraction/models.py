"""Extraction request and result models."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from mangadrop.ingestion.detectors import parse_file_path
from mangadrop.ingestion.models import FileBlob


class ExtractionMode(str, Enum):
    """How much of an archive to read.

    ``full`` reads every entry selected by the filter, ``list_only`` reads
    nothing and reports names and sizes, and ``list_all_extract_filtered``
    reports every entry but reads only the ones the filter selects.
    """

    FULL = "full"
    LIST_ONLY = "list_only"
    LIST_ALL_EXTRACT_FILTERED = "list_all_extract_filtered"


class ExtractFilter(BaseModel):
    """Selection criteria for archive members; every given criterion must hold.

    Attributes:
        extensions: Lower-case extensions without the dot.
        path_prefixes: Directory prefixes; a member matches when it lives under one.
        names: Exact member names.
    """

    model_config = ConfigDict(frozen=True)

    extensions: Optional[FrozenSet[str]] = None
    path_prefixes: Optional[FrozenSet[str]] = None
    names: Optional[FrozenSet[str]] = None

    @field_validator("extensions")
    @classmethod
    def _lower_extensions(cls, value: Optional[FrozenSet[str]]) -> Optional[FrozenSet[str]]:
        if value is None:
            return None
        return frozenset(ext.lower().lstrip(".") for ext in value)

    def matches(self, filename: str) -> bool:
        if self.extensions is not None and parse_file_path(filename).extension not in self.extensions:
            return False
        if self.path_prefixes is not None and not any(
            filename == prefix or filename.startswith(prefix.rstrip("/") + "/")
            for prefix in self.path_prefixes
        ):
            return False
        if self.names is not None and filename not in self.names:
            return False
        return True


@dataclass(slots=True)
class RawEntry:
    """One archive member as returned by the decompressor.

    Attributes:
        filename: Member name inside the archive.
        data: Payload, empty when the member was listed but not read.
        size: Uncompressed size recorded in the archive.
        extracted: Whether ``data`` holds the member's payload.
    """

    filename: str
    data: bytes
    size: int
    extracted: bool

    def to_blob(self) -> FileBlob:
        """Return an in-memory blob, or a placeholder for unread members."""
        if self.extracted:
            return FileBlob.from_bytes(self.data, parse_file_path(self.filename).filename)
        return FileBlob.placeholder(self.filename, self.size)


class VolumeExtractDef(BaseModel):
    """Members belonging to one volume of a multi-volume archive.

    Attributes:
        id: Caller-chosen volume key.
        members: Volume-relative path mapped to the archive member name.
    """

    id: str
    members: Dict[str, str] = Field(default_factory=dict)


__all__ = ["ExtractionMode", "ExtractFilter", "RawEntry", "VolumeExtractDef"]
