"""Pairing data models."""

from __future__ import annotations

import uuid
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from mangadrop.ingestion.models import FileBlob


class PairingModel(BaseModel):
    """Base model allowing file blobs as field values."""

    model_config = ConfigDict(arbitrary_types_allowed=True)


class DirectorySource(PairingModel):
    """Loose images keyed by their path relative to the volume root."""

    type: Literal["directory"] = "directory"
    files: Dict[str, FileBlob] = Field(default_factory=dict)


class ArchiveSource(PairingModel):
    """A single archive whose contents are resolved during import."""

    type: Literal["archive"] = "archive"
    file: FileBlob


class TocDirectorySource(PairingModel):
    """Chapter folders that together form one volume."""

    type: Literal["toc-directory"] = "toc-directory"
    chapters: Dict[str, Dict[str, FileBlob]] = Field(default_factory=dict)

    def merged_files(self) -> Dict[str, FileBlob]:
        """Return every chapter image keyed as ``<chapter>/<relative path>``."""
        merged: Dict[str, FileBlob] = {}
        for chapter, files in self.chapters.items():
            for relative, blob in files.items():
                merged[f"{chapter}/{relative}"] = blob
        return merged


SourceDescriptor = Annotated[
    Union[DirectorySource, ArchiveSource, TocDirectorySource],
    Field(discriminator="type"),
]


class PairedSource(PairingModel):
    """A group of files the pipeline imports as one unit.

    Attributes:
        id: Token used to track the unit through the import queue.
        metadata_file: External ``.mokuro`` sidecar, or None when the metadata is
            expected inside an archive or does not exist.
        source: Where the page images live.
        base_path: Path used to derive series and volume display names.
        estimated_size: Approximate bytes needed to process the unit.
        image_only: True when no metadata sidecar exists for the group.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    metadata_file: Optional[FileBlob] = None
    source: SourceDescriptor
    base_path: str = ""
    estimated_size: float = 0
    image_only: bool = False

    @property
    def display_title(self) -> str:
        """Return the last ``base_path`` segment, or ``Untitled``."""
        segments = [segment for segment in self.base_path.split("/") if segment]
        return segments[-1] if segments else "Untitled"

    def blobs(self) -> List[FileBlob]:
        """Return every blob this pairing consumed."""
        found: List[FileBlob] = []
        if self.metadata_file is not None:
            found.append(self.metadata_file)
        if isinstance(self.source, ArchiveSource):
            found.append(self.source.file)
        elif isinstance(self.source, DirectorySource):
            found.extend(self.source.files.values())
        else:
            found.extend(self.source.merged_files().values())
        return found


class PairingResult(PairingModel):
    """Outcome of one pairing run.

    Attributes:
        pairings: Groups ready for routing.
        warnings: Non-fatal messages for the user.
        orphaned: Metadata paths that matched no images or archive.
        ignored: Paths of files with unsupported extensions.
    """

    pairings: List[PairedSource] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    orphaned: List[str] = Field(default_factory=list)
    ignored: List[str] = Field(default_factory=list)


class ImportDecision(PairingModel):
    """Routing outcome: one pairing processed now, or several queued."""

    direct_process: Optional[PairedSource] = None
    queued_items: List[PairedSource] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return self.direct_process is None and not self.queued_items


__all__ = [
    "DirectorySource",
    "ArchiveSource",
    "TocDirectorySource",
    "SourceDescriptor",
    "PairedSource",
    "PairingResult",
    "ImportDecision",
]
