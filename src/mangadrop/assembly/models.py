"""Volume assembly data models."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from mangadrop.ingestion.models import FileBlob

SourceType = Literal["local", "archive"]


class AssemblyModel(BaseModel):
    """Base model allowing file blobs as field values."""

    model_config = ConfigDict(arbitrary_types_allowed=True)


class ImageMatchResult(AssemblyModel):
    """Outcome of matching declared pages against available files.

    Attributes:
        matched: Declared page paths that resolved to a file.
        missing_files: Declared page paths with no file.
        extra_files: File keys no page refers to.
        remapped: Declared page path mapped to the differing file key it resolved to.
    """

    matched: List[str] = Field(default_factory=list)
    missing_files: List[str] = Field(default_factory=list)
    extra_files: List[str] = Field(default_factory=list)
    remapped: Dict[str, str] = Field(default_factory=dict)

    @property
    def is_complete(self) -> bool:
        return not self.missing_files


class MissingFilesInfo(AssemblyModel):
    """Details shown when asking whether to import a volume with missing pages."""

    volume_name: str
    missing_files: List[str]
    total_pages: int


class SeriesImportInfo(AssemblyModel):
    """Per-series volume count shown when confirming image-only imports."""

    series_name: str
    volume_count: int


class DecompressedVolume(AssemblyModel):
    """Images and metadata for one volume, ready for assembly.

    Attributes:
        metadata_file: ``.mokuro`` file, or None for image-only volumes.
        image_files: Images keyed by volume-relative path.
        base_path: Path used for display names.
        source_type: Whether the images came from a directory or an archive.
    """

    metadata_file: Optional[FileBlob] = None
    image_files: Dict[str, FileBlob] = Field(default_factory=dict)
    base_path: str = ""
    source_type: SourceType = "local"


class ProcessedPage(AssemblyModel):
    """A page record carrying its running character total; unknown keys are preserved."""

    model_config = ConfigDict(arbitrary_types_allowed=True, extra="allow")

    img_path: str
    img_width: Optional[int] = None
    img_height: Optional[int] = None
    version: Optional[str] = None
    blocks: List[Any] = Field(default_factory=list)
    cumulative_chars: int = 0


class ProcessedMetadata(AssemblyModel):
    """Volume-level fields stored alongside the pages."""

    volume_uuid: str
    series_uuid: str
    series: str
    volume: str
    mokuro_version: Optional[str] = None
    page_count: int = 0
    chars: int = 0
    thumbnail: Optional[bytes] = None
    thumbnail_width: int = 0
    thumbnail_height: int = 0
    mismatch_warning: Optional[str] = None
    missing_pages: int = 0
    missing_page_paths: List[str] = Field(default_factory=list)
    image_only: bool = False
    source_type: SourceType = "local"


class ProcessedVolume(AssemblyModel):
    """Everything the library needs to store one volume.

    Attributes:
        metadata: Volume-level fields.
        ocr_data: Page records in reading order.
        file_data: Images (and missing-page placeholders) keyed by relative path.
    """

    metadata: ProcessedMetadata
    ocr_data: List[ProcessedPage] = Field(default_factory=list)
    file_data: Dict[str, FileBlob] = Field(default_factory=dict)


__all__ = [
    "SourceType",
    "ImageMatchResult",
    "MissingFilesInfo",
    "SeriesImportInfo",
    "DecompressedVolume",
    "ProcessedPage",
    "ProcessedMetadata",
    "ProcessedVolume",
]
