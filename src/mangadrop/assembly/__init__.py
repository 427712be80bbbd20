"""Volume assembly: metadata parsing, page matching, naming, and import of one volume."""

from .assembler import VolumeAssembler, render_placeholder
from .errors import AssemblyError, ImportCancelledError, MokuroParseError
from .matcher import match_images_to_pages
from .models import (
    DecompressedVolume,
    ImageMatchResult,
    MissingFilesInfo,
    ProcessedMetadata,
    ProcessedPage,
    ProcessedVolume,
    SeriesImportInfo,
)
from .mokuro import MokuroDocument, MokuroPage, parse_mokuro
from .naming import (
    deterministic_uuid,
    extract_series_name,
    extract_titles_from_path,
    extract_volume_info,
)

__all__ = [
    "AssemblyError",
    "DecompressedVolume",
    "ImageMatchResult",
    "ImportCancelledError",
    "MissingFilesInfo",
    "MokuroDocument",
    "MokuroPage",
    "MokuroParseError",
    "ProcessedMetadata",
    "ProcessedPage",
    "ProcessedVolume",
    "SeriesImportInfo",
    "VolumeAssembler",
    "deterministic_uuid",
    "extract_series_name",
    "extract_titles_from_path",
    "extract_volume_info",
    "match_images_to_pages",
    "parse_mokuro",
    "render_placeholder",
]
