"""Archive decompression in bounded-concurrency batches."""

from .adapter import ArchiveDecompressor
from .errors import ArchiveError, UnsupportedArchiveError
from .models import ExtractFilter, ExtractionMode, RawEntry, VolumeExtractDef
from .pool import DecompressionPool

__all__ = [
    "ArchiveDecompressor",
    "ArchiveError",
    "DecompressionPool",
    "ExtractFilter",
    "ExtractionMode",
    "RawEntry",
    "UnsupportedArchiveError",
    "VolumeExtractDef",
]
