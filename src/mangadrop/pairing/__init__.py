"""Pairing of metadata sidecars with image sources, and routing of the results."""

from .engine import PairingEngine, archive_pairing
from .models import (
    ArchiveSource,
    DirectorySource,
    ImportDecision,
    PairedSource,
    PairingResult,
    TocDirectorySource,
)
from .routing import decide_import_routing

__all__ = [
    "ArchiveSource",
    "DirectorySource",
    "ImportDecision",
    "PairedSource",
    "PairingEngine",
    "PairingResult",
    "TocDirectorySource",
    "archive_pairing",
    "decide_import_routing",
]
