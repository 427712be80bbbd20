"""Multi-pass pairing of ``.mokuro`` metadata with image sources."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Set

from mangadrop.ingestion.detectors import FileClassifier
from mangadrop.ingestion.models import CategorizedFile, FileBlob, FileCategory, FileEntry

from .models import (
    ArchiveSource,
    DirectorySource,
    PairedSource,
    PairingResult,
    TocDirectorySource,
)

LOGGER = logging.getLogger(__name__)

ROOT_DIR = "."
MIN_TOC_CHAPTERS = 2

DirectoryMap = Dict[str, Dict[str, FileBlob]]


def _dir_key(parent_dir: str) -> str:
    return parent_dir or ROOT_DIR


def _archive_base_path(archive: CategorizedFile) -> str:
    return f"{archive.parent_dir}/{archive.stem}" if archive.parent_dir else archive.stem


class _PairingRun:
    """Mutable bookkeeping for a single ``PairingEngine.pair`` call."""

    def __init__(self, files: List[CategorizedFile]) -> None:
        self.metadata = [f for f in files if f.category is FileCategory.METADATA]
        self.images = [f for f in files if f.category is FileCategory.IMAGE]
        self.archives = [f for f in files if f.category is FileCategory.ARCHIVE]
        self.others = [f for f in files if f.category is FileCategory.OTHER]
        self.directories: DirectoryMap = {}
        for image in self.images:
            self.directories.setdefault(_dir_key(image.parent_dir), {})[image.filename] = image.file
        self.image_dirs = {_dir_key(image.parent_dir) for image in self.images}
        self.claimed_metadata: Set[str] = set()
        self.claimed_archives: Set[str] = set()
        self.claimed_dirs: Set[str] = set()
        self.result = PairingResult(ignored=[f.path for f in self.others])

    def unclaimed_metadata(self) -> List[CategorizedFile]:
        return [m for m in self.metadata if m.path not in self.claimed_metadata]

    def add(self, pairing: PairedSource, metadata: Optional[CategorizedFile] = None) -> None:
        if metadata is not None:
            self.claimed_metadata.add(metadata.path)
        self.result.pairings.append(pairing)


class PairingEngine:
    """Group classified files into ``PairedSource`` units.

    Passes run in a fixed order and each pass visits every unclaimed metadata
    file before the next pass starts, so the most specific match wins across
    the whole drop:

    1. images in the metadata file's own directory
    2. directories under ``{parent}/{stem}`` (merged, any depth)
    3. a same-stem archive in the same directory
    4. table-of-contents layouts (two or more chapter folders, no sibling images)
    5. orphan warnings for metadata that is still unclaimed
    6. remaining archives as standalone units
    7. remaining image directories as image-only units
    """

    def __init__(
        self,
        *,
        classifier: FileClassifier | None = None,
        archive_size_multiplier: float = 2.5,
    ) -> None:
        self.classifier = classifier or FileClassifier()
        self.archive_size_multiplier = archive_size_multiplier

    def pair(self, entries: Iterable[FileEntry]) -> PairingResult:
        """Pair ``entries`` and return pairings, warnings, orphans, and ignored paths."""
        run = _PairingRun(self.classifier.classify_all(entries))

        self._pair_same_directory(run)
        self._pair_same_branch(run)
        self._pair_sibling_archives(run)
        self._pair_toc_layouts(run)
        self._report_orphans(run)
        self._pair_standalone_archives(run)
        self._pair_image_only_directories(run)

        LOGGER.debug(
            "Paired %d sources (%d warnings, %d ignored)",
            len(run.result.pairings),
            len(run.result.warnings),
            len(run.result.ignored),
        )
        return run.result

    # ------------------------------------------------------------------ #
    # Passes                                                             #
    # ------------------------------------------------------------------ #

    def _pair_same_directory(self, run: _PairingRun) -> None:
        for metadata in run.unclaimed_metadata():
            directory = _dir_key(metadata.parent_dir)
            files = run.directories.get(directory)
            if not files or directory in run.claimed_dirs:
                continue
            run.claimed_dirs.add(directory)
            base_path = metadata.parent_dir or metadata.stem
            run.add(self._directory_pairing(base_path, files, metadata.file), metadata)

    def _pair_same_branch(self, run: _PairingRun) -> None:
        for metadata in run.unclaimed_metadata():
            parent = metadata.parent_dir
            branch = f"{parent}/{metadata.stem}" if parent else metadata.stem
            exact = branch.lower()
            prefix = exact + "/"

            merged: Dict[str, FileBlob] = {}
            for directory, files in run.directories.items():
                if directory in run.claimed_dirs:
                    continue
                lowered = directory.lower()
                if lowered != exact and not lowered.startswith(prefix):
                    continue
                relative = directory[len(parent) + 1 :] if parent else directory
                for filename, blob in files.items():
                    merged[f"{relative}/{filename}"] = blob
                run.claimed_dirs.add(directory)

            if merged:
                run.add(self._directory_pairing(branch, merged, metadata.file), metadata)

    def _pair_sibling_archives(self, run: _PairingRun) -> None:
        for metadata in run.unclaimed_metadata():
            parent = metadata.parent_dir.lower()
            stem = metadata.stem.lower()
            for archive in run.archives:
                if archive.path in run.claimed_archives:
                    continue
                if archive.parent_dir.lower() != parent or archive.stem.lower() != stem:
                    continue
                run.claimed_archives.add(archive.path)
                run.add(self._archive_pairing(archive, metadata.file), metadata)
                break

    def _pair_toc_layouts(self, run: _PairingRun) -> None:
        for metadata in run.unclaimed_metadata():
            directory = _dir_key(metadata.parent_dir)
            if directory in run.image_dirs:
                continue
            prefix = f"{metadata.parent_dir}/" if metadata.parent_dir else ""

            chapters: DirectoryMap = {}
            for candidate, files in run.directories.items():
                if candidate in run.claimed_dirs or candidate == directory:
                    continue
                if not candidate.startswith(prefix):
                    continue
                chapter = candidate[len(prefix) :]
                if "/" in chapter:
                    continue
                chapters[chapter] = files

            if len(chapters) < MIN_TOC_CHAPTERS:
                continue
            for chapter in chapters:
                run.claimed_dirs.add(prefix + chapter)
            base_path = metadata.parent_dir or metadata.stem
            run.add(self._toc_pairing(base_path, metadata.file, chapters), metadata)

    def _report_orphans(self, run: _PairingRun) -> None:
        for metadata in run.unclaimed_metadata():
            run.result.orphaned.append(metadata.path)
            message = f"Orphaned mokuro file: {metadata.path} (no matching images or archive)"
            run.result.warnings.append(message)
            LOGGER.warning(message)

    def _pair_standalone_archives(self, run: _PairingRun) -> None:
        for archive in run.archives:
            if archive.path in run.claimed_archives:
                continue
            run.claimed_archives.add(archive.path)
            run.add(self._archive_pairing(archive, None))

    def _pair_image_only_directories(self, run: _PairingRun) -> None:
        for directory, files in run.directories.items():
            if directory in run.claimed_dirs or not files:
                continue
            run.claimed_dirs.add(directory)
            base_path = "" if directory == ROOT_DIR else directory
            run.add(self._directory_pairing(base_path, files, None, image_only=True))

    # ------------------------------------------------------------------ #
    # Pairing factories                                                  #
    # ------------------------------------------------------------------ #

    def _directory_pairing(
        self,
        base_path: str,
        files: Dict[str, FileBlob],
        metadata_file: Optional[FileBlob],
        *,
        image_only: bool = False,
    ) -> PairedSource:
        size = sum(blob.size for blob in files.values())
        if metadata_file is not None:
            size += metadata_file.size
        return PairedSource(
            metadata_file=metadata_file,
            source=DirectorySource(files=dict(files)),
            base_path=base_path,
            estimated_size=size,
            image_only=image_only,
        )

    def _archive_pairing(
        self, archive: CategorizedFile, metadata_file: Optional[FileBlob]
    ) -> PairedSource:
        return archive_pairing(
            archive.file,
            _archive_base_path(archive),
            metadata_file=metadata_file,
            multiplier=self.archive_size_multiplier,
        )

    def _toc_pairing(
        self, base_path: str, metadata_file: FileBlob, chapters: DirectoryMap
    ) -> PairedSource:
        size = metadata_file.size + sum(
            blob.size for files in chapters.values() for blob in files.values()
        )
        return PairedSource(
            metadata_file=metadata_file,
            source=TocDirectorySource(chapters={name: dict(files) for name, files in chapters.items()}),
            base_path=base_path,
            estimated_size=size,
        )


def archive_pairing(
    archive: FileBlob,
    base_path: str,
    *,
    metadata_file: Optional[FileBlob] = None,
    multiplier: float = 2.5,
) -> PairedSource:
    """Return a pairing for ``archive``, estimating its decompressed size."""
    size = archive.size * multiplier
    if metadata_file is not None:
        size += metadata_file.size
    return PairedSource(
        metadata_file=metadata_file,
        source=ArchiveSource(file=archive),
        base_path=base_path,
        estimated_size=size,
    )


__all__ = ["PairingEngine", "archive_pairing", "ROOT_DIR"]
