"""Serial processing of paired sources and the import queue."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple

from mangadrop.assembly import DecompressedVolume, VolumeAssembler
from mangadrop.config.models import MangadropConfig
from mangadrop.extraction import (
    ArchiveDecompressor,
    DecompressionPool,
    ExtractFilter,
    ExtractionMode,
    VolumeExtractDef,
)
from mangadrop.ingestion.detectors import is_archive_path, is_image_path, parse_file_path
from mangadrop.ingestion.models import FileBlob, FileEntry
from mangadrop.library import VolumeStore
from mangadrop.pairing import (
    ArchiveSource,
    DirectorySource,
    PairedSource,
    PairingEngine,
    archive_pairing,
)

from .models import DrainSummary, ImportQueueItem, ImportStatus, SourceOutcome
from .prompts import AutoConfirm, ConfirmationPrompt, LoggingNotifier, Notifier
from .queue import ImportQueue

LOGGER = logging.getLogger(__name__)

ProgressCallback = Callable[[ImportStatus, float], None]

NESTED_VOLUME_ID = "nested-archives"
NO_VOLUMES_IN_ARCHIVE = "No importable volumes found in archive"


def _ignore_progress(status: ImportStatus, progress: float) -> None:
    return None


class ImportOrchestrator:
    """Import paired sources one at a time.

    ``process_queue`` drains the queue serially. A call made while a drain is
    running returns immediately; the running drain picks up anything enqueued
    in the meantime, including archives discovered inside other archives.
    """

    def __init__(
        self,
        *,
        store: VolumeStore,
        queue: ImportQueue | None = None,
        prompt: ConfirmationPrompt | None = None,
        notifier: Notifier | None = None,
        pool: DecompressionPool | None = None,
        config: MangadropConfig | None = None,
        assembler: VolumeAssembler | None = None,
        engine: PairingEngine | None = None,
    ) -> None:
        self.config = config or MangadropConfig()
        imports = self.config.imports
        self.store = store
        self.queue = queue or ImportQueue()
        self.prompt = prompt or AutoConfirm()
        self.notifier = notifier or LoggingNotifier()
        self.pool = pool or DecompressionPool(max_workers=imports.extract_batch_size)
        self.decompressor = ArchiveDecompressor(self.pool, batch_size=imports.extract_batch_size)
        self.assembler = assembler or VolumeAssembler(
            imports=imports, thumbnails=self.config.thumbnails
        )
        self.engine = engine or PairingEngine(
            archive_size_multiplier=imports.archive_size_multiplier
        )
        self._state_lock = threading.Lock()
        self._draining = False

    @property
    def is_draining(self) -> bool:
        with self._state_lock:
            return self._draining

    def process_source(
        self, source: PairedSource, on_progress: ProgressCallback | None = None
    ) -> SourceOutcome:
        """Import one paired source.

        Errors never escape; they are returned as a failed outcome.

        Args:
            source: Pairing to import.
            on_progress: Receives status and percentage updates.

        Returns:
            SourceOutcome: Success flag, number of volumes saved, the failure
            message, and any archives found inside an archive source.
        """
        progress = on_progress or _ignore_progress
        try:
            if isinstance(source.source, ArchiveSource):
                return self._process_archive(source, source.source, progress)
            return self._process_files(source, progress)
        except Exception as exc:  # noqa: BLE001 - reported through the outcome
            LOGGER.warning("Import of %s failed: %s", source.display_title, exc)
            LOGGER.debug("Import failure details", exc_info=True)
            return SourceOutcome(success=False, error=str(exc))

    def process_queue(self, *, seen: Iterable[str] = ()) -> Optional[DrainSummary]:
        """Drain queued items in order until none remain.

        Args:
            seen: Archive fingerprints already imported in this run.

        Returns:
            Optional[DrainSummary]: Counters for the drain, or None when another
            drain was already running.
        """
        with self._state_lock:
            if self._draining:
                LOGGER.debug("Queue drain already running")
                return None
            self._draining = True

        summary = DrainSummary()
        visited: Set[str] = set(seen)
        started = time.perf_counter()
        try:
            with self.pool.session():
                while True:
                    item = self.queue.dequeue()
                    if item is None:
                        break
                    self._drain_item(item, visited, summary)
        finally:
            with self._state_lock:
                self._draining = False
        LOGGER.info(
            "Queue drained in %.2fs: %d succeeded, %d failed, %d skipped",
            time.perf_counter() - started,
            summary.succeeded,
            summary.failed,
            summary.skipped,
        )
        return summary

    # ------------------------------------------------------------------ #
    # Internal helpers                                                   #
    # ------------------------------------------------------------------ #

    def _drain_item(self, item: ImportQueueItem, visited: Set[str], summary: DrainSummary) -> None:
        summary.processed += 1
        archive = item.source.source
        if isinstance(archive, ArchiveSource):
            try:
                fingerprint = archive.file.fingerprint()
            except OSError as exc:
                self._fail(item, f"Cannot read archive: {exc}", summary)
                return
            if fingerprint in visited:
                LOGGER.warning("Skipping %s: archive already imported in this run", archive.file.name)
                self.queue.remove(item.id)
                summary.skipped += 1
                return
            visited.add(fingerprint)

        def _progress(status: ImportStatus, progress: float) -> None:
            self.queue.update(item.id, status=status, progress=progress)

        started = time.perf_counter()
        outcome = self.process_source(item.source, on_progress=_progress)
        if outcome.nested_sources:
            LOGGER.info(
                "Queueing %d archive(s) found in %s", len(outcome.nested_sources), item.display_title
            )
            self.queue.enqueue(outcome.nested_sources)

        if outcome.success:
            self.queue.update(item.id, status=ImportStatus.COMPLETE, progress=100)
            self.queue.remove(item.id)
            summary.succeeded += 1
            summary.imported += outcome.imported
            LOGGER.info(
                "Imported %s in %.2fs", item.display_title, time.perf_counter() - started
            )
        else:
            self._fail(item, outcome.error or "Import failed", summary)

    def _fail(self, item: ImportQueueItem, message: str, summary: DrainSummary) -> None:
        self.queue.update(item.id, status=ImportStatus.ERROR, progress=0, error_message=message)
        summary.failed += 1
        summary.errors.append(f"{item.display_title}: {message}")
        self.notifier.notify(f"Failed to import {item.display_title}: {message}", level="error")

    def _process_files(self, source: PairedSource, progress: ProgressCallback) -> SourceOutcome:
        progress(ImportStatus.PROCESSING, 10)
        if isinstance(source.source, DirectorySource):
            files = dict(source.source.files)
        else:
            files = source.source.merged_files()
        volume = DecompressedVolume(
            metadata_file=source.metadata_file,
            image_files=files,
            base_path=source.base_path,
            source_type="local",
        )
        processed = self.assembler.import_volume(volume, store=self.store, prompt=self.prompt)
        progress(ImportStatus.PROCESSING, 100)
        LOGGER.debug("Saved volume %s", processed.metadata.volume_uuid)
        return SourceOutcome(success=True, imported=1)

    def _process_archive(
        self, source: PairedSource, descriptor: ArchiveSource, progress: ProgressCallback
    ) -> SourceOutcome:
        archive = descriptor.file
        multiplier = self.config.imports.archive_size_multiplier

        progress(ImportStatus.DECOMPRESSING, 5)
        entries, nested_members = self._scan_archive(archive, source.metadata_file)
        result = self.engine.pair(entries)
        for warning in result.warnings:
            LOGGER.warning("[%s] %s", archive.name, warning)

        pairings = [
            pairing
            for pairing in result.pairings
            if not pairing.image_only or self.config.imports.image_only_archives
        ]
        if not pairings and not nested_members:
            return SourceOutcome(success=False, error=NO_VOLUMES_IN_ARCHIVE)

        plan = [
            VolumeExtractDef(
                id=f"vol-{index}",
                members={relative: blob.member or relative for relative, blob in _pairing_files(pairing).items()},
            )
            for index, pairing in enumerate(pairings)
        ]
        if nested_members:
            plan.append(
                VolumeExtractDef(id=NESTED_VOLUME_ID, members={name: name for name in nested_members})
            )

        progress(ImportStatus.DECOMPRESSING, 20)

        def _extract_progress(done: int, total: int) -> None:
            progress(ImportStatus.DECOMPRESSING, 20 + 50 * done / max(total, 1))

        extracted = self.decompressor.extract_by_volumes(
            archive, plan, on_progress=_extract_progress
        )

        progress(ImportStatus.PROCESSING, 70)
        imported = 0
        last_error: Optional[str] = None
        for index, pairing in enumerate(pairings):
            volume = DecompressedVolume(
                metadata_file=pairing.metadata_file,
                image_files=extracted.get(f"vol-{index}", {}),
                base_path=_volume_base_path(source.base_path, pairing),
                source_type="archive",
            )
            try:
                self.assembler.import_volume(volume, store=self.store, prompt=self.prompt)
            except Exception as exc:  # noqa: BLE001 - remaining volumes still import
                last_error = str(exc)
                LOGGER.warning(
                    "Skipping volume %s in %s: %s", pairing.display_title, archive.name, exc
                )
                continue
            imported += 1
            progress(ImportStatus.PROCESSING, 70 + 30 * (index + 1) / len(pairings))

        nested = [
            archive_pairing(blob, parse_file_path(name).stem, multiplier=multiplier)
            for name, blob in sorted(extracted.get(NESTED_VOLUME_ID, {}).items())
        ]
        if imported or nested:
            return SourceOutcome(success=True, imported=imported, nested_sources=nested)
        return SourceOutcome(success=False, error=last_error or NO_VOLUMES_IN_ARCHIVE)

    def _scan_archive(
        self, archive: FileBlob, metadata_file: Optional[FileBlob]
    ) -> Tuple[List[FileEntry], List[str]]:
        listing = self.decompressor.decompress(
            archive,
            mode=ExtractionMode.LIST_ALL_EXTRACT_FILTERED,
            filter=ExtractFilter(extensions=frozenset({"mokuro"})),
        )
        entries: List[FileEntry] = []
        if metadata_file is not None:
            # An external sidecar shadows an internal one at the same path.
            entries.append(FileEntry(path=metadata_file.name, file=metadata_file))
        nested: List[str] = []
        for raw in listing:
            if is_archive_path(raw.filename):
                nested.append(raw.filename)
            elif raw.extracted or is_image_path(raw.filename):
                entries.append(FileEntry(path=raw.filename, file=raw.to_blob()))
        LOGGER.debug(
            "Listed %s: %d member(s), %d nested archive(s)", archive.name, len(listing), len(nested)
        )
        return entries, nested


def _pairing_files(pairing: PairedSource) -> Dict[str, FileBlob]:
    if isinstance(pairing.source, DirectorySource):
        return pairing.source.files
    if isinstance(pairing.source, ArchiveSource):
        return {}
    return pairing.source.merged_files()


def _volume_base_path(archive_base: str, pairing: PairedSource) -> str:
    if not pairing.image_only:
        return pairing.base_path or archive_base
    if not pairing.base_path:
        return archive_base
    return f"{archive_base}/{pairing.base_path}" if archive_base else pairing.base_path


__all__ = ["ImportOrchestrator", "ProgressCallback", "NO_VOLUMES_IN_ARCHIVE"]
