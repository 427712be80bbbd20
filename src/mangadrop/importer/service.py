"""Entry point that turns dropped files into library volumes."""

from __future__ import annotations

import logging
from collections import Counter
from pathlib import Path
from typing import Iterable, List, Sequence

from mangadrop.assembly.models import SeriesImportInfo
from mangadrop.assembly.naming import extract_series_name
from mangadrop.config.models import MangadropConfig
from mangadrop.extraction import DecompressionPool
from mangadrop.ingestion import DirectoryScanner
from mangadrop.ingestion.models import FileEntry
from mangadrop.library import LibraryRepository, VolumeStore
from mangadrop.pairing import ArchiveSource, PairedSource, PairingEngine, decide_import_routing

from .models import DrainSummary, ImportResult
from .orchestrator import ImportOrchestrator
from .prompts import AutoConfirm, ConfirmationPrompt, LoggingNotifier, Notifier
from .queue import ImportQueue

LOGGER = logging.getLogger(__name__)

NO_VOLUMES_FOUND = "No importable volumes found"
NO_VOLUMES_SELECTED = "No volumes to import"


class ImportService:
    """Pair, confirm, and route an import request.

    A single pairing is imported directly; several pairings go through the
    queue. Archives found inside archives are always queued.
    """

    def __init__(
        self,
        config: MangadropConfig | None = None,
        *,
        store: VolumeStore | None = None,
        prompt: ConfirmationPrompt | None = None,
        notifier: Notifier | None = None,
        queue: ImportQueue | None = None,
        pool: DecompressionPool | None = None,
    ) -> None:
        self.config = config or MangadropConfig()
        self.store = store or LibraryRepository(Path(self.config.library.path).expanduser())
        self.prompt = prompt or AutoConfirm()
        self.notifier = notifier or LoggingNotifier()
        self.queue = queue or ImportQueue()
        self.pool = pool or DecompressionPool(max_workers=self.config.imports.extract_batch_size)
        self.engine = PairingEngine(
            archive_size_multiplier=self.config.imports.archive_size_multiplier
        )
        self.scanner = DirectoryScanner(
            include_hidden=self.config.scanning.include_hidden,
            follow_symlinks=self.config.scanning.follow_symlinks,
        )
        self.orchestrator = ImportOrchestrator(
            store=self.store,
            queue=self.queue,
            prompt=self.prompt,
            notifier=self.notifier,
            pool=self.pool,
            config=self.config,
            engine=self.engine,
        )

    def import_paths(self, paths: Sequence[Path]) -> ImportResult:
        """Scan ``paths`` (files or directories) and import what they contain."""
        return self.import_entries(self.scanner.scan_all(paths))

    def import_entries(self, entries: Iterable[FileEntry]) -> ImportResult:
        """Import a set of dropped files.

        Args:
            entries: Files with their drop-relative paths.

        Returns:
            ImportResult: Counts of imported and failed units, failure messages,
            and pairing warnings.
        """
        result = ImportResult()
        files = list(entries)
        if not files:
            LOGGER.debug("Nothing to import")
            return result

        pairing = self.engine.pair(files)
        result.warnings = list(pairing.warnings)
        for warning in pairing.warnings:
            self.notifier.notify(warning, level="warning")

        if not pairing.pairings:
            self.notifier.notify(NO_VOLUMES_FOUND, level="error")
            result.success = False
            result.errors.append(NO_VOLUMES_FOUND)
            return result

        with_metadata = [p for p in pairing.pairings if not p.image_only]
        image_only = [p for p in pairing.pairings if p.image_only]
        selected = list(with_metadata)
        if image_only:
            if self._confirm_image_only(image_only):
                selected.extend(image_only)
            else:
                LOGGER.info("Declined %d image-only volume(s)", len(image_only))
        if not selected:
            self.notifier.notify(NO_VOLUMES_SELECTED, level="info")
            return result

        decision = decide_import_routing(selected)
        with self.pool.session():
            if decision.direct_process is not None:
                self._import_direct(decision.direct_process, result)
            else:
                self.queue.enqueue(decision.queued_items)
                self._merge(self.orchestrator.process_queue(), result)

        if result.imported:
            self.notifier.notify(f"Imported {result.imported} volume(s)", level="info")
        return result

    def cancel_queued(self) -> int:
        return self.queue.cancel_queued()

    def clear_completed(self) -> int:
        return self.queue.clear_completed()

    # ------------------------------------------------------------------ #
    # Internal helpers                                                   #
    # ------------------------------------------------------------------ #

    def _confirm_image_only(self, pairings: List[PairedSource]) -> bool:
        counts = Counter(extract_series_name(p.base_path) for p in pairings)
        series = [
            SeriesImportInfo(series_name=name, volume_count=count)
            for name, count in sorted(counts.items(), key=lambda item: item[0].casefold())
        ]
        return self.prompt.confirm_image_only(series, len(pairings))

    def _import_direct(self, source: PairedSource, result: ImportResult) -> None:
        LOGGER.info("Importing %s directly", source.display_title)
        outcome = self.orchestrator.process_source(source)
        if outcome.success:
            result.imported += outcome.imported
        else:
            message = outcome.error or "Import failed"
            result.success = False
            result.failed += 1
            result.errors.append(f"{source.display_title}: {message}")
            self.notifier.notify(f"Failed to import {source.display_title}: {message}", level="error")

        if outcome.nested_sources:
            seen = []
            if isinstance(source.source, ArchiveSource):
                seen.append(source.source.file.fingerprint())
            self.queue.enqueue(outcome.nested_sources)
            self._merge(self.orchestrator.process_queue(seen=seen), result)

    def _merge(self, summary: DrainSummary | None, result: ImportResult) -> None:
        if summary is None:
            current = self.queue.active()
            LOGGER.info(
                "Another import is draining the queue (now on %s); %d item(s) waiting",
                current.display_title if current else "nothing",
                self.queue.pending(),
            )
            return
        result.imported += summary.imported
        result.failed += summary.failed
        result.errors.extend(summary.errors)
        if summary.failed:
            result.success = False


__all__ = ["ImportService", "NO_VOLUMES_FOUND", "NO_VOLUMES_SELECTED"]
