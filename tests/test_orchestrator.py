"""Tests for serial queue draining and per-source import flows."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Mapping, Optional

from mangadrop.assembly import ProcessedVolume
from mangadrop.config.models import ImportSettings, MangadropConfig
from mangadrop.extraction import DecompressionPool
from mangadrop.importer import (
    NO_VOLUMES_IN_ARCHIVE,
    AutoConfirm,
    DrainSummary,
    ImportOrchestrator,
    ImportQueue,
    ImportQueueItem,
    ImportStatus,
)
from mangadrop.ingestion.models import FileBlob
from mangadrop.library import LibraryRepository, VolumeRecord
from mangadrop.pairing import DirectorySource, PairedSource, archive_pairing

ZipFactory = Callable[[Mapping[str, bytes]], bytes]
MokuroFactory = Callable[..., bytes]
PngFactory = Callable[..., bytes]


class RecordingLibrary(LibraryRepository):
    """Library that remembers the order volumes were saved in."""

    def __init__(self, root: Path) -> None:
        super().__init__(root)
        self.saved_titles: list[str] = []

    def save(self, volume: ProcessedVolume) -> VolumeRecord:
        record = super().save(volume)
        self.saved_titles.append(volume.metadata.volume)
        return record


class CollectingNotifier:
    def __init__(self) -> None:
        self.messages: list[tuple[str, str]] = []

    def notify(self, message: str, *, level: str = "info") -> None:
        self.messages.append((level, message))


def _orchestrator(
    tmp_path: Path,
    *,
    config: Optional[MangadropConfig] = None,
    pool: Optional[DecompressionPool] = None,
) -> ImportOrchestrator:
    return ImportOrchestrator(
        store=RecordingLibrary(tmp_path / "library"),
        queue=ImportQueue(),
        prompt=AutoConfirm(),
        notifier=CollectingNotifier(),
        pool=pool,
        config=config,
    )


def _volume_zip(
    zip_bytes: ZipFactory,
    mokuro_bytes: MokuroFactory,
    png_bytes: PngFactory,
    stem: str,
    *,
    pages: int = 2,
) -> bytes:
    names = [f"{stem}/{index:03d}.png" for index in range(1, pages + 1)]
    members = {f"{stem}.mokuro": mokuro_bytes(names, volume=stem, volume_uuid=f"uuid-{stem}")}
    members.update({name: png_bytes() for name in names})
    return zip_bytes(members)


def _archive_source(data: bytes, name: str) -> PairedSource:
    return archive_pairing(FileBlob.from_bytes(data, name), name.rsplit(".", 1)[0])


def _drain(orchestrator: ImportOrchestrator, *sources: PairedSource) -> DrainSummary:
    orchestrator.queue.enqueue(sources)
    summary = orchestrator.process_queue()
    assert summary is not None
    return summary


def test_archive_with_internal_metadata_is_imported(
    tmp_path: Path, zip_bytes: ZipFactory, mokuro_bytes: MokuroFactory, png_bytes: PngFactory
) -> None:
    orchestrator = _orchestrator(tmp_path)
    source = _archive_source(_volume_zip(zip_bytes, mokuro_bytes, png_bytes, "vol1"), "vol1.cbz")

    outcome = orchestrator.process_source(source)

    assert outcome.success
    assert outcome.imported == 1
    record = orchestrator.store.load("uuid-vol1")  # type: ignore[attr-defined]
    assert record.source_type == "archive"
    assert record.files == ["vol1/001.png", "vol1/002.png"]
    assert record.missing_pages == 0


def test_external_metadata_pairs_with_archive_images(
    tmp_path: Path, zip_bytes: ZipFactory, mokuro_bytes: MokuroFactory, png_bytes: PngFactory
) -> None:
    orchestrator = _orchestrator(tmp_path)
    archive = FileBlob.from_bytes(
        zip_bytes({"001.png": png_bytes(), "002.png": png_bytes()}), "vol1.cbz"
    )
    metadata = FileBlob.from_bytes(
        mokuro_bytes(["001.png", "002.png"], volume_uuid="external"), "vol1.mokuro"
    )
    source = archive_pairing(archive, "vol1", metadata_file=metadata)

    outcome = orchestrator.process_source(source)

    assert outcome.success
    assert orchestrator.store.exists("external")


def test_multi_volume_archive_continues_after_a_failed_volume(
    tmp_path: Path, zip_bytes: ZipFactory, mokuro_bytes: MokuroFactory, png_bytes: PngFactory
) -> None:
    orchestrator = _orchestrator(tmp_path)
    first = _archive_source(_volume_zip(zip_bytes, mokuro_bytes, png_bytes, "vol1"), "vol1.cbz")
    orchestrator.process_source(first)

    members = {
        "vol1.mokuro": mokuro_bytes(["vol1/001.png"], volume="vol1", volume_uuid="uuid-vol1"),
        "vol1/001.png": png_bytes(),
        "vol2.mokuro": mokuro_bytes(["vol2/001.png"], volume="vol2", volume_uuid="uuid-vol2"),
        "vol2/001.png": png_bytes(),
    }
    outcome = orchestrator.process_source(_archive_source(zip_bytes(members), "box.zip"))

    assert outcome.success
    assert outcome.imported == 1
    assert orchestrator.store.saved_titles == ["vol1", "vol2"]  # type: ignore[attr-defined]


def test_archive_without_metadata_fails_unless_image_only_enabled(
    tmp_path: Path, zip_bytes: ZipFactory, png_bytes: PngFactory
) -> None:
    data = zip_bytes({"Vol 1/001.png": png_bytes(), "Vol 1/002.png": png_bytes()})

    rejected = _orchestrator(tmp_path / "a").process_source(_archive_source(data, "My Manga.cbz"))
    enabled = _orchestrator(
        tmp_path / "b",
        config=MangadropConfig(imports=ImportSettings(image_only_archives=True)),
    )
    accepted = enabled.process_source(_archive_source(data, "My Manga.cbz"))

    assert not rejected.success
    assert rejected.error == NO_VOLUMES_IN_ARCHIVE
    assert accepted.success
    (record,) = enabled.store.list_volumes()  # type: ignore[attr-defined]
    assert record.image_only
    assert (record.series_title, record.volume_title) == ("My Manga", "Vol 1")


def test_unsupported_archive_becomes_failed_outcome(tmp_path: Path) -> None:
    source = _archive_source(b"Rar!\x1a\x07\x00data", "vol1.cbr")

    outcome = _orchestrator(tmp_path).process_source(source)

    assert not outcome.success
    assert "Unsupported archive format" in (outcome.error or "")


def test_queue_drains_in_order_and_removes_successes(
    tmp_path: Path, zip_bytes: ZipFactory, mokuro_bytes: MokuroFactory, png_bytes: PngFactory
) -> None:
    pool = DecompressionPool()
    orchestrator = _orchestrator(tmp_path, pool=pool)
    first = _archive_source(_volume_zip(zip_bytes, mokuro_bytes, png_bytes, "vol1"), "vol1.cbz")
    second = _archive_source(_volume_zip(zip_bytes, mokuro_bytes, png_bytes, "vol2"), "vol2.cbz")

    summary = _drain(orchestrator, first, second)

    assert orchestrator.store.saved_titles == ["vol1", "vol2"]  # type: ignore[attr-defined]
    assert (summary.succeeded, summary.failed, summary.imported) == (2, 0, 2)
    assert orchestrator.queue.items() == []
    assert pool.starts == 1
    assert not pool.running


def test_failed_items_are_kept_with_messages(
    tmp_path: Path, zip_bytes: ZipFactory, mokuro_bytes: MokuroFactory, png_bytes: PngFactory
) -> None:
    orchestrator = _orchestrator(tmp_path)
    broken = PairedSource(
        metadata_file=FileBlob.from_bytes(b"{broken", "bad.mokuro"),
        source=DirectorySource(files={"001.png": FileBlob.from_bytes(png_bytes(), "001.png")}),
        base_path="Series/bad",
    )
    good = _archive_source(_volume_zip(zip_bytes, mokuro_bytes, png_bytes, "vol1"), "vol1.cbz")
    duplicate = _archive_source(_volume_zip(zip_bytes, mokuro_bytes, png_bytes, "vol1"), "copy.cbz")

    summary = _drain(orchestrator, broken, good, duplicate)

    remaining = {item.display_title: item for item in orchestrator.queue.items()}
    assert set(remaining) == {"bad", "copy"}
    assert remaining["bad"].status is ImportStatus.ERROR
    assert remaining["bad"].error_message == "Invalid mokuro file: not valid JSON"
    assert remaining["copy"].error_message == 'Volume "vol1" already exists'
    assert (summary.succeeded, summary.failed) == (1, 2)
    notifier = orchestrator.notifier
    assert [level for level, _ in notifier.messages] == ["error", "error"]  # type: ignore[attr-defined]


def test_nested_archives_are_queued_and_imported(
    tmp_path: Path, zip_bytes: ZipFactory, mokuro_bytes: MokuroFactory, png_bytes: PngFactory
) -> None:
    orchestrator = _orchestrator(tmp_path)
    inner = _volume_zip(zip_bytes, mokuro_bytes, png_bytes, "vol1")
    outer = _archive_source(zip_bytes({"inner/vol1.cbz": inner, "readme.txt": b"hi"}), "box.zip")

    summary = _drain(orchestrator, outer)

    assert summary.processed == 2
    assert summary.imported == 1
    assert orchestrator.store.exists("uuid-vol1")
    assert orchestrator.queue.items() == []


def test_duplicate_nested_archives_are_skipped(
    tmp_path: Path, zip_bytes: ZipFactory, mokuro_bytes: MokuroFactory, png_bytes: PngFactory
) -> None:
    orchestrator = _orchestrator(tmp_path)
    inner = _volume_zip(zip_bytes, mokuro_bytes, png_bytes, "vol1")
    outer = _archive_source(zip_bytes({"a/vol1.cbz": inner, "b/vol1.cbz": inner}), "box.zip")

    summary = _drain(orchestrator, outer)

    assert summary.skipped == 1
    assert summary.failed == 0
    assert summary.imported == 1


def test_progress_updates_are_published(
    tmp_path: Path, zip_bytes: ZipFactory, mokuro_bytes: MokuroFactory, png_bytes: PngFactory
) -> None:
    orchestrator = _orchestrator(tmp_path)
    statuses: list[ImportStatus] = []

    def _record(snapshot: list[ImportQueueItem]) -> None:
        for item in snapshot:
            if not statuses or statuses[-1] is not item.status:
                statuses.append(item.status)

    orchestrator.queue.subscribe(_record)
    _drain(
        orchestrator,
        _archive_source(_volume_zip(zip_bytes, mokuro_bytes, png_bytes, "vol1"), "vol1.cbz"),
    )

    assert statuses[0] is ImportStatus.QUEUED
    assert ImportStatus.DECOMPRESSING in statuses
    assert statuses[-1] is ImportStatus.COMPLETE


def test_concurrent_drain_request_returns_none(
    tmp_path: Path, zip_bytes: ZipFactory, mokuro_bytes: MokuroFactory, png_bytes: PngFactory
) -> None:
    orchestrator = _orchestrator(tmp_path)
    nested_results: list[Optional[DrainSummary]] = []

    def _reenter(_: list[ImportQueueItem]) -> None:
        if orchestrator.is_draining and not nested_results:
            nested_results.append(orchestrator.process_queue())

    orchestrator.queue.subscribe(_reenter)
    summary = _drain(
        orchestrator,
        _archive_source(_volume_zip(zip_bytes, mokuro_bytes, png_bytes, "vol1"), "vol1.cbz"),
    )

    assert nested_results == [None]
    assert summary.succeeded == 1
    assert not orchestrator.is_draining


def test_nested_archives_wait_behind_items_already_queued(
    tmp_path: Path, zip_bytes: ZipFactory, mokuro_bytes: MokuroFactory, png_bytes: PngFactory
) -> None:
    orchestrator = _orchestrator(tmp_path)
    inner = _volume_zip(zip_bytes, mokuro_bytes, png_bytes, "vol1")
    outer = _archive_source(zip_bytes({"box/vol1.cbz": inner}), "box.zip")
    later = _archive_source(_volume_zip(zip_bytes, mokuro_bytes, png_bytes, "vol2"), "vol2.cbz")

    summary = _drain(orchestrator, outer, later)

    assert orchestrator.store.saved_titles == ["vol2", "vol1"]  # type: ignore[attr-defined]
    assert (summary.processed, summary.imported) == (3, 2)
