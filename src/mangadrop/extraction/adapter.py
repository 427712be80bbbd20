"""Bounded-batch archive decompression."""

from __future__ import annotations

import logging
import zipfile
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, List, Optional, Sequence

from mangadrop.ingestion.detectors import is_system_file, parse_file_path
from mangadrop.ingestion.models import FileBlob

from .errors import ArchiveError, UnsupportedArchiveError
from .models import ExtractFilter, ExtractionMode, RawEntry, VolumeExtractDef
from .pool import DecompressionPool

LOGGER = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


class ArchiveDecompressor:
    """Read archive members in fixed-size concurrent batches.

    At most ``batch_size`` member reads are in flight at once, and each batch
    completes before the next one is submitted. Directory entries and system
    files are dropped while listing, so they are never read.
    """

    def __init__(self, pool: DecompressionPool | None = None, *, batch_size: int = 5) -> None:
        self.batch_size = max(1, batch_size)
        self.pool = pool or DecompressionPool(max_workers=self.batch_size)

    def decompress(
        self,
        archive: FileBlob,
        *,
        mode: ExtractionMode = ExtractionMode.FULL,
        filter: ExtractFilter | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> List[RawEntry]:
        """Return archive entries according to ``mode`` and ``filter``.

        Args:
            archive: Archive payload.
            mode: Extraction mode.
            filter: Optional member selection. In ``full`` mode unselected members
                are omitted; in ``list_all_extract_filtered`` mode they are listed
                with an empty payload.
            on_progress: Called with ``(done, total)`` after each batch of reads.

        Returns:
            List[RawEntry]: Entries in archive order. Members whose read failed
            are logged and omitted.

        Raises:
            ArchiveError: If the archive cannot be opened.
        """
        with self.pool.session(), self._open(archive) as handle:
            members = self._list_members(handle)

            if mode is ExtractionMode.LIST_ONLY:
                to_read: List[zipfile.ZipInfo] = []
            elif filter is None:
                to_read = list(members)
            else:
                to_read = [info for info in members if filter.matches(info.filename)]

            payloads = self._read_batches(handle, to_read, on_progress)

        entries: List[RawEntry] = []
        selected = {info.filename for info in to_read}
        for info in members:
            if info.filename in payloads:
                data = payloads[info.filename]
                entries.append(RawEntry(info.filename, data, info.file_size, True))
            elif info.filename in selected:
                continue
            elif mode is not ExtractionMode.FULL:
                entries.append(RawEntry(info.filename, b"", info.file_size, False))
        return entries

    def extract_by_volumes(
        self,
        archive: FileBlob,
        volumes: Sequence[VolumeExtractDef],
        *,
        on_progress: ProgressCallback | None = None,
    ) -> Dict[str, Dict[str, FileBlob]]:
        """Read the members of several volumes in one pass over ``archive``."""
        owners: Dict[str, List[tuple[str, str]]] = {}
        for volume in volumes:
            for relative, member in volume.members.items():
                owners.setdefault(member, []).append((volume.id, relative))

        result: Dict[str, Dict[str, FileBlob]] = {volume.id: {} for volume in volumes}
        if not owners:
            return result

        entries = self.decompress(
            archive,
            mode=ExtractionMode.FULL,
            filter=ExtractFilter(names=frozenset(owners)),
            on_progress=on_progress,
        )
        for entry in entries:
            blob = entry.to_blob()
            for volume_id, relative in owners.get(entry.filename, []):
                result[volume_id][relative] = blob
        return result

    # ------------------------------------------------------------------ #
    # Internal helpers                                                   #
    # ------------------------------------------------------------------ #

    @contextmanager
    def _open(self, archive: FileBlob) -> Iterator[zipfile.ZipFile]:
        if archive.is_placeholder:
            raise ArchiveError(f"Archive {archive.name} has no readable payload.")
        with archive.open() as stream:
            if not zipfile.is_zipfile(stream):
                extension = parse_file_path(archive.name).extension or "unknown"
                raise UnsupportedArchiveError(
                    f"Unsupported archive format for {archive.name} ({extension}); only zip-based archives can be read."
                )
            stream.seek(0)
            try:
                handle = zipfile.ZipFile(stream)
            except (zipfile.BadZipFile, OSError) as exc:
                raise ArchiveError(f"Unable to open archive {archive.name}: {exc}") from exc
            with handle:
                yield handle

    def _list_members(self, handle: zipfile.ZipFile) -> List[zipfile.ZipInfo]:
        members = []
        for info in handle.infolist():
            if info.is_dir():
                continue
            if is_system_file(info.filename):
                continue
            members.append(info)
        return members

    def _read_batches(
        self,
        handle: zipfile.ZipFile,
        members: Sequence[zipfile.ZipInfo],
        on_progress: Optional[ProgressCallback],
    ) -> Dict[str, bytes]:
        payloads: Dict[str, bytes] = {}
        total = len(members)
        done = 0
        for start in range(0, total, self.batch_size):
            batch = members[start : start + self.batch_size]
            futures = [(info, self.pool.submit(self._read_entry, handle, info)) for info in batch]
            for info, future in futures:
                try:
                    payloads[info.filename] = future.result()
                except Exception as exc:  # noqa: BLE001 - logged and dropped
                    LOGGER.warning("Failed to extract %s: %s", info.filename, exc)
            done += len(batch)
            if on_progress is not None:
                on_progress(done, total)
        return payloads

    def _read_entry(self, handle: zipfile.ZipFile, info: zipfile.ZipInfo) -> bytes:
        return handle.read(info)


__all__ = ["ArchiveDecompressor", "ProgressCallback"]
