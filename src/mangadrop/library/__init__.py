"""On-disk volume library."""

from __future__ import annotations

import json
import logging
import shutil
import uuid
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING, List, Protocol

from mangadrop.ingestion.detectors import natural_sort_key

from .errors import LibraryError, MissingVolumeError, VolumeExistsError
from .models import VolumeRecord

if TYPE_CHECKING:
    from mangadrop.assembly.models import ProcessedVolume

LOGGER = logging.getLogger(__name__)

VOLUMES_DIRNAME = "volumes"
STAGING_DIRNAME = ".staging"
THUMBNAIL_FILENAME = "thumbnail.jpg"


class VolumeStore(Protocol):
    """Persistence contract used by the import pipeline."""

    def exists(self, volume_uuid: str) -> bool: ...

    def save(self, volume: "ProcessedVolume") -> VolumeRecord: ...


class LibraryRepository:
    """Store imported volumes under a library directory.

    Each volume lives in ``volumes/<volume_uuid>/`` with ``volume.json``
    (metadata), ``ocr.json`` (page records), ``files/`` (images), and an
    optional ``thumbnail.jpg``. A volume is written to a staging folder first
    and moved into place with one rename, so readers never see a partial volume.
    """

    def __init__(self, root: Path) -> None:
        """Initialize the repository.

        Args:
            root: Library directory; created on first save.
        """
        self._root = Path(root).expanduser()

    @property
    def root(self) -> Path:
        """Return the library directory."""
        return self._root

    def exists(self, volume_uuid: str) -> bool:
        """Return True when ``volume_uuid`` is already stored."""
        return (self._volume_dir(volume_uuid) / "volume.json").exists()

    def save(self, volume: "ProcessedVolume") -> VolumeRecord:
        """Persist ``volume`` and return its stored record.

        Args:
            volume: Assembled volume to store.

        Returns:
            VolumeRecord: Metadata written to ``volume.json``.

        Raises:
            VolumeExistsError: If the volume is already stored; nothing is written.
            LibraryError: If the volume cannot be written.
        """
        meta = volume.metadata
        if self.exists(meta.volume_uuid):
            raise VolumeExistsError(f"Volume {meta.volume_uuid} already exists in the library")

        ordered = sorted(volume.file_data, key=natural_sort_key)
        record = VolumeRecord(
            volume_uuid=meta.volume_uuid,
            series_uuid=meta.series_uuid,
            series_title=meta.series,
            volume_title=meta.volume,
            mokuro_version=meta.mokuro_version or "",
            page_count=meta.page_count,
            character_count=meta.chars,
            page_char_counts=[page.cumulative_chars for page in volume.ocr_data],
            thumbnail=THUMBNAIL_FILENAME if meta.thumbnail else None,
            thumbnail_width=meta.thumbnail_width,
            thumbnail_height=meta.thumbnail_height,
            missing_pages=meta.missing_pages,
            missing_page_paths=list(meta.missing_page_paths),
            image_only=meta.image_only,
            source_type=meta.source_type,
            files=ordered,
        )
        ocr_payload = {
            "volume_uuid": meta.volume_uuid,
            "pages": [page.model_dump(mode="json", exclude={"cumulative_chars"}) for page in volume.ocr_data],
        }

        staging = self._root / STAGING_DIRNAME / f"{meta.volume_uuid}-{uuid.uuid4().hex}"
        target = self._volume_dir(meta.volume_uuid)
        try:
            files_dir = staging / "files"
            files_dir.mkdir(parents=True)
            for relative in ordered:
                volume.file_data[relative].copy_to(files_dir / _safe_relative(relative))
            if meta.thumbnail:
                (staging / THUMBNAIL_FILENAME).write_bytes(meta.thumbnail)
            (staging / "ocr.json").write_text(json.dumps(ocr_payload, ensure_ascii=False), encoding="utf-8")
            (staging / "volume.json").write_text(
                json.dumps(record.model_dump(mode="json"), indent=2, ensure_ascii=False),
                encoding="utf-8",
            )
            target.parent.mkdir(parents=True, exist_ok=True)
            staging.rename(target)
        except OSError as exc:
            raise LibraryError(f"Failed to store volume {meta.volume_uuid}: {exc}") from exc
        finally:
            if staging.exists():
                shutil.rmtree(staging, ignore_errors=True)

        LOGGER.info("Stored volume %s (%s / %s)", meta.volume_uuid, meta.series, meta.volume)
        return record

    def load(self, volume_uuid: str) -> VolumeRecord:
        """Return the stored record for ``volume_uuid``.

        Raises:
            MissingVolumeError: If the volume is not stored.
            LibraryError: If the record cannot be parsed.
        """
        path = self._volume_dir(volume_uuid) / "volume.json"
        if not path.exists():
            raise MissingVolumeError(f"No volume {volume_uuid} in {self._root}")
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise LibraryError(f"Invalid volume record {path}: {exc}") from exc
        return VolumeRecord.model_validate(data)

    def load_pages(self, volume_uuid: str) -> list[dict]:
        """Return the stored page records for ``volume_uuid``."""
        path = self._volume_dir(volume_uuid) / "ocr.json"
        if not path.exists():
            raise MissingVolumeError(f"No volume {volume_uuid} in {self._root}")
        try:
            return json.loads(path.read_text(encoding="utf-8"))["pages"]
        except (json.JSONDecodeError, KeyError) as exc:
            raise LibraryError(f"Invalid page data {path}: {exc}") from exc

    def list_volumes(self) -> List[VolumeRecord]:
        """Return every stored volume ordered by series and volume title."""
        directory = self._root / VOLUMES_DIRNAME
        if not directory.exists():
            return []
        records = [self.load(child.name) for child in directory.iterdir() if (child / "volume.json").exists()]
        return sorted(
            records,
            key=lambda record: (natural_sort_key(record.series_title), natural_sort_key(record.volume_title)),
        )

    def delete(self, volume_uuid: str) -> None:
        """Remove a stored volume.

        Raises:
            MissingVolumeError: If the volume is not stored.
        """
        directory = self._volume_dir(volume_uuid)
        if not directory.exists():
            raise MissingVolumeError(f"No volume {volume_uuid} in {self._root}")
        shutil.rmtree(directory)

    def _volume_dir(self, volume_uuid: str) -> Path:
        if not volume_uuid or "/" in volume_uuid or "\\" in volume_uuid or volume_uuid in (".", ".."):
            raise LibraryError(f"Invalid volume identifier: {volume_uuid!r}")
        return self._root / VOLUMES_DIRNAME / volume_uuid


def _safe_relative(relative: str) -> Path:
    parts = PurePosixPath(relative.replace("\\", "/")).parts
    if not parts or parts[0] == "/" or ".." in parts:
        raise LibraryError(f"Refusing to store file outside the volume: {relative!r}")
    return Path(*parts)


__all__ = [
    "LibraryRepository",
    "VolumeStore",
    "VolumeRecord",
    "LibraryError",
    "VolumeExistsError",
    "MissingVolumeError",
]
