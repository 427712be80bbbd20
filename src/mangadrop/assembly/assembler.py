"""Reconciliation of page metadata with images, and volume import."""

from __future__ import annotations

import io
import logging
import uuid
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

from PIL import Image, ImageDraw, ImageFont, ImageOps

from mangadrop.config.models import ImportSettings, ThumbnailSettings
from mangadrop.ingestion.detectors import natural_sort_key, parse_file_path
from mangadrop.ingestion.models import FileBlob
from mangadrop.library.errors import VolumeExistsError

from .errors import ImportCancelledError
from .matcher import match_images_to_pages
from .models import (
    DecompressedVolume,
    ImageMatchResult,
    MissingFilesInfo,
    ProcessedMetadata,
    ProcessedPage,
    ProcessedVolume,
)
from .mokuro import MokuroDocument, parse_mokuro
from .naming import deterministic_uuid, extract_series_name, extract_volume_info

if TYPE_CHECKING:
    from mangadrop.importer.prompts import ConfirmationPrompt
    from mangadrop.library import VolumeStore

LOGGER = logging.getLogger(__name__)

PLACEHOLDER_BACKGROUND = "#2a2a2a"


def render_placeholder(name: str, width: int, height: int) -> bytes:
    """Return PNG bytes for a gray "File Missing" page of the given size."""
    width, height = max(1, int(width)), max(1, int(height))
    image = Image.new("RGB", (width, height), PLACEHOLDER_BACKGROUND)
    if width > 120 and height > 240:
        draw = ImageDraw.Draw(image)
        draw.rectangle((10, 10, width - 11, height - 11), outline="#444444", width=4)
        cx, cy, half = width // 2, height // 2 - 60, 40
        draw.line((cx - half, cy - half, cx + half, cy + half), fill="#666666", width=8)
        draw.line((cx + half, cy - half, cx - half, cy + half), fill="#666666", width=8)
        font = ImageFont.load_default()
        label = name if len(name) <= 40 else "..." + name[-37:]
        for text, offset, colour in (("File Missing", 40, "#888888"), (label, 80, "#666666")):
            left, _, right, _ = draw.textbbox((0, 0), text, font=font)
            draw.text(((width - (right - left)) / 2, height / 2 + offset), text, fill=colour, font=font)
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


class VolumeAssembler:
    """Build ``ProcessedVolume`` objects and drive single-volume imports."""

    def __init__(
        self,
        *,
        imports: ImportSettings | None = None,
        thumbnails: ThumbnailSettings | None = None,
    ) -> None:
        self.imports = imports or ImportSettings()
        self.thumbnails = thumbnails or ThumbnailSettings()

    def check(self, volume: DecompressedVolume) -> Tuple[MokuroDocument, ImageMatchResult]:
        """Parse the volume's metadata and match its pages against the images.

        Raises:
            ValueError: If the volume has no metadata file.
            MokuroParseError: If the metadata cannot be parsed.
        """
        if volume.metadata_file is None:
            raise ValueError("Image-only volumes have no page metadata to check.")
        document = parse_mokuro(volume.metadata_file)
        match = match_images_to_pages([page.img_path for page in document.pages], volume.image_files)
        return document, match

    def assemble(
        self,
        volume: DecompressedVolume,
        *,
        document: Optional[MokuroDocument] = None,
        match: Optional[ImageMatchResult] = None,
    ) -> ProcessedVolume:
        """Return the storable form of ``volume``.

        Missing pages are filled with generated placeholders. ``document`` and
        ``match`` may be passed when the caller already ran ``check``.
        """
        if volume.metadata_file is not None and (document is None or match is None):
            document, match = self.check(volume)

        files: Dict[str, FileBlob] = dict(volume.image_files)
        if document is not None and match is not None:
            metadata, pages = self._mokuro_volume(volume, document, match)
            for page in document.pages:
                if page.img_path in match.missing_files and page.img_path not in files:
                    width = page.img_width or self.imports.placeholder_width
                    height = page.img_height or self.imports.placeholder_height
                    data = render_placeholder(page.img_path, width, height)
                    files[page.img_path] = FileBlob.from_bytes(data, parse_file_path(page.img_path).filename)
        else:
            metadata, pages = self._image_only_volume(volume)

        thumbnail_source = self._thumbnail_source(pages, volume.image_files)
        if thumbnail_source is not None:
            rendered = self.render_thumbnail(thumbnail_source)
            if rendered is not None:
                metadata.thumbnail, metadata.thumbnail_width, metadata.thumbnail_height = rendered

        return ProcessedVolume(metadata=metadata, ocr_data=pages, file_data=files)

    def import_volume(
        self,
        volume: DecompressedVolume,
        *,
        store: "VolumeStore",
        prompt: "ConfirmationPrompt",
    ) -> ProcessedVolume:
        """Check, assemble, and save one volume.

        Raises:
            MokuroParseError: If the metadata cannot be parsed.
            VolumeExistsError: If the volume is already stored; nothing is written.
            ImportCancelledError: If the user declines to import with missing pages.
        """
        document: Optional[MokuroDocument] = None
        match: Optional[ImageMatchResult] = None
        if volume.metadata_file is not None:
            document, match = self.check(volume)
            if store.exists(document.volume_uuid):
                raise VolumeExistsError(f'Volume "{document.volume}" already exists')
            if match.missing_files:
                info = MissingFilesInfo(
                    volume_name=document.volume or volume.base_path,
                    missing_files=list(match.missing_files),
                    total_pages=len(document.pages),
                )
                if not prompt.confirm_missing_files(info):
                    raise ImportCancelledError(
                        f"Import cancelled - {len(match.missing_files)} missing files"
                    )

        processed = self.assemble(volume, document=document, match=match)
        if store.exists(processed.metadata.volume_uuid):
            raise VolumeExistsError(f'Volume "{processed.metadata.volume}" already exists')
        store.save(processed)
        return processed

    def render_thumbnail(self, blob: FileBlob) -> Optional[Tuple[bytes, int, int]]:
        """Return JPEG bytes and dimensions for a thumbnail of ``blob``, or None on failure."""
        try:
            with blob.open() as stream, Image.open(stream) as image:
                thumb = ImageOps.exif_transpose(image)
                thumb.thumbnail((self.thumbnails.max_width, self.thumbnails.max_height))
                thumb = thumb.convert("RGB")
                buffer = io.BytesIO()
                thumb.save(buffer, format="JPEG", quality=self.thumbnails.quality)
                return buffer.getvalue(), thumb.width, thumb.height
        except (OSError, ValueError, Image.DecompressionBombError) as exc:
            LOGGER.warning("Failed to generate thumbnail from %s: %s", blob.name, exc)
            return None

    # ------------------------------------------------------------------ #
    # Internal helpers                                                   #
    # ------------------------------------------------------------------ #

    def _mokuro_volume(
        self, volume: DecompressedVolume, document: MokuroDocument, match: ImageMatchResult
    ) -> Tuple[ProcessedMetadata, List[ProcessedPage]]:
        cumulative = document.cumulative_chars()
        pages = [
            ProcessedPage(
                **{
                    **page.model_dump(),
                    "img_path": match.remapped.get(page.img_path, page.img_path),
                    "cumulative_chars": cumulative[index],
                }
            )
            for index, page in enumerate(document.pages)
        ]
        missing = list(match.missing_files)
        metadata = ProcessedMetadata(
            volume_uuid=document.volume_uuid,
            series_uuid=document.title_uuid,
            series=document.series,
            volume=document.volume,
            mokuro_version=document.version,
            page_count=len(document.pages),
            chars=document.total_chars(),
            mismatch_warning=f"Missing images: {', '.join(missing)}" if missing else None,
            missing_pages=len(missing),
            missing_page_paths=missing,
            source_type=volume.source_type,
        )
        return metadata, pages

    def _image_only_volume(
        self, volume: DecompressedVolume
    ) -> Tuple[ProcessedMetadata, List[ProcessedPage]]:
        ordered = sorted(volume.image_files, key=natural_sort_key)
        pages = [ProcessedPage(img_path=path, blocks=[], cumulative_chars=0) for path in ordered]
        series = extract_series_name(volume.base_path)
        metadata = ProcessedMetadata(
            volume_uuid=str(uuid.uuid4()),
            series_uuid=deterministic_uuid(series),
            series=series,
            volume=extract_volume_info(volume.base_path).volume,
            page_count=len(pages),
            chars=0,
            image_only=True,
            source_type=volume.source_type,
        )
        return metadata, pages

    def _thumbnail_source(
        self, pages: List[ProcessedPage], images: Dict[str, FileBlob]
    ) -> Optional[FileBlob]:
        for page in pages:
            blob = images.get(page.img_path)
            if blob is not None:
                return blob
        if not images:
            return None
        return images[min(images, key=natural_sort_key)]


__all__ = ["VolumeAssembler", "render_placeholder"]
