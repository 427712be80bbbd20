"""Configuration models describing mangadrop settings."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class MangadropBaseModel(BaseModel):
    """Shared configuration for mangadrop Pydantic models."""

    model_config = ConfigDict(extra="forbid")


class ImportSettings(MangadropBaseModel):
    """Options governing pairing, decompression, and volume assembly.

    Attributes:
        extract_batch_size: Number of archive entries read concurrently per batch.
        archive_size_multiplier: Factor applied to archive sizes when estimating memory.
        image_only_archives: Whether archives without metadata import their images.
        assume_yes: Whether confirmation prompts are answered automatically.
        placeholder_width: Width of generated placeholders when a page declares none.
        placeholder_height: Height of generated placeholders when a page declares none.
    """

    extract_batch_size: int = Field(default=5, ge=1)
    archive_size_multiplier: float = Field(default=2.5, gt=0)
    image_only_archives: bool = False
    assume_yes: bool = False
    placeholder_width: int = Field(default=800, ge=1)
    placeholder_height: int = Field(default=1200, ge=1)


class ThumbnailSettings(MangadropBaseModel):
    """Thumbnail rendering options.

    Attributes:
        max_width: Maximum thumbnail width in pixels.
        max_height: Maximum thumbnail height in pixels.
        quality: JPEG quality used when encoding thumbnails.
    """

    max_width: int = Field(default=250, ge=1)
    max_height: int = Field(default=350, ge=1)
    quality: int = Field(default=85, ge=1, le=100)


class LibrarySettings(MangadropBaseModel):
    """Location of the on-disk volume library.

    Attributes:
        path: Directory receiving imported volumes.
    """

    path: str = "~/.mangadrop/library"


class ScanningSettings(MangadropBaseModel):
    """Directory traversal options.

    Attributes:
        include_hidden: Whether dot-prefixed files and folders are scanned.
        follow_symlinks: Whether symbolic links are traversed.
    """

    include_hidden: bool = False
    follow_symlinks: bool = False


class LoggingSettings(MangadropBaseModel):
    """Runtime logging configuration.

    Attributes:
        level: Logging verbosity level.
        max_size_mb: Maximum log size before rotation.
        backup_count: Number of historical log files to retain.
    """

    level: str = "WARNING"
    max_size_mb: int = 10
    backup_count: int = 3


class CLIOptions(MangadropBaseModel):
    """CLI behavior defaults and presentation preferences.

    Attributes:
        quiet_default: Whether commands suppress non-error output by default.
        summary_default: Whether commands only print summary lines by default.
    """

    quiet_default: bool = False
    summary_default: bool = False


class MangadropConfig(MangadropBaseModel):
    """Top-level configuration struct for mangadrop.

    Attributes:
        imports: Pairing and import pipeline settings.
        thumbnails: Thumbnail rendering settings.
        library: Library location.
        scanning: Directory scanning settings.
        logging: Logging configuration.
        cli: CLI presentation defaults.
    """

    imports: ImportSettings = Field(default_factory=ImportSettings)
    thumbnails: ThumbnailSettings = Field(default_factory=ThumbnailSettings)
    library: LibrarySettings = Field(default_factory=LibrarySettings)
    scanning: ScanningSettings = Field(default_factory=ScanningSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    cli: CLIOptions = Field(default_factory=CLIOptions)


__all__ = [
    "MangadropBaseModel",
    "ImportSettings",
    "ThumbnailSettings",
    "LibrarySettings",
    "ScanningSettings",
    "LoggingSettings",
    "CLIOptions",
    "MangadropConfig",
]
