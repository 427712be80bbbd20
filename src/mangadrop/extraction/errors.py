"""Archive extraction errors."""


class ArchiveError(Exception):
    """Raised when an archive cannot be opened or listed."""


class UnsupportedArchiveError(ArchiveError):
    """Raised for archive formats the decompressor cannot read."""
