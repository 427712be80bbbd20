"""Library persistence errors."""


class LibraryError(Exception):
    """Base exception for library repository operations."""


class VolumeExistsError(LibraryError):
    """Raised when a volume with the same identifier is already stored."""


class MissingVolumeError(LibraryError):
    """Raised when a requested volume is not in the library."""
