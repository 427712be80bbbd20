"""Volume assembly errors."""


class AssemblyError(Exception):
    """Base exception for volume assembly failures."""


class MokuroParseError(AssemblyError):
    """Raised when a ``.mokuro`` file is not valid JSON or lacks required fields."""


class ImportCancelledError(AssemblyError):
    """Raised when the user declines to import a volume with missing pages."""
