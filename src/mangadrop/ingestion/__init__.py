"""File capture and classification for dropped files and archive listings."""

from .detectors import FileClassifier, is_system_file, parse_file_path
from .discovery import DirectoryScanner
from .models import CategorizedFile, FileBlob, FileCategory, FileEntry

__all__ = [
    "CategorizedFile",
    "DirectoryScanner",
    "FileBlob",
    "FileCategory",
    "FileClassifier",
    "FileEntry",
    "is_system_file",
    "parse_file_path",
]
