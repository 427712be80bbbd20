"""Data models for files captured from a drop or an archive listing."""

from __future__ import annotations

import hashlib
import io
import shutil
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Optional

from pydantic import BaseModel, ConfigDict

_CHUNK_SIZE = 1024 * 1024


@dataclass(frozen=True, eq=False)
class FileBlob:
    """Read-only handle on the bytes of one file.

    A blob is backed by a path on disk, by bytes held in memory, or by nothing
    at all when it only stands in for an archive member that was listed but
    not extracted (``member`` then names that entry).

    Attributes:
        name: Final path segment of the file.
        size: Size of the payload in bytes.
        path: Backing file on disk, when the blob was captured from a directory.
        data: In-memory payload, when the blob came from an archive or generator.
        member: Archive member name for listing placeholders.
    """

    name: str
    size: int
    path: Optional[Path] = None
    data: Optional[bytes] = None
    member: Optional[str] = None

    @classmethod
    def from_path(cls, path: Path) -> "FileBlob":
        """Return a blob backed by ``path``."""
        path = Path(path)
        return cls(name=path.name, size=path.stat().st_size, path=path)

    @classmethod
    def from_bytes(cls, data: bytes, name: str) -> "FileBlob":
        """Return a blob holding ``data`` in memory."""
        return cls(name=name, size=len(data), data=bytes(data))

    @classmethod
    def placeholder(cls, member: str, size: int = 0) -> "FileBlob":
        """Return an empty stand-in for an archive member that was not extracted."""
        name = member.replace("\\", "/").rsplit("/", 1)[-1]
        return cls(name=name, size=size, member=member)

    @property
    def is_placeholder(self) -> bool:
        return self.path is None and self.data is None

    def read(self) -> bytes:
        """Return the full payload (empty for placeholders)."""
        if self.data is not None:
            return self.data
        if self.path is not None:
            return self.path.read_bytes()
        return b""

    def open(self) -> BinaryIO:
        """Return a seekable binary file object over the payload."""
        if self.path is not None and self.data is None:
            return self.path.open("rb")
        return io.BytesIO(self.read())

    def copy_to(self, destination: Path) -> None:
        """Write the payload to ``destination``, creating parent folders."""
        destination.parent.mkdir(parents=True, exist_ok=True)
        if self.path is not None and self.data is None:
            shutil.copyfile(self.path, destination)
        else:
            destination.write_bytes(self.read())

    def fingerprint(self) -> str:
        """Return a content digest identifying this payload."""
        if self.is_placeholder:
            return f"member:{self.member}"
        digest = hashlib.sha256()
        with self.open() as handle:
            for chunk in iter(lambda: handle.read(_CHUNK_SIZE), b""):
                digest.update(chunk)
        return digest.hexdigest()

    def __repr__(self) -> str:
        if self.path is not None:
            origin = str(self.path)
        elif self.data is not None:
            origin = "memory"
        else:
            origin = f"member {self.member!r}"
        return f"FileBlob({self.name!r}, size={self.size}, {origin})"


class FileCategory(str, Enum):
    """Categories assigned by the file classifier."""

    METADATA = "metadata"
    IMAGE = "image"
    ARCHIVE = "archive"
    OTHER = "other"


class FileEntry(BaseModel):
    """A file path paired with its payload.

    Attributes:
        path: Slash-separated path relative to the drop root or archive root.
        file: Payload handle.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    path: str
    file: FileBlob


class CategorizedFile(FileEntry):
    """A ``FileEntry`` with path-derived classification fields.

    Attributes:
        category: Classification bucket derived from the extension.
        parent_dir: Directory part of the path (empty at the root).
        filename: Final path segment.
        stem: Filename without its extension.
        extension: Lower-cased extension without the dot.
    """

    category: FileCategory
    parent_dir: str
    filename: str
    stem: str
    extension: str


__all__ = ["FileBlob", "FileCategory", "FileEntry", "CategorizedFile"]
