"""Shared fixtures for building mokuro payloads, images, and archives."""

from __future__ import annotations

import io
import json
import zipfile
from pathlib import Path
from typing import Any, Callable, Mapping, Sequence

import pytest
from PIL import Image

from mangadrop.ingestion.models import FileBlob, FileEntry


def _png(width: int = 32, height: int = 48, colour: str = "white") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), colour).save(buffer, format="PNG")
    return buffer.getvalue()


def _mokuro(
    pages: Sequence[str],
    *,
    title: str = "Series",
    volume: str = "Volume 1",
    volume_uuid: str = "vol-uuid-1",
    title_uuid: str = "series-uuid-1",
    lines: Sequence[str] = ("あいう",),
    **extra: Any,
) -> bytes:
    payload: dict[str, Any] = {
        "version": "0.2.1",
        "title": title,
        "title_uuid": title_uuid,
        "volume": volume,
        "volume_uuid": volume_uuid,
        "pages": [
            {
                "img_path": page,
                "img_width": 32,
                "img_height": 48,
                "version": "0.2.1",
                "blocks": [{"box": [0, 0, 10, 10], "lines": list(lines)}],
            }
            for page in pages
        ],
    }
    payload.update(extra)
    return json.dumps(payload, ensure_ascii=False).encode("utf-8")


def _zip(members: Mapping[str, bytes]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as handle:
        for name, data in members.items():
            handle.writestr(name, data)
    return buffer.getvalue()


@pytest.fixture
def png_bytes() -> Callable[..., bytes]:
    """Return a factory producing small PNG payloads."""
    return _png


@pytest.fixture
def mokuro_bytes() -> Callable[..., bytes]:
    """Return a factory producing serialized ``.mokuro`` documents."""
    return _mokuro


@pytest.fixture
def zip_bytes() -> Callable[[Mapping[str, bytes]], bytes]:
    """Return a factory producing in-memory zip archives."""
    return _zip


@pytest.fixture
def entry() -> Callable[..., FileEntry]:
    """Return a factory for in-memory ``FileEntry`` objects.

    The payload defaults to a few placeholder bytes so pairing tests do not
    need real content.
    """

    def _make(path: str, data: bytes = b"data") -> FileEntry:
        name = path.replace("\\", "/").rsplit("/", 1)[-1]
        return FileEntry(path=path, file=FileBlob.from_bytes(data, name))

    return _make


@pytest.fixture
def write_tree(tmp_path: Path) -> Callable[[Mapping[str, bytes]], Path]:
    """Return a helper that writes ``{relative path: bytes}`` under ``tmp_path``."""

    def _write(files: Mapping[str, bytes]) -> Path:
        for relative, data in files.items():
            target = tmp_path / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        return tmp_path

    return _write
