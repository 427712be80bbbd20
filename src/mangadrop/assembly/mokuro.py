"""Parsing of ``.mokuro`` OCR metadata files."""

from __future__ import annotations

import json
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from mangadrop.ingestion.models import FileBlob

from .errors import MokuroParseError

REQUIRED_FIELDS = ("version", "title", "title_uuid", "volume", "volume_uuid", "pages")


class MokuroPage(BaseModel):
    """One page record; unknown keys are preserved."""

    model_config = ConfigDict(extra="allow")

    img_path: str
    img_width: Optional[int] = None
    img_height: Optional[int] = None
    version: Optional[str] = None
    blocks: List[Any] = Field(default_factory=list)

    @field_validator("version", mode="before")
    @classmethod
    def _version_text(cls, value: Any) -> Any:
        return str(value) if isinstance(value, (int, float)) else value

    @field_validator("blocks", mode="before")
    @classmethod
    def _blocks_list(cls, value: Any) -> Any:
        return value if isinstance(value, list) else []

    def char_count(self) -> int:
        """Return the number of characters across all block lines."""
        total = 0
        for block in self.blocks:
            lines = block.get("lines") if isinstance(block, dict) else None
            if not isinstance(lines, list):
                continue
            total += sum(len(line) for line in lines if isinstance(line, str))
        return total


class MokuroDocument(BaseModel):
    """Parsed ``.mokuro`` file."""

    model_config = ConfigDict(extra="allow")

    version: str
    title: str
    title_uuid: str
    volume: str
    volume_uuid: str
    pages: List[MokuroPage]
    chars: int = 0

    @field_validator("version", "title", "volume", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> Any:
        if value is None:
            return ""
        if isinstance(value, (int, float)):
            return str(value)
        return value

    @field_validator("chars", mode="before")
    @classmethod
    def _default_chars(cls, value: Any) -> Any:
        return 0 if value is None else value

    @property
    def series(self) -> str:
        """Return the series display name, falling back to the volume name."""
        return self.title or self.volume

    def cumulative_chars(self) -> List[int]:
        """Return the running character total after each page."""
        counts: List[int] = []
        running = 0
        for page in self.pages:
            running += page.char_count()
            counts.append(running)
        return counts

    def total_chars(self) -> int:
        """Return the declared character count, or the computed total when absent."""
        if self.chars:
            return self.chars
        counts = self.cumulative_chars()
        return counts[-1] if counts else 0


def parse_mokuro(blob: FileBlob) -> MokuroDocument:
    """Parse ``blob`` as a ``.mokuro`` document.

    Raises:
        MokuroParseError: If the payload is not JSON, is not an object, or lacks
            one of the required fields.
    """
    try:
        data = json.loads(blob.read().decode("utf-8-sig"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise MokuroParseError("Invalid mokuro file: not valid JSON") from exc

    if not isinstance(data, dict):
        raise MokuroParseError("Invalid mokuro file: expected a JSON object")

    missing = [name for name in REQUIRED_FIELDS if name not in data]
    if missing:
        raise MokuroParseError(f"Invalid mokuro file: missing required fields: {', '.join(missing)}")

    try:
        return MokuroDocument.model_validate(data)
    except ValidationError as exc:
        raise MokuroParseError(f"Invalid mokuro file: {exc}") from exc


__all__ = ["MokuroPage", "MokuroDocument", "parse_mokuro", "REQUIRED_FIELDS"]
