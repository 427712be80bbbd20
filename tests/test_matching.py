"""Tests for page matching, naming helpers, and mokuro parsing."""

from __future__ import annotations

import json
from typing import Callable

import pytest

from mangadrop.assembly import (
    MokuroParseError,
    deterministic_uuid,
    extract_series_name,
    extract_titles_from_path,
    extract_volume_info,
    match_images_to_pages,
    parse_mokuro,
)
from mangadrop.ingestion.models import FileBlob


def _files(*names: str) -> dict[str, object]:
    return {name: object() for name in names}


def test_exact_matches_are_case_and_slash_insensitive() -> None:
    result = match_images_to_pages(["Vol1\\001.JPG", "vol1/002.jpg"], _files("vol1/001.jpg", "vol1/002.jpg"))

    assert result.matched == ["Vol1\\001.JPG", "vol1/002.jpg"]
    assert result.missing_files == []
    assert result.extra_files == []
    assert result.remapped == {"Vol1\\001.JPG": "vol1/001.jpg"}
    assert result.is_complete


def test_extension_differences_match_by_stem() -> None:
    result = match_images_to_pages(["a.png", "b.png"], _files("a.webp", "b.webp"))

    assert result.missing_files == []
    assert result.extra_files == []
    assert result.remapped == {"a.png": "a.webp", "b.png": "b.webp"}


def test_unmatched_pages_are_reported_missing() -> None:
    result = match_images_to_pages(["a.png", "b.png", "c.png"], _files("a.webp"))

    assert result.matched == ["a.png"]
    assert result.missing_files == ["b.png", "c.png"]
    assert result.extra_files == []


def test_exact_match_is_preferred_over_fuzzy_match() -> None:
    # "x/p1.png" could fuzzily take "x/p1.jpg", but page "x/p1.jpg" claims it exactly.
    result = match_images_to_pages(["x/p1.png", "x/p1.jpg"], _files("x/p1.jpg", "x/p1.webp"))

    assert result.remapped == {"x/p1.png": "x/p1.webp"}
    assert result.missing_files == []


def test_bare_stem_match_requires_a_unique_candidate() -> None:
    unique = match_images_to_pages(["001.jpg"], _files("scans/001.png", "scans/002.png"))
    ambiguous = match_images_to_pages(["001.jpg"], _files("a/001.png", "b/001.png", "c/005.png"))

    assert unique.remapped == {"001.jpg": "scans/001.png"}
    assert unique.extra_files == ["scans/002.png"]
    assert ambiguous.missing_files == ["001.jpg"]


def test_unrelated_names_are_reported_missing_and_extra() -> None:
    pages = ["001.png", "002.png"]
    files = _files("scan_b.jpg", "scan_a.jpg")

    result = match_images_to_pages(pages, files)

    assert result.matched == []
    assert result.missing_files == ["001.png", "002.png"]
    assert result.extra_files == ["scan_a.jpg", "scan_b.jpg"]
    assert result.remapped == {}


def test_partial_name_matches_leave_the_rest_missing() -> None:
    result = match_images_to_pages(
        ["p1.jpg", "p-b.jpg", "p-c.jpg"], _files("p1.png", "img2.jpg", "img3.jpg")
    )

    assert result.remapped == {"p1.jpg": "p1.png"}
    assert result.missing_files == ["p-b.jpg", "p-c.jpg"]
    assert result.extra_files == ["img2.jpg", "img3.jpg"]


def test_extract_volume_info() -> None:
    assert extract_volume_info("Series/Vol 3") == ("Series", "Vol 3")
    assert extract_volume_info("vol1") == ("vol1", "vol1")
    assert extract_volume_info("") == ("Untitled", "Untitled")


@pytest.mark.parametrize(
    ("path", "series"),
    [
        ("My Manga Vol 1.cbz", "My Manga"),
        ("My Manga v02", "My Manga"),
        ("My Manga Volume 3", "My Manga"),
        ("My Manga vol.4.zip", "My Manga"),
        ("Standalone", "Standalone"),
        ("Author/Series/Volume 1", "Author - Series"),
        ("", "Untitled"),
    ],
)
def test_extract_series_name(path: str, series: str) -> None:
    assert extract_series_name(path) == series


def test_extract_titles_from_path_numbers_volumes() -> None:
    assert extract_titles_from_path("My Manga Vol 7.cbz") == ("My Manga", "Volume 7")


def test_deterministic_uuid_is_stable_and_normalised() -> None:
    assert deterministic_uuid("My Manga") == deterministic_uuid("  my manga ")
    assert deterministic_uuid("My Manga") != deterministic_uuid("Other Manga")


def test_parse_mokuro_counts_characters(mokuro_bytes: Callable[..., bytes]) -> None:
    blob = FileBlob.from_bytes(
        mokuro_bytes(["001.jpg", "002.jpg"], lines=("ab", "cde")), "vol.mokuro"
    )

    document = parse_mokuro(blob)

    assert document.series == "Series"
    assert [page.char_count() for page in document.pages] == [5, 5]
    assert document.cumulative_chars() == [5, 10]
    assert document.total_chars() == 10


def test_parse_mokuro_prefers_declared_chars_and_falls_back_to_volume(
    mokuro_bytes: Callable[..., bytes],
) -> None:
    blob = FileBlob.from_bytes(mokuro_bytes(["001.jpg"], title="", chars=42), "vol.mokuro")

    document = parse_mokuro(blob)

    assert document.series == "Volume 1"
    assert document.total_chars() == 42


def test_parse_mokuro_keeps_unknown_page_fields(mokuro_bytes: Callable[..., bytes]) -> None:
    data = json.loads(mokuro_bytes(["001.jpg"]))
    data["pages"][0]["custom"] = {"kept": True}

    document = parse_mokuro(FileBlob.from_bytes(json.dumps(data).encode(), "v.mokuro"))

    assert document.pages[0].model_dump()["custom"] == {"kept": True}


@pytest.mark.parametrize(
    ("payload", "message"),
    [
        (b"{not json", "Invalid mokuro file: not valid JSON"),
        (b"[1, 2]", "Invalid mokuro file: expected a JSON object"),
        (
            json.dumps({"version": "1", "title": "t", "pages": []}).encode(),
            "Invalid mokuro file: missing required fields: title_uuid, volume, volume_uuid",
        ),
    ],
)
def test_parse_mokuro_rejects_invalid_payloads(payload: bytes, message: str) -> None:
    with pytest.raises(MokuroParseError) as excinfo:
        parse_mokuro(FileBlob.from_bytes(payload, "bad.mokuro"))

    assert str(excinfo.value) == message
