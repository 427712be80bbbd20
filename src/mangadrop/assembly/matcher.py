"""Matching of declared page paths to available image files."""

from __future__ import annotations

from typing import Dict, List, Mapping, Sequence, Set, Tuple

from mangadrop.ingestion.detectors import natural_sort_key, parse_file_path

from .models import ImageMatchResult


def _normalize(path: str) -> str:
    return path.replace("\\", "/").lower()


def _dir_and_stem(path: str) -> Tuple[str, str]:
    parsed = parse_file_path(path)
    return parsed.parent_dir.lower(), parsed.stem.lower()


def match_images_to_pages(pages: Sequence[str], files: Mapping[str, object]) -> ImageMatchResult:
    """Resolve each declared page path to one of ``files``.

    Exact matches (case-insensitive, either slash style) are resolved for every
    page before any fuzzy matching, so a fuzzy candidate can never take a file
    that another page names exactly. Remaining pages then match a file with the
    same directory and stem but a different extension, and finally a file with
    the same stem anywhere when exactly one such file is left. Pages that still
    have no file are reported as missing.

    Args:
        pages: Declared ``img_path`` values in page order.
        files: Available files keyed by volume-relative path.

    Returns:
        ImageMatchResult: Matched, missing, and extra paths plus the remapping
        from declared paths to actual file keys.
    """
    resolved: Dict[int, str] = {}
    used: Set[str] = set()

    exact: Dict[str, str] = {}
    by_dir_stem: Dict[Tuple[str, str], List[str]] = {}
    by_stem: Dict[str, List[str]] = {}
    for path in files:
        exact.setdefault(_normalize(path), path)
        directory, stem = _dir_and_stem(path)
        by_dir_stem.setdefault((directory, stem), []).append(path)
        by_stem.setdefault(stem, []).append(path)

    for index, page in enumerate(pages):
        actual = exact.get(_normalize(page))
        if actual is not None and actual not in used:
            resolved[index] = actual
            used.add(actual)

    for index, page in enumerate(pages):
        if index in resolved:
            continue
        directory, stem = _dir_and_stem(page)
        candidates = [path for path in by_dir_stem.get((directory, stem), []) if path not in used]
        if not candidates:
            loose = [path for path in by_stem.get(stem, []) if path not in used]
            candidates = loose if len(loose) == 1 else []
        if candidates:
            resolved[index] = candidates[0]
            used.add(candidates[0])

    matched: List[str] = []
    missing: List[str] = []
    remapped: Dict[str, str] = {}
    for index, page in enumerate(pages):
        actual = resolved.get(index)
        if actual is None:
            missing.append(page)
            continue
        matched.append(page)
        if actual != page:
            remapped[page] = actual

    extra = sorted((path for path in files if path not in used), key=natural_sort_key)
    return ImageMatchResult(
        matched=matched, missing_files=missing, extra_files=extra, remapped=remapped
    )


__all__ = ["natural_sort_key", "match_images_to_pages"]
