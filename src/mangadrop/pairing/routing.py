"""Routing policy for paired sources."""

from __future__ import annotations

from typing import Sequence

from .models import ImportDecision, PairedSource


def decide_import_routing(pairings: Sequence[PairedSource]) -> ImportDecision:
    """Route a single pairing for direct processing and several to the queue."""
    if not pairings:
        return ImportDecision()
    if len(pairings) == 1:
        return ImportDecision(direct_process=pairings[0])
    return ImportDecision(queued_items=list(pairings))


__all__ = ["decide_import_routing"]
