"""Observable import queue."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Iterable, List, Optional

from mangadrop.pairing.models import PairedSource

from .models import ACTIVE_STATUSES, FINISHED_STATUSES, ImportQueueItem, ImportStatus

LOGGER = logging.getLogger(__name__)

Subscriber = Callable[[List[ImportQueueItem]], None]


class ImportQueue:
    """Ordered collection of import items with change notifications.

    Items are immutable; every change replaces the stored item and sends a
    snapshot of the whole queue to each subscriber.
    """

    def __init__(self) -> None:
        self._items: List[ImportQueueItem] = []
        self._subscribers: List[Subscriber] = []
        self._lock = threading.RLock()

    def __len__(self) -> int:
        return len(self._items)

    def items(self) -> List[ImportQueueItem]:
        """Return a snapshot of the queue in order."""
        with self._lock:
            return list(self._items)

    def get(self, item_id: str) -> Optional[ImportQueueItem]:
        with self._lock:
            return next((item for item in self._items if item.id == item_id), None)

    def pending(self) -> int:
        """Return the number of items still waiting to start."""
        with self._lock:
            return sum(1 for item in self._items if item.status is ImportStatus.QUEUED)

    def enqueue(self, sources: Iterable[PairedSource]) -> List[ImportQueueItem]:
        """Append new items for ``sources`` to the tail of the queue."""
        created = [ImportQueueItem.from_source(source) for source in sources]
        if not created:
            return created
        with self._lock:
            self._items.extend(created)
        LOGGER.debug("Queued %d import(s)", len(created))
        self._notify()
        return created

    def dequeue(self) -> Optional[ImportQueueItem]:
        """Mark the first queued item as processing and return it."""
        with self._lock:
            for index, item in enumerate(self._items):
                if item.status is ImportStatus.QUEUED:
                    started = item.model_copy(update={"status": ImportStatus.PROCESSING, "progress": 0})
                    self._items[index] = started
                    break
            else:
                return None
        self._notify()
        return started

    def update(self, item_id: str, **changes: object) -> ImportQueueItem:
        """Replace fields of an item.

        Raises:
            KeyError: If no item has ``item_id``.
        """
        with self._lock:
            for index, item in enumerate(self._items):
                if item.id == item_id:
                    updated = item.model_copy(update=changes)
                    self._items[index] = updated
                    break
            else:
                raise KeyError(item_id)
        self._notify()
        return updated

    def remove(self, item_id: str) -> bool:
        """Remove an item; return False when it was not queued."""
        with self._lock:
            before = len(self._items)
            self._items = [item for item in self._items if item.id != item_id]
            removed = len(self._items) != before
        if removed:
            self._notify()
        return removed

    def active(self) -> Optional[ImportQueueItem]:
        """Return the item currently being decompressed or processed, if any."""
        with self._lock:
            for item in self._items:
                if item.status in ACTIVE_STATUSES:
                    return item
        return None

    def cancel_queued(self) -> int:
        """Remove items that have not started; return how many were removed."""
        return self._discard(lambda item: item.status is ImportStatus.QUEUED)

    def clear_completed(self) -> int:
        """Remove finished and failed items; return how many were removed."""
        return self._discard(lambda item: item.status in FINISHED_STATUSES)

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register ``callback`` for queue snapshots; return an unsubscribe function."""
        with self._lock:
            self._subscribers.append(callback)

        def _unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return _unsubscribe

    def _discard(self, predicate: Callable[[ImportQueueItem], bool]) -> int:
        with self._lock:
            kept = [item for item in self._items if not predicate(item)]
            removed = len(self._items) - len(kept)
            self._items = kept
        if removed:
            self._notify()
        return removed

    def _notify(self) -> None:
        with self._lock:
            snapshot = list(self._items)
            subscribers = list(self._subscribers)
        for callback in subscribers:
            callback(snapshot)


__all__ = ["ImportQueue", "Subscriber"]
