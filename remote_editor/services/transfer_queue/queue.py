"""TransferQueue - tracks uploads and downloads through their lifecycle.

Provides a dedup-by-destination layer between the orchestrator and the
connector's upload/download calls.

Key design decisions:
- An item is unique per (direction, local_path) while Pending/Transferring
- change_status() is the only mutator after creation; Done/Error are terminal
- Finished and active items share one bounded history (oldest evicted)
- No retry: a failed item stays Error and the caller enqueues a new one
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Callable

import structlog

from remote_editor.errors import DuplicateTransferError
from remote_editor.models.transfer import TransferDirection, TransferItem, TransferStatus
from remote_editor.utils.paths import normalize

logger = structlog.get_logger()

DEFAULT_HISTORY_SIZE = 50


@dataclass
class TransferQueueStats:
    """Observable statistics for the transfer queue."""

    enqueue_total: int = 0
    dedup_total: int = 0
    done_total: int = 0
    error_total: int = 0
    evicted_total: int = 0


class TransferQueue:
    """In-memory transfer tracker with a bounded history.

    Usage:
        queue = TransferQueue(history_size=settings.transfer.history_size)

        item = queue.add_file(
            direction=TransferDirection.UPLOAD,
            remote_path="/var/www/index.html",
            local_path="/tmp/remote-editor/www/index.html",
            size=1024,
        )
        queue.change_status(item, TransferStatus.TRANSFERRING)
        queue.change_status(item, TransferStatus.DONE)
    """

    def __init__(self, history_size: int = DEFAULT_HISTORY_SIZE) -> None:
        if history_size <= 0:
            raise ValueError("history_size must be positive")

        self._log = logger.bind(service="transfer_queue")
        self._history: deque[TransferItem] = deque()
        self._history_size = history_size
        # Dedup index: (direction, local_path) of active items
        self._active: dict[tuple[TransferDirection, str], TransferItem] = {}
        self._stats = TransferQueueStats()
        self._listeners: list[Callable[[TransferItem], None]] = []

    @property
    def stats(self) -> TransferQueueStats:
        """Get current queue statistics."""
        return self._stats

    @property
    def history(self) -> list[TransferItem]:
        """Items most-recent-first, bounded by ``history_size``."""
        return list(reversed(self._history))

    @property
    def active(self) -> list[TransferItem]:
        """Items that are Pending or Transferring."""
        return list(self._active.values())

    def on_add(self, listener: Callable[[TransferItem], None]) -> Callable[[], None]:
        """Register a listener for new items. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def add_file(
        self,
        *,
        direction: TransferDirection,
        remote_path: str,
        local_path: str,
        size: int = 0,
    ) -> TransferItem:
        """Create a Pending item.

        Raises:
            DuplicateTransferError: Same direction and local path already active
        """
        key = (TransferDirection(direction), normalize(local_path))
        if key in self._active:
            self._stats.dedup_total += 1
            self._log.debug(
                "transfer_queue.dedup",
                direction=key[0].value,
                local_path=local_path,
            )
            raise DuplicateTransferError(direction=key[0].value, local_path=local_path)

        item = TransferItem(
            direction=key[0],
            remote_path=remote_path,
            local_path=local_path,
            size=size or 0,
        )
        self._active[key] = item
        self._history.append(item)
        self._stats.enqueue_total += 1
        self._evict()

        self._log.debug(
            "transfer_queue.enqueued",
            item_id=item.id,
            direction=item.direction.value,
            remote_path=remote_path,
            local_path=local_path,
            size=item.size,
        )

        for listener in list(self._listeners):
            listener(item)
        return item

    def exists_file(self, local_path: str) -> bool:
        """Whether any active transfer targets ``local_path``."""
        local_path = normalize(local_path)
        return any(path == local_path for _, path in self._active)

    def change_status(
        self,
        item: TransferItem,
        status: TransferStatus,
        *,
        error: str | None = None,
    ) -> None:
        """Advance ``item`` to ``status``.

        Raises:
            ValueError: Backwards move or change of a terminal item
        """
        status = TransferStatus(status)
        if not item.can_advance_to(status):
            raise ValueError(
                f"Invalid transfer status change: {item.status.value} -> {status.value}"
            )

        item.status = status
        if status == TransferStatus.ERROR:
            item.error = error
            self._stats.error_total += 1
        elif status == TransferStatus.DONE:
            self._stats.done_total += 1

        if status.is_terminal:
            key = (item.direction, normalize(item.local_path))
            if self._active.get(key) is item:
                del self._active[key]

        self._log.debug(
            "transfer_queue.status",
            item_id=item.id,
            status=status.value,
            error=error,
        )

    def clear(self) -> None:
        """Forget finished items; active items are kept."""
        self._history = deque(item for item in self._history if item.is_active)

    def _evict(self) -> None:
        # Evicted active items stay in the dedup index until they finish
        while len(self._history) > self._history_size:
            evicted = self._history.popleft()
            self._stats.evicted_total += 1
            if evicted.is_active:
                self._log.warning(
                    "transfer_queue.evicted_active",
                    item_id=evicted.id,
                    local_path=evicted.local_path,
                )
