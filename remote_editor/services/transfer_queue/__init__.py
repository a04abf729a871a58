"""Transfer queue service."""

from remote_editor.services.transfer_queue.queue import (
    DEFAULT_HISTORY_SIZE,
    TransferQueue,
    TransferQueueStats,
)

__all__ = ["DEFAULT_HISTORY_SIZE", "TransferQueue", "TransferQueueStats"]
