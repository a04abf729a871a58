"""Transfer queue item model.

A TransferItem tracks one upload or download through its lifecycle:
Pending -> Transferring -> Done | Error. Done and Error are terminal.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

_ids = itertools.count(1)


class TransferDirection(str, Enum):
    """Direction of a transfer relative to the local machine."""

    UPLOAD = "upload"
    DOWNLOAD = "download"


class TransferStatus(str, Enum):
    """Transfer lifecycle status."""

    PENDING = "Pending"
    TRANSFERRING = "Transferring"
    DONE = "Done"
    ERROR = "Error"

    @property
    def is_active(self) -> bool:
        return self in (TransferStatus.PENDING, TransferStatus.TRANSFERRING)

    @property
    def is_terminal(self) -> bool:
        return self in (TransferStatus.DONE, TransferStatus.ERROR)


_ORDER = {
    TransferStatus.PENDING: 0,
    TransferStatus.TRANSFERRING: 1,
    TransferStatus.DONE: 2,
    TransferStatus.ERROR: 2,
}


@dataclass(eq=False)
class TransferItem:
    """One tracked upload or download."""

    direction: TransferDirection
    remote_path: str
    local_path: str
    size: int = 0
    status: TransferStatus = TransferStatus.PENDING
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    error: str | None = None
    id: int = field(default_factory=lambda: next(_ids))

    @property
    def is_active(self) -> bool:
        return self.status.is_active

    def can_advance_to(self, status: TransferStatus) -> bool:
        """Status only moves forward and never leaves a terminal state."""
        if self.status.is_terminal:
            return False
        return _ORDER[status] > _ORDER[self.status]
