"""Connector base class - remote protocol abstraction.

A Connector executes single remote filesystem calls for one server root.
It does NOT handle:
- Conflict resolution
- Tree cache / finder index updates
- Local mirror changes
- Retry (callers decide whether to retry)

FTP and SFTP clients implement this interface outside the engine.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Awaitable, TypeVar

import structlog

from remote_editor.errors import ConnectorError, RemoteEditorError
from remote_editor.utils.permissions import Rights

if TYPE_CHECKING:
    from remote_editor.models.transfer import TransferItem

logger = structlog.get_logger()

T = TypeVar("T")


async def call(
    operation: str,
    path: str,
    awaitable: Awaitable[T],
    *,
    timeout: float | None = None,
) -> T:
    """Await a connector call, mapping failures to ConnectorError.

    Engine errors raised by the connector pass through unchanged.
    """
    try:
        async with asyncio.timeout(timeout):
            return await awaitable
    except RemoteEditorError:
        raise
    except TimeoutError:
        logger.error("connector.timeout", operation=operation, path=path, timeout=timeout)
        raise ConnectorError(
            f"Remote {operation} timed out: {path}",
            operation=operation,
            path=path,
        )
    except Exception as e:
        logger.error("connector.error", operation=operation, path=path, error=str(e))
        raise ConnectorError(
            str(e) or f"Remote {operation} failed: {path}",
            operation=operation,
            path=path,
        ) from e


class EntryType(str, Enum):
    """Entry type as reported by a directory listing."""

    FILE = "file"
    DIRECTORY = "directory"


@dataclass
class RemoteEntry:
    """One row of a remote directory listing."""

    name: str
    type: EntryType
    size: int = 0
    rights: Rights | None = None

    @property
    def is_file(self) -> bool:
        return self.type == EntryType.FILE

    @property
    def is_directory(self) -> bool:
        return self.type == EntryType.DIRECTORY and self.name not in (".", "..")


class Connector(ABC):
    """Abstract remote filesystem interface.

    All paths are absolute remote paths (they include the server's remote
    root). Failures are raised as exceptions; the orchestrator wraps
    anything that is not already a ConnectorError.
    """

    @abstractmethod
    async def exists_file(self, path: str) -> bool:
        """Return whether a file exists at ``path``."""
        ...

    @abstractmethod
    async def exists_directory(self, path: str) -> bool:
        """Return whether a directory exists at ``path``."""
        ...

    @abstractmethod
    async def list_directory(self, path: str) -> list[RemoteEntry]:
        """List directory contents."""
        ...

    @abstractmethod
    async def create_directory(self, path: str) -> None:
        """Create a directory (parents included)."""
        ...

    @abstractmethod
    async def delete_file(self, path: str) -> None:
        """Delete a file."""
        ...

    @abstractmethod
    async def delete_directory(self, path: str, recursive: bool = True) -> None:
        """Delete a directory."""
        ...

    @abstractmethod
    async def rename(self, old_path: str, new_path: str) -> None:
        """Rename or move a file or directory."""
        ...

    @abstractmethod
    async def chmod_file(self, path: str, mode: str) -> None:
        """Change file permissions (octal string, e.g. "644")."""
        ...

    @abstractmethod
    async def chmod_directory(self, path: str, mode: str) -> None:
        """Change directory permissions (octal string, e.g. "755")."""
        ...

    # Transfers

    @abstractmethod
    async def upload_file(self, item: "TransferItem", priority: int = 1) -> None:
        """Upload ``item.local_path`` to ``item.remote_path``.

        The orchestrator moves the item to Transferring before the call and
        to Done or Error after it.
        """
        ...

    @abstractmethod
    async def download_file(self, item: "TransferItem") -> None:
        """Download ``item.remote_path`` to ``item.local_path``."""
        ...
