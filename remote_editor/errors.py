"""Remote editor error hierarchy.

Every error carries a machine-readable ``code``, a human ``message`` and a
``details`` dict. Orchestrator callers surface ``message`` to the user.
"""

from __future__ import annotations

from typing import Any


class RemoteEditorError(Exception):
    """Base class for all engine errors."""

    code: str = "remote_editor_error"
    message: str = "Remote editor error"

    def __init__(
        self,
        message: str | None = None,
        *,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message or self.message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ConflictError(RemoteEditorError):
    """Destination already exists and a decision is required."""

    code = "conflict"
    message = "Destination already exists"

    def __init__(self, message: str | None = None, *, path: str | None = None) -> None:
        super().__init__(message, details={"path": path} if path else None)


class UserDeclinedError(RemoteEditorError):
    """User cancelled a destructive or overwriting confirmation."""

    code = "user_declined"
    message = "Operation cancelled by user"


class NotFoundError(RemoteEditorError):
    """Path is not present (remotely, or not materialized in the tree)."""

    code = "not_found"
    message = "Path not found"


class ConnectorError(RemoteEditorError):
    """Network or protocol failure reported by a connector."""

    code = "connector_error"
    message = "Remote operation failed"

    def __init__(
        self,
        message: str | None = None,
        *,
        operation: str | None = None,
        path: str | None = None,
    ) -> None:
        details: dict[str, Any] = {}
        if operation:
            details["operation"] = operation
        if path:
            details["path"] = path
        super().__init__(message, details=details)


class DuplicateTransferError(RemoteEditorError):
    """A transfer to the same local destination is already in flight."""

    code = "duplicate_transfer"
    message = "Transfer already queued"

    def __init__(self, message: str | None = None, *, direction: str, local_path: str) -> None:
        super().__init__(
            message or f"Transfer already queued: {direction} {local_path}",
            details={"direction": direction, "local_path": local_path},
        )


class LocalIOError(RemoteEditorError):
    """Creating, moving or deleting a local mirror path failed."""

    code = "local_io_error"
    message = "Local mirror operation failed"

    def __init__(self, message: str | None = None, *, path: str | None = None) -> None:
        super().__init__(message, details={"path": path} if path else None)


class VaultLockedError(RemoteEditorError):
    """Operation requires the master password to be entered first."""

    code = "vault_locked"
    message = "Master password required"


class ValidationError(RemoteEditorError):
    """Invalid argument passed to an engine operation."""

    code = "validation_error"
    message = "Invalid request"
