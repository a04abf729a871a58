"""Transfer routing: conflict resolution and the operation orchestrator."""

from remote_editor.router.transfer.conflict import ConflictResolver, Resolution, duplicate_name
from remote_editor.router.transfer.orchestrator import TransferOrchestrator

__all__ = ["ConflictResolver", "Resolution", "TransferOrchestrator", "duplicate_name"]
