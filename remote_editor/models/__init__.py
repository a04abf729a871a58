"""Data models."""

from remote_editor.models.finder import FinderEntry
from remote_editor.models.transfer import TransferDirection, TransferItem, TransferStatus
from remote_editor.models.tree import NodeKind, RemoteNode

__all__ = [
    "FinderEntry",
    "NodeKind",
    "RemoteNode",
    "TransferDirection",
    "TransferItem",
    "TransferStatus",
]
