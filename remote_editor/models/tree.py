"""Tree node model.

Nodes live in a TreeCache arena and reference each other by integer ID:
- parent_id points up (None only for the server root)
- child_ids is owned by directories and the server root
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from remote_editor.utils.permissions import Rights


class NodeKind(str, Enum):
    """Kind of a tree node."""

    SERVER = "server"
    DIRECTORY = "directory"
    FILE = "file"


@dataclass(eq=False)
class RemoteNode:
    """A materialized remote file or directory."""

    id: int
    name: str
    kind: NodeKind
    parent_id: int | None = None
    child_ids: list[int] = field(default_factory=list)
    size: int | None = None
    rights: Rights | None = None
    expanded: bool = False

    @property
    def is_file(self) -> bool:
        return self.kind == NodeKind.FILE

    @property
    def is_directory(self) -> bool:
        return self.kind in (NodeKind.DIRECTORY, NodeKind.SERVER)
