"""Per-server state."""

from remote_editor.managers.server.server import RemoteServer

__all__ = ["RemoteServer"]
