"""Remote connectors."""

from remote_editor.connectors.base import Connector, EntryType, RemoteEntry, call

__all__ = ["Connector", "EntryType", "RemoteEntry", "call"]
