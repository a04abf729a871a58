"""Local mirror."""

from remote_editor.managers.mirror.mirror import LocalMirror

__all__ = ["LocalMirror"]
