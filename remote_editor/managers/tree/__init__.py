"""Tree cache."""

from remote_editor.managers.tree.tree import TreeCache

__all__ = ["TreeCache"]
