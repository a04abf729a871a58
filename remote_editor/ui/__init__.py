"""UI collaborator interfaces."""

from remote_editor.ui.base import (
    AccessDecision,
    Decision,
    DecisionProvider,
    EditorRegistry,
    Notifier,
    NullEditors,
    NullNotifier,
)

__all__ = [
    "AccessDecision",
    "Decision",
    "DecisionProvider",
    "EditorRegistry",
    "Notifier",
    "NullEditors",
    "NullNotifier",
]
