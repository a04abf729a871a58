"""UI collaborator interfaces.

The engine never renders anything itself. Dialogs, notifications and the
text editor are supplied by the host through these protocols.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Awaitable, Callable, Protocol, runtime_checkable


class Decision(str, Enum):
    """Answer to an overwrite prompt."""

    OVERWRITE = "overwrite"
    CANCEL = "cancel"


class AccessDecision(str, Enum):
    """Answer to a server-config access request."""

    ALWAYS = "always"
    ACCEPT = "accept"
    DECLINE = "decline"
    NEVER = "never"


@runtime_checkable
class DecisionProvider(Protocol):
    """Interactive confirmations."""

    async def confirm_overwrite(self, kind: str, path: str) -> Decision: ...

    async def confirm_delete(self, kind: str, path: str) -> bool: ...

    async def confirm_config_access(self, server_name: str, reason: str) -> AccessDecision: ...


@runtime_checkable
class Notifier(Protocol):
    """Per-operation user notifications."""

    def success(self, message: str, element: Any = None) -> None: ...

    def error(self, message: str) -> None: ...

    def info(self, message: str) -> None: ...


SaveHandler = Callable[[str], Awaitable[Any]]


@runtime_checkable
class EditorRegistry(Protocol):
    """Open text editors keyed by local mirror path."""

    def is_open(self, local_path: str) -> bool: ...

    async def open(self, local_path: str, on_save: SaveHandler) -> None: ...

    def retarget(self, old_local_path: str, new_local_path: str) -> None: ...


class NullNotifier:
    """Notifier that discards messages; used when no UI is attached."""

    def success(self, message: str, element: Any = None) -> None:
        pass

    def error(self, message: str) -> None:
        pass

    def info(self, message: str) -> None:
        pass


class NullEditors:
    """Editor registry with no open editors."""

    def is_open(self, local_path: str) -> bool:
        return False

    async def open(self, local_path: str, on_save: SaveHandler) -> None:
        return None

    def retarget(self, old_local_path: str, new_local_path: str) -> None:
        pass
