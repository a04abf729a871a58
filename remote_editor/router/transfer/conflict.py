"""ConflictResolver - existence check and overwrite decision.

For overwrite-capable operations:
1. Ask the connector whether the destination exists
2. If it does, ask the DecisionProvider (Overwrite | Cancel)
3. Overwrite deletes the destination remotely before the caller continues,
   then drops it from the tree cache and finder index (directories also
   from the local mirror)

Cancel raises UserDeclinedError; the orchestrator turns that into a
no-op result.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Iterable

import structlog

from remote_editor.connectors.base import call
from remote_editor.errors import ConflictError, UserDeclinedError
from remote_editor.ui.base import Decision
from remote_editor.utils.paths import basename, dirname, full_extension, join

if TYPE_CHECKING:
    from remote_editor.managers.server import RemoteServer
    from remote_editor.ui.base import DecisionProvider

logger = structlog.get_logger()


class Resolution(str, Enum):
    """Outcome of a resolved destination."""

    CLEAR = "clear"  # destination did not exist
    OVERWRITE = "overwrite"  # destination existed and was deleted


def duplicate_name(existing_names: Iterable[str], path: str) -> str:
    """Synthesize a free sibling of ``path`` for copy-in-place.

    A counter is inserted before the full extension:
    ``report.txt`` with ``report0.txt`` taken -> ``report1.txt``.
    """
    existing = set(existing_names)
    name = basename(path)
    extension = full_extension(name)
    stem = name[: len(name) - len(extension)] if extension else name

    counter = 0
    while f"{stem}{counter}{extension}" in existing:
        counter += 1

    parent = dirname(path)
    candidate = f"{stem}{counter}{extension}"
    return join(parent, candidate) if parent != "." else candidate


class ConflictResolver:
    """Existence-check plus user-decision protocol."""

    def __init__(self, decisions: "DecisionProvider | None" = None) -> None:
        self._decisions = decisions
        self._log = logger.bind(component="conflict_resolver")

    async def _decide(self, kind: str, path: str) -> None:
        if self._decisions is None:
            raise ConflictError(f"{kind.capitalize()} already exists: {path}", path=path)

        decision = Decision(await self._decisions.confirm_overwrite(kind, path))
        self._log.info("conflict.decision", kind=kind, path=path, decision=decision.value)
        if decision != Decision.OVERWRITE:
            raise UserDeclinedError(f"Overwrite of {path} cancelled")

    async def resolve_file(
        self,
        server: "RemoteServer",
        dest: str,
        delete_existing: bool = True,
    ) -> Resolution:
        """Make sure the remote file ``dest`` may be written.

        Raises:
            UserDeclinedError: User chose Cancel
            ConflictError: Destination exists and nobody can decide
            ConnectorError: Exists check or delete failed
        """
        exists = await call(
            "exists",
            dest,
            server.connector.exists_file(dest),
            timeout=server.timeout,
        )
        if not exists:
            return Resolution.CLEAR

        await self._decide("file", dest)
        if delete_existing:
            await call("delete", dest, server.connector.delete_file(dest), timeout=server.timeout)
            relative = server.relative_path(dest)
            server.tree.delete_file(relative)
            server.finder.delete_file(relative)
            self._log.info("conflict.overwrite", kind="file", path=dest)
        return Resolution.OVERWRITE

    async def resolve_directory(
        self,
        server: "RemoteServer",
        dest: str,
        delete_existing: bool = True,
    ) -> Resolution:
        """Same as :meth:`resolve_file` for a directory (recursive delete)."""
        exists = await call(
            "exists",
            dest,
            server.connector.exists_directory(dest),
            timeout=server.timeout,
        )
        if not exists:
            return Resolution.CLEAR

        await self._decide("directory", dest)
        if delete_existing:
            await call(
                "delete",
                dest,
                server.connector.delete_directory(dest, True),
                timeout=server.timeout,
            )
            relative = server.relative_path(dest)
            server.tree.delete_directory(relative)
            server.finder.delete_directory(relative)
            server.mirror.best_effort_delete(server.local_path(relative))
            self._log.info("conflict.overwrite", kind="directory", path=dest)
        return Resolution.OVERWRITE

    async def confirm_delete(self, kind: str, path: str) -> bool:
        """Ask before a destructive delete. Without a provider, proceed."""
        if self._decisions is None:
            return True
        confirmed = bool(await self._decisions.confirm_delete(kind, path))
        self._log.info("conflict.confirm_delete", kind=kind, path=path, confirmed=confirmed)
        return confirmed
