"""EngineContext - process-wide owner of long-lived engine services.

Holds the settings, transfer queue, ignore matcher and one RemoteServer
per connected root. Host code attaches its vault and UI collaborators once
and then works through :attr:`EngineContext.orchestrator`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from remote_editor.config import Settings, get_settings
from remote_editor.errors import NotFoundError, ValidationError
from remote_editor.managers.server import RemoteServer
from remote_editor.router.transfer import TransferOrchestrator
from remote_editor.services.transfer_queue import TransferQueue
from remote_editor.utils.ignore import IgnoreMatcher
from remote_editor.utils.logging import configure_logging

if TYPE_CHECKING:
    from remote_editor.config import ServerConfig
    from remote_editor.connectors.base import Connector
    from remote_editor.ui.base import DecisionProvider, EditorRegistry, Notifier
    from remote_editor.vault.base import SecureVault

logger = structlog.get_logger()


class EngineContext:
    """Owns the queue, ignore cache and per-server state stores."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        vault: "SecureVault | None" = None,
        decisions: "DecisionProvider | None" = None,
        notifier: "Notifier | None" = None,
        editors: "EditorRegistry | None" = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.queue = TransferQueue(history_size=self.settings.transfer.history_size)
        self.ignore = IgnoreMatcher(self.settings)
        self._servers: dict[str, RemoteServer] = {}
        self._vault = vault
        self._decisions = decisions
        self._notifier = notifier
        self._editors = editors
        self._orchestrator: TransferOrchestrator | None = None
        self._log = logger.bind(component="engine_context")

    @property
    def servers(self) -> list[RemoteServer]:
        return list(self._servers.values())

    def attach(
        self,
        *,
        vault: "SecureVault | None" = None,
        decisions: "DecisionProvider | None" = None,
        notifier: "Notifier | None" = None,
        editors: "EditorRegistry | None" = None,
    ) -> None:
        """Attach host collaborators; the orchestrator is rebuilt on next use."""
        self._vault = vault or self._vault
        self._decisions = decisions or self._decisions
        self._notifier = notifier or self._notifier
        self._editors = editors or self._editors
        self._orchestrator = None

    @property
    def orchestrator(self) -> TransferOrchestrator:
        if self._orchestrator is None:
            if self._vault is None:
                raise ValidationError("No vault attached to the engine context")
            self._orchestrator = TransferOrchestrator(
                vault=self._vault,
                queue=self.queue,
                decisions=self._decisions,
                notifier=self._notifier,
                editors=self._editors,
                settings=self.settings,
            )
        return self._orchestrator

    def add_server(self, config: "ServerConfig", connector: "Connector") -> RemoteServer:
        """Bind ``connector`` to a server root, replacing an older binding."""
        previous = self._servers.get(config.name)
        if previous is not None:
            previous.finder.close()
            self._log.info("context.server_replaced", server=config.name)

        server = RemoteServer(
            config,
            connector,
            mirror_root=self.settings.mirror.local_root,
            ignore=self.ignore,
            finder_page_size=self.settings.finder.page_size,
            timeout=self.settings.transfer.call_timeout,
        )
        self._servers[config.name] = server
        self._log.info(
            "context.server_added",
            server=config.name,
            remote_root=server.remote_root,
            local_root=server.local_root,
        )
        return server

    def get_server(self, name: str) -> RemoteServer:
        """Raises NotFoundError for an unknown server name."""
        server = self._servers.get(name)
        if server is None:
            raise NotFoundError(f"Server not connected: {name}")
        return server

    def find_server_by_local_path(self, local_path: str) -> RemoteServer | None:
        for server in self._servers.values():
            if server.relative_from_local(local_path) is not None:
                return server
        return None

    def remove_server(self, name: str) -> bool:
        server = self._servers.pop(name, None)
        if server is None:
            return False
        server.finder.close()
        self._log.info("context.server_removed", server=name)
        return True

    def invalidate(self, name: str | None = None) -> None:
        """Config changed: drop tree and finder state of one or all servers."""
        self.ignore.reset()
        targets = [self.get_server(name)] if name else list(self._servers.values())
        for server in targets:
            server.reset()
        self._log.info("context.invalidated", server=name)

    def reset(self) -> None:
        """Forget every server and cached pattern."""
        for server in self._servers.values():
            server.finder.close()
        self._servers.clear()
        self.ignore.reset()
        self.queue.clear()
        self._log.info("context.reset")


_context: EngineContext | None = None


def get_context() -> EngineContext:
    """Get the process-wide context, creating it on first use."""
    global _context
    if _context is None:
        settings = get_settings()
        configure_logging(settings.logging.level, json_logs=settings.logging.json_logs)
        _context = EngineContext(settings)
    return _context


def reset_context() -> None:
    """Drop the process-wide context (tests, config reload)."""
    global _context
    if _context is not None:
        _context.reset()
    _context = None
