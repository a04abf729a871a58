"""SecureVault interface and server-config access gate.

The vault owns the decrypted server configuration. The engine only asks
whether it is unlocked; network and destructive operations are refused
while it is locked.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

import structlog

from remote_editor.errors import UserDeclinedError, ValidationError, VaultLockedError
from remote_editor.ui.base import AccessDecision

if TYPE_CHECKING:
    from remote_editor.config import ServerConfig
    from remote_editor.ui.base import DecisionProvider

logger = structlog.get_logger()


class SecureVault(ABC):
    """Abstract master-password vault."""

    @abstractmethod
    def has_password(self) -> bool:
        """Whether the master password has been entered this session."""
        ...

    @abstractmethod
    def get_password(self) -> str:
        """Return the master password."""
        ...

    @abstractmethod
    def load(self, force: bool = False) -> bool:
        """Decrypt and load the server configuration."""
        ...

    # Consumer allow/deny lists for config sharing

    @abstractmethod
    def is_allowed(self, reason: str) -> bool: ...

    @abstractmethod
    def is_denied(self, reason: str) -> bool: ...

    @abstractmethod
    def allow(self, reason: str) -> None: ...

    @abstractmethod
    def deny(self, reason: str) -> None: ...


def require_unlocked(vault: SecureVault) -> None:
    """Raise VaultLockedError unless the master password is known."""
    if not vault.has_password():
        raise VaultLockedError()


class ConfigAccessGate:
    """Decides whether another package may read a server's config."""

    def __init__(self, vault: SecureVault, decisions: "DecisionProvider | None" = None) -> None:
        self._vault = vault
        self._decisions = decisions
        self._log = logger.bind(component="config_access_gate")

    async def request(self, server: "ServerConfig", reason: str) -> "ServerConfig":
        """Return ``server`` if the consumer identified by ``reason`` may read it.

        Raises:
            ValidationError: No reason given
            VaultLockedError: Vault is locked
            UserDeclinedError: Consumer denied now or previously
        """
        if not reason:
            raise ValidationError("A reason is required to request server configuration")

        require_unlocked(self._vault)

        if self._vault.is_denied(reason):
            self._log.info("config_access.denied", server=server.name, reason=reason)
            raise UserDeclinedError()
        if self._vault.is_allowed(reason):
            self._log.info("config_access.allowed", server=server.name, reason=reason)
            return server

        if self._decisions is None:
            raise UserDeclinedError()

        decision = await self._decisions.confirm_config_access(server.name, reason)
        self._log.info(
            "config_access.decision",
            server=server.name,
            reason=reason,
            decision=decision.value,
        )

        if decision == AccessDecision.ALWAYS:
            self._vault.allow(reason)
            return server
        if decision == AccessDecision.ACCEPT:
            return server
        if decision == AccessDecision.NEVER:
            self._vault.deny(reason)
        raise UserDeclinedError()
