"""Vault interface."""

from remote_editor.vault.base import ConfigAccessGate, SecureVault, require_unlocked

__all__ = ["ConfigAccessGate", "SecureVault", "require_unlocked"]
