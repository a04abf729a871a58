"""Unit tests for ConfigAccessGate."""

from __future__ import annotations

import pytest

from remote_editor.config import ServerConfig
from remote_editor.errors import UserDeclinedError, ValidationError, VaultLockedError
from remote_editor.ui.base import AccessDecision
from remote_editor.vault import ConfigAccessGate, require_unlocked
from tests.fakes import FakeVault, ScriptedDecisions

SERVER = ServerConfig(name="web", host="example.com", password="hunter2")


class TestConfigAccessGate:
    async def test_requires_reason(self):
        gate = ConfigAccessGate(FakeVault(), ScriptedDecisions())

        with pytest.raises(ValidationError):
            await gate.request(SERVER, "")

    async def test_locked_vault(self):
        gate = ConfigAccessGate(FakeVault(unlocked=False), ScriptedDecisions())

        with pytest.raises(VaultLockedError):
            await gate.request(SERVER, "deploy-plugin")

    async def test_always_is_remembered(self):
        vault = FakeVault()
        decisions = ScriptedDecisions(access=AccessDecision.ALWAYS)
        gate = ConfigAccessGate(vault, decisions)

        assert await gate.request(SERVER, "deploy-plugin") is SERVER
        assert await gate.request(SERVER, "deploy-plugin") is SERVER

        assert "deploy-plugin" in vault.allowed
        assert len(decisions.prompts) == 1

    async def test_accept_asks_every_time(self):
        decisions = ScriptedDecisions(access=AccessDecision.ACCEPT)
        gate = ConfigAccessGate(FakeVault(), decisions)

        await gate.request(SERVER, "deploy-plugin")
        await gate.request(SERVER, "deploy-plugin")

        assert len(decisions.prompts) == 2

    async def test_never_is_remembered(self):
        vault = FakeVault()
        decisions = ScriptedDecisions(access=AccessDecision.NEVER)
        gate = ConfigAccessGate(vault, decisions)

        with pytest.raises(UserDeclinedError):
            await gate.request(SERVER, "deploy-plugin")
        with pytest.raises(UserDeclinedError):
            await gate.request(SERVER, "deploy-plugin")

        assert "deploy-plugin" in vault.denied
        assert len(decisions.prompts) == 1

    async def test_decline(self):
        vault = FakeVault()
        gate = ConfigAccessGate(vault, ScriptedDecisions(access=AccessDecision.DECLINE))

        with pytest.raises(UserDeclinedError):
            await gate.request(SERVER, "deploy-plugin")

        assert vault.denied == set()

    async def test_no_decision_provider(self):
        gate = ConfigAccessGate(FakeVault())

        with pytest.raises(UserDeclinedError):
            await gate.request(SERVER, "deploy-plugin")


def test_require_unlocked():
    require_unlocked(FakeVault())
    with pytest.raises(VaultLockedError):
        require_unlocked(FakeVault(unlocked=False))
