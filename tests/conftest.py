"""Test configuration and fixtures."""

from __future__ import annotations

import pytest

from remote_editor.config import ServerConfig, Settings
from remote_editor.managers.server import RemoteServer
from remote_editor.router.transfer import TransferOrchestrator
from remote_editor.services.transfer_queue import TransferQueue
from remote_editor.utils.ignore import IgnoreMatcher
from tests.fakes import FakeConnector, FakeEditors, FakeVault, RecordingNotifier, ScriptedDecisions


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Settings with the mirror under the test's tmp directory."""
    return Settings(mirror={"local_root": str(tmp_path / "mirror")})


@pytest.fixture
def server_config() -> ServerConfig:
    return ServerConfig(name="web", host="example.com", user="deploy", remote="/var/www")


@pytest.fixture
def connector() -> FakeConnector:
    fake = FakeConnector()
    fake.add_dir("/var/www")
    return fake


@pytest.fixture
def server(server_config, connector, test_settings) -> RemoteServer:
    return RemoteServer(
        server_config,
        connector,
        mirror_root=test_settings.mirror.local_root,
        ignore=IgnoreMatcher(test_settings),
    )


@pytest.fixture
def vault() -> FakeVault:
    return FakeVault()


@pytest.fixture
def decisions() -> ScriptedDecisions:
    return ScriptedDecisions()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def editors() -> FakeEditors:
    return FakeEditors()


@pytest.fixture
def queue() -> TransferQueue:
    return TransferQueue()


@pytest.fixture
def orchestrator(vault, queue, decisions, notifier, editors, test_settings) -> TransferOrchestrator:
    return TransferOrchestrator(
        vault=vault,
        queue=queue,
        decisions=decisions,
        notifier=notifier,
        editors=editors,
        settings=test_settings,
    )
