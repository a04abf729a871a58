"""Unit tests for EngineContext."""

from __future__ import annotations

import asyncio
import os

import pytest

from remote_editor import context as context_module
from remote_editor.config import ServerConfig
from remote_editor.context import EngineContext, get_context, reset_context
from remote_editor.errors import NotFoundError, ValidationError
from tests.fakes import BlockingConnector, FakeConnector, FakeVault


@pytest.fixture
def engine(test_settings) -> EngineContext:
    return EngineContext(test_settings, vault=FakeVault())


def _connector() -> FakeConnector:
    connector = FakeConnector()
    connector.add_file("/srv/app/index.html", b"<h1>")
    return connector


class TestEngineContextServers:
    def test_add_and_get(self, engine, test_settings):
        server = engine.add_server(ServerConfig(name="app", remote="/srv/app"), _connector())

        assert engine.get_server("app") is server
        assert server.local_root == os.path.join(test_settings.mirror.local_root, "app")
        assert server.remote_root == "/srv/app"

    def test_get_unknown(self, engine):
        with pytest.raises(NotFoundError):
            engine.get_server("missing")

    def test_remove(self, engine):
        engine.add_server(ServerConfig(name="app"), _connector())

        assert engine.remove_server("app") is True
        assert engine.remove_server("app") is False
        assert engine.servers == []

    def test_find_by_local_path(self, engine):
        server = engine.add_server(ServerConfig(name="app", remote="/srv/app"), _connector())

        assert engine.find_server_by_local_path(server.local_path("/index.html")) is server
        assert engine.find_server_by_local_path("/somewhere/else.txt") is None

    async def test_invalidate_resets_state(self, engine):
        server = engine.add_server(ServerConfig(name="app", remote="/srv/app"), _connector())
        await server.finder.load()
        server.tree.add_file("/index.html")
        old_finder = server.finder

        engine.invalidate("app")

        assert old_finder.is_valid is False
        assert server.finder.is_valid is False
        assert server.tree.find_element_by_path("/index.html") is None

    async def test_invalidate_cancels_running_build(self, engine):
        connector = BlockingConnector()
        connector.add_file("/srv/app/index.html")
        server = engine.add_server(ServerConfig(name="app", remote="/srv/app"), connector)
        old_finder = server.finder
        finished = []
        old_finder.subscribe("finder-view", finish=finished.append)
        task = old_finder.start()
        await asyncio.sleep(0)

        engine.invalidate("app")
        connector.release.set()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert finished == []
        assert old_finder.is_loading is False

    async def test_reset(self, engine):
        engine.add_server(ServerConfig(name="app"), _connector())

        engine.reset()

        assert engine.servers == []


class TestEngineContextOrchestrator:
    def test_requires_vault(self, test_settings):
        engine = EngineContext(test_settings)

        with pytest.raises(ValidationError):
            engine.orchestrator

    def test_shares_queue(self, engine):
        assert engine.orchestrator is engine.orchestrator

    async def test_end_to_end(self, engine):
        server = engine.add_server(ServerConfig(name="app", remote="/srv/app"), _connector())

        node = await engine.orchestrator.create_file(server, "/about.html")

        assert server.tree.relative_path(node) == "/about.html"
        assert engine.queue.history[0].remote_path == "/srv/app/about.html"

    def test_attach_rebuilds(self, test_settings):
        engine = EngineContext(test_settings)
        engine.attach(vault=FakeVault())

        assert engine.orchestrator is not None


class TestGlobalContext:
    def test_get_and_reset(self, monkeypatch, test_settings):
        monkeypatch.setattr(context_module, "get_settings", lambda: test_settings)
        reset_context()

        first = get_context()
        assert get_context() is first

        reset_context()
        assert get_context() is not first
        reset_context()
