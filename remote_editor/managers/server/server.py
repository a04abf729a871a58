"""RemoteServer - binds one configured server root to its state stores."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

import structlog

from remote_editor.managers.mirror import LocalMirror
from remote_editor.managers.tree import TreeCache
from remote_editor.services.finder import FinderIndex
from remote_editor.utils.paths import join, normalize, relative_to, to_local, untrailing_slash

if TYPE_CHECKING:
    from remote_editor.config import ServerConfig
    from remote_editor.connectors.base import Connector
    from remote_editor.utils.ignore import IgnoreMatcher

logger = structlog.get_logger()


class RemoteServer:
    """Connector, tree cache, finder index and local mirror of one root.

    Relative paths (``/a/b.txt``) are relative to ``config.remote``; the
    local mirror lives under ``<mirror_root>/<config.name>``.
    """

    def __init__(
        self,
        config: "ServerConfig",
        connector: "Connector",
        *,
        mirror_root: str,
        ignore: "IgnoreMatcher | None" = None,
        finder_page_size: int = 20,
        timeout: float | None = None,
    ) -> None:
        self.config = config
        self.connector = connector
        self.remote_root = untrailing_slash("/" + config.remote)
        self.local_root = os.path.join(mirror_root, config.name)
        self.timeout = timeout
        self._ignore = ignore
        self._finder_page_size = finder_page_size

        self.mirror = LocalMirror(self.local_root)
        self.tree = self._new_tree()
        self.finder = self._new_finder()
        self._log = logger.bind(component="remote_server", server=config.name)

    @property
    def name(self) -> str:
        return self.config.name

    def _new_tree(self) -> TreeCache:
        return TreeCache(
            self.config.name,
            remote_root=self.remote_root,
            local_root=self.local_root,
            ignore=self._ignore,
        )

    def _new_finder(self) -> FinderIndex:
        return FinderIndex(
            self.config.name,
            self.connector,
            remote_root=self.remote_root,
            ignore=self._ignore,
            page_size=self._finder_page_size,
            timeout=self.timeout,
        )

    def reset(self) -> None:
        """Drop the tree and finder index (config changed)."""
        self.tree = self._new_tree()
        self.finder.close()
        self.finder = self._new_finder()
        self._log.info("server.reset")

    # Path mapping

    def remote_path(self, relative_path: str) -> str:
        return untrailing_slash(join(self.remote_root, relative_path))

    def relative_path(self, remote_path: str) -> str:
        return relative_to(remote_path, self.remote_root)

    def local_path(self, relative_path: str) -> str:
        return to_local(relative_path, self.local_root)

    def relative_from_local(self, local_path: str) -> str | None:
        """Root-relative path of a local mirror path, or None if outside it."""
        root = normalize(self.local_root).rstrip("/")
        path = normalize(local_path)
        if path == root:
            return "/"
        if not path.startswith(root + "/"):
            return None
        return path[len(root):]
