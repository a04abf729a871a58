"""TreeCache - in-memory mirror of the materialized part of a remote tree.

Nodes are kept in an arena keyed by integer ID; parent and child links are
IDs, never object references. Paths are never stored: a node's remote and
local paths are derived by walking its parent chain to the server root.

Mutators (add/rename/delete/chmod) are only called after the connector has
confirmed the corresponding remote change. A failed lookup means "not
materialized", not "missing on the server".
"""

from __future__ import annotations

import itertools
from typing import TYPE_CHECKING, Iterator

import structlog

from remote_editor.connectors.base import call
from remote_editor.errors import NotFoundError
from remote_editor.models.tree import NodeKind, RemoteNode
from remote_editor.utils.paths import join, normalize, split, to_local, untrailing_slash
from remote_editor.utils.permissions import Rights

if TYPE_CHECKING:
    from remote_editor.connectors.base import Connector
    from remote_editor.utils.ignore import IgnoreMatcher

logger = structlog.get_logger()


class TreeCache:
    """Arena-backed directory tree for one server root."""

    ROOT_ID = 0

    def __init__(
        self,
        name: str,
        *,
        remote_root: str,
        local_root: str,
        ignore: "IgnoreMatcher | None" = None,
    ) -> None:
        self._remote_root = untrailing_slash("/" + remote_root)
        self._local_root = normalize(local_root, "/")
        self._ignore = ignore
        self._ids = itertools.count(self.ROOT_ID + 1)
        self._nodes: dict[int, RemoteNode] = {
            self.ROOT_ID: RemoteNode(id=self.ROOT_ID, name=name, kind=NodeKind.SERVER),
        }
        self._log = logger.bind(component="tree_cache", server=name)

    def __len__(self) -> int:
        return len(self._nodes)

    @property
    def root(self) -> RemoteNode:
        return self._nodes[self.ROOT_ID]

    def get(self, node_id: int) -> RemoteNode | None:
        return self._nodes.get(node_id)

    def parent(self, node: RemoteNode) -> RemoteNode | None:
        if node.parent_id is None:
            return None
        return self._nodes[node.parent_id]

    def children(self, node: RemoteNode) -> list[RemoteNode]:
        return [self._nodes[child_id] for child_id in node.child_ids]

    def walk(self, node: RemoteNode | None = None) -> Iterator[RemoteNode]:
        """Depth-first iteration over ``node`` and its materialized subtree."""
        stack = [node or self.root]
        while stack:
            current = stack.pop()
            yield current
            stack.extend(reversed(self.children(current)))

    # Path derivation

    def relative_path(self, node: RemoteNode) -> str:
        """Path relative to the remote root, e.g. ``/a/b.txt``; root is ``/``."""
        parts: list[str] = []
        current: RemoteNode | None = node
        while current is not None and current.parent_id is not None:
            parts.append(current.name)
            current = self.parent(current)
        return "/" + "/".join(reversed(parts))

    def remote_path(self, node: RemoteNode) -> str:
        return untrailing_slash(join(self._remote_root, self.relative_path(node)))

    def local_path(self, node: RemoteNode) -> str:
        return to_local(self.relative_path(node), self._local_root)

    # Lookup

    def _child(self, node: RemoteNode, name: str) -> RemoteNode | None:
        for child_id in node.child_ids:
            child = self._nodes[child_id]
            if child.name == name:
                return child
        return None

    def find_element_by_path(self, path: str) -> RemoteNode | None:
        """Find a node by its root-relative path."""
        node: RemoteNode | None = self.root
        for part in split(path):
            node = self._child(node, part)
            if node is None:
                return None
        return node

    def find_element_by_local_path(self, local_path: str) -> RemoteNode | None:
        """Find a node by its local mirror path."""
        local_path = untrailing_slash(local_path)
        root = untrailing_slash(self._local_root)
        if local_path == root:
            return self.root
        if not local_path.startswith(root.rstrip("/") + "/"):
            return None
        return self.find_element_by_path(local_path[len(root):])

    # Mutation (after remote confirmation only)

    def _create(
        self,
        parent: RemoteNode,
        name: str,
        kind: NodeKind,
        *,
        size: int | None = None,
        rights: Rights | None = None,
    ) -> RemoteNode:
        node = RemoteNode(
            id=next(self._ids),
            name=name,
            kind=kind,
            parent_id=parent.id,
            size=size,
            rights=rights,
        )
        self._nodes[node.id] = node
        parent.child_ids.append(node.id)
        return node

    def _ensure_directory(self, path: str) -> RemoteNode:
        node = self.root
        for part in split(path):
            child = self._child(node, part)
            if child is None:
                child = self._create(node, part, NodeKind.DIRECTORY)
            elif child.is_file:
                # A file was replaced by a directory of the same name
                self._remove(child)
                child = self._create(node, part, NodeKind.DIRECTORY)
            node = child
        return node

    def _remove(self, node: RemoteNode) -> None:
        parent = self.parent(node)
        if parent is not None and node.id in parent.child_ids:
            parent.child_ids.remove(node.id)
        for descendant in list(self.walk(node)):
            self._nodes.pop(descendant.id, None)

    def add_file(
        self,
        path: str,
        *,
        size: int | None = None,
        rights: Rights | None = None,
    ) -> RemoteNode:
        """Add (or update) a file node, creating missing parent directories."""
        parts = split(path)
        if not parts:
            raise ValueError("Cannot add the server root as a file")

        parent = self._ensure_directory("/".join(parts[:-1]))
        existing = self._child(parent, parts[-1])
        if existing is not None and existing.is_file:
            if size is not None:
                existing.size = size
            if rights is not None:
                existing.rights = rights
            return existing
        if existing is not None:
            self._remove(existing)

        node = self._create(parent, parts[-1], NodeKind.FILE, size=size, rights=rights)
        self._log.debug("tree.add_file", path=self.relative_path(node), size=size)
        return node

    def add_directory(self, path: str, *, rights: Rights | None = None) -> RemoteNode:
        """Add (or update) a directory node, creating missing parents."""
        node = self._ensure_directory(path)
        if rights is not None:
            node.rights = rights
        self._log.debug("tree.add_directory", path=self.relative_path(node))
        return node

    def rename_file(self, old_path: str, new_path: str, size: int | None = None) -> RemoteNode:
        """Relocate a file node; returns the node at ``new_path``."""
        old = self.find_element_by_path(old_path)
        rights = old.rights if old is not None else None
        if size is None and old is not None:
            size = old.size
        if old is not None and old.is_file:
            self._remove(old)
        return self.add_file(new_path, size=size, rights=rights)

    def rename_directory(self, old_path: str, new_path: str) -> RemoteNode:
        """Relocate a directory node together with its materialized subtree."""
        old = self.find_element_by_path(old_path)
        if old is None or not old.is_directory or old is self.root:
            return self.add_directory(new_path)

        parts = split(new_path)
        if not parts:
            raise ValueError("Cannot rename onto the server root")

        # Detach first so the destination parent chain can not contain it
        parent = self.parent(old)
        if parent is not None:
            parent.child_ids.remove(old.id)

        new_parent = self._ensure_directory("/".join(parts[:-1]))
        existing = self._child(new_parent, parts[-1])
        if existing is not None:
            self._remove(existing)

        old.name = parts[-1]
        old.parent_id = new_parent.id
        new_parent.child_ids.append(old.id)
        self._log.debug("tree.rename_directory", old_path=old_path, new_path=new_path)
        return old

    def delete_file(self, path: str) -> bool:
        node = self.find_element_by_path(path)
        if node is None or not node.is_file:
            return False
        self._remove(node)
        return True

    def delete_directory(self, path: str) -> bool:
        node = self.find_element_by_path(path)
        if node is None or not node.is_directory or node is self.root:
            return False
        self._remove(node)
        return True

    def chmod(self, path: str, rights: Rights) -> RemoteNode | None:
        node = self.find_element_by_path(path)
        if node is not None:
            node.rights = rights
        return node

    # Lazy expansion

    async def expand(
        self,
        node: RemoteNode,
        connector: "Connector",
        *,
        timeout: float | None = None,
    ) -> list[RemoteNode]:
        """List ``node`` on the server once and materialize its children.

        Already-expanded directories return their cached children. Children
        that are still listed keep their own subtree.

        Raises:
            ConnectorError: Listing failed (node stays unexpanded)
        """
        if not node.is_directory:
            raise ValueError("Only directories can be expanded")
        if node.expanded:
            return self.children(node)

        remote_path = self.remote_path(node)
        entries = await call(
            "list",
            remote_path,
            connector.list_directory(remote_path),
            timeout=timeout,
        )

        listed: dict[str, RemoteNode] = {}
        for entry in entries:
            if entry.name in (".", ".."):
                continue
            relative = join(self.relative_path(node), entry.name)
            if self._ignore is not None and self._ignore.is_path_ignored(relative):
                continue

            kind = NodeKind.DIRECTORY if entry.is_directory else NodeKind.FILE
            existing = self._child(node, entry.name)
            if existing is not None and existing.kind == kind:
                existing.size = entry.size if entry.is_file else existing.size
                existing.rights = entry.rights
                listed[entry.name] = existing
            else:
                if existing is not None:
                    self._remove(existing)
                listed[entry.name] = self._create(
                    node,
                    entry.name,
                    kind,
                    size=entry.size if entry.is_file else None,
                    rights=entry.rights,
                )

        for child in self.children(node):
            if child.name not in listed:
                self._remove(child)

        # Directories first, then files, each alphabetical
        node.child_ids.sort(
            key=lambda child_id: (
                self._nodes[child_id].is_file,
                self._nodes[child_id].name.lower(),
            )
        )
        node.expanded = True
        self._log.debug(
            "tree.expand",
            path=self.relative_path(node),
            children=len(node.child_ids),
        )
        return self.children(node)

    def collapse(self, node: RemoteNode) -> None:
        """Mark ``node`` unexpanded so the next expand lists it again."""
        node.expanded = False

    async def reveal(
        self,
        path: str,
        connector: "Connector",
        *,
        timeout: float | None = None,
    ) -> RemoteNode:
        """Expand every ancestor of ``path`` and return its node.

        Raises:
            NotFoundError: A path component is not listed on the server
            ConnectorError: A listing failed
        """
        node = self.root
        for part in split(path):
            await self.expand(node, connector, timeout=timeout)
            child = self._child(node, part)
            if child is None:
                raise NotFoundError(f"Remote path not found: {normalize(path)}")
            node = child
        if node.is_directory:
            await self.expand(node, connector, timeout=timeout)
        return node
