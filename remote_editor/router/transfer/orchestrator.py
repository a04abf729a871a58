"""TransferOrchestrator - multi-step file operations across all state stores.

Every mutating operation follows the same protocol:
1. Normalize paths
2. Existence check and overwrite decision (ConflictResolver)
3. Remote operation through the connector (transfers via TransferQueue)
4. Only after remote success: TreeCache, FinderIndex, local mirror,
   editor retarget, notification

A connector failure stops the chain before any cache or disk mutation.
Directory operations run file by file and stop at the first failure;
files that already succeeded stay in place.

Paths passed to operations are relative to the server's remote root
(``/a/b.txt``) unless the parameter name says ``local``.
"""

from __future__ import annotations

import functools
import os
from typing import TYPE_CHECKING, Any, Awaitable, Callable, TypeVar

import structlog

from remote_editor.config import Settings, get_settings
from remote_editor.connectors.base import call
from remote_editor.errors import (
    ConflictError,
    DuplicateTransferError,
    NotFoundError,
    RemoteEditorError,
    UserDeclinedError,
    ValidationError,
)
from remote_editor.models.transfer import TransferDirection, TransferItem, TransferStatus
from remote_editor.router.transfer.conflict import ConflictResolver, duplicate_name
from remote_editor.ui.base import NullEditors, NullNotifier
from remote_editor.utils.paths import basename, dirname, join, normalize, untrailing_slash
from remote_editor.utils.permissions import permissions_to_rights, rights_to_permissions
from remote_editor.vault.base import require_unlocked

if TYPE_CHECKING:
    from remote_editor.managers.server import RemoteServer
    from remote_editor.models.tree import RemoteNode
    from remote_editor.services.transfer_queue import TransferQueue
    from remote_editor.ui.base import DecisionProvider, EditorRegistry, Notifier
    from remote_editor.vault.base import SecureVault

logger = structlog.get_logger()

F = TypeVar("F", bound=Callable[..., Awaitable[Any]])


def operation(name: str) -> Callable[[F], F]:
    """Wrap a public operation: vault gate, cancel handling, error reporting.

    A cancelled operation returns None. Engine errors are reported through
    the notifier and re-raised.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def wrapper(self: "TransferOrchestrator", server: "RemoteServer", *args, **kwargs):
            log = self._log.bind(operation=name, server=server.name)
            try:
                require_unlocked(self._vault)
                return await func(self, server, *args, **kwargs)
            except UserDeclinedError as e:
                log.info("transfer.cancelled", reason=e.message)
                return None
            except RemoteEditorError as e:
                log.warning("transfer.failed", code=e.code, error=e.message)
                self._notifier.error(e.message)
                raise

        return wrapper  # type: ignore[return-value]

    return decorator


def _clean(path: str) -> str:
    return untrailing_slash("/" + path)


def _local_below(local_dir: str, root: str, path: str) -> str:
    """Local path of remote ``path`` when ``root`` is mirrored at ``local_dir``."""
    relative = path[len(root):] if root != "/" else path
    return os.path.join(local_dir, *relative.strip("/").split("/"))


def _is_inside(path: str, directory: str) -> bool:
    return path == directory or path.startswith(directory.rstrip("/") + "/")


class TransferOrchestrator:
    """Coordinates remote, tree, finder and mirror updates for one session."""

    def __init__(
        self,
        *,
        vault: "SecureVault",
        queue: "TransferQueue",
        decisions: "DecisionProvider | None" = None,
        notifier: "Notifier | None" = None,
        editors: "EditorRegistry | None" = None,
        settings: Settings | None = None,
    ) -> None:
        self._vault = vault
        self._queue = queue
        self._resolver = ConflictResolver(decisions)
        self._notifier = notifier or NullNotifier()
        self._editors = editors or NullEditors()
        self._settings = settings or get_settings()
        self._log = logger.bind(component="transfer_orchestrator")

    @property
    def resolver(self) -> ConflictResolver:
        return self._resolver

    # Helpers

    async def _remote(self, server: "RemoteServer", op: str, path: str, awaitable: Awaitable[Any]) -> Any:
        return await call(op, path, awaitable, timeout=server.timeout)

    async def _run_transfer(
        self,
        server: "RemoteServer",
        item: TransferItem,
        start: Callable[[], Awaitable[Any]],
    ) -> None:
        self._queue.change_status(item, TransferStatus.TRANSFERRING)
        try:
            await call(item.direction.value, item.remote_path, start(), timeout=server.timeout)
        except RemoteEditorError as e:
            self._queue.change_status(item, TransferStatus.ERROR, error=e.message)
            raise
        except BaseException:
            # Cancellation of the awaiting task
            self._queue.change_status(item, TransferStatus.ERROR, error="cancelled")
            raise
        self._queue.change_status(item, TransferStatus.DONE)

    def _node_size(self, server: "RemoteServer", path: str) -> int:
        node = server.tree.find_element_by_path(path)
        if node is None:
            return 0
        return node.size or 0

    def _retarget(self, old_local: str, new_local: str) -> None:
        if self._editors.is_open(old_local):
            self._editors.retarget(old_local, new_local)

    def _open_files_below(self, server: "RemoteServer", path: str) -> list[str]:
        node = server.tree.find_element_by_path(path)
        if node is None:
            return []
        return [
            server.tree.relative_path(child)
            for child in server.tree.walk(node)
            if child.is_file and self._editors.is_open(server.tree.local_path(child))
        ]

    async def _scan_remote(
        self,
        server: "RemoteServer",
        path: str,
    ) -> tuple[list[str], list[tuple[str, int]]]:
        """Recursively list ``path``: (directories, [(file, size)])."""
        directories: list[str] = []
        files: list[tuple[str, int]] = []

        remote = server.remote_path(path)
        entries = await self._remote(server, "list", remote, server.connector.list_directory(remote))
        subdirectories: list[str] = []
        for entry in entries:
            if entry.name in (".", ".."):
                continue
            child = join(path, entry.name)
            if entry.is_file:
                files.append((child, entry.size or 0))
            elif entry.is_directory:
                subdirectories.append(child)

        for child in subdirectories:
            directories.append(child)
            sub_dirs, sub_files = await self._scan_remote(server, child)
            directories.extend(sub_dirs)
            files.extend(sub_files)
        return directories, files

    # Single-file building blocks (raise; no notification)

    async def _upload(
        self,
        server: "RemoteServer",
        local_path: str,
        path: str,
        *,
        check_exists: bool = True,
    ) -> "RemoteNode":
        path = _clean(path)
        remote = server.remote_path(path)
        if check_exists:
            await self._resolver.resolve_file(server, remote)

        size = server.mirror.file_size(local_path)
        item = self._queue.add_file(
            direction=TransferDirection.UPLOAD,
            remote_path=remote,
            local_path=local_path,
            size=size,
        )
        self._log.info("transfer.upload.start", server=server.name, path=path, size=size)
        await self._run_transfer(
            server,
            item,
            lambda: server.connector.upload_file(item, self._settings.transfer.upload_priority),
        )

        # Remote confirmed
        server.finder.add_file(path, size)
        node = server.tree.add_file(path, size=size)
        mirror_path = server.local_path(path)
        if normalize(mirror_path) != normalize(local_path):
            server.mirror.best_effort_copy(local_path, mirror_path)
        self._log.info("transfer.upload.done", server=server.name, path=path)
        return node

    async def _download(
        self,
        server: "RemoteServer",
        path: str,
        local_path: str,
        size: int = 0,
    ) -> str:
        path = _clean(path)
        remote = server.remote_path(path)
        if self._queue.exists_file(local_path):
            self._log.info("transfer.download.skipped", server=server.name, local_path=local_path)
            raise DuplicateTransferError(direction=TransferDirection.DOWNLOAD.value, local_path=local_path)

        server.mirror.create_local_path(local_path)
        item = self._queue.add_file(
            direction=TransferDirection.DOWNLOAD,
            remote_path=remote,
            local_path=local_path,
            size=size,
        )
        self._log.info("transfer.download.start", server=server.name, path=path, size=size)
        await self._run_transfer(server, item, lambda: server.connector.download_file(item))
        self._log.info("transfer.download.done", server=server.name, path=path)
        return local_path

    async def _copy(
        self,
        server: "RemoteServer",
        src: str,
        dest: str,
        size: int | None = None,
        *,
        resolve: bool = True,
    ) -> "RemoteNode":
        src, dest = _clean(src), _clean(dest)

        if src == dest:
            parent = dirname(dest)
            remote_parent = server.remote_path(parent)
            entries = await self._remote(
                server, "list", remote_parent, server.connector.list_directory(remote_parent)
            )
            dest = duplicate_name([entry.name for entry in entries], dest)
            self._log.info("transfer.copy.duplicate_name", server=server.name, src=src, dest=dest)
            return await self._copy(server, src, dest, size, resolve=resolve)

        if resolve:
            await self._resolver.resolve_file(server, server.remote_path(dest))

        if size is None:
            size = self._node_size(server, src)
        local_dest = server.local_path(dest)
        await self._download(server, src, local_dest, size)
        return await self._upload(server, local_dest, dest, check_exists=False)

    # Create

    @operation("create_file")
    async def create_file(self, server: "RemoteServer", path: str) -> "RemoteNode":
        """Create an empty remote file.

        Raises:
            ConflictError: File already exists
        """
        path = _clean(path)
        remote = server.remote_path(path)
        if await self._remote(server, "exists", remote, server.connector.exists_file(remote)):
            raise ConflictError(f"File {path} already exists", path=path)

        local = server.local_path(path)
        server.mirror.write_empty_file(local)
        node = await self._upload(server, local, path, check_exists=False)
        self._notifier.success(f"File {path} successfully created", node)
        return node

    @operation("create_directory")
    async def create_directory(self, server: "RemoteServer", path: str) -> "RemoteNode":
        """Create a remote directory.

        Raises:
            ConflictError: Directory already exists
        """
        path = _clean(path)
        remote = server.remote_path(path)
        if await self._remote(server, "exists", remote, server.connector.exists_directory(remote)):
            raise ConflictError(f"Directory {path} already exists", path=path)

        await self._remote(server, "mkdir", remote, server.connector.create_directory(remote))

        node = server.tree.add_directory(path)
        server.finder.add_directory(path)
        server.mirror.best_effort_create_directory(server.local_path(path))
        self._notifier.success(f"Directory {path} successfully created", node)
        return node

    # Rename

    @operation("rename_file")
    async def rename_file(self, server: "RemoteServer", old_path: str, new_path: str) -> "RemoteNode":
        """Rename a remote file; the destination must not exist."""
        old_path, new_path = _clean(old_path), _clean(new_path)
        new_remote = server.remote_path(new_path)
        if await self._remote(server, "exists", new_remote, server.connector.exists_file(new_remote)):
            raise ConflictError(f"File {new_path} already exists", path=new_path)

        old_remote = server.remote_path(old_path)
        await self._remote(server, "rename", old_remote, server.connector.rename(old_remote, new_remote))

        size = self._node_size(server, old_path)
        server.finder.rename_file(old_path, new_path, size)
        node = server.tree.rename_file(old_path, new_path)
        old_local, new_local = server.local_path(old_path), server.local_path(new_path)
        self._retarget(old_local, new_local)
        server.mirror.best_effort_move(old_local, new_local)

        self._notifier.success(f"File {old_path} successfully renamed to {new_path}", node)
        return node

    @operation("rename_directory")
    async def rename_directory(self, server: "RemoteServer", old_path: str, new_path: str) -> "RemoteNode":
        """Rename a remote directory; the destination must not exist."""
        old_path, new_path = _clean(old_path), _clean(new_path)
        if _is_inside(new_path, old_path):
            raise ValidationError(f"Cannot rename {old_path} into itself")

        new_remote = server.remote_path(new_path)
        if await self._remote(server, "exists", new_remote, server.connector.exists_directory(new_remote)):
            raise ConflictError(f"Directory {new_path} already exists", path=new_path)

        old_remote = server.remote_path(old_path)
        await self._remote(server, "rename", old_remote, server.connector.rename(old_remote, new_remote))
        node = self._relocate_directory(server, old_path, new_path)
        self._notifier.success(f"Directory {old_path} successfully renamed to {new_path}", node)
        return node

    def _relocate_directory(self, server: "RemoteServer", old_path: str, new_path: str) -> "RemoteNode":
        open_files = self._open_files_below(server, old_path)
        server.finder.rename_directory(old_path, new_path)
        node = server.tree.rename_directory(old_path, new_path)
        for path in open_files:
            moved = new_path + path[len(old_path):]
            self._retarget(server.local_path(path), server.local_path(moved))
        server.mirror.best_effort_move(server.local_path(old_path), server.local_path(new_path))
        return node

    # Delete

    @operation("delete_file")
    async def delete_file(self, server: "RemoteServer", path: str, *, confirm: bool = False) -> bool:
        """Delete a remote file and its mirror copy."""
        path = _clean(path)
        if confirm and not await self._resolver.confirm_delete("file", path):
            raise UserDeclinedError(f"Delete of {path} cancelled")

        remote = server.remote_path(path)
        await self._remote(server, "delete", remote, server.connector.delete_file(remote))

        server.finder.delete_file(path)
        server.mirror.best_effort_delete(server.local_path(path))
        server.tree.delete_file(path)
        self._notifier.success(f"File {path} successfully deleted")
        return True

    @operation("delete_directory")
    async def delete_directory(
        self,
        server: "RemoteServer",
        path: str,
        recursive: bool = True,
        *,
        confirm: bool = False,
    ) -> bool:
        """Delete a remote directory and its mirror copy."""
        path = _clean(path)
        if path == "/":
            raise ValidationError("Cannot delete the server root")
        if confirm and not await self._resolver.confirm_delete("directory", path):
            raise UserDeclinedError(f"Delete of {path} cancelled")

        remote = server.remote_path(path)
        await self._remote(
            server, "delete", remote, server.connector.delete_directory(remote, recursive)
        )

        server.finder.delete_directory(path)
        server.mirror.best_effort_delete(server.local_path(path))
        server.tree.delete_directory(path)
        self._notifier.success(f"Directory {path} successfully deleted")
        return True

    # Permissions

    def _rights_for(self, server: "RemoteServer", path: str, permissions: str):
        node = server.tree.find_element_by_path(path)
        try:
            rights = permissions_to_rights(permissions, node.rights if node else None)
        except ValueError as e:
            raise ValidationError(str(e)) from e
        # "x" keeps the current digit; the connector needs the resolved mode
        return rights, rights_to_permissions(rights) if "x" in permissions else permissions

    @operation("chmod_file")
    async def chmod_file(self, server: "RemoteServer", path: str, permissions: str) -> "RemoteNode | None":
        """Change file permissions, e.g. ``"644"``."""
        path = _clean(path)
        rights, mode = self._rights_for(server, path, permissions)
        remote = server.remote_path(path)
        await self._remote(server, "chmod", remote, server.connector.chmod_file(remote, mode))
        return server.tree.chmod(path, rights)

    @operation("chmod_directory")
    async def chmod_directory(self, server: "RemoteServer", path: str, permissions: str) -> "RemoteNode | None":
        """Change directory permissions, e.g. ``"755"``."""
        path = _clean(path)
        rights, mode = self._rights_for(server, path, permissions)
        remote = server.remote_path(path)
        await self._remote(server, "chmod", remote, server.connector.chmod_directory(remote, mode))
        return server.tree.chmod(path, rights)

    # Move

    @operation("move_file")
    async def move_file(self, server: "RemoteServer", src: str, dest: str) -> "RemoteNode | None":
        """Move a file with one remote rename; asks before overwriting."""
        src, dest = _clean(src), _clean(dest)
        if src == dest:
            return server.tree.find_element_by_path(src)

        dest_remote = server.remote_path(dest)
        await self._resolver.resolve_file(server, dest_remote)

        src_remote = server.remote_path(src)
        await self._remote(server, "rename", src_remote, server.connector.rename(src_remote, dest_remote))

        size = self._node_size(server, src)
        server.finder.rename_file(src, dest, size)
        node = server.tree.rename_file(src, dest)
        old_local, new_local = server.local_path(src), server.local_path(dest)
        self._retarget(old_local, new_local)
        server.mirror.best_effort_move(old_local, new_local)

        self._notifier.success(f"File {src} successfully moved to {dest}", node)
        return node

    @operation("move_directory")
    async def move_directory(self, server: "RemoteServer", src: str, dest: str) -> "RemoteNode | None":
        """Move a directory with one remote rename; asks before overwriting."""
        src, dest = _clean(src), _clean(dest)
        if src == dest:
            return server.tree.find_element_by_path(src)
        if _is_inside(dest, src):
            raise ValidationError(f"Cannot move {src} into itself")

        dest_remote = server.remote_path(dest)
        await self._resolver.resolve_directory(server, dest_remote)

        src_remote = server.remote_path(src)
        await self._remote(server, "rename", src_remote, server.connector.rename(src_remote, dest_remote))
        node = self._relocate_directory(server, src, dest)
        self._notifier.success(f"Directory {src} successfully moved to {dest}", node)
        return node

    # Copy

    @operation("copy_file")
    async def copy_file(
        self,
        server: "RemoteServer",
        src: str,
        dest: str,
        size: int | None = None,
    ) -> "RemoteNode":
        """Copy through the local mirror: download, then upload.

        Copying onto itself picks a free name (``report.txt`` ->
        ``report0.txt``) instead of asking.
        """
        node = await self._copy(server, src, dest, size)
        self._notifier.success(f"File {_clean(src)} successfully copied", node)
        return node

    @operation("copy_directory")
    async def copy_directory(self, server: "RemoteServer", src: str, dest: str) -> "RemoteNode":
        """Copy every file below ``src`` to ``dest``, one at a time."""
        src, dest = _clean(src), _clean(dest)
        if _is_inside(dest, src):
            raise ValidationError(f"Cannot copy {src} into itself")

        dest_remote = server.remote_path(dest)
        await self._resolver.resolve_directory(server, dest_remote)

        directories, files = await self._scan_remote(server, src)

        await self._remote(server, "mkdir", dest_remote, server.connector.create_directory(dest_remote))
        node = server.tree.add_directory(dest)
        server.finder.add_directory(dest)

        for directory in directories:
            target = dest + directory[len(src):]
            target_remote = server.remote_path(target)
            await self._remote(
                server, "mkdir", target_remote, server.connector.create_directory(target_remote)
            )
            server.tree.add_directory(target)
            server.finder.add_directory(target)

        for path, size in files:
            await self._copy(server, path, dest + path[len(src):], size, resolve=False)

        self._notifier.success(f"Directory {src} successfully copied", node)
        return node

    @operation("duplicate_file")
    async def duplicate_file(self, server: "RemoteServer", src: str, dest: str) -> "RemoteNode":
        """Copy ``src`` to a new name that must not exist yet.

        Raises:
            ConflictError: Destination already exists
        """
        src, dest = _clean(src), _clean(dest)
        dest_remote = server.remote_path(dest)
        if await self._remote(server, "exists", dest_remote, server.connector.exists_file(dest_remote)):
            raise ConflictError(f"File {dest} already exists", path=dest)

        node = await self._copy(server, src, dest, resolve=False)
        self._notifier.success(f"File {src} successfully duplicated", node)
        return node

    # Upload / download

    @operation("upload_file")
    async def upload_file(
        self,
        server: "RemoteServer",
        local_path: str,
        dest: str,
        check_exists: bool = True,
    ) -> "RemoteNode":
        """Upload a local file to ``dest``; asks before overwriting."""
        node = await self._upload(server, local_path, dest, check_exists=check_exists)
        if self._settings.notifications.show_on_upload:
            self._notifier.success(f"File {_clean(dest)} successfully uploaded", node)
        return node

    @operation("upload_directory")
    async def upload_directory(self, server: "RemoteServer", local_dir: str, dest: str) -> list["RemoteNode"]:
        """Upload every file below ``local_dir`` to ``dest``, one at a time."""
        dest = _clean(dest)
        files = server.mirror.list_files(local_dir)
        root = normalize(local_dir).rstrip("/")

        nodes: list[RemoteNode] = []
        for local_path in files:
            relative = normalize(local_path)[len(root):]
            nodes.append(await self._upload(server, local_path, join(dest, relative)))

        self._notifier.success(f"Directory {basename(local_dir)} successfully uploaded")
        return nodes

    @operation("download_file")
    async def download_file(
        self,
        server: "RemoteServer",
        path: str,
        local_path: str,
        size: int = 0,
    ) -> str:
        """Download ``path`` to ``local_path``.

        Raises:
            DuplicateTransferError: A transfer to ``local_path`` is already running
        """
        return await self._download(server, path, local_path, size)

    @operation("download_directory")
    async def download_directory(self, server: "RemoteServer", path: str, local_dir: str) -> list[str]:
        """Download the whole remote subtree below ``path`` into ``local_dir``."""
        path = _clean(path)
        directories, files = await self._scan_remote(server, path)

        server.mirror.create_directory(local_dir)
        for directory in directories:
            server.mirror.create_directory(_local_below(local_dir, path, directory))

        downloaded: list[str] = []
        for file_path, size in files:
            local_path = _local_below(local_dir, path, file_path)
            downloaded.append(await self._download(server, file_path, local_path, size))

        self._notifier.success(f"Directory {path} successfully downloaded")
        return downloaded

    # Editor integration

    @operation("open_file")
    async def open_file(self, server: "RemoteServer", path: str) -> str:
        """Download ``path`` into the mirror and open it in an editor.

        Raises:
            NotFoundError: File does not exist remotely
        """
        path = _clean(path)
        local = server.local_path(path)
        if self._editors.is_open(local):
            await self._editors.open(local, functools.partial(self.save_file, server))
            return local

        node = server.tree.find_element_by_path(path)
        if node is None:
            remote = server.remote_path(path)
            if not await self._remote(server, "exists", remote, server.connector.exists_file(remote)):
                raise NotFoundError(f"File not found: {path}")

        await self._download(server, path, local, self._node_size(server, path))
        await self._editors.open(local, functools.partial(self.save_file, server))
        return local

    @operation("save_file")
    async def save_file(self, server: "RemoteServer", local_path: str) -> "RemoteNode":
        """Upload a saved mirror file back to its remote path (no prompt)."""
        path = server.relative_from_local(local_path)
        if path is None or path == "/":
            raise ValidationError(f"Not a mirror file of {server.name}: {local_path}")

        node = await self._upload(server, local_path, path, check_exists=False)
        if self._settings.notifications.show_on_upload:
            self._notifier.success(f"File {path} successfully uploaded", node)
        return node

    @operation("reload_file")
    async def reload_file(self, server: "RemoteServer", path: str) -> str:
        """Replace the mirror copy of ``path`` with the remote content."""
        path = _clean(path)
        return await self._download(
            server, path, server.local_path(path), self._node_size(server, path)
        )

    @operation("reload_directory")
    async def reload_directory(self, server: "RemoteServer", path: str) -> list["RemoteNode"]:
        """List ``path`` again on the server and refresh its children."""
        path = _clean(path)
        node = server.tree.find_element_by_path(path)
        if node is None or not node.is_directory:
            raise NotFoundError(f"Directory not loaded: {path}")
        server.tree.collapse(node)
        return await server.tree.expand(node, server.connector, timeout=server.timeout)

    @operation("find_remote_path")
    async def find_remote_path(self, server: "RemoteServer", path: str) -> "RemoteNode":
        """Expand the tree down to ``path`` and return its node."""
        return await server.tree.reveal(_clean(path), server.connector, timeout=server.timeout)
