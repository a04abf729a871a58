"""LocalMirror - on-disk copy of the materialized remote tree.

Required steps raise LocalIOError. The ``best_effort_*`` variants are used
for cleanup after the remote change has already been confirmed: the remote
state is authoritative, so a local failure there is only logged.
"""

from __future__ import annotations

import os
import shutil
from pathlib import Path

import structlog

from remote_editor.errors import LocalIOError

logger = structlog.get_logger()


class LocalMirror:
    """Filesystem operations on local mirror paths."""

    def __init__(self, root: str) -> None:
        self._root = Path(root)
        self._log = logger.bind(component="local_mirror", root=str(self._root))

    @property
    def root(self) -> Path:
        return self._root

    def exists(self, path: str) -> bool:
        return os.path.lexists(path)

    def create_local_path(self, path: str) -> None:
        """Create the parent directories of ``path``."""
        try:
            Path(path).parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise LocalIOError(f"Could not create local directory for {path}: {e}", path=path) from e

    def create_directory(self, path: str) -> None:
        try:
            Path(path).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise LocalIOError(f"Could not create local directory {path}: {e}", path=path) from e

    def write_empty_file(self, path: str) -> None:
        """Create (or truncate) an empty file, parents included."""
        self.create_local_path(path)
        try:
            Path(path).write_bytes(b"")
        except OSError as e:
            raise LocalIOError(f"Could not create local file {path}: {e}", path=path) from e

    def delete_local_path(self, path: str) -> None:
        """Remove a file or a whole directory. Missing paths are ignored."""
        target = Path(path)
        try:
            if target.is_dir() and not target.is_symlink():
                shutil.rmtree(target)
            elif os.path.lexists(target):
                target.unlink()
        except OSError as e:
            raise LocalIOError(f"Could not delete local path {path}: {e}", path=path) from e

    def move_local_path(self, old_path: str, new_path: str) -> None:
        """Move ``old_path`` to ``new_path``, replacing whatever is there."""
        if not os.path.lexists(old_path):
            return
        self.create_local_path(new_path)
        self.delete_local_path(new_path)
        try:
            shutil.move(old_path, new_path)
        except OSError as e:
            raise LocalIOError(
                f"Could not move local path {old_path} to {new_path}: {e}",
                path=old_path,
            ) from e

    def copy_local_file(self, src: str, dest: str) -> None:
        self.create_local_path(dest)
        try:
            shutil.copyfile(src, dest)
        except OSError as e:
            raise LocalIOError(f"Could not copy {src} to {dest}: {e}", path=src) from e

    def list_files(self, path: str) -> list[str]:
        """All files below ``path``, recursively, in a stable order."""
        root = Path(path)
        if not root.is_dir():
            raise LocalIOError(f"Local directory not found: {path}", path=path)
        try:
            files = [str(p) for p in root.rglob("*") if p.is_file()]
        except OSError as e:
            raise LocalIOError(f"Could not list local directory {path}: {e}", path=path) from e
        return sorted(files)

    def file_size(self, path: str) -> int:
        try:
            return Path(path).stat().st_size
        except OSError:
            return 0

    # Cleanup after a confirmed remote change

    def best_effort_create_directory(self, path: str) -> None:
        try:
            self.create_directory(path)
        except LocalIOError as e:
            self._log.warning("mirror.create_failed", path=path, error=e.message)

    def best_effort_copy(self, src: str, dest: str) -> None:
        try:
            self.copy_local_file(src, dest)
        except LocalIOError as e:
            self._log.warning("mirror.copy_failed", src=src, dest=dest, error=e.message)

    def best_effort_delete(self, path: str) -> None:
        try:
            self.delete_local_path(path)
        except LocalIOError as e:
            self._log.warning("mirror.delete_failed", path=path, error=e.message)

    def best_effort_move(self, old_path: str, new_path: str) -> None:
        try:
            self.move_local_path(old_path, new_path)
        except LocalIOError as e:
            self._log.warning(
                "mirror.move_failed",
                old_path=old_path,
                new_path=new_path,
                error=e.message,
            )
