"""FinderIndex - flat searchable snapshot of a whole remote tree.

One index per server root. A build walks the tree with sequential
listings and is all-or-nothing: any listing failure discards the partial
result and leaves the index invalid. Routine file operations patch the
cached list instead of forcing a full rebuild.

Events (delivered to subscribed listeners):
- index(items)   after every listed directory, with everything found so far
- update(items)  after every ``page_size`` listed directories
- finish(items)  when the build completes
- error(exc)     when the build fails
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

import structlog

from remote_editor.connectors.base import call
from remote_editor.models.finder import FinderEntry
from remote_editor.utils.paths import dirname, join, normalize, relative_to, trailing_slash

if TYPE_CHECKING:
    from remote_editor.connectors.base import Connector
    from remote_editor.utils.ignore import IgnoreMatcher

logger = structlog.get_logger()

ItemsCallback = Callable[[list[FinderEntry]], None]
ErrorCallback = Callable[[Exception], None]


@dataclass
class FinderListener:
    """Callbacks for one consumer; any of them may be omitted."""

    index: ItemsCallback | None = None
    update: ItemsCallback | None = None
    finish: ItemsCallback | None = None
    error: ErrorCallback | None = None


class FinderSubscription:
    """Handle returned by :meth:`FinderIndex.subscribe`."""

    def __init__(self, owner: "FinderIndex", consumer: str, listener: FinderListener) -> None:
        self._owner = owner
        self.consumer = consumer
        self.listener = listener

    @property
    def active(self) -> bool:
        return self._owner._listeners.get(self.consumer) is self.listener

    def cancel(self) -> None:
        if self.active:
            del self._owner._listeners[self.consumer]


class FinderIndex:
    """Per-root index of every remote path."""

    def __init__(
        self,
        name: str,
        connector: "Connector",
        *,
        remote_root: str = "/",
        ignore: "IgnoreMatcher | None" = None,
        page_size: int = 20,
        timeout: float | None = None,
    ) -> None:
        self._name = name
        self._connector = connector
        self._remote_root = normalize("/" + remote_root)
        self._ignore = ignore
        self._page_size = max(page_size, 1)
        self._timeout = timeout

        self._items: list[FinderEntry] = []
        self._valid = False
        self._task: asyncio.Task[list[FinderEntry]] | None = None
        self._listeners: dict[str, FinderListener] = {}
        self._log = logger.bind(service="finder_index", server=name)

    @property
    def items(self) -> list[FinderEntry]:
        return list(self._items)

    @property
    def is_valid(self) -> bool:
        return self._valid

    @property
    def is_loading(self) -> bool:
        return self._task is not None and not self._task.done()

    def subscribe(
        self,
        consumer: str,
        *,
        index: ItemsCallback | None = None,
        update: ItemsCallback | None = None,
        finish: ItemsCallback | None = None,
        error: ErrorCallback | None = None,
    ) -> FinderSubscription:
        """Attach ``consumer``'s callbacks, replacing any earlier ones."""
        listener = FinderListener(index=index, update=update, finish=finish, error=error)
        self._listeners[consumer] = listener
        return FinderSubscription(self, consumer, listener)

    def invalidate(self) -> None:
        """Drop the cached items; the next load rebuilds."""
        self._items = []
        self._valid = False
        self._log.info("finder.invalidate")

    def close(self) -> None:
        """Cancel an in-flight build and detach every listener."""
        if self.is_loading:
            self._task.cancel()  # type: ignore[union-attr]
        self._listeners.clear()
        self.invalidate()

    def start(self, force_reindex: bool = False) -> "asyncio.Future[list[FinderEntry]]":
        """Start (or join) a build without waiting for it.

        Returns a future resolving to the items. Failures are reported via
        the ``error`` event.
        """
        if self.is_loading:
            return self._task  # type: ignore[return-value]

        if self._valid and not force_reindex:
            future: asyncio.Future[list[FinderEntry]] = asyncio.get_running_loop().create_future()
            future.set_result(self.items)
            return future

        self._task = asyncio.create_task(self._build(), name=f"finder-index-{self._name}")
        self._task.add_done_callback(self._consume_task_exception)
        return self._task

    async def load(self, force_reindex: bool = False) -> list[FinderEntry]:
        """Return the index, building it first if needed.

        A call while a build is in flight waits for that build instead of
        starting another walk.

        Raises:
            ConnectorError: The build failed
        """
        if self._valid and not force_reindex and not self.is_loading:
            items = self.items
            self._emit("finish", items)
            return items
        return await asyncio.shield(self.start(force_reindex))

    @staticmethod
    def _consume_task_exception(task: asyncio.Task) -> None:
        if not task.cancelled():
            task.exception()

    async def _build(self) -> list[FinderEntry]:
        self._log.info("finder.index.start", remote_root=self._remote_root)
        found: list[FinderEntry] = []
        pending = [self._remote_root]
        listed = 0

        try:
            while pending:
                directory = pending.pop(0)
                entries = await call(
                    "list",
                    directory,
                    self._connector.list_directory(directory),
                    timeout=self._timeout,
                )

                for entry in entries:
                    if entry.name in (".", ".."):
                        continue
                    remote_path = join(directory, entry.name)
                    relative = relative_to(remote_path, self._remote_root)
                    if self._ignore is not None and self._ignore.is_finder_path_ignored(relative):
                        continue
                    if entry.is_directory:
                        found.append(FinderEntry(trailing_slash(relative), 0))
                        pending.append(remote_path)
                    elif entry.is_file:
                        found.append(FinderEntry(relative, entry.size or 0))

                listed += 1
                self._emit("index", list(found))
                if listed % self._page_size == 0:
                    self._emit("update", list(found))
        except Exception as exc:
            self._items = []
            self._valid = False
            self._log.warning("finder.index.error", error=str(exc), listed=listed)
            self._emit("error", exc)
            raise

        self._items = found
        self._valid = True
        self._log.info("finder.index.finish", items=len(found), listed=listed)
        self._emit("finish", self.items)
        return self.items

    def _emit(self, event: str, payload) -> None:
        for consumer, listener in list(self._listeners.items()):
            callback = getattr(listener, event)
            if callback is None:
                continue
            try:
                callback(payload)
            except Exception:
                self._log.exception("finder.listener_failed", consumer=consumer, event=event)

    # Incremental patches (no-ops until the first successful build)

    def _add_parents(self, path: str) -> None:
        """Insert the missing ancestor directory entries of ``path``."""
        parents = []
        parent = dirname(path)
        while parent not in ("/", "."):
            parents.append(trailing_slash(parent))
            parent = dirname(parent)

        known = {item.relative_path for item in self._items}
        for directory in reversed(parents):
            if directory not in known:
                self._items.append(FinderEntry(directory, 0))

    def add_file(self, path: str, size: int = 0) -> None:
        if not self._valid:
            return
        path = normalize("/" + path)
        if self._ignore is not None and self._ignore.is_finder_path_ignored(path):
            return
        self._add_parents(path)
        self._items = [item for item in self._items if item.relative_path != path]
        self._items.append(FinderEntry(path, size or 0))

    def delete_file(self, path: str) -> None:
        if not self._valid:
            return
        path = normalize("/" + path)
        self._items = [item for item in self._items if item.relative_path != path]

    def rename_file(self, old_path: str, new_path: str, size: int = 0) -> None:
        if not self._valid:
            return
        self.delete_file(old_path)
        self.add_file(new_path, size)

    def add_directory(self, path: str) -> None:
        if not self._valid:
            return
        path = trailing_slash("/" + path)
        if self._ignore is not None and self._ignore.is_finder_path_ignored(path):
            return
        self._add_parents(path)
        if all(item.relative_path != path for item in self._items):
            self._items.append(FinderEntry(path, 0))

    def delete_directory(self, path: str) -> None:
        if not self._valid:
            return
        prefix = trailing_slash("/" + path)
        self._items = [item for item in self._items if not item.relative_path.startswith(prefix)]

    def rename_directory(self, old_path: str, new_path: str) -> None:
        if not self._valid:
            return
        old_prefix = trailing_slash("/" + old_path)
        new_prefix = trailing_slash("/" + new_path)
        moved = [
            FinderEntry(new_prefix + item.relative_path[len(old_prefix):], item.size)
            for item in self._items
            if item.relative_path.startswith(old_prefix)
        ]
        kept = [
            item
            for item in self._items
            if not item.relative_path.startswith(old_prefix)
            and not item.relative_path.startswith(new_prefix)
        ]
        self._items = kept + moved
        self._add_parents(new_prefix)
