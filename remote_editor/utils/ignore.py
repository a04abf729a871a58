"""Ignore-pattern matching for the tree and the finder index.

Patterns use fnmatch syntax and always match dotfiles. A pattern without a
slash matches any single path component, so everything below an ignored
directory is ignored too; a pattern with a slash is matched against the
whole root-relative path. Compiled pattern lists are cached on the matcher instance
and dropped by :meth:`IgnoreMatcher.reset`.
"""

from __future__ import annotations

import fnmatch
import re
from typing import TYPE_CHECKING

import structlog

from remote_editor.utils.paths import normalize

if TYPE_CHECKING:
    from remote_editor.config import Settings

logger = structlog.get_logger()


class _Pattern:
    __slots__ = ("raw", "regex", "match_base")

    def __init__(self, raw: str) -> None:
        self.raw = raw
        self.match_base = "/" not in raw.strip("/")
        self.regex = re.compile(fnmatch.translate(raw.strip("/")))

    def match(self, path: str) -> bool:
        path = normalize(path).strip("/")
        if self.match_base:
            return any(self.regex.match(part) for part in path.split("/"))
        return self.regex.match(path) is not None


def _compile(names: list[str]) -> list[_Pattern]:
    patterns: list[_Pattern] = []
    for name in names:
        if not name:
            continue
        try:
            patterns.append(_Pattern(name))
        except re.error as exc:
            logger.warning("ignore.pattern_invalid", pattern=name, error=str(exc))
    return patterns


class IgnoreMatcher:
    """Tree and finder ignore patterns built from settings."""

    def __init__(self, settings: "Settings") -> None:
        self._settings = settings
        self._tree: list[_Pattern] | None = None
        self._finder: list[_Pattern] | None = None

    def reset(self) -> None:
        self._tree = None
        self._finder = None

    def _tree_patterns(self) -> list[_Pattern]:
        if self._tree is None:
            self._tree = _compile(self._settings.tree.ignored_names)
        return self._tree

    def _finder_patterns(self) -> list[_Pattern]:
        if self._finder is None:
            names = list(self._settings.finder.ignored_names)
            if self._settings.tree.hide_ignored_names:
                names = list(self._settings.tree.ignored_names) + names
            self._finder = _compile(names)
        return self._finder

    def is_path_ignored(self, path: str) -> bool:
        if not self._settings.tree.hide_ignored_names:
            return False
        return any(pattern.match(path) for pattern in self._tree_patterns())

    def is_finder_path_ignored(self, path: str) -> bool:
        return any(pattern.match(path) for pattern in self._finder_patterns())
