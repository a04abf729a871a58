"""Finder index entry model."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class FinderEntry:
    """One searchable path, relative to the server's remote root."""

    relative_path: str
    size: int = 0
