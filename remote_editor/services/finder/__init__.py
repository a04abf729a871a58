"""Finder index service."""

from remote_editor.services.finder.index import FinderIndex, FinderListener, FinderSubscription

__all__ = ["FinderIndex", "FinderListener", "FinderSubscription"]
