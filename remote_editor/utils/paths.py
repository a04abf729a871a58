"""Path helpers shared by the tree cache, finder index and orchestrator.

Remote paths always use ``/``. Local mirror paths use ``os.sep``. All
functions are pure and never touch the filesystem.
"""

from __future__ import annotations

import os
import posixpath
import re

_SEPARATORS = re.compile(r"[\\/]+")


def normalize(path: str, sep: str = "/") -> str:
    """Collapse repeated separators and re-emit with ``sep``."""
    return _SEPARATORS.sub(lambda _: sep, path)


def trailing_slash(path: str, sep: str = "/") -> str:
    """Ensure exactly one trailing separator."""
    return normalize(path, sep).rstrip(sep) + sep


def untrailing_slash(path: str, sep: str = "/") -> str:
    stripped = normalize(path, sep).rstrip(sep)
    return stripped or sep


def full_extension(path: str) -> str:
    """Return the longest dotted suffix, e.g. ``a.tar.gz`` -> ``.tar.gz``."""
    name = basename(path)
    extension = ""
    while True:
        name, ext = posixpath.splitext(name)
        if not ext:
            return extension
        extension = ext + extension


def basename(path: str, sep: str = "/") -> str:
    normalized = normalize(path, sep).rstrip(sep)
    return normalized.rsplit(sep, 1)[-1]


def dirname(path: str, sep: str = "/") -> str:
    normalized = normalize(path, sep).rstrip(sep)
    if sep not in normalized:
        return "."
    head = normalized.rsplit(sep, 1)[0]
    return head or sep


def join(*parts: str, sep: str = "/") -> str:
    return normalize(sep.join(part for part in parts if part), sep)


def relative_to(path: str, root: str) -> str:
    """Strip ``root`` from a remote path; the result always starts with ``/``."""
    path = normalize("/" + path)
    root = untrailing_slash("/" + root)
    if root != "/" and (path == root or path.startswith(root + "/")):
        path = path[len(root):]
    return normalize("/" + path)


def split(path: str) -> list[str]:
    """Split a remote path into its non-empty components."""
    return [part for part in normalize(path).split("/") if part]


def to_local(relative_path: str, local_root: str) -> str:
    """Map a root-relative remote path onto the local mirror."""
    return normalize(local_root + os.sep + relative_path, os.sep)
