"""Conversion between octal permission strings and rwx rights."""

from __future__ import annotations

from dataclasses import dataclass

_BITS = (("r", 4), ("w", 2), ("x", 1))


@dataclass(frozen=True, slots=True)
class Rights:
    """Symbolic rights as reported by a directory listing."""

    user: str = ""
    group: str = ""
    other: str = ""


def _digit(rights: str) -> int:
    return sum(value for flag, value in _BITS if flag in rights)


def _flags(digit: int) -> str:
    return "".join(flag for flag, value in _BITS if digit & value)


def rights_to_permissions(rights: Rights | None) -> str | None:
    """``Rights("rwx", "rx", "r")`` -> ``"754"``."""
    if rights is None:
        return None
    return f"{_digit(rights.user)}{_digit(rights.group)}{_digit(rights.other)}"


def permissions_to_rights(permissions: str, current: Rights | None = None) -> Rights:
    """``"754"`` -> ``Rights("rwx", "rx", "r")``.

    An ``x`` in a position keeps the corresponding part of ``current``.
    """
    if len(permissions) != 3:
        raise ValueError(f"Invalid permissions: {permissions!r}")

    current = current or Rights()
    parts: list[str] = []
    for position, char in enumerate(permissions):
        if char == "x":
            parts.append((current.user, current.group, current.other)[position])
        elif char.isdigit() and int(char) <= 7:
            parts.append(_flags(int(char)))
        else:
            raise ValueError(f"Invalid permissions: {permissions!r}")
    return Rights(*parts)
