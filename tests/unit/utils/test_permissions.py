"""Unit tests for permission conversion."""

from __future__ import annotations

import pytest

from remote_editor.utils.permissions import Rights, permissions_to_rights, rights_to_permissions


def test_rights_to_permissions():
    assert rights_to_permissions(Rights("rwx", "rx", "r")) == "754"
    assert rights_to_permissions(Rights()) == "000"
    assert rights_to_permissions(None) is None


def test_permissions_to_rights():
    assert permissions_to_rights("640") == Rights("rw", "r", "")


def test_x_keeps_current_part():
    current = Rights("rwx", "rx", "rx")
    assert permissions_to_rights("6x0", current) == Rights("rw", "rx", "")


@pytest.mark.parametrize("permissions", ["", "75", "7777", "789", "abc"])
def test_invalid_permissions(permissions):
    with pytest.raises(ValueError):
        permissions_to_rights(permissions)
