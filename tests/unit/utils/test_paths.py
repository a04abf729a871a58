"""Unit tests for path helpers."""

from __future__ import annotations

import os

import pytest

from remote_editor.utils.paths import (
    basename,
    dirname,
    full_extension,
    join,
    normalize,
    relative_to,
    split,
    to_local,
    trailing_slash,
    untrailing_slash,
)

PATHS = [
    "",
    "/",
    "//",
    "a",
    "/a//b///c",
    "a\\b\\\\c",
    "/mixed\\/sep//",
    "C:\\Users\\\\me\\file.txt",
    "/trailing/",
]


class TestNormalize:
    @pytest.mark.parametrize("path", PATHS)
    def test_idempotent(self, path):
        assert normalize(normalize(path)) == normalize(path)

    @pytest.mark.parametrize("path", PATHS)
    def test_idempotent_with_backslash(self, path):
        assert normalize(normalize(path, "\\"), "\\") == normalize(path, "\\")

    def test_collapses_and_reemits(self):
        assert normalize("/a//b\\\\c") == "/a/b/c"
        assert normalize("/a//b/c", "\\") == "\\a\\b\\c"


class TestFullExtension:
    def test_multi_dot(self):
        assert full_extension("a.tar.gz") == ".tar.gz"

    def test_no_extension(self):
        assert full_extension("a") == ""

    def test_dotfile(self):
        assert full_extension(".bashrc") == ""

    def test_uses_basename(self):
        assert full_extension("/some.dir/report.txt") == ".txt"


class TestNames:
    def test_basename(self):
        assert basename("/a/b/c.txt") == "c.txt"
        assert basename("/a/b/") == "b"

    def test_dirname(self):
        assert dirname("/a/b/c.txt") == "/a/b"
        assert dirname("/c.txt") == "/"
        assert dirname("c.txt") == "."

    def test_trailing_slash(self):
        assert trailing_slash("/a/b") == "/a/b/"
        assert trailing_slash("/a/b//") == "/a/b/"
        assert untrailing_slash("/a/b//") == "/a/b"
        assert untrailing_slash("/") == "/"

    def test_join_and_split(self):
        assert join("/var/www", "/a/b.txt") == "/var/www/a/b.txt"
        assert join("/", "a") == "/a"
        assert split("/a//b/") == ["a", "b"]

    def test_relative_to(self):
        assert relative_to("/var/www/a/b.txt", "/var/www") == "/a/b.txt"
        assert relative_to("/var/www", "/var/www/") == "/"
        assert relative_to("/other/x", "/var/www") == "/other/x"
        assert relative_to("/a", "/") == "/a"

    def test_to_local(self):
        assert to_local("/a/b.txt", "/tmp/mirror/web") == os.sep.join(
            ["", "tmp", "mirror", "web", "a", "b.txt"]
        )
