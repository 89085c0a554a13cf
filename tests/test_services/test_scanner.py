"""Tests for site directory scanning and fingerprinting."""

from __future__ import annotations

import hashlib
import unicodedata
from typing import TYPE_CHECKING

from versui.filesystem.scanner import (
    DEFAULT_CONTENT_TYPE,
    hash_file,
    is_ignored,
    read_ignore_patterns,
    scan_site,
)

if TYPE_CHECKING:
    from pathlib import Path


class TestHashFile:
    def test_sha256_hex(self, tmp_path: Path) -> None:
        path = tmp_path / "a.txt"
        path.write_bytes(b"hello walrus")
        assert hash_file(path) == hashlib.sha256(b"hello walrus").hexdigest()


class TestScanSite:
    def test_fingerprints_every_file(self, site_dir: Path) -> None:
        entries = scan_site(site_dir)

        assert list(entries) == ["/assets/app.js", "/assets/style.css", "/index.html"]
        index = entries["/index.html"]
        assert index.path == "/index.html"
        assert index.size == len("<html>home</html>")
        assert index.content_type == "text/html"
        assert index.content_hash == hashlib.sha256(b"<html>home</html>").hexdigest()
        assert entries["/assets/style.css"].content_type == "text/css"

    def test_unknown_extension_defaults_to_octet_stream(self, site_dir: Path) -> None:
        (site_dir / "blob.unknownext").write_bytes(b"\x00\x01")
        assert scan_site(site_dir)["/blob.unknownext"].content_type == DEFAULT_CONTENT_TYPE

    def test_ignore_patterns_skip_files_and_directories(self, site_dir: Path) -> None:
        (site_dir / "assets" / "app.js.map").write_text("{}", encoding="utf-8")
        (site_dir / "drafts").mkdir()
        (site_dir / "drafts" / "wip.html").write_text("wip", encoding="utf-8")

        entries = scan_site(site_dir, ["*.map", "drafts"])

        assert "/assets/app.js.map" not in entries
        assert "/drafts/wip.html" not in entries
        assert "/assets/app.js" in entries

    def test_paths_are_nfc_normalized(self, site_dir: Path) -> None:
        decomposed = unicodedata.normalize("NFD", "café.html")
        (site_dir / decomposed).write_text("menu", encoding="utf-8")

        entries = scan_site(site_dir)

        assert "/café.html" in entries

    def test_scan_is_deterministic(self, site_dir: Path) -> None:
        assert scan_site(site_dir) == scan_site(site_dir)

    def test_empty_directory(self, tmp_path: Path) -> None:
        assert scan_site(tmp_path) == {}


class TestIgnorePatterns:
    def test_reads_patterns_skipping_comments(self, tmp_path: Path) -> None:
        ignore_file = tmp_path / ".versuignore"
        ignore_file.write_text("# build output\n*.map\n\n  drafts/*  \n", encoding="utf-8")
        assert read_ignore_patterns(ignore_file) == ["*.map", "drafts/*"]

    def test_drops_traversal_patterns(self, tmp_path: Path) -> None:
        ignore_file = tmp_path / ".versuignore"
        ignore_file.write_text("../secret\n..\\secret\n*.log\n", encoding="utf-8")
        assert read_ignore_patterns(ignore_file) == ["*.log"]

    def test_missing_file(self, tmp_path: Path) -> None:
        assert read_ignore_patterns(tmp_path / ".versuignore") == []

    def test_is_ignored(self) -> None:
        assert is_ignored("assets/app.js.map", ["*.map"])
        assert not is_ignored("assets/app.js", ["*.map"])
        assert not is_ignored("anything", [])
