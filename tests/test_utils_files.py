"""Tests for file utilities."""

from __future__ import annotations

import os
from pathlib import Path

from docslm.utils.files import file_version, iter_document_paths


class TestIterDocumentPaths:
    def test_descends_into_directories_sorted(self, tmp_path: Path) -> None:
        (tmp_path / "sub").mkdir()
        (tmp_path / "b.md").write_text("b")
        (tmp_path / "a.md").write_text("a")
        (tmp_path / "sub" / "c.md").write_text("c")
        (tmp_path / "notes.txt").write_text("n")

        paths = list(iter_document_paths([tmp_path]))

        assert paths == [tmp_path / "a.md", tmp_path / "b.md", tmp_path / "sub" / "c.md"]

    def test_single_file_and_suffix_filter(self, tmp_path: Path) -> None:
        doc = tmp_path / "README.MD"
        doc.write_text("x")
        other = tmp_path / "notes.txt"
        other.write_text("y")

        assert list(iter_document_paths([doc, other])) == [doc]
        assert list(iter_document_paths([other], suffixes=(".txt",))) == [other]

    def test_missing_path_yields_nothing(self, tmp_path: Path) -> None:
        assert list(iter_document_paths([tmp_path / "missing"])) == []


class TestFileVersion:
    def test_mtime_and_size(self, tmp_path: Path) -> None:
        path = tmp_path / "a.md"
        path.write_text("hello")
        os.utime(path, (1_600_000_000, 1_600_000_000))

        assert file_version(path) == (1_600_000_000.0, 5)
