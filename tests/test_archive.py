from __future__ import annotations

import tempfile
import unittest
import zipfile
from pathlib import Path

from bathpack_tool.archive import archive_path_for, create_archive
from bathpack_tool.copier import OverwriteError


class ArchiveTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.addCleanup(self.temp_dir.cleanup)
        self.root = Path(self.temp_dir.name)
        self.tree = self.root / "cw1-abc123"
        (self.tree / "code").mkdir(parents=True)
        (self.tree / "report.txt").write_text("report", encoding="utf-8")
        (self.tree / "code" / "main.py").write_text("print('hi')", encoding="utf-8")

    def test_archive_sits_beside_folder(self) -> None:
        self.assertEqual(archive_path_for(self.tree), self.root / "cw1-abc123.zip")

    def test_create_archive(self) -> None:
        archive = create_archive(self.tree)

        self.assertEqual(archive, self.root / "cw1-abc123.zip")
        with zipfile.ZipFile(archive) as zf:
            self.assertEqual(sorted(zf.namelist()), ["cw1-abc123/code/main.py", "cw1-abc123/report.txt"])
            self.assertEqual(zf.read("cw1-abc123/report.txt").decode("utf-8"), "report")

    def test_folder_is_left_in_place(self) -> None:
        create_archive(self.tree)

        self.assertTrue((self.tree / "report.txt").exists())

    def test_empty_folders_are_kept(self) -> None:
        (self.tree / "empty").mkdir()

        archive = create_archive(self.tree)

        with zipfile.ZipFile(archive) as zf:
            self.assertIn("cw1-abc123/empty/", zf.namelist())

    def test_empty_tree(self) -> None:
        empty = self.root / "nothing"
        empty.mkdir()

        archive = create_archive(empty)

        with zipfile.ZipFile(archive) as zf:
            self.assertEqual(zf.namelist(), ["nothing/"])

    def test_existing_archive_is_not_overwritten(self) -> None:
        existing = self.root / "cw1-abc123.zip"
        existing.write_bytes(b"keep me")

        with self.assertRaises(OverwriteError):
            create_archive(self.tree)

        self.assertEqual(existing.read_bytes(), b"keep me")

    def test_custom_archive_path(self) -> None:
        target = self.root / "bundle.zip"

        archive = create_archive(self.tree, target)

        self.assertEqual(archive, target)
        self.assertTrue(zipfile.is_zipfile(target))

    def test_missing_folder(self) -> None:
        with self.assertRaises(FileNotFoundError):
            create_archive(self.root / "missing")


if __name__ == "__main__":
    unittest.main()
