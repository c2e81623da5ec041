"""Tests for workspace listing, exclude globs, and the text file reader."""

from __future__ import annotations

import os
import subprocess
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from seqsearch.errors import ReadError
from seqsearch.workspace import (
    WorkspaceFileLister,
    WorkspaceFileReader,
    display_path_for,
    should_exclude,
    should_exclude_dir,
)


def _make_tree(root: Path) -> None:
    (root / "a.txt").write_text("a", encoding="utf-8")
    (root / ".hidden").write_text("h", encoding="utf-8")
    (root / "src").mkdir()
    (root / "src" / "b.py").write_text("b", encoding="utf-8")
    (root / "node_modules").mkdir()
    (root / "node_modules" / "x.js").write_text("x", encoding="utf-8")
    (root / "src" / "node_modules").mkdir()
    (root / "src" / "node_modules" / "y.js").write_text("y", encoding="utf-8")


class ExcludeGlobTests(unittest.TestCase):
    def test_double_star_directory_glob_matches_top_level_and_nested(self) -> None:
        patterns = ("**/node_modules/**",)

        self.assertTrue(should_exclude("node_modules/x.js", patterns))
        self.assertTrue(should_exclude("src/node_modules/y.js", patterns))
        self.assertFalse(should_exclude("src/b.py", patterns))

    def test_extension_glob(self) -> None:
        self.assertTrue(should_exclude("logs/app.log", ("*.log",)))
        self.assertFalse(should_exclude("logs/app.txt", ("*.log",)))

    def test_directory_glob_prunes_whole_directory(self) -> None:
        patterns = ("**/node_modules/**", "*.log")

        self.assertTrue(should_exclude_dir("node_modules", patterns))
        self.assertTrue(should_exclude_dir("src/node_modules", patterns))
        self.assertFalse(should_exclude_dir("src", patterns))
        self.assertFalse(should_exclude_dir("logs", patterns))


class WorkspaceFileListerTests(unittest.TestCase):
    def test_walk_listing_applies_excludes_and_hides_dotfiles(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            _make_tree(root)
            lister = WorkspaceFileLister(root, show_hidden=False, skip_gitignored=False)

            with mock.patch("seqsearch.workspace.shutil.which", return_value=None):
                files = lister.list_files(["**/node_modules/**"])

            labels = sorted(path.relative_to(root).as_posix() for path in files)
            self.assertEqual(labels, ["a.txt", "src/b.py"])

    def test_walk_listing_includes_hidden_when_enabled(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            _make_tree(root)
            lister = WorkspaceFileLister(root, show_hidden=True, skip_gitignored=False)

            with mock.patch("seqsearch.workspace.shutil.which", return_value=None):
                files = lister.list_files([])

            labels = {path.relative_to(root).as_posix() for path in files}
            self.assertIn(".hidden", labels)
            self.assertIn("node_modules/x.js", labels)

    def test_walk_prunes_gitignored_paths(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            _make_tree(root)
            rules = mock.Mock()
            rules.is_ignored.side_effect = lambda path: path.name in {"a.txt", "node_modules"}
            lister = WorkspaceFileLister(root, skip_gitignored=True)

            with mock.patch("seqsearch.workspace.shutil.which", return_value=None), mock.patch(
                "seqsearch.workspace.get_ignore_rules", return_value=rules
            ):
                files = lister.list_files([])

            self.assertEqual([path.relative_to(root).as_posix() for path in files], ["src/b.py"])

    def test_walk_does_not_descend_into_excluded_directories(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            _make_tree(root)
            visited: list[str] = []
            real_walk = os.walk

            def recording_walk(top):
                for entry in real_walk(top):
                    visited.append(Path(entry[0]).relative_to(root).as_posix())
                    yield entry

            lister = WorkspaceFileLister(root, skip_gitignored=False)
            with mock.patch("seqsearch.workspace.shutil.which", return_value=None), mock.patch(
                "seqsearch.workspace.os.walk", side_effect=recording_walk
            ):
                files = lister.list_files(["**/node_modules/**"])

            self.assertEqual(sorted(visited), [".", "src"])
            self.assertEqual(sorted(path.name for path in files), ["a.txt", "b.py"])

    def test_rg_listing_respects_gitignore_and_prunes_path_globs(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            _make_tree(root)
            completed = subprocess.CompletedProcess([], 0, stdout="a.txt\nsrc/b.py\nnode_modules/x.js\n")
            lister = WorkspaceFileLister(root, skip_gitignored=True)

            with mock.patch("seqsearch.workspace.shutil.which", return_value="/usr/bin/rg"), mock.patch(
                "seqsearch.workspace.subprocess.run", return_value=completed
            ) as run:
                files = lister.list_files(["**/node_modules/**", "*.log"])

            cmd = run.call_args.args[0]
            self.assertNotIn("--no-ignore", cmd)
            self.assertIn("!**/node_modules/**", cmd)
            self.assertNotIn("!*.log", cmd)
            self.assertEqual([path.relative_to(root).as_posix() for path in files], ["a.txt", "src/b.py"])

    def test_rg_listing_without_gitignore_passes_no_ignore(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            completed = subprocess.CompletedProcess([], 0, stdout="")
            lister = WorkspaceFileLister(root, skip_gitignored=False)

            with mock.patch("seqsearch.workspace.shutil.which", return_value="/usr/bin/rg"), mock.patch(
                "seqsearch.workspace.subprocess.run", return_value=completed
            ) as run:
                lister.list_files([])

            self.assertIn("--no-ignore", run.call_args.args[0])


    def test_display_path_is_root_relative(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            display_path = display_path_for(root)

            self.assertEqual(display_path(root / "src" / "b.py"), "src/b.py")


class WorkspaceFileReaderTests(unittest.TestCase):
    def test_reads_utf8_and_latin1_text(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            utf8 = Path(tmp) / "u.txt"
            utf8.write_text("héllo", encoding="utf-8")
            latin = Path(tmp) / "l.txt"
            latin.write_bytes("caf\xe9".encode("latin-1"))
            reader = WorkspaceFileReader()

            self.assertEqual(reader.read(utf8), "héllo")
            self.assertEqual(reader.read(latin), "caf\xe9")

    def test_nul_bytes_mark_file_as_binary(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "blob.txt"
            path.write_bytes(b"abc\x00def")

            with self.assertRaises(ReadError):
                WorkspaceFileReader().read(path)

    def test_oversized_and_missing_files_raise_read_error(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            big = Path(tmp) / "big.txt"
            big.write_text("x" * 20, encoding="utf-8")
            reader = WorkspaceFileReader(max_file_bytes=10)

            with self.assertRaises(ReadError):
                reader.read(big)
            with self.assertRaises(ReadError):
                reader.read(Path(tmp) / "missing.txt")


if __name__ == "__main__":
    unittest.main()
