"""
Tests for services.copy_engine
"""
import os
import tempfile
import threading
import unittest
from unittest.mock import patch

from services.copy_engine import copy_files, free_destination_path


def _write(path, content):
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w") as fh:
        fh.write(content)
    return path


def _read(path):
    with open(path) as fh:
        return fh.read()


class TestCopyEngine(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.src_dir = os.path.join(self._tmp.name, "src")
        self.dest = os.path.join(self._tmp.name, "dest")
        os.makedirs(self.dest)
        self.a = _write(os.path.join(self.src_dir, "a.pdf"), "A")
        self.b = _write(os.path.join(self.src_dir, "b.dwg"), "B")

    def test_copies_files(self):
        copied = copy_files([self.a, self.b], self.dest)
        self.assertEqual(copied, [os.path.join(self.dest, "a.pdf"), os.path.join(self.dest, "b.dwg")])
        self.assertEqual(_read(copied[0]), "A")

    def test_same_source_twice_never_overwrites(self):
        warnings = []
        first = copy_files([self.a], self.dest, warn=warnings.append)
        second = copy_files([self.a], self.dest, warn=warnings.append)
        self.assertEqual(first, [os.path.join(self.dest, "a.pdf")])
        self.assertEqual(second, [os.path.join(self.dest, "a_1.pdf")])
        self.assertEqual(len(warnings), 1)

        third = copy_files([self.a], self.dest)
        self.assertEqual(third, [os.path.join(self.dest, "a_2.pdf")])

    def test_existing_destination_content_preserved(self):
        _write(os.path.join(self.dest, "a.pdf"), "OLD")
        copy_files([self.a], self.dest)
        self.assertEqual(_read(os.path.join(self.dest, "a.pdf")), "OLD")
        self.assertEqual(_read(os.path.join(self.dest, "a_1.pdf")), "A")

    def test_vanished_source_warns_and_continues(self):
        warnings = []
        gone = os.path.join(self.src_dir, "gone.pdf")
        copied = copy_files([gone, self.b], self.dest, warn=warnings.append)
        self.assertEqual(copied, [os.path.join(self.dest, "b.dwg")])
        self.assertEqual(len(warnings), 1)
        self.assertIn("gone.pdf", warnings[0])

    def test_copy_failure_skips_file(self):
        import shutil
        real_copy = shutil.copy2

        def flaky(src, dst):
            if src == self.a:
                raise PermissionError("denied")
            return real_copy(src, dst)

        warnings = []
        with patch("services.copy_engine.shutil.copy2", side_effect=flaky):
            copied = copy_files([self.a, self.b], self.dest, warn=warnings.append)

        self.assertEqual(copied, [os.path.join(self.dest, "b.dwg")])
        self.assertEqual(len(warnings), 1)

    def test_concurrent_copies_never_share_a_name(self):
        results = []
        lock = threading.Lock()

        def worker():
            out = copy_files([self.a], self.dest)
            with lock:
                results.extend(out)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(len(results), 8)
        self.assertEqual(len(set(results)), 8)
        self.assertEqual(len(os.listdir(self.dest)), 8)
        self.assertTrue(all(_read(p) == "A" for p in results))

    def test_failed_copy_leaves_no_placeholder(self):
        warnings = []
        with patch("services.copy_engine.shutil.copy2", side_effect=OSError("disk full")):
            copied = copy_files([self.a], self.dest, warn=warnings.append)
        self.assertEqual(copied, [])
        self.assertEqual(os.listdir(self.dest), [])
        self.assertEqual(len(warnings), 1)

    def test_destination_name_sanitized(self):
        odd = _write(os.path.join(self.src_dir, "x:y.pdf"), "X")
        copied = copy_files([odd], self.dest)
        self.assertEqual(copied, [os.path.join(self.dest, "x_y.pdf")])

    def test_empty_input(self):
        self.assertEqual(copy_files([], self.dest), [])


class TestFreeDestinationPath(unittest.TestCase):
    def test_free_path_unchanged(self):
        with tempfile.TemporaryDirectory() as d:
            p = os.path.join(d, "a.pdf")
            self.assertEqual(free_destination_path(p), p)

    def test_returned_name_is_reserved(self):
        with tempfile.TemporaryDirectory() as d:
            p = os.path.join(d, "a.pdf")
            self.assertEqual(free_destination_path(p), p)
            self.assertTrue(os.path.exists(p))
            self.assertEqual(free_destination_path(p), os.path.join(d, "a_1.pdf"))

    def test_suffix_before_extension(self):
        with tempfile.TemporaryDirectory() as d:
            for name in ("a.tar.gz", "a.tar_1.gz"):
                _write(os.path.join(d, name), "x")
            self.assertEqual(free_destination_path(os.path.join(d, "a.tar.gz")), os.path.join(d, "a.tar_2.gz"))

    def test_no_extension(self):
        with tempfile.TemporaryDirectory() as d:
            _write(os.path.join(d, "README"), "x")
            self.assertEqual(free_destination_path(os.path.join(d, "README")), os.path.join(d, "README_1"))


if __name__ == "__main__":
    unittest.main()
