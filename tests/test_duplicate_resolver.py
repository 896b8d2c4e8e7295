"""
Tests for services.duplicate_resolver

Folder-affinity tie-breaking between same-named files.
"""
import os
import unittest

from models import CandidateFile
from services.duplicate_resolver import group_by_name, resolve, select_by_folder


def _cand(*parts):
    return CandidateFile.from_path(os.path.join(os.sep, *parts))


class TestResolve(unittest.TestCase):
    def test_singletons_kept(self):
        files = [_cand("r1", "X", "a.pdf"), _cand("r1", "Y", "b.pdf")]
        resolved = resolve(files, "PAP.0171")
        self.assertEqual([c.name for c in resolved], ["a.pdf", "b.pdf"])

    def test_exact_folder_wins(self):
        files = [
            _cand("r2", "OTHER", "A01-2590-A-EB317.pdf"),
            _cand("r1", "PAP.0171", "A01-2590-A-EB317.pdf"),
        ]
        resolved = resolve(files, "PAP.0171")
        self.assertEqual(len(resolved), 1)
        self.assertEqual(resolved.files[0].folder, "PAP.0171")

    def test_exact_beats_contains(self):
        files = [
            _cand("r1", "OLD_PAP.0171", "a.pdf"),
            _cand("r2", "pap.0171", "a.pdf"),
        ]
        self.assertEqual(resolve(files, "PAP.0171").files[0].folder, "pap.0171")

    def test_contains_tier(self):
        files = [
            _cand("r1", "ARCHIVE", "a.pdf"),
            _cand("r2", "OLD_PAP.0171_2019", "a.pdf"),
        ]
        self.assertEqual(resolve(files, "PAP.0171").files[0].folder, "OLD_PAP.0171_2019")

    def test_starts_with_folder_selected(self):
        files = [
            _cand("r1", "ARCHIVE", "a.pdf"),
            _cand("r2", "PAP.0171-rev", "a.pdf"),
        ]
        self.assertEqual(resolve(files, "PAP.0171").files[0].folder, "PAP.0171-rev")

    def test_fallback_first_with_warning(self):
        warnings = []
        files = [
            _cand("r1", "ARCHIVE", "a.pdf"),
            _cand("r2", "OTHER", "a.pdf"),
        ]
        resolved = resolve(files, "PAP.0171", warn=warnings.append)
        self.assertEqual(resolved.files[0].folder, "ARCHIVE")
        self.assertEqual(len(warnings), 1)
        self.assertIn("PAP.0171", warnings[0])

    def test_empty_group_key_falls_back(self):
        warnings = []
        files = [_cand("r1", "B", "a.pdf"), _cand("r2", "A", "a.pdf")]
        resolved = resolve(files, "", warn=warnings.append)
        self.assertEqual(resolved.files[0].folder, "B")
        self.assertEqual(len(warnings), 1)

    def test_names_grouped_case_insensitively(self):
        files = [
            _cand("r1", "OTHER", "A.PDF"),
            _cand("r2", "PAP.0171", "a.pdf"),
        ]
        resolved = resolve(files, "PAP.0171")
        self.assertEqual(len(resolved), 1)
        self.assertEqual(resolved.files[0].folder, "PAP.0171")

    def test_one_entry_per_leaf_name(self):
        files = [
            _cand("r1", "X", "a.pdf"),
            _cand("r2", "Y", "a.pdf"),
            _cand("r3", "Z", "a.pdf"),
            _cand("r1", "X", "b.pdf"),
        ]
        resolved = resolve(files, "Q")
        names = [c.name.lower() for c in resolved]
        self.assertEqual(len(names), len(set(names)))
        self.assertEqual(len(resolved), 2)

    def test_deterministic(self):
        files = [
            _cand("r1", "ARCHIVE", "a.pdf"),
            _cand("r2", "PAP.0171x", "a.pdf"),
            _cand("r3", "xPAP.0171", "a.pdf"),
        ]
        first = resolve(files, "PAP.0171")
        for _ in range(5):
            self.assertEqual(resolve(list(files), "PAP.0171"), first)

    def test_empty_input(self):
        resolved = resolve([], "PAP.0171")
        self.assertEqual(len(resolved), 0)
        self.assertFalse(resolved)


class TestHelpers(unittest.TestCase):
    def test_group_by_name_keeps_first_seen_order(self):
        files = [_cand("r", "b.pdf"), _cand("r", "a.pdf"), _cand("s", "B.pdf")]
        self.assertEqual(list(group_by_name(files)), ["b.pdf", "a.pdf"])

    def test_select_by_folder_always_returns_member(self):
        group = [_cand("r1", "X", "a.pdf"), _cand("r2", "Y", "a.pdf")]
        self.assertIn(select_by_folder(group, "nothing"), group)


if __name__ == "__main__":
    unittest.main()
