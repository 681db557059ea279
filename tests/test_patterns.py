import tempfile
import unittest
from pathlib import Path

from src.common.errors import ConfigMissing
from src.encryption.patterns import (
    PatternSet,
    load_pattern_set,
    load_pattern_set_or_empty,
    parse_attributes,
)

ATTRIBUTES = """
# secrets are encrypted with git-crypt
secrets/*.yaml filter=git-crypt diff=git-crypt
*.key filter=git-crypt diff=git-crypt

/config/prod.yaml diff=git-crypt
charts/**/values-secret.yaml filter=git-crypt
*.png binary
"""


class PatternParsingTests(unittest.TestCase):
    def test_only_git_crypt_lines_become_patterns(self) -> None:
        pattern_set = parse_attributes(ATTRIBUTES)
        self.assertEqual(
            pattern_set.patterns,
            (
                "secrets/*.yaml",
                "*.key",
                "/config/prod.yaml",
                "charts/**/values-secret.yaml",
            ),
        )

    def test_commented_marker_lines_are_ignored(self) -> None:
        pattern_set = parse_attributes("  # secrets/*.yaml filter=git-crypt\n")
        self.assertEqual(len(pattern_set), 0)

    def test_load_pattern_set_reads_the_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            attributes = Path(tmpdir) / ".gitattributes"
            attributes.write_text(ATTRIBUTES, encoding="utf-8")
            self.assertEqual(len(load_pattern_set(attributes)), 4)

    def test_missing_attributes_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            attributes = Path(tmpdir) / ".gitattributes"
            with self.assertRaises(ConfigMissing):
                load_pattern_set(attributes)
            empty = load_pattern_set_or_empty(attributes)
            self.assertEqual(len(empty), 0)
            self.assertFalse(empty.matches("secrets/db.yaml"))


class PatternMatchingTests(unittest.TestCase):
    def setUp(self) -> None:
        self.pattern_set = parse_attributes(ATTRIBUTES)

    def test_directory_pattern_stays_in_its_directory(self) -> None:
        self.assertEqual(self.pattern_set.matching_pattern("secrets/db.yaml"), "secrets/*.yaml")
        self.assertEqual(self.pattern_set.matching_pattern("./secrets/db.yaml"), "secrets/*.yaml")
        self.assertIsNone(self.pattern_set.matching_pattern("app/secrets.yaml"))
        self.assertIsNone(self.pattern_set.matching_pattern("secrets/nested/db.yaml"))

    def test_basename_pattern_matches_at_any_depth(self) -> None:
        self.assertTrue(self.pattern_set.matches("tls.key"))
        self.assertTrue(self.pattern_set.matches("deploy/certs/tls.key"))
        self.assertFalse(self.pattern_set.matches("deploy/certs/tls.key.pub"))

    def test_leading_slash_anchors_to_root(self) -> None:
        self.assertTrue(self.pattern_set.matches("config/prod.yaml"))
        self.assertFalse(self.pattern_set.matches("app/config/prod.yaml"))

    def test_double_star_crosses_directories(self) -> None:
        self.assertTrue(self.pattern_set.matches("charts/values-secret.yaml"))
        self.assertTrue(self.pattern_set.matches("charts/api/prod/values-secret.yaml"))
        self.assertFalse(self.pattern_set.matches("other/values-secret.yaml"))

    def test_directory_pattern_matches_no_files(self) -> None:
        pattern_set = PatternSet(("secrets/",))
        self.assertFalse(pattern_set.matches("secrets/db.yaml"))
        self.assertFalse(pattern_set.matches("secrets/"))

    def test_question_mark_and_classes(self) -> None:
        pattern_set = PatternSet(("env/?.yaml", "keys/[!p]*.pem"))
        self.assertTrue(pattern_set.matches("env/a.yaml"))
        self.assertFalse(pattern_set.matches("env/ab.yaml"))
        self.assertTrue(pattern_set.matches("keys/server.pem"))
        self.assertFalse(pattern_set.matches("keys/public.pem"))


if __name__ == "__main__":
    unittest.main()
