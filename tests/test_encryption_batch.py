import tempfile
import unittest
from pathlib import Path

from src.common.reporting import BatchStatus
from src.encryption.batch import EncryptionBatch
from src.encryption.classifier import EncryptionClassifier, Verdict
from src.encryption.patterns import PatternSet, parse_attributes


class LabelSniffer:
    """Treats files with control bytes as binary data, everything else as ASCII text."""

    def describe(self, data: bytes) -> str:
        return "data" if b"\x00" in data else "ASCII text"

    def encoding(self, data: bytes) -> str:
        return "binary" if b"\x00" in data else "us-ascii"


class EncryptionBatchTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tmpdir = tempfile.TemporaryDirectory()
        self.root = Path(self.tmpdir.name)
        self.classifier = EncryptionClassifier(sniffer=LabelSniffer())
        self.pattern_set = parse_attributes(f"{self.root.as_posix()}/secrets/*.yaml filter=git-crypt\n")
        (self.root / "secrets").mkdir()

    def tearDown(self) -> None:
        self.tmpdir.cleanup()

    def _write(self, name: str, data: bytes) -> str:
        path = self.root / name
        path.write_bytes(data)
        return path.as_posix()

    def test_plaintext_secret_fails_the_batch(self) -> None:
        leaked = self._write("secrets/db.yaml", b"apiVersion: v1\nkind: Secret\ndata:\n  password: hunter2\n")
        sealed = self._write("secrets/api.yaml", b"\x00GITCRYPT\x00" + bytes(range(256)) * 8)
        other = self._write("app.yaml", b"password: not-checked\n")

        tally = EncryptionBatch(self.classifier, self.pattern_set).run([leaked, sealed, other])

        self.assertEqual(tally.status, BatchStatus.FAIL)
        self.assertEqual(tally.unencrypted, [leaked])
        self.assertEqual(tally.encrypted, [sealed])
        self.assertEqual(tally.not_required, [other])
        self.assertEqual(tally.entries[0].pattern, self.pattern_set.patterns[0])
        env = tally.to_env()
        self.assertEqual(env["UNENCRYPTED_COUNT"], 1)
        self.assertEqual(env["ENCRYPTED_COUNT"], 1)
        self.assertEqual(env["SUSPICIOUS_COUNT"], 0)
        self.assertEqual(env["UNENCRYPTED_FILES"], [leaked])

    def test_suspicious_files_only_fail_when_asked(self) -> None:
        odd = self._write("secrets/odd.yaml", b"name: value\x00\n")
        lenient = EncryptionBatch(self.classifier, self.pattern_set).run([odd])
        self.assertEqual(lenient.suspicious, [odd])
        self.assertEqual(lenient.status, BatchStatus.PASS)

        strict = EncryptionBatch(self.classifier, self.pattern_set, fail_on_suspicious=True).run([odd])
        self.assertEqual(strict.status, BatchStatus.FAIL)

    def test_unreadable_files_are_recorded_without_aborting(self) -> None:
        missing = (self.root / "secrets" / "gone.yaml").as_posix()
        sealed = self._write("secrets/api.yaml", b"\x00GITCRYPT\x00" + bytes(range(256)) * 8)

        tally = EncryptionBatch(self.classifier, self.pattern_set).run([missing, sealed])

        self.assertEqual([entry.path for entry in tally.errors], [missing])
        self.assertEqual(tally.errors[0].error, "file not found")
        self.assertEqual(tally.encrypted, [sealed])
        self.assertEqual(tally.status, BatchStatus.PASS)

    def test_no_candidates_is_neutral(self) -> None:
        tally = EncryptionBatch(self.classifier, self.pattern_set).run([])
        self.assertEqual(tally.status, BatchStatus.NEUTRAL)
        self.assertEqual(tally.status.exit_code, 0)

    def test_empty_pattern_set_requires_nothing(self) -> None:
        path = self._write("secrets/db.yaml", b"password: hunter2\n")
        tally = EncryptionBatch(self.classifier, PatternSet()).run([path])
        self.assertEqual(tally.not_required, [path])
        self.assertEqual(tally.status, BatchStatus.PASS)

    def test_without_pattern_set_every_file_is_classified(self) -> None:
        path = self._write("notes.txt", b"token: abc\n")
        tally = EncryptionBatch(self.classifier, None).run([path])
        self.assertTrue(tally.entries[0].required)
        self.assertIsNone(tally.entries[0].pattern)
        self.assertEqual(tally.entries[0].result.verdict, Verdict.UNENCRYPTED)
        self.assertEqual(tally.to_dict()["counts"]["unencrypted"], 1)


if __name__ == "__main__":
    unittest.main()
