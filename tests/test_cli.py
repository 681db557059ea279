import json
import tempfile
import unittest
from pathlib import Path

from typer.testing import CliRunner

from src.encryption.cli import app as encryption_app
from src.manifests.cli import app as manifests_app
from src.validator.cli import app as validator_app

POD = "apiVersion: v1\nkind: Pod\nmetadata:\n  name: demo\nspec:\n  containers: []\n"


class CliTests(unittest.TestCase):
    def setUp(self) -> None:
        self.runner = CliRunner()
        self.tmpdir = tempfile.TemporaryDirectory()
        self.root = Path(self.tmpdir.name)
        self.config = self.root / "guard.yaml"
        self.config.write_text(
            "path_keywords: [deployment]\nexcluded_paths: [.github/workflows/]\n",
            encoding="utf-8",
        )
        self.env_file = self.root / "github_env"

    def tearDown(self) -> None:
        self.tmpdir.cleanup()

    def test_detect_writes_manifest_list(self) -> None:
        pod = self.root / "pod.yaml"
        pod.write_text(POD, encoding="utf-8")
        values = self.root / "values.yaml"
        values.write_text("replicas: 1\n", encoding="utf-8")
        listing = self.root / "changed.txt"
        listing.write_text(f"{pod}\n{values}\n", encoding="utf-8")
        out = self.root / "k8s.txt"
        report = self.root / "verdicts.json"

        result = self.runner.invoke(
            manifests_app,
            [
                "--file-list",
                str(listing),
                "--out",
                str(out),
                "--report",
                str(report),
                "--github-env",
                str(self.env_file),
                "--config",
                str(self.config),
            ],
        )

        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(out.read_text(encoding="utf-8"), f"{pod}\n")
        self.assertEqual(len(json.loads(report.read_text(encoding="utf-8"))), 2)
        env = self.env_file.read_text(encoding="utf-8")
        self.assertIn("K8S_FILES_FOUND=true\n", env)
        self.assertIn(f"K8S_YAML_FILES<<EOF\n{pod}\nEOF\n", env)

    def test_missing_file_list_is_a_usage_error(self) -> None:
        result = self.runner.invoke(
            manifests_app,
            ["--file-list", str(self.root / "absent.txt"), "--config", str(self.config)],
        )
        self.assertEqual(result.exit_code, 2)

    def test_validate_without_kubeconform_exits_2(self) -> None:
        pod = self.root / "pod.yaml"
        pod.write_text(POD, encoding="utf-8")
        result = self.runner.invoke(
            validator_app,
            [
                str(pod),
                "--kubeconform",
                str(self.root / "bin" / "kubeconform"),
                "--config",
                str(self.config),
            ],
        )
        self.assertEqual(result.exit_code, 2)
        self.assertIn("Required binary not found", result.output)

    def test_validate_with_no_manifests_is_neutral_without_kubeconform(self) -> None:
        listing = self.root / "manifests.txt"
        listing.write_text("", encoding="utf-8")
        result = self.runner.invoke(
            validator_app,
            [
                "--file-list",
                str(listing),
                "--kubeconform",
                str(self.root / "bin" / "kubeconform"),
                "--github-env",
                str(self.env_file),
                "--config",
                str(self.config),
            ],
        )
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("NEUTRAL", result.output)
        env = self.env_file.read_text(encoding="utf-8")
        self.assertIn("VALIDATION_STATUS=NEUTRAL\n", env)
        self.assertIn("TOTAL_K8S_FILES=0\n", env)

    def test_encryption_check_without_patterns_passes(self) -> None:
        secret = self.root / "secret.yaml"
        secret.write_text("password: hunter2\n", encoding="utf-8")
        report = self.root / "encryption.json"

        result = self.runner.invoke(
            encryption_app,
            [
                "check",
                str(secret),
                "--attributes",
                str(self.root / ".gitattributes"),
                "--no-git-crypt",
                "--report",
                str(report),
                "--github-env",
                str(self.env_file),
                "--config",
                str(self.config),
            ],
        )

        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("ENCRYPTION SCAN SUMMARY", result.output)
        payload = json.loads(report.read_text(encoding="utf-8"))
        self.assertEqual(payload["status"], "PASS")
        self.assertEqual(payload["counts"]["not_required"], 1)
        self.assertIn("ENCRYPTION_STATUS=PASS\n", self.env_file.read_text(encoding="utf-8"))

    def test_encryption_check_with_no_candidates_is_neutral(self) -> None:
        listing = self.root / "changed.txt"
        listing.write_text("", encoding="utf-8")
        result = self.runner.invoke(
            encryption_app,
            [
                "check",
                "--file-list",
                str(listing),
                "--no-git-crypt",
                "--github-env",
                str(self.env_file),
                "--config",
                str(self.config),
            ],
        )
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("NEUTRAL", result.output)
        self.assertIn("ENCRYPTION_STATUS=NEUTRAL\n", self.env_file.read_text(encoding="utf-8"))

    def test_inverted_thresholds_are_rejected(self) -> None:
        listing = self.root / "changed.txt"
        listing.write_text("", encoding="utf-8")
        result = self.runner.invoke(
            encryption_app,
            [
                "check",
                "--file-list",
                str(listing),
                "--suspicious-upper=-40",
                "--config",
                str(self.config),
            ],
        )
        self.assertEqual(result.exit_code, 2)


if __name__ == "__main__":
    unittest.main()
