import unittest
from pathlib import Path

from src.common.commands import CommandResult
from src.validator.kubeconform import KUBECONFORM_FLAGS, SchemaValidator, ValidationOutcome, classify_validation

VALID_OUTPUT = """deployment.yaml - Deployment demo is valid
Summary: 1 resource found in 1 file - Valid: 1, Invalid: 0, Errors: 0, Skipped: 0
"""

SKIPPED_OUTPUT = """crd.yaml - Widget demo skipped
Summary: 1 resource found in 1 file - Valid: 0, Invalid: 0, Errors: 0, Skipped: 1
"""

INVALID_OUTPUT = """service.yaml - Service demo is invalid: problem validating schema
Summary: 1 resource found in 1 file - Valid: 0, Invalid: 1, Errors: 0, Skipped: 0
"""


class ClassifyValidationTests(unittest.TestCase):
    def test_zero_skipped_summary_is_valid(self) -> None:
        self.assertEqual(classify_validation(0, VALID_OUTPUT), ValidationOutcome.VALID)

    def test_missing_schema_is_skipped(self) -> None:
        self.assertEqual(classify_validation(0, SKIPPED_OUTPUT), ValidationOutcome.SKIPPED_MISSING_SCHEMA)
        self.assertEqual(
            classify_validation(0, "could not find schema for Widget"),
            ValidationOutcome.SKIPPED_MISSING_SCHEMA,
        )

    def test_nonzero_exit_is_invalid(self) -> None:
        self.assertEqual(classify_validation(1, INVALID_OUTPUT), ValidationOutcome.INVALID)
        self.assertEqual(classify_validation(1, "schema not found"), ValidationOutcome.INVALID)

    def test_empty_output(self) -> None:
        self.assertEqual(classify_validation(0, ""), ValidationOutcome.VALID)


class SchemaValidatorTests(unittest.TestCase):
    def setUp(self) -> None:
        self.validator = SchemaValidator(timeout=5)
        self.commands = []

        def fake_command(command):
            self.commands.append(tuple(command))
            if command[1] == "-v":
                return CommandResult(0, "v0.6.4\n", "")
            return CommandResult(1, INVALID_OUTPUT, "")

        self.validator._run_command = fake_command  # type: ignore[method-assign]

    def test_check_runs_strict_validation(self) -> None:
        check = self.validator.check(Path("/tmp/x/service.yaml"), display_path="k8s/service.yaml")
        self.assertEqual(check.outcome, ValidationOutcome.INVALID)
        self.assertEqual(check.path, "k8s/service.yaml")
        self.assertEqual(check.exit_code, 1)
        self.assertEqual(self.commands[0], ("kubeconform", *KUBECONFORM_FLAGS, "/tmp/x/service.yaml"))

    def test_extra_args_precede_the_file(self) -> None:
        validator = SchemaValidator(extra_args=("-kubernetes-version", "1.29.0"))
        commands = []

        def fake_command(command):
            commands.append(tuple(command))
            return CommandResult(0, "", "")

        validator._run_command = fake_command  # type: ignore[method-assign]
        validator.check(Path("app.yaml"))
        self.assertEqual(commands[0][-3:], ("-kubernetes-version", "1.29.0", "app.yaml"))

    def test_ensure_available_reports_version(self) -> None:
        self.assertEqual(self.validator.ensure_available(), "v0.6.4")


if __name__ == "__main__":
    unittest.main()
