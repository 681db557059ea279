from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from src.common.commands import DEFAULT_TIMEOUT, CommandResult, run_command

logger = logging.getLogger(__name__)

KUBECONFORM_FLAGS = (
    "-summary",
    "-verbose",
    "-output",
    "text",
    "-strict",
    "-ignore-missing-schemas",
)

_MISSING_SCHEMA_PATTERN = re.compile(
    r"schema not found|could not find schema|missing schema|no schema|skipped|ignored",
    re.IGNORECASE,
)
# The -summary line always reports a skipped count; a zero count is not a skip.
_ZERO_SKIPPED_PATTERN = re.compile(r"\bskipped:\s*0\b", re.IGNORECASE)


class ValidationOutcome(str, enum.Enum):
    VALID = "valid"
    INVALID = "invalid"
    SKIPPED_MISSING_SCHEMA = "skipped"


@dataclass(frozen=True)
class SchemaCheck:
    path: str
    outcome: ValidationOutcome
    exit_code: int
    output: str


def classify_validation(exit_code: int, output: str) -> ValidationOutcome:
    """Map kubeconform's exit status and text output onto a validation outcome."""

    if exit_code != 0:
        return ValidationOutcome.INVALID
    remaining = _ZERO_SKIPPED_PATTERN.sub("", output or "")
    if _MISSING_SCHEMA_PATTERN.search(remaining):
        return ValidationOutcome.SKIPPED_MISSING_SCHEMA
    return ValidationOutcome.VALID


class SchemaValidator:
    """Adapter around the kubeconform binary."""

    def __init__(
        self,
        kubeconform_cmd: str = "kubeconform",
        *,
        timeout: float = DEFAULT_TIMEOUT,
        extra_args: Sequence[str] = (),
    ) -> None:
        self.kubeconform_cmd = kubeconform_cmd
        self.timeout = timeout
        self.extra_args = tuple(extra_args)

    def ensure_available(self) -> str:
        """Return the kubeconform version; raises ExternalToolUnavailable when missing."""

        result = self._run_command([self.kubeconform_cmd, "-v"])
        version = (result.stdout or result.stderr).strip()
        logger.info("kubeconform version: %s", version or "unknown")
        return version

    def check(self, path: Path, *, display_path: Optional[str] = None) -> SchemaCheck:
        command = [self.kubeconform_cmd, *KUBECONFORM_FLAGS, *self.extra_args, str(path)]
        result = self._run_command(command)
        outcome = classify_validation(result.returncode, result.output)
        logger.debug("kubeconform exit code %d for %s", result.returncode, path)
        return SchemaCheck(
            path=display_path or str(path),
            outcome=outcome,
            exit_code=result.returncode,
            output=result.output,
        )

    def _run_command(self, command: Sequence[str]) -> CommandResult:
        return run_command(command, timeout=self.timeout)


__all__ = [
    "KUBECONFORM_FLAGS",
    "SchemaCheck",
    "SchemaValidator",
    "ValidationOutcome",
    "classify_validation",
]
