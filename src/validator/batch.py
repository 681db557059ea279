from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from src.common.errors import ExternalToolTimeout, FileAccessError
from src.common.reporting import BatchStatus, decide_status
from src.encryption.gitcrypt import GitCrypt

from .encrypted import EncryptedManifests
from .kubeconform import SchemaCheck, SchemaValidator, ValidationOutcome

logger = logging.getLogger(__name__)


class ManifestStatus(str, enum.Enum):
    VALID = "VALID"
    INVALID = "INVALID"
    SKIPPED = "SKIPPED"
    ENCRYPTED = "ENCRYPTED"


_OUTCOME_STATUS = {
    ValidationOutcome.VALID: ManifestStatus.VALID,
    ValidationOutcome.INVALID: ManifestStatus.INVALID,
    ValidationOutcome.SKIPPED_MISSING_SCHEMA: ManifestStatus.SKIPPED,
}


@dataclass(frozen=True)
class ManifestRecord:
    path: str
    status: ManifestStatus
    detail: str = ""
    output: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "status": self.status.value,
            "detail": self.detail,
            "output": self.output,
        }


@dataclass
class ValidationTally:
    records: List[ManifestRecord] = field(default_factory=list)

    def add(self, record: ManifestRecord) -> None:
        self.records.append(record)

    def paths(self, status: ManifestStatus) -> List[str]:
        return [record.path for record in self.records if record.status is status]

    @property
    def total(self) -> int:
        return len(self.records)

    @property
    def status(self) -> BatchStatus:
        return decide_status(self.total, len(self.paths(ManifestStatus.INVALID)))

    def to_env(self) -> Dict[str, Any]:
        valid = self.paths(ManifestStatus.VALID)
        invalid = self.paths(ManifestStatus.INVALID)
        skipped = self.paths(ManifestStatus.SKIPPED)
        encrypted = self.paths(ManifestStatus.ENCRYPTED)
        return {
            "VALIDATION_STATUS": self.status,
            "TOTAL_K8S_FILES": self.total,
            "VALID_K8S_FILES": len(valid),
            "INVALID_K8S_FILES": len(invalid),
            "SKIPPED_K8S_FILES": len(skipped),
            "ENCRYPTED_K8S_FILES": len(encrypted),
            "VALID_FILES_LIST": valid,
            "INVALID_FILES_LIST": invalid,
            "SKIPPED_FILES_LIST": skipped,
            "ENCRYPTED_FILES_LIST": encrypted,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "counts": {
                "total": self.total,
                **{status.value.lower(): len(self.paths(status)) for status in ManifestStatus},
            },
            "files": [record.to_dict() for record in self.records],
        }


class ValidationBatch:
    """Validate manifests one after another, accumulating a tally."""

    def __init__(self, validator: SchemaValidator, git_crypt: Optional[GitCrypt] = None) -> None:
        self.validator = validator
        self.encrypted = EncryptedManifests(validator, git_crypt or GitCrypt(timeout=validator.timeout))

    def run(self, paths: Iterable[str]) -> ValidationTally:
        tally = ValidationTally()
        for path in paths:
            if not Path(path).is_file():
                logger.warning("File not found: %s, skipping", path)
                continue
            try:
                record = self.check(path)
            except FileAccessError as exc:
                logger.warning("Cannot read %s, skipping", exc)
                continue
            logger.info("%s: %s", record.path, record.status.value)
            tally.add(record)
        return tally

    def check(self, path: str) -> ManifestRecord:
        try:
            if self.encrypted.is_encrypted(path):
                return self._check_encrypted(path)
            return self._record(self.validator.check(Path(path), display_path=path))
        except ExternalToolTimeout as exc:
            return ManifestRecord(path, ManifestStatus.INVALID, detail=str(exc))

    def _check_encrypted(self, path: str) -> ManifestRecord:
        logger.info("%s is encrypted", path)
        result = self.encrypted.validate(path)
        if result.check is None:
            return ManifestRecord(path, ManifestStatus.ENCRYPTED, detail=result.reason)
        record = self._record(result.check)
        return ManifestRecord(record.path, record.status, detail="decrypted", output=record.output)

    @staticmethod
    def _record(check: SchemaCheck) -> ManifestRecord:
        detail = "" if check.outcome is ValidationOutcome.VALID else f"exit code {check.exit_code}"
        if check.outcome is ValidationOutcome.SKIPPED_MISSING_SCHEMA:
            detail = "missing schema"
        return ManifestRecord(check.path, _OUTCOME_STATUS[check.outcome], detail=detail, output=check.output)


__all__ = ["ManifestRecord", "ManifestStatus", "ValidationBatch", "ValidationTally"]
