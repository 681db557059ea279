from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from src.common.errors import FileAccessError
from src.common.reporting import BatchStatus, decide_status

from .classifier import ClassificationResult, EncryptionClassifier, Verdict
from .patterns import PatternSet

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileEntry:
    path: str
    required: bool
    pattern: Optional[str] = None
    result: Optional[ClassificationResult] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "path": self.path,
            "required": self.required,
            "pattern": self.pattern,
        }
        if self.result is not None:
            data.update(self.result.to_dict())
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass
class EncryptionTally:
    fail_on_suspicious: bool = False
    entries: List[FileEntry] = field(default_factory=list)

    def add(self, entry: FileEntry) -> None:
        self.entries.append(entry)

    def _paths(self, verdict: Verdict) -> List[str]:
        return [
            entry.path
            for entry in self.entries
            if entry.result is not None and entry.result.verdict is verdict
        ]

    @property
    def total(self) -> int:
        return len(self.entries)

    @property
    def encrypted(self) -> List[str]:
        return self._paths(Verdict.ENCRYPTED)

    @property
    def unencrypted(self) -> List[str]:
        return self._paths(Verdict.UNENCRYPTED)

    @property
    def suspicious(self) -> List[str]:
        return self._paths(Verdict.SUSPICIOUS)

    @property
    def errors(self) -> List[FileEntry]:
        return [entry for entry in self.entries if entry.error is not None]

    @property
    def not_required(self) -> List[str]:
        return [entry.path for entry in self.entries if not entry.required]

    @property
    def status(self) -> BatchStatus:
        failures = len(self.unencrypted)
        if self.fail_on_suspicious:
            failures += len(self.suspicious)
        return decide_status(self.total, failures)

    def to_env(self) -> Dict[str, Any]:
        return {
            "ENCRYPTION_STATUS": self.status,
            "ENCRYPTED_COUNT": len(self.encrypted),
            "UNENCRYPTED_COUNT": len(self.unencrypted),
            "SUSPICIOUS_COUNT": len(self.suspicious),
            "ENCRYPTION_ERROR_COUNT": len(self.errors),
            "ENCRYPTED_FILES": self.encrypted,
            "UNENCRYPTED_FILES": self.unencrypted,
            "SUSPICIOUS_FILES": self.suspicious,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "counts": {
                "total": self.total,
                "not_required": len(self.not_required),
                "encrypted": len(self.encrypted),
                "unencrypted": len(self.unencrypted),
                "suspicious": len(self.suspicious),
                "errors": len(self.errors),
            },
            "files": [entry.to_dict() for entry in self.entries],
        }


class EncryptionBatch:
    """Classify every candidate that the pattern set says must be encrypted.

    With ``pattern_set`` set to None every candidate is treated as required.
    """

    def __init__(
        self,
        classifier: EncryptionClassifier,
        pattern_set: Optional[PatternSet],
        *,
        fail_on_suspicious: bool = False,
    ) -> None:
        self.classifier = classifier
        self.pattern_set = pattern_set
        self.fail_on_suspicious = fail_on_suspicious

    def run(self, paths: Iterable[str]) -> EncryptionTally:
        tally = EncryptionTally(fail_on_suspicious=self.fail_on_suspicious)
        for path in paths:
            tally.add(self.check(path))
        return tally

    def check(self, path: str) -> FileEntry:
        pattern: Optional[str] = None
        if self.pattern_set is not None:
            pattern = self.pattern_set.matching_pattern(path)
            if pattern is None:
                logger.info("%s does not need encryption (no matching pattern)", path)
                return FileEntry(path, required=False)
            logger.info("%s should be encrypted (matches %s)", path, pattern)
        try:
            result = self.classifier.classify(path)
        except FileAccessError as exc:
            logger.error("Cannot classify %s", exc)
            return FileEntry(path, required=True, pattern=pattern, error=exc.detail)
        return FileEntry(path, required=True, pattern=pattern, result=result)


__all__ = ["EncryptionBatch", "EncryptionTally", "FileEntry"]
