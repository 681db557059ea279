"""Confidence-scored guess at whether a file is stored encrypted.

Six independent checks each add a signed weight to a running score: positive
weights are evidence of plaintext, negative weights evidence of ciphertext.
The sum is bucketed into UNENCRYPTED / SUSPICIOUS / ENCRYPTED by a pair of
thresholds. Every contribution carries a human-readable reason so a reviewer
can see how a verdict was reached.
"""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence, Tuple

import numpy as np

from src.common.errors import FileAccessError
from src.common.settings import DEFAULT_PLAINTEXT_KEYWORDS, GuardSettings

logger = logging.getLogger(__name__)

WEIGHT_FILE_TYPE = 25
WEIGHT_TEXT_ENCODING = 20
WEIGHT_YAML_STRUCTURE = 30
WEIGHT_NO_YAML_STRUCTURE = -15
WEIGHT_PLAINTEXT_KEYWORD = 35
WEIGHT_NO_PLAINTEXT_KEYWORD = -10
WEIGHT_LOW_ENTROPY = 15
WEIGHT_HIGH_ENTROPY = -20
WEIGHT_GIT_CRYPT = 40

DEFAULT_ENTROPY_THRESHOLD = 4.5
DEFAULT_SAMPLE_BYTES = 4096

_TEXT_TYPE_PATTERN = re.compile(r"ASCII|UTF-8|text|yaml|json", re.IGNORECASE)
_BINARY_TYPE_PATTERN = re.compile(r"data|binary|encrypted", re.IGNORECASE)
_TEXT_ENCODINGS = frozenset({"us-ascii", "utf-8", "ascii"})
_YAML_KEY_PATTERN = re.compile(r"^[ \t]*[a-zA-Z][a-zA-Z0-9_-]*[ \t]*:", re.MULTILINE)
_KUBERNETES_KEY_PATTERN = re.compile(r"(apiVersion|kind|metadata|spec|data):")


class Verdict(str, enum.Enum):
    ENCRYPTED = "ENCRYPTED"
    UNENCRYPTED = "UNENCRYPTED"
    SUSPICIOUS = "SUSPICIOUS"


@dataclass(frozen=True)
class Thresholds:
    suspicious_upper: int = 50
    suspicious_lower: int = -30

    def __post_init__(self) -> None:
        if self.suspicious_upper <= self.suspicious_lower:
            raise ValueError(
                f"suspicious_upper ({self.suspicious_upper}) must be greater than "
                f"suspicious_lower ({self.suspicious_lower})"
            )

    def bucket(self, confidence: int) -> Verdict:
        if confidence >= self.suspicious_upper:
            return Verdict.UNENCRYPTED
        if confidence <= self.suspicious_lower:
            return Verdict.ENCRYPTED
        return Verdict.SUSPICIOUS


@dataclass(frozen=True)
class FileRecord:
    path: str
    data: bytes
    encoding: str
    file_type: str

    @property
    def text(self) -> str:
        return self.data.decode("utf-8", errors="replace")


@dataclass(frozen=True)
class Signal:
    name: str
    weight: int
    reason: str


@dataclass(frozen=True)
class ClassificationResult:
    path: str
    verdict: Verdict
    confidence: int
    reasons: Tuple[str, ...]
    signals: Tuple[Signal, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "verdict": self.verdict.value,
            "confidence": self.confidence,
            "reasons": list(self.reasons),
            "signals": [
                {"name": signal.name, "weight": signal.weight, "reason": signal.reason}
                for signal in self.signals
            ],
        }


class Sniffer(Protocol):
    def describe(self, data: bytes) -> str: ...

    def encoding(self, data: bytes) -> str: ...


class StatusProbe(Protocol):
    def status(self, path: str) -> Optional[bool]: ...


def byte_entropy(data: bytes, sample_bytes: Optional[int] = DEFAULT_SAMPLE_BYTES) -> float:
    """Shannon entropy (natural log) of the byte-value histogram of a prefix."""

    sample = data if sample_bytes is None else data[:sample_bytes]
    if not sample:
        return 0.0
    counts = np.bincount(np.frombuffer(sample, dtype=np.uint8), minlength=256)
    observed = counts[counts > 0].astype(np.float64)
    probabilities = observed / observed.sum()
    return float(-(probabilities * np.log(probabilities)).sum())


def check_file_type(record: FileRecord) -> Signal:
    label = record.file_type
    if _TEXT_TYPE_PATTERN.search(label):
        return Signal("file_type", WEIGHT_FILE_TYPE, "plain text file type")
    if _BINARY_TYPE_PATTERN.search(label):
        return Signal("file_type", -WEIGHT_FILE_TYPE, "binary/encrypted file type")
    return Signal("file_type", 0, f"unknown file type ({label})")


def check_encoding(record: FileRecord) -> Signal:
    encoding = record.encoding.strip().lower()
    if encoding in _TEXT_ENCODINGS:
        return Signal("encoding", WEIGHT_TEXT_ENCODING, "text encoding")
    if encoding == "binary":
        return Signal("encoding", -WEIGHT_TEXT_ENCODING, "binary encoding")
    return Signal("encoding", 0, f"unknown encoding ({encoding or 'none'})")


def check_yaml_structure(record: FileRecord) -> Signal:
    text = record.text
    if _YAML_KEY_PATTERN.search(text) or _KUBERNETES_KEY_PATTERN.search(text):
        return Signal("yaml_structure", WEIGHT_YAML_STRUCTURE, "readable YAML structure")
    return Signal("yaml_structure", WEIGHT_NO_YAML_STRUCTURE, "no readable YAML structure")


def keyword_check(keywords: Sequence[str]) -> Callable[[FileRecord], Signal]:
    def check_plaintext_keywords(record: FileRecord) -> Signal:
        text = record.text
        for keyword in keywords:
            if keyword in text:
                return Signal(
                    "plaintext_keyword",
                    WEIGHT_PLAINTEXT_KEYWORD,
                    f"contains unencrypted patterns ({keyword.strip()})",
                )
        return Signal("plaintext_keyword", WEIGHT_NO_PLAINTEXT_KEYWORD, "no unencrypted patterns found")

    return check_plaintext_keywords


def entropy_check(threshold: float, sample_bytes: Optional[int]) -> Callable[[FileRecord], Signal]:
    def check_entropy(record: FileRecord) -> Signal:
        entropy = byte_entropy(record.data, sample_bytes)
        if entropy > threshold:
            return Signal("entropy", WEIGHT_HIGH_ENTROPY, f"high entropy ({entropy:.2f})")
        return Signal("entropy", WEIGHT_LOW_ENTROPY, f"low entropy ({entropy:.2f})")

    return check_entropy


def status_check(probe: StatusProbe) -> Callable[[FileRecord], Optional[Signal]]:
    def check_git_crypt(record: FileRecord) -> Optional[Signal]:
        state = probe.status(record.path)
        if state is None:
            return None
        if state:
            return Signal("git_crypt", -WEIGHT_GIT_CRYPT, "git-crypt: encrypted")
        return Signal("git_crypt", WEIGHT_GIT_CRYPT, "git-crypt: not encrypted")

    return check_git_crypt


class EncryptionClassifier:
    def __init__(
        self,
        *,
        thresholds: Optional[Thresholds] = None,
        sniffer: Optional[Sniffer] = None,
        status_probe: Optional[StatusProbe] = None,
        plaintext_keywords: Sequence[str] = DEFAULT_PLAINTEXT_KEYWORDS,
        entropy_threshold: float = DEFAULT_ENTROPY_THRESHOLD,
        sample_bytes: Optional[int] = DEFAULT_SAMPLE_BYTES,
    ) -> None:
        self.thresholds = thresholds or Thresholds()
        self._sniffer = sniffer
        self.checks: List[Callable[[FileRecord], Optional[Signal]]] = [
            check_file_type,
            check_encoding,
            check_yaml_structure,
            keyword_check(tuple(plaintext_keywords)),
            entropy_check(entropy_threshold, sample_bytes),
        ]
        if status_probe is not None:
            self.checks.append(status_check(status_probe))

    @property
    def sniffer(self) -> Sniffer:
        if self._sniffer is None:
            self._sniffer = _default_sniffer()
        return self._sniffer

    @classmethod
    def from_settings(
        cls,
        settings: GuardSettings,
        *,
        sniffer: Optional[Sniffer] = None,
        status_probe: Optional[StatusProbe] = None,
    ) -> "EncryptionClassifier":
        return cls(
            thresholds=Thresholds(settings.suspicious_upper, settings.suspicious_lower),
            sniffer=sniffer,
            status_probe=status_probe,
            plaintext_keywords=settings.plaintext_keywords,
            entropy_threshold=settings.entropy_threshold,
            sample_bytes=settings.entropy_sample_bytes,
        )

    def read(self, path: str) -> FileRecord:
        target = Path(path)
        if not target.is_file():
            raise FileAccessError(path, "file not found")
        try:
            data = target.read_bytes()
        except OSError as exc:
            raise FileAccessError(path, exc.strerror or "file not readable") from exc
        return FileRecord(
            path=path,
            data=data,
            encoding=self.sniffer.encoding(data),
            file_type=self.sniffer.describe(data),
        )

    def classify(self, path: str) -> ClassificationResult:
        return self.classify_record(self.read(path))

    def classify_record(self, record: FileRecord) -> ClassificationResult:
        signals = tuple(
            signal for signal in (check(record) for check in self.checks) if signal is not None
        )
        confidence = sum(signal.weight for signal in signals)
        verdict = self.thresholds.bucket(confidence)
        logger.debug("%s: confidence %d -> %s", record.path, confidence, verdict.value)
        return ClassificationResult(
            path=record.path,
            verdict=verdict,
            confidence=confidence,
            reasons=tuple(signal.reason for signal in signals),
            signals=signals,
        )


def _default_sniffer() -> Sniffer:
    # python-magic loads libmagic at import time.
    from .sniff import MagicSniffer

    return MagicSniffer()


__all__ = [
    "ClassificationResult",
    "EncryptionClassifier",
    "FileRecord",
    "Signal",
    "Thresholds",
    "Verdict",
    "byte_entropy",
    "check_encoding",
    "check_file_type",
    "check_yaml_structure",
]
