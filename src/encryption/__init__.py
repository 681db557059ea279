"""Encryption checks for files covered by git-crypt attributes."""

from .classifier import ClassificationResult, EncryptionClassifier, Thresholds, Verdict
from .patterns import PatternSet, load_pattern_set

__all__ = [
    "ClassificationResult",
    "EncryptionClassifier",
    "PatternSet",
    "Thresholds",
    "Verdict",
    "load_pattern_set",
]
