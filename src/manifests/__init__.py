"""Kubernetes manifest detection for changed files."""

from .detector import ManifestDetector, ManifestVerdict, MatchReason, detect_manifest

__all__ = [
    "ManifestDetector",
    "ManifestVerdict",
    "MatchReason",
    "detect_manifest",
]
