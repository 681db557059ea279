from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from src.common.errors import FileAccessError
from src.common.settings import DEFAULT_EXCLUDED_PATHS, DEFAULT_PATH_KEYWORDS

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("apiVersion", "kind", "metadata", "spec")
_FIELD_PATTERNS = tuple(
    re.compile(rf"^[ \t]*{field}:", re.MULTILINE) for field in REQUIRED_FIELDS
)


class MatchReason(str, enum.Enum):
    PATH_PATTERN = "path-pattern"
    CONTENT_FIELDS = "content-fields"


@dataclass(frozen=True)
class ManifestVerdict:
    path: str
    is_manifest: bool
    match_reason: Optional[MatchReason] = None
    detail: str = ""

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "is_manifest": self.is_manifest,
            "match_reason": self.match_reason.value if self.match_reason else None,
            "detail": self.detail,
        }


def detect_manifest(
    path: str,
    content: Optional[str],
    *,
    path_keywords: Sequence[str] = DEFAULT_PATH_KEYWORDS,
    excluded_paths: Sequence[str] = DEFAULT_EXCLUDED_PATHS,
) -> ManifestVerdict:
    """Decide whether ``path`` is a Kubernetes manifest candidate.

    The exclusion list wins over everything else, then path keywords, then the
    presence of all four top-level Kubernetes fields. ``content`` may be None
    when the caller only wants the path rules.
    """

    for excluded in excluded_paths:
        if excluded in path:
            return ManifestVerdict(path, False, None, f"excluded: path contains {excluded}")

    for keyword in path_keywords:
        if keyword in path:
            return ManifestVerdict(path, True, MatchReason.PATH_PATTERN, f"path keyword '{keyword}'")

    if content is not None and has_kubernetes_fields(content):
        return ManifestVerdict(path, True, MatchReason.CONTENT_FIELDS, "apiVersion/kind/metadata/spec present")

    return ManifestVerdict(path, False, None, "no path keyword or Kubernetes fields")


def has_kubernetes_fields(content: str) -> bool:
    return all(pattern.search(content) for pattern in _FIELD_PATTERNS)


class ManifestDetector:
    def __init__(
        self,
        path_keywords: Sequence[str] = DEFAULT_PATH_KEYWORDS,
        excluded_paths: Sequence[str] = DEFAULT_EXCLUDED_PATHS,
    ) -> None:
        self.path_keywords = tuple(path_keywords)
        self.excluded_paths = tuple(excluded_paths)

    def detect(self, path: str) -> ManifestVerdict:
        content = None
        if not self._decided_by_path(path):
            content = self._read_text(path)
        return detect_manifest(
            path,
            content,
            path_keywords=self.path_keywords,
            excluded_paths=self.excluded_paths,
        )

    def filter(self, paths: Iterable[str]) -> List[ManifestVerdict]:
        verdicts: List[ManifestVerdict] = []
        for path in paths:
            try:
                verdict = self.detect(path)
            except FileAccessError as exc:
                logger.warning("Skipping %s", exc)
                verdict = ManifestVerdict(path, False, None, f"unreadable: {exc.detail}")
            if verdict.is_manifest:
                logger.info("  → %s match: %s (%s)", verdict.match_reason.value, path, verdict.detail)
            else:
                logger.debug("  ➖ Not a Kubernetes manifest: %s (%s)", path, verdict.detail)
            verdicts.append(verdict)
        return verdicts

    def _decided_by_path(self, path: str) -> bool:
        return any(token in path for token in self.excluded_paths + self.path_keywords)

    @staticmethod
    def _read_text(path: str) -> str:
        try:
            return Path(path).read_text(encoding="utf-8", errors="replace")
        except FileNotFoundError as exc:
            raise FileAccessError(path, "file not found") from exc
        except OSError as exc:
            raise FileAccessError(path, exc.strerror or str(exc)) from exc
