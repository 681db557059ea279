"""Encryption requirements declared through ``.gitattributes`` git-crypt filters.

Glob patterns follow the gitattributes dialect: ``*`` and ``?`` stay inside
one path segment, ``**`` spans directories, a pattern without a slash matches
the file name at any depth and a leading slash anchors it to the repository
root. A pattern ending in a slash names a directory and, as in git, matches
no files.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Pattern, Sequence, Tuple

from src.common.errors import ConfigMissing
from src.common.settings import DEFAULT_MARKER_TOKENS

logger = logging.getLogger(__name__)

_MATCH_NOTHING = re.compile(r"(?!)")


@dataclass(frozen=True)
class PatternSet:
    patterns: Tuple[str, ...] = ()
    _compiled: Tuple[Pattern[str], ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_compiled", tuple(translate_glob(p) for p in self.patterns))

    def __len__(self) -> int:
        return len(self.patterns)

    def __iter__(self):
        return iter(self.patterns)

    def matching_pattern(self, path: str) -> Optional[str]:
        candidate = normalise_path(path)
        for pattern, regex in zip(self.patterns, self._compiled):
            if regex.match(candidate):
                return pattern
        return None

    def matches(self, path: str) -> bool:
        return self.matching_pattern(path) is not None


def parse_attributes(text: str, marker_tokens: Sequence[str] = DEFAULT_MARKER_TOKENS) -> PatternSet:
    patterns: List[str] = []
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if not any(token in line for token in marker_tokens):
            continue
        pattern = line.split()[0]
        patterns.append(pattern)
        logger.debug("Found encryption pattern: %s", pattern)
    return PatternSet(tuple(patterns))


def load_pattern_set(
    attributes_file: Path,
    marker_tokens: Sequence[str] = DEFAULT_MARKER_TOKENS,
) -> PatternSet:
    if not attributes_file.is_file():
        raise ConfigMissing(f"No pattern configuration found at {attributes_file}")
    text = attributes_file.read_text(encoding="utf-8", errors="replace")
    return parse_attributes(text, marker_tokens)


def load_pattern_set_or_empty(
    attributes_file: Path,
    marker_tokens: Sequence[str] = DEFAULT_MARKER_TOKENS,
) -> PatternSet:
    try:
        return load_pattern_set(attributes_file, marker_tokens)
    except ConfigMissing as exc:
        logger.warning("%s - assuming no encryption requirements", exc)
        return PatternSet()


def normalise_path(path: str) -> str:
    candidate = path.replace("\\", "/")
    while candidate.startswith("./"):
        candidate = candidate[2:]
    return candidate.lstrip("/")


def translate_glob(pattern: str) -> Pattern[str]:
    anchored = pattern.startswith("/")
    body = pattern.lstrip("/")
    if body.endswith("/"):
        return _MATCH_NOTHING
    regex = _translate_body(body)
    if anchored or "/" in body:
        return re.compile(f"^{regex}$")
    return re.compile(f"^(?:.*/)?{regex}$")


def _translate_body(body: str) -> str:
    parts: List[str] = []
    index = 0
    length = len(body)
    while index < length:
        char = body[index]
        if body.startswith("**/", index):
            parts.append("(?:.*/)?")
            index += 3
        elif body.startswith("**", index):
            parts.append(".*")
            index += 2
        elif char == "*":
            parts.append("[^/]*")
            index += 1
        elif char == "?":
            parts.append("[^/]")
            index += 1
        elif char == "[":
            translated, index = _translate_class(body, index)
            parts.append(translated)
        elif char == "\\" and index + 1 < length:
            parts.append(re.escape(body[index + 1]))
            index += 2
        else:
            parts.append(re.escape(char))
            index += 1
    return "".join(parts)


def _translate_class(body: str, start: int) -> Tuple[str, int]:
    end = body.find("]", start + 2)
    if end < 0:
        return re.escape("["), start + 1
    content = body[start + 1 : end]
    if content[:1] in ("!", "^"):
        content = "^" + content[1:]
    content = content.replace("\\", "\\\\")
    return f"[{content}]", end + 1


__all__ = [
    "PatternSet",
    "load_pattern_set",
    "load_pattern_set_or_empty",
    "normalise_path",
    "parse_attributes",
    "translate_glob",
]
