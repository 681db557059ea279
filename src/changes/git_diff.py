"""Discover the YAML files changed by a push or pull request."""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, TextIO

from src.common.commands import DEFAULT_TIMEOUT, run_command
from src.common.errors import ExternalToolTimeout, ExternalToolUnavailable

logger = logging.getLogger(__name__)

PULL_REQUEST_EVENT = "pull_request"


@dataclass(frozen=True)
class DiffRange:
    base: str
    head: str

    @property
    def spec(self) -> str:
        return f"{self.base}...{self.head}"


def resolve_range(event_name: Optional[str], base_ref: Optional[str], head_ref: Optional[str]) -> DiffRange:
    """Pick the comparison range the way the workflow expects.

    Pull requests compare the remote-tracking base and head branches; every
    other trigger compares the last commit with its parent.
    """

    if event_name == PULL_REQUEST_EVENT and base_ref and head_ref:
        return DiffRange(f"origin/{base_ref}", f"origin/{head_ref}")
    return DiffRange("HEAD~1", "HEAD")


class ChangeSource:
    def __init__(
        self,
        diff_range: DiffRange,
        *,
        git_cmd: str = "git",
        extensions: Sequence[str] = (".yaml", ".yml"),
        repo_root: Optional[Path] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.diff_range = diff_range
        self.git_cmd = git_cmd
        self.extensions = tuple(extensions)
        self.repo_root = repo_root
        self.timeout = timeout

    def changed_yaml_files(self) -> List[str]:
        names = self._diff_names()
        existing: List[str] = []
        for name in filter_extensions(dedupe(names), self.extensions):
            candidate = Path(name) if self.repo_root is None else self.repo_root / name
            if candidate.is_file():
                existing.append(name)
                logger.debug("  ✓ %s (exists)", name)
            else:
                logger.info("  ✗ %s (deleted, skipping)", name)
        return existing

    def _diff_names(self) -> List[str]:
        pathspecs = [f"*{ext}" for ext in self.extensions]
        command = [self.git_cmd, "diff", "--name-only", self.diff_range.spec, "--", *pathspecs]
        logger.info("Comparing %s", self.diff_range.spec)
        try:
            result = self._run_command(command)
        except (ExternalToolUnavailable, ExternalToolTimeout) as exc:
            logger.warning("git diff failed (%s); treating as no changes.", exc)
            return []
        if result.returncode != 0:
            logger.warning(
                "git diff exited with %d; treating as no changes: %s",
                result.returncode,
                result.stderr.strip(),
            )
            return []
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    def _run_command(self, command: Sequence[str]):
        return run_command(command, timeout=self.timeout, cwd=self.repo_root)


def filter_extensions(paths: Iterable[str], extensions: Sequence[str]) -> List[str]:
    suffixes = tuple(ext.lower() for ext in extensions)
    return [path for path in paths if path.lower().endswith(suffixes)]


def dedupe(paths: Iterable[str]) -> List[str]:
    unique: List[str] = []
    seen = set()
    for path in paths:
        if path in seen:
            continue
        seen.add(path)
        unique.append(path)
    return unique


def read_path_list(source: str, *, stdin: Optional[TextIO] = None) -> List[str]:
    """Read a newline-delimited path list from a file, or from stdin for ``-``."""

    if source == "-":
        stream = stdin if stdin is not None else sys.stdin
        lines = stream.read().splitlines()
    else:
        lines = Path(source).read_text(encoding="utf-8").splitlines()
    return dedupe(line.strip() for line in lines if line.strip())


def gather_candidates(
    paths: Sequence[str],
    file_list: Optional[str],
    source: Optional[ChangeSource],
) -> List[str]:
    """Combine explicit paths and a list file; fall back to git diff when neither is given."""

    candidates = list(paths)
    if file_list:
        candidates.extend(read_path_list(file_list))
    elif not candidates and source is not None:
        candidates = source.changed_yaml_files()
    return dedupe(candidates)


__all__ = [
    "ChangeSource",
    "DiffRange",
    "dedupe",
    "filter_extensions",
    "gather_candidates",
    "read_path_list",
    "resolve_range",
]
