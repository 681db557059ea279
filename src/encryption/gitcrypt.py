from __future__ import annotations

import logging
from typing import Optional, Sequence

from src.common.commands import DEFAULT_TIMEOUT, CommandResult, run_command
from src.common.errors import ExternalToolTimeout, ExternalToolUnavailable

logger = logging.getLogger(__name__)

GIT_CRYPT_HEADER = b"\x00GITCRYPT\x00"
# C0 control characters other than whitespace, plus DEL.
_CONTROL_BYTES = frozenset(set(range(0x20)) - {0x09, 0x0A, 0x0B, 0x0C, 0x0D}) | {0x7F}


def has_git_crypt_header(data: bytes) -> bool:
    return data.startswith(GIT_CRYPT_HEADER)


def looks_encrypted(head: bytes, *, probe_bytes: int = 100) -> bool:
    """True when the header is present or the leading bytes contain control characters."""

    if has_git_crypt_header(head):
        return True
    return any(byte in _CONTROL_BYTES for byte in head[:probe_bytes])


class GitCrypt:
    """Thin wrapper over the git-crypt and git binaries.

    Every probe degrades to "unknown" when git-crypt is missing or slow; the
    callers decide whether that matters.
    """

    def __init__(
        self,
        git_crypt_cmd: str = "git-crypt",
        *,
        git_cmd: str = "git",
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.git_crypt_cmd = git_crypt_cmd
        self.git_cmd = git_cmd
        self.timeout = timeout
        self._available: Optional[bool] = None

    def available(self) -> bool:
        if self._available is None:
            try:
                result = self._run_command([self.git_crypt_cmd, "--version"])
            except (ExternalToolUnavailable, ExternalToolTimeout):
                self._available = False
            else:
                self._available = result.returncode == 0
                if self._available:
                    logger.debug("git-crypt version: %s", result.output.strip())
        return self._available

    def status(self, path: str) -> Optional[bool]:
        """Encryption state reported by ``git-crypt status``; None when unknown."""

        if not self.available():
            return None
        try:
            result = self._run_command([self.git_crypt_cmd, "status", path])
        except (ExternalToolUnavailable, ExternalToolTimeout) as exc:
            logger.debug("git-crypt status unavailable for %s: %s", path, exc)
            return None
        return parse_status(result.output)

    def is_unlocked(self) -> bool:
        if not self.available():
            return False
        try:
            result = self._run_command([self.git_crypt_cmd, "status"])
        except (ExternalToolUnavailable, ExternalToolTimeout):
            return False
        return result.returncode == 0

    def decrypt(self, path: str, *, revision: str = "HEAD") -> Optional[str]:
        """Plaintext of ``path`` at ``revision`` via the git-crypt textconv driver."""

        try:
            result = self._run_command([self.git_cmd, "show", "--textconv", f"{revision}:{path}"])
        except (ExternalToolUnavailable, ExternalToolTimeout) as exc:
            logger.warning("Failed to decrypt %s: %s", path, exc)
            return None
        if result.returncode != 0:
            logger.warning("Failed to decrypt %s: %s", path, result.stderr.strip())
            return None
        return result.stdout

    def _run_command(self, command: Sequence[str]) -> CommandResult:
        return run_command(command, timeout=self.timeout)


def parse_status(output: str) -> Optional[bool]:
    # "not encrypted" contains "encrypted", so it has to be tested first. git-crypt
    # also reports "encrypted: <file> *** WARNING: ... NOT ENCRYPTED! ***" for
    # plaintext blobs that match a filter.
    text = output.lower()
    if "not encrypted" in text:
        return False
    if "encrypted" in text:
        return True
    return None


__all__ = [
    "GIT_CRYPT_HEADER",
    "GitCrypt",
    "has_git_crypt_header",
    "looks_encrypted",
    "parse_status",
]
