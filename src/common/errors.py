from __future__ import annotations


class GuardError(Exception):
    """Base class for manifest-guard failures."""


class FileAccessError(GuardError):
    """Raised when a candidate file is missing or unreadable."""

    def __init__(self, path: str, detail: str) -> None:
        super().__init__(f"{path}: {detail}")
        self.path = path
        self.detail = detail


class ExternalToolUnavailable(GuardError):
    """Raised when a required binary cannot be executed."""

    def __init__(self, tool: str) -> None:
        super().__init__(f"Required binary not found: {tool}")
        self.tool = tool


class ExternalToolTimeout(GuardError):
    """Raised when an external binary does not finish within its timeout."""

    def __init__(self, tool: str, timeout: float) -> None:
        super().__init__(f"{tool} timed out after {timeout:g}s")
        self.tool = tool
        self.timeout = timeout


class ConfigMissing(GuardError):
    """Raised when the encryption pattern configuration file does not exist."""


__all__ = [
    "ConfigMissing",
    "ExternalToolTimeout",
    "ExternalToolUnavailable",
    "FileAccessError",
    "GuardError",
]
