from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from .errors import ExternalToolTimeout, ExternalToolUnavailable

DEFAULT_TIMEOUT = 30.0


@dataclass(frozen=True)
class CommandResult:
    returncode: int
    stdout: str
    stderr: str

    @property
    def output(self) -> str:
        """Combined stdout/stderr, the way a `2>&1` redirect would show it."""

        parts = [part for part in (self.stdout, self.stderr) if part]
        return "\n".join(part.rstrip("\n") for part in parts)


def run_command(
    command: Sequence[str],
    *,
    timeout: Optional[float] = DEFAULT_TIMEOUT,
    cwd: Optional[Path] = None,
) -> CommandResult:
    """Run an external binary without raising on a nonzero exit status."""

    try:
        completed = subprocess.run(
            list(command),
            check=False,
            capture_output=True,
            text=True,
            errors="replace",
            timeout=timeout,
            cwd=str(cwd) if cwd is not None else None,
        )
    except FileNotFoundError as exc:
        raise ExternalToolUnavailable(command[0]) from exc
    except PermissionError as exc:
        raise ExternalToolUnavailable(command[0]) from exc
    except subprocess.TimeoutExpired as exc:
        raise ExternalToolTimeout(command[0], float(timeout or 0)) from exc
    return CommandResult(completed.returncode, completed.stdout or "", completed.stderr or "")


__all__ = ["CommandResult", "DEFAULT_TIMEOUT", "run_command"]
