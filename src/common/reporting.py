from __future__ import annotations

import enum
import json
import uuid
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional


class BatchStatus(str, enum.Enum):
    PASS = "PASS"
    FAIL = "FAIL"
    NEUTRAL = "NEUTRAL"

    @property
    def exit_code(self) -> int:
        return 1 if self is BatchStatus.FAIL else 0


def decide_status(total: int, failures: int) -> BatchStatus:
    if total == 0:
        return BatchStatus.NEUTRAL
    if failures > 0:
        return BatchStatus.FAIL
    return BatchStatus.PASS


def join_paths(paths: Iterable[str]) -> str:
    return "\n".join(paths)


def render_env_lines(pairs: Mapping[str, Any]) -> str:
    """Render key/value pairs in GitHub Actions env-file syntax.

    Multi-line values use the ``KEY<<DELIM`` heredoc form; the delimiter is
    ``EOF`` unless the value itself contains such a line.
    """

    lines = []
    for key, value in pairs.items():
        text = _env_value(value)
        if "\n" in text or text == "":
            delimiter = "EOF"
            if delimiter in text.splitlines():
                delimiter = f"EOF_{uuid.uuid4().hex}"
            lines.append(f"{key}<<{delimiter}")
            if text:
                lines.append(text)
            lines.append(delimiter)
        else:
            lines.append(f"{key}={text}")
    return "\n".join(lines) + "\n" if lines else ""


def write_github_env(path: Optional[Path], pairs: Mapping[str, Any]) -> None:
    """Append ``pairs`` to the env file at ``path``; no-op when ``path`` is None."""

    if path is None:
        return
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", encoding="utf-8") as handle:
        handle.write(render_env_lines(pairs))


def write_json_report(path: Path, payload: Any) -> None:
    path = path.resolve()
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as handle:
        json.dump(payload, handle, indent=2)
        handle.write("\n")


def _env_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, enum.Enum):
        return str(value.value)
    if isinstance(value, (list, tuple)):
        return join_paths(str(item) for item in value)
    return str(value)


__all__ = [
    "BatchStatus",
    "decide_status",
    "join_paths",
    "render_env_lines",
    "write_github_env",
    "write_json_report",
]
