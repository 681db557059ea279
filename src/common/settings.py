"""Run settings shared by the CI checks, optionally loaded from a YAML file."""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("configs/guard.yaml")

DEFAULT_PLAINTEXT_KEYWORDS: Tuple[str, ...] = (
    "password:",
    "token:",
    "secret:",
    "key:",
    "cert:",
    "credential:",
    "BEGIN CERTIFICATE",
    "BEGIN PRIVATE KEY",
    "BEGIN RSA PRIVATE KEY",
    "Bearer ",
    "Basic ",
)

DEFAULT_PATH_KEYWORDS: Tuple[str, ...] = (
    "k8s",
    "kubernetes",
    "manifests",
    "deployment",
    "service",
    "ingress",
    "configmap",
    "secret",
)

DEFAULT_EXCLUDED_PATHS: Tuple[str, ...] = (".github/workflows/",)

DEFAULT_MARKER_TOKENS: Tuple[str, ...] = ("filter=git-crypt", "diff=git-crypt")


@dataclass(frozen=True)
class GuardSettings:
    suspicious_upper: int = 50
    suspicious_lower: int = -30
    entropy_threshold: float = 4.5
    entropy_sample_bytes: int = 4096
    plaintext_keywords: Tuple[str, ...] = DEFAULT_PLAINTEXT_KEYWORDS
    path_keywords: Tuple[str, ...] = DEFAULT_PATH_KEYWORDS
    excluded_paths: Tuple[str, ...] = DEFAULT_EXCLUDED_PATHS
    attributes_file: Path = Path(".gitattributes")
    marker_tokens: Tuple[str, ...] = DEFAULT_MARKER_TOKENS
    command_timeout: float = 30.0
    kubeconform_cmd: str = "kubeconform"
    kubeconform_args: Tuple[str, ...] = ()
    git_cmd: str = "git"
    git_crypt_cmd: str = "git-crypt"
    use_git_crypt: bool = True
    fail_on_suspicious: bool = False
    extensions: Tuple[str, ...] = (".yaml", ".yml")

    def override(self, **values: Any) -> "GuardSettings":
        """Return a copy with every non-None value applied."""

        changes = {key: value for key, value in values.items() if value is not None}
        return replace(self, **changes) if changes else self


def load_settings(path: Optional[Path] = None) -> GuardSettings:
    """Load settings from ``path``; a missing file yields the built-in defaults."""

    config_path = path if path is not None else DEFAULT_CONFIG_PATH
    if not config_path.exists():
        if path is not None:
            raise FileNotFoundError(f"Config file not found: {config_path}")
        logger.debug("No settings file at %s; using built-in defaults.", config_path)
        return GuardSettings()

    with config_path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a mapping: {config_path}")
    return settings_from_mapping(data)


def settings_from_mapping(data: Dict[str, Any]) -> GuardSettings:
    known = {item.name: item for item in fields(GuardSettings)}
    defaults = GuardSettings()
    values: Dict[str, Any] = {}
    for key, raw in data.items():
        name = str(key).replace("-", "_")
        if name not in known:
            logger.warning("Ignoring unknown settings key %r.", key)
            continue
        values[name] = _coerce(name, raw, getattr(defaults, name))
    return replace(defaults, **values)


def _coerce(name: str, raw: Any, default: Any) -> Any:
    if isinstance(default, tuple):
        if isinstance(raw, str):
            return (raw,)
        if not isinstance(raw, (list, tuple)):
            raise ValueError(f"Setting {name!r} must be a list")
        return tuple(str(item) for item in raw)
    if isinstance(default, bool):
        if not isinstance(raw, bool):
            raise ValueError(f"Setting {name!r} must be true or false")
        return raw
    if isinstance(default, Path):
        return Path(str(raw))
    if isinstance(default, int):
        return int(raw)
    if isinstance(default, float):
        return float(raw)
    return str(raw)


__all__ = [
    "DEFAULT_CONFIG_PATH",
    "DEFAULT_EXCLUDED_PATHS",
    "DEFAULT_MARKER_TOKENS",
    "DEFAULT_PATH_KEYWORDS",
    "DEFAULT_PLAINTEXT_KEYWORDS",
    "GuardSettings",
    "load_settings",
    "settings_from_mapping",
]
