from __future__ import annotations

import logging
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from src.common.errors import FileAccessError
from src.encryption.gitcrypt import GitCrypt, looks_encrypted

from .kubeconform import SchemaCheck, SchemaValidator

logger = logging.getLogger(__name__)

PROBE_BYTES = 100


@dataclass(frozen=True)
class EncryptedValidation:
    """Result of validating an encrypted manifest.

    ``check`` is None when the plaintext could not be recovered; ``reason``
    then says why the file is counted as encrypted.
    """

    path: str
    check: Optional[SchemaCheck] = None
    reason: str = ""


class EncryptedManifests:
    def __init__(self, validator: SchemaValidator, git_crypt: GitCrypt) -> None:
        self.validator = validator
        self.git_crypt = git_crypt

    def is_encrypted(self, path: str) -> bool:
        try:
            with open(path, "rb") as handle:
                head = handle.read(PROBE_BYTES)
        except OSError as exc:
            raise FileAccessError(path, exc.strerror or "file not readable") from exc
        return looks_encrypted(head, probe_bytes=PROBE_BYTES)

    def validate(self, path: str) -> EncryptedValidation:
        if not self.git_crypt.available():
            return EncryptedValidation(path, reason="git-crypt not available")
        if not self.git_crypt.is_unlocked():
            return EncryptedValidation(path, reason="repository is locked")

        plaintext = self.git_crypt.decrypt(path)
        if plaintext is None:
            return EncryptedValidation(path, reason="decryption failed")

        logger.info("Decrypted %s for validation", path)
        with tempfile.TemporaryDirectory(prefix="manifest-guard-") as tmpdir:
            target = Path(tmpdir) / Path(path).name
            target.write_text(plaintext, encoding="utf-8")
            check = self.validator.check(target, display_path=path)
        return EncryptedValidation(path, check=check)


__all__ = ["EncryptedManifests", "EncryptedValidation", "PROBE_BYTES"]
