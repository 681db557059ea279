from __future__ import annotations

import magic


class MagicSniffer:
    """file(1)-style type and encoding labels from libmagic."""

    def __init__(self) -> None:
        self._describe = magic.Magic()
        self._encoding = magic.Magic(mime_encoding=True)

    def describe(self, data: bytes) -> str:
        if not data:
            return "empty"
        return self._describe.from_buffer(data)

    def encoding(self, data: bytes) -> str:
        if not data:
            return "binary"
        return self._encoding.from_buffer(data)


__all__ = ["MagicSniffer"]
