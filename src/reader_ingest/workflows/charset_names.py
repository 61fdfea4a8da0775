"""Charset name normalization and decoder availability checks."""

from __future__ import annotations

import codecs
from typing import Mapping, Optional

from .ingest_config import CHARSET_NAME_MAP, CODEC_ALIASES


class UnsupportedEncoding(LookupError):
    """Raised internally when a charset name has no text decoder."""


def _clean(raw_name: Optional[str]) -> str:
    return (raw_name or "").strip().strip("\"'").strip()


def comparable_name(raw_name: Optional[str]) -> str:
    """Lower-case a charset name and drop ``-``/``_`` for equality checks."""

    return _clean(raw_name).lower().replace("-", "").replace("_", "")


class CharsetNameNormalizer:
    """Maps declared/detected charset spellings onto canonical decoder names."""

    def __init__(
        self,
        name_map: Optional[Mapping[str, str]] = None,
        codec_aliases: Optional[Mapping[str, str]] = None,
    ) -> None:
        table = CHARSET_NAME_MAP if name_map is None else name_map
        self._name_map = {key.lower(): value for key, value in table.items()}
        aliases = CODEC_ALIASES if codec_aliases is None else codec_aliases
        self._codec_aliases = {key.lower(): value for key, value in aliases.items()}

    def normalize(self, raw_name: Optional[str]) -> str:
        """Return the canonical spelling; unknown names pass through trimmed."""

        cleaned = _clean(raw_name)
        return self._name_map.get(cleaned.lower(), cleaned)

    def codec_name(self, canonical_name: str) -> str:
        """Return the Python codec identifier for a canonical name.

        Raises :class:`UnsupportedEncoding` when no text decoder is registered.
        """

        cleaned = _clean(canonical_name)
        if not cleaned:
            raise UnsupportedEncoding("empty charset name")
        candidate = self._codec_aliases.get(cleaned.lower(), cleaned)
        try:
            info = codecs.lookup(candidate)
        except LookupError as exc:
            raise UnsupportedEncoding(cleaned) from exc
        # base64, hex, rot13, zlib and friends are registered but are not charsets
        if not getattr(info, "_is_text_encoding", True):
            raise UnsupportedEncoding(cleaned)
        try:
            # bytes.decode short-circuits on empty input, so probe with one byte
            b"a".decode(info.name, errors="replace")
        except (LookupError, ValueError) as exc:
            raise UnsupportedEncoding(cleaned) from exc
        return info.name

    def exists(self, canonical_name: Optional[str]) -> bool:
        try:
            self.codec_name(canonical_name or "")
        except UnsupportedEncoding:
            return False
        return True


__all__ = [
    "CharsetNameNormalizer",
    "UnsupportedEncoding",
    "comparable_name",
]
