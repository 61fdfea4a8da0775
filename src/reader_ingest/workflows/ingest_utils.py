"""Shared helper functions used by the ingest CLI and diagnostics."""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import BinaryIO, Dict, List, Optional

from .charset_names import CharsetNameNormalizer
from .ingest_config import (
    CHARSET_NAME_MAP,
    ENV_HTTP_TIMEOUT,
    ENV_LOG_LEVEL,
    ENV_SNIPPET_MAX_CHARS,
    log_level_name,
)


def read_input_bytes(path_or_dash: str, *, stdin: Optional[BinaryIO] = None) -> bytes:
    """Read raw bytes from a file path, or from stdin when given ``-``."""

    if path_or_dash == "-":
        stream = stdin or sys.stdin.buffer
        return stream.read()
    path = Path(path_or_dash)
    if not path.exists():
        raise FileNotFoundError(f"Input not found: {path}")
    return path.read_bytes()


def read_input_text(path_or_dash: str, *, stdin: Optional[BinaryIO] = None) -> str:
    """Read an already-decoded (UTF-8) HTML fragment."""

    return read_input_bytes(path_or_dash, stdin=stdin).decode("utf-8", errors="replace")


def configure_logging(level_name: Optional[str] = None) -> int:
    name = (level_name or log_level_name()).upper()
    level = getattr(logging, name, None)
    if not isinstance(level, int):
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(message)s")
    return level


def missing_decoders(normalizer: Optional[CharsetNameNormalizer] = None) -> List[str]:
    """Canonical names from the charset table that have no Python decoder."""

    names = normalizer or CharsetNameNormalizer()
    return sorted({canonical for canonical in CHARSET_NAME_MAP.values() if not names.exists(canonical)})


def _positive_int(raw: Optional[str]) -> bool:
    try:
        return int(raw or "") > 0
    except ValueError:
        return False


def collect_environment_warnings() -> List[Dict[str, str]]:
    warnings: List[Dict[str, str]] = []
    level = os.getenv(ENV_LOG_LEVEL)
    if level and not isinstance(getattr(logging, level.strip().upper(), None), int):
        warnings.append(
            {
                "code": "log_level_invalid",
                "message": f"{ENV_LOG_LEVEL}={level!r} is not a logging level; WARNING is used.",
                "remedy": f"Set {ENV_LOG_LEVEL} to DEBUG, INFO, WARNING or ERROR.",
            }
        )
    for name in (ENV_SNIPPET_MAX_CHARS, ENV_HTTP_TIMEOUT):
        raw = os.getenv(name)
        if raw is not None and not _positive_int(raw):
            warnings.append(
                {
                    "code": f"{name.lower()}_invalid",
                    "message": f"{name}={raw!r} is not a positive integer; the default is used.",
                    "remedy": f"Unset {name} or set it to a positive integer.",
                }
            )
    missing = missing_decoders()
    if missing:
        warnings.append(
            {
                "code": "decoders_missing",
                "message": f"No Python codec for: {', '.join(missing)}",
                "remedy": "Documents declaring these charsets fall back to detection or UTF-8.",
            }
        )
    return warnings


__all__ = [
    "collect_environment_warnings",
    "configure_logging",
    "missing_decoders",
    "read_input_bytes",
    "read_input_text",
]
