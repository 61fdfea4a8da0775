"""Ingest defaults (charset table, scan limits, decision thresholds, env knobs).

Centralizes static defaults so the resolver and parser carry no embedded magic
values. The confidence thresholds are fixed on purpose and are not read from
the environment.
"""

from __future__ import annotations

import os

# Encoding resolution
DEFAULT_ENCODING = "utf-8"
META_SCAN_BYTES = 2048
DECLARED_OVERRIDE_CONFIDENCE = 0.8
UNDECLARED_ACCEPT_CONFIDENCE = 0.7
REPLACEMENT_CHAR = "\ufffd"

# Detector / declared spellings -> canonical decoder names
CHARSET_NAME_MAP = {
    "iso-8859-1": "latin1",
    "iso-8859-2": "latin2",
    "windows-1252": "win1252",
    "windows-1251": "win1251",
    "gb2312": "gb2312",
    "gbk": "gbk",
    "big5": "big5",
    "shift_jis": "shift_jis",
    "euc-jp": "eucjp",
    "euc-kr": "euckr",
    "utf-8": "utf8",
    "ascii": "ascii",
}

# Canonical spellings that Python's codec registry does not know by that name
CODEC_ALIASES = {f"win{page}": f"cp{page}" for page in range(1250, 1259)}

# Preview / CLI knobs
ENV_LOG_LEVEL = "READER_INGEST_LOG_LEVEL"
ENV_SNIPPET_MAX_CHARS = "READER_SNIPPET_MAX_CHARS"
ENV_HTTP_TIMEOUT = "READER_HTTP_TIMEOUT"

DEFAULT_LOG_LEVEL = "WARNING"
DEFAULT_SNIPPET_MAX_CHARS = 300
DEFAULT_HTTP_TIMEOUT = 20

HDR_CONTENT_TYPE = "Content-Type"
HDR_USER_AGENT = "User-Agent"
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


def _env_int(name: str, default: int) -> int:
    try:
        value = int(os.getenv(name, str(default)))
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default


def log_level_name() -> str:
    raw = (os.getenv(ENV_LOG_LEVEL) or DEFAULT_LOG_LEVEL).strip().upper()
    return raw or DEFAULT_LOG_LEVEL


def snippet_max_chars() -> int:
    return _env_int(ENV_SNIPPET_MAX_CHARS, DEFAULT_SNIPPET_MAX_CHARS)


def http_timeout() -> int:
    return _env_int(ENV_HTTP_TIMEOUT, DEFAULT_HTTP_TIMEOUT)
