"""Plain-text previews from HTML snippets.

Not an HTML entity decoder: only the entities in ``ENTITY_WHITELIST`` are
replaced, one after another in table order, so ``&amp;lt;`` ends up as ``<``.
"""

from __future__ import annotations

import re
from typing import Dict, Optional

from .ingest_config import snippet_max_chars

_TAG_RE = re.compile(r"<[^>]+>")

# Right single quotation mark (E2 80 99) read as cp1252/Latin-1
MOJIBAKE_APOSTROPHE = "\u00e2\u20ac\u2122"

# Applied in this order; &amp; runs before &lt; and &gt;
ENTITY_WHITELIST: Dict[str, str] = {
    "&nbsp;": " ",
    "&quot;": '"',
    "&apos;": "'",
    "&amp;": "&",
    "&lt;": "<",
    "&gt;": ">",
    MOJIBAKE_APOSTROPHE: "'",
}


class HTMLTextSanitizer:
    def strip(self, html: str) -> str:
        if not html:
            return ""
        text = _TAG_RE.sub("", html)
        for entity, replacement in ENTITY_WHITELIST.items():
            text = text.replace(entity, replacement)
        return text.strip()

    def snippet(self, html: str, max_chars: Optional[int] = None) -> str:
        limit = max_chars if max_chars is not None else snippet_max_chars()
        if limit <= 0:
            return ""
        return self.strip(html)[:limit].strip()


def strip_html(html: str) -> str:
    """Remove tags and whitelisted entities, then trim."""

    return HTMLTextSanitizer().strip(html)


def snippet(html: str, max_chars: Optional[int] = None) -> str:
    """Short plain-text preview (default length from READER_SNIPPET_MAX_CHARS)."""

    return HTMLTextSanitizer().snippet(html, max_chars)


__all__ = [
    "ENTITY_WHITELIST",
    "HTMLTextSanitizer",
    "MOJIBAKE_APOSTROPHE",
    "snippet",
    "strip_html",
]
