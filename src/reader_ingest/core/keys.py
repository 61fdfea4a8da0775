"""Shared schema keys to avoid magic strings across reader_ingest modules."""

from __future__ import annotations

# Encoding decision keys
K_ENCODING = "encoding"
K_ORIGIN = "origin"
K_SIGNAL = "declared_signal"
K_SIGNAL_SOURCE = "source"
K_CHARSET = "charset"
K_DETECTION = "detection"
K_CONFIDENCE = "confidence"
K_REPLACEMENTS = "replacement_count"
K_TEXT = "text"
K_TEXT_LENGTH = "text_length"

# Content block keys
K_BLOCKS = "blocks"
K_TYPE = "type"
K_HTML = "html"
K_URL = "url"
K_TAG = "tag"
K_OFFSET = "offset"
K_THUMBNAIL_URL = "thumbnail_url"
K_PLAYER_URL = "player_url"
K_PREVIEW = "preview"

# Fetch summary keys
K_STATUS = "status"
K_CONTENT_TYPE = "content_type"
K_BYTES = "bytes"
