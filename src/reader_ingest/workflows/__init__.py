"""High-level exports for the ingest workflows."""

from .charset_names import CharsetNameNormalizer
from .content_blocks import ContentBlock, ContentBlockParser, HtmlBlock, MediaBlock, parse_content_blocks
from .encoding_resolver import (
    DecodedDocument,
    DetectionResult,
    EncodingResolver,
    EncodingSignal,
    ResolvedEncoding,
    decode_bytes_auto,
    decode_document,
    resolve_encoding,
)
from .text_sanitizer import HTMLTextSanitizer, snippet, strip_html

__all__ = [
    "CharsetNameNormalizer",
    "ContentBlock",
    "ContentBlockParser",
    "DecodedDocument",
    "DetectionResult",
    "EncodingResolver",
    "EncodingSignal",
    "HTMLTextSanitizer",
    "HtmlBlock",
    "MediaBlock",
    "ResolvedEncoding",
    "decode_bytes_auto",
    "decode_document",
    "parse_content_blocks",
    "resolve_encoding",
    "snippet",
    "strip_html",
]
