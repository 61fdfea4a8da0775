"""Encoding resolution for fetched page bytes.

Picks one character set for a document from the signals it carries (the
``Content-Type`` header and the ``<meta>`` declarations in the first 2 KiB)
and from a statistical detector run over the whole buffer, then decodes the
bytes without ever raising.

Decision order:

1. Declared signal: header ``charset=`` first; otherwise the first usable
   ``<meta charset>``, then ``http-equiv`` Content-Type meta, then any other
   ``<meta content=... charset=...>``.
2. Detection: the detector runs once over the full buffer.
3. Policy: a declaration that agrees with the detector wins; a disagreeing
   detector overrides it only above 0.8 confidence. Without a declaration the
   detector is trusted above 0.7, otherwise UTF-8 is used.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Union

import charset_normalizer

from .charset_names import CharsetNameNormalizer, UnsupportedEncoding, comparable_name
from .ingest_config import (
    DECLARED_OVERRIDE_CONFIDENCE,
    DEFAULT_ENCODING,
    META_SCAN_BYTES,
    REPLACEMENT_CHAR,
    UNDECLARED_ACCEPT_CONFIDENCE,
)
from ..core.keys import (
    K_CHARSET,
    K_CONFIDENCE,
    K_DETECTION,
    K_ENCODING,
    K_ORIGIN,
    K_REPLACEMENTS,
    K_SIGNAL,
    K_SIGNAL_SOURCE,
    K_TEXT_LENGTH,
)

logger = logging.getLogger(__name__)

# Declared-signal sources, highest priority first
SOURCE_HEADER = "header"
SOURCE_META_CHARSET = "meta_charset"
SOURCE_META_HTTP_EQUIV = "meta_http_equiv"
SOURCE_META_CONTENT = "meta_content"

ORIGIN_DECLARED = "declared"
ORIGIN_DETECTED = "detected"
ORIGIN_DEFAULT = "default"

_HEADER_CHARSET_RE = re.compile(r"charset=([^;]+)", re.I)
_META_PATTERNS = (
    (SOURCE_META_CHARSET, re.compile(r"""<meta\s+charset\s*=\s*["']?([^"'\s;>]+)""", re.I)),
    (
        SOURCE_META_HTTP_EQUIV,
        re.compile(
            r"""<meta\s+http-equiv\s*=\s*["']?content-type["']?\s+content\s*=\s*["']?[^"'>]*charset=([^"'\s;>]+)""",
            re.I,
        ),
    ),
    (SOURCE_META_CONTENT, re.compile(r"""<meta\s+content\s*=\s*["']?[^"'>]*charset=([^"'\s;>]+)""", re.I)),
)


@dataclass(frozen=True)
class EncodingSignal:
    source: str
    charset: str

    def to_dict(self) -> Dict[str, str]:
        return {K_SIGNAL_SOURCE: self.source, K_CHARSET: self.charset}


@dataclass(frozen=True)
class DetectionResult:
    encoding: Optional[str]
    confidence: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {K_ENCODING: self.encoding, K_CONFIDENCE: round(self.confidence, 4)}


@dataclass(frozen=True)
class ResolvedEncoding:
    name: str
    origin: str
    signal: Optional[EncodingSignal] = None
    detection: Optional[DetectionResult] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            K_ENCODING: self.name,
            K_ORIGIN: self.origin,
            K_SIGNAL: self.signal.to_dict() if self.signal else None,
            K_DETECTION: self.detection.to_dict() if self.detection else None,
        }


@dataclass(frozen=True)
class DecodedDocument:
    text: str
    encoding: ResolvedEncoding
    replacement_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        payload = self.encoding.to_dict()
        payload[K_REPLACEMENTS] = self.replacement_count
        payload[K_TEXT_LENGTH] = len(self.text)
        return payload


DetectorOutput = Union[DetectionResult, Mapping[str, Any], None]
Detector = Callable[[bytes], DetectorOutput]


def detect_with_charset_normalizer(raw: bytes) -> DetectionResult:
    """chardet-compatible detection backed by charset-normalizer."""

    result = charset_normalizer.detect(raw)
    return DetectionResult(
        encoding=result.get("encoding"),
        confidence=float(result.get("confidence") or 0.0),
    )


def _coerce_detection(value: DetectorOutput) -> Optional[DetectionResult]:
    if value is None:
        return None
    if isinstance(value, DetectionResult):
        encoding, confidence = value.encoding, value.confidence
    else:
        encoding, confidence = value.get("encoding"), value.get("confidence")
    try:
        score = float(confidence or 0.0)
    except (TypeError, ValueError):
        score = 0.0
    if score != score:  # NaN
        score = 0.0
    score = min(1.0, max(0.0, score))
    name = str(encoding).strip() if encoding else ""
    if not name:
        return None
    return DetectionResult(encoding=name, confidence=score)


def _as_bytes(raw: Any) -> bytes:
    if raw is None:
        return b""
    if isinstance(raw, bytes):
        return raw
    if isinstance(raw, str):
        return raw.encode("utf-8", errors="replace")
    try:
        return bytes(raw)
    except (TypeError, ValueError):
        return b""


def count_replacements(text: str) -> int:
    """Number of U+FFFD characters in decoded text."""

    return (text or "").count(REPLACEMENT_CHAR)


def header_charset(content_type: Optional[str]) -> Optional[str]:
    if not content_type:
        return None
    match = _HEADER_CHARSET_RE.search(content_type)
    if not match:
        return None
    value = match.group(1).strip().replace('"', "").replace("'", "")
    return value or None


class EncodingResolver:
    """Chooses and applies a character set for raw page bytes.

    Instances hold only configuration (name normalizer and detector), so one
    resolver may be shared across threads or created per call.
    """

    def __init__(
        self,
        detector: Optional[Detector] = None,
        normalizer: Optional[CharsetNameNormalizer] = None,
    ) -> None:
        self._detector = detector or detect_with_charset_normalizer
        self._names = normalizer or CharsetNameNormalizer()

    @property
    def normalizer(self) -> CharsetNameNormalizer:
        return self._names

    def _usable(self, charset: str) -> bool:
        return self._names.exists(self._names.normalize(charset))

    def declared_signal(self, raw: bytes, content_type: Optional[str] = None) -> Optional[EncodingSignal]:
        """Return the highest-priority declaration that names a known decoder."""

        charset = header_charset(content_type)
        if charset:
            if self._usable(charset):
                return EncodingSignal(SOURCE_HEADER, charset)
            logger.debug("Ignoring header charset without decoder: %s", charset)

        head = _as_bytes(raw)[:META_SCAN_BYTES].decode("ascii", errors="ignore")
        for source, pattern in _META_PATTERNS:
            for match in pattern.finditer(head):
                candidate = match.group(1).strip()
                if candidate and self._usable(candidate):
                    return EncodingSignal(source, candidate)
                logger.debug("Ignoring %s charset without decoder: %s", source, candidate)
        return None

    def detect(self, raw: bytes) -> Optional[DetectionResult]:
        try:
            return _coerce_detection(self._detector(raw))
        except Exception as exc:  # detector internals are third-party
            logger.warning("Charset detector failed (%s); treating as undetected", exc)
            return None

    def resolve(self, raw: bytes, content_type: Optional[str] = None) -> ResolvedEncoding:
        data = _as_bytes(raw)
        signal = self.declared_signal(data, content_type)
        detection = self.detect(data)
        logger.debug(
            "Charset detection - declared: %s, detected: %s (confidence: %.2f)",
            signal.charset if signal else None,
            detection.encoding if detection else None,
            detection.confidence if detection else 0.0,
        )

        if signal is not None:
            declared_name = self._names.normalize(signal.charset)
            if detection is not None:
                if comparable_name(signal.charset) == comparable_name(detection.encoding):
                    logger.debug("Using declared encoding: %s", declared_name)
                    return ResolvedEncoding(declared_name, ORIGIN_DECLARED, signal, detection)
                if detection.confidence > DECLARED_OVERRIDE_CONFIDENCE:
                    detected_name = self._names.normalize(detection.encoding)
                    if self._names.exists(detected_name):
                        logger.debug("Using detected encoding with high confidence: %s", detected_name)
                        return ResolvedEncoding(detected_name, ORIGIN_DETECTED, signal, detection)
            logger.debug("Using declared encoding (detector not trusted): %s", declared_name)
            return ResolvedEncoding(declared_name, ORIGIN_DECLARED, signal, detection)

        if detection is not None and detection.confidence > UNDECLARED_ACCEPT_CONFIDENCE:
            detected_name = self._names.normalize(detection.encoding)
            if self._names.exists(detected_name):
                logger.debug("Using detected encoding: %s", detected_name)
                return ResolvedEncoding(detected_name, ORIGIN_DETECTED, None, detection)

        logger.debug("Defaulting to %s", DEFAULT_ENCODING)
        return ResolvedEncoding(DEFAULT_ENCODING, ORIGIN_DEFAULT, None, detection)

    def decode(self, raw: bytes, resolved: ResolvedEncoding) -> str:
        """Decode with U+FFFD substitution; falls back to UTF-8, never raises."""

        data = _as_bytes(raw)
        try:
            codec = self._names.codec_name(resolved.name)
        except UnsupportedEncoding:
            logger.debug("No decoder for %s; decoding as %s", resolved.name, DEFAULT_ENCODING)
            codec = DEFAULT_ENCODING
        try:
            return data.decode(codec, errors="replace")
        except (UnicodeError, LookupError) as exc:
            # e.g. idna only supports strict error handling
            logger.debug("Decoder %s failed (%s); decoding as %s", codec, exc, DEFAULT_ENCODING)
            return data.decode(DEFAULT_ENCODING, errors="replace")

    def decode_document(self, raw: bytes, content_type: Optional[str] = None) -> DecodedDocument:
        data = _as_bytes(raw)
        resolved = self.resolve(data, content_type)
        text = self.decode(data, resolved)
        replacements = count_replacements(text)
        if replacements:
            logger.warning(
                "Replacement characters found: %d (encoding=%s, origin=%s)",
                replacements,
                resolved.name,
                resolved.origin,
            )
        return DecodedDocument(text=text, encoding=resolved, replacement_count=replacements)


def resolve_encoding(
    raw: bytes,
    content_type: Optional[str] = None,
    *,
    detector: Optional[Detector] = None,
) -> ResolvedEncoding:
    return EncodingResolver(detector=detector).resolve(raw, content_type)


def decode_document(
    raw: bytes,
    content_type: Optional[str] = None,
    *,
    resolver: Optional[EncodingResolver] = None,
) -> DecodedDocument:
    """Resolve, decode and count replacement characters in one call."""

    return (resolver or EncodingResolver()).decode_document(raw, content_type)


def decode_bytes_auto(body: bytes, headers: Optional[Mapping[str, str]] = None) -> str:
    """Decode HTTP bytes using header/meta hints with charset-normalizer detection."""

    content_type = None
    if headers:
        for key, value in headers.items():
            if str(key).lower() == "content-type":
                content_type = value
                break
    return decode_document(body, content_type).text


__all__ = [
    "DecodedDocument",
    "DetectionResult",
    "Detector",
    "EncodingResolver",
    "EncodingSignal",
    "ResolvedEncoding",
    "ORIGIN_DECLARED",
    "ORIGIN_DETECTED",
    "ORIGIN_DEFAULT",
    "SOURCE_HEADER",
    "SOURCE_META_CHARSET",
    "SOURCE_META_HTTP_EQUIV",
    "SOURCE_META_CONTENT",
    "count_replacements",
    "decode_bytes_auto",
    "decode_document",
    "detect_with_charset_normalizer",
    "header_charset",
    "resolve_encoding",
]
