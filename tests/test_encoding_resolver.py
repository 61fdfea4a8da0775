import logging
import random

import pytest

from reader_ingest.workflows import encoding_resolver
from reader_ingest.workflows.charset_names import CharsetNameNormalizer
from reader_ingest.workflows.encoding_resolver import (
    ORIGIN_DECLARED,
    ORIGIN_DEFAULT,
    ORIGIN_DETECTED,
    SOURCE_HEADER,
    SOURCE_META_CHARSET,
    SOURCE_META_CONTENT,
    SOURCE_META_HTTP_EQUIV,
    DetectionResult,
    EncodingResolver,
    ResolvedEncoding,
    count_replacements,
    decode_bytes_auto,
    header_charset,
)


def _detector(encoding, confidence):
    return lambda raw: DetectionResult(encoding, confidence)


def _no_detection(raw):
    return None


def test_header_and_detector_agree_selects_declared_canonical_name():
    resolver = EncodingResolver(detector=_detector("ISO-8859-1", 0.99))
    resolved = resolver.resolve(b"<p>citt\xe0</p>", "text/html; charset=ISO-8859-1")
    assert resolved.origin == ORIGIN_DECLARED
    assert resolved.name == "latin1"
    assert resolved.signal.source == SOURCE_HEADER


def test_no_declaration_trusts_detector_above_point_seven():
    resolver = EncodingResolver(detector=_detector("windows-1252", 0.75))
    resolved = resolver.resolve(b"<p>caf\xe9</p>")
    assert resolved.origin == ORIGIN_DETECTED
    assert resolved.name == "win1252"
    assert resolved.signal is None


def test_confident_disagreeing_detector_overrides_declaration():
    resolver = EncodingResolver(detector=_detector("windows-1252", 0.95))
    resolved = resolver.resolve(b"<p>caf\xe9</p>", "text/html; charset=utf-8")
    assert resolved.origin == ORIGIN_DETECTED
    assert resolved.name == "win1252"


def test_unsure_disagreeing_detector_keeps_declaration():
    resolver = EncodingResolver(detector=_detector("windows-1252", 0.6))
    resolved = resolver.resolve(b"<p>caf\xe9</p>", "text/html; charset=utf-8")
    assert resolved.origin == ORIGIN_DECLARED
    assert resolved.name == "utf8"


def test_thresholds_are_strict():
    declared = EncodingResolver(detector=_detector("windows-1252", 0.8)).resolve(b"x", "text/html; charset=utf-8")
    assert declared.origin == ORIGIN_DECLARED
    undeclared = EncodingResolver(detector=_detector("windows-1252", 0.7)).resolve(b"x")
    assert undeclared.origin == ORIGIN_DEFAULT
    assert undeclared.name == "utf-8"


def test_detector_between_thresholds_only_wins_without_declaration():
    detector = _detector("windows-1252", 0.75)
    assert EncodingResolver(detector=detector).resolve(b"x").origin == ORIGIN_DETECTED
    with_header = EncodingResolver(detector=detector).resolve(b"x", "text/html; charset=utf-8")
    assert with_header.origin == ORIGIN_DECLARED


def test_name_comparison_ignores_case_and_separators():
    resolver = EncodingResolver(detector=_detector("UTF_8", 0.2))
    resolved = resolver.resolve(b"x", "text/html; charset=utf-8")
    assert resolved.origin == ORIGIN_DECLARED
    assert resolved.name == "utf8"


def test_confident_detector_without_decoder_keeps_declaration():
    resolver = EncodingResolver(detector=_detector("x-mystery-8", 0.99))
    resolved = resolver.resolve(b"x", "text/html; charset=iso-8859-1")
    assert resolved.origin == ORIGIN_DECLARED
    assert resolved.name == "latin1"


def test_unknown_detection_without_declaration_defaults():
    resolver = EncodingResolver(detector=_detector("x-mystery-8", 0.99))
    resolved = resolver.resolve(b"x")
    assert resolved.origin == ORIGIN_DEFAULT
    assert resolved.name == "utf-8"


def test_declared_without_detection_is_used():
    resolver = EncodingResolver(detector=_no_detection)
    resolved = resolver.resolve(b'<meta charset="windows-1251">')
    assert resolved.origin == ORIGIN_DECLARED
    assert resolved.name == "win1251"
    assert resolved.signal.source == SOURCE_META_CHARSET


def test_html5_meta_outranks_earlier_content_meta():
    page = (
        b'<html><head><meta content="text/html; charset=windows-1251">'
        b'<meta charset="iso-8859-1"></head></html>'
    )
    signal = EncodingResolver(detector=_no_detection).declared_signal(page)
    assert signal.source == SOURCE_META_CHARSET
    assert signal.charset == "iso-8859-1"


def test_http_equiv_outranks_generic_content_meta():
    page = (
        b'<meta content="text/html; charset=windows-1251" name="x">'
        b'<meta http-equiv="Content-Type" content="text/html; charset=gbk">'
    )
    signal = EncodingResolver(detector=_no_detection).declared_signal(page)
    assert signal.source == SOURCE_META_HTTP_EQUIV
    assert signal.charset == "gbk"


def test_generic_content_meta_is_last_resort():
    page = b'<meta content="text/html; charset=Shift_JIS" http-equiv="Content-Type">'
    signal = EncodingResolver(detector=_no_detection).declared_signal(page)
    assert signal.source == SOURCE_META_CONTENT
    assert signal.charset == "Shift_JIS"


def test_header_without_decoder_falls_back_to_meta():
    page = b'<meta charset="euc-kr">'
    resolver = EncodingResolver(detector=_no_detection)
    resolved = resolver.resolve(page, "text/html; charset=x-bogus")
    assert resolved.signal.source == SOURCE_META_CHARSET
    assert resolved.name == "euckr"


def test_meta_without_decoder_falls_through_to_next_source():
    page = (
        b'<meta charset="no-such-charset">'
        b'<meta http-equiv="content-type" content="text/html; charset=big5">'
    )
    signal = EncodingResolver(detector=_no_detection).declared_signal(page)
    assert signal.source == SOURCE_META_HTTP_EQUIV
    assert signal.charset == "big5"


def test_meta_scan_is_limited_to_first_2048_bytes():
    page = b" " * 3000 + b'<meta charset="iso-8859-1">'
    resolved = EncodingResolver(detector=_no_detection).resolve(page)
    assert resolved.signal is None
    assert resolved.origin == ORIGIN_DEFAULT


def test_quoted_header_charset():
    assert header_charset('text/html; charset="ISO-8859-1"') == "ISO-8859-1"
    assert header_charset("text/html") is None
    assert header_charset(None) is None


def test_non_text_codecs_are_not_declarations():
    resolved = EncodingResolver(detector=_no_detection).resolve(b"x", "text/html; charset=base64")
    assert resolved.origin == ORIGIN_DEFAULT


def test_non_text_meta_charset_does_not_mask_later_declaration():
    page = (
        b'<meta charset="hex">'
        b'<meta http-equiv="Content-Type" content="text/html; charset=windows-1251">'
        b"<p>\xcf\xf0\xe8\xe2\xe5\xf2</p>"
    )
    resolver = EncodingResolver(detector=_no_detection)
    document = resolver.decode_document(page)
    assert document.encoding.signal.source == SOURCE_META_HTTP_EQUIV
    assert document.encoding.name == "win1251"
    assert "<p>Привет</p>" in document.text
    assert document.replacement_count == 0


def test_failing_detector_is_treated_as_undetected(caplog):
    def boom(raw):
        raise RuntimeError("detector exploded")

    resolver = EncodingResolver(detector=boom)
    with caplog.at_level(logging.WARNING, logger="reader_ingest.workflows.encoding_resolver"):
        resolved = resolver.resolve(b"x", "text/html; charset=utf-8")
    assert resolved.origin == ORIGIN_DECLARED
    assert resolved.detection is None
    assert "detector failed" in caplog.text


def test_chardet_style_mapping_detector_is_accepted():
    resolver = EncodingResolver(detector=lambda raw: {"encoding": "EUC-JP", "confidence": 0.99})
    resolved = resolver.resolve(b"x")
    assert resolved.origin == ORIGIN_DETECTED
    assert resolved.name == "eucjp"


def test_decode_replaces_invalid_sequences():
    resolver = EncodingResolver(detector=_no_detection)
    text = resolver.decode(b"ok \xff\xfe end", ResolvedEncoding("utf8", ORIGIN_DECLARED))
    assert text.startswith("ok ")
    assert count_replacements(text) == 2


def test_decode_latin1_and_win1252():
    resolver = EncodingResolver(detector=_no_detection)
    assert resolver.decode(b"citt\xe0", ResolvedEncoding("latin1", ORIGIN_DECLARED)) == "città"
    assert resolver.decode(b"It\x92s", ResolvedEncoding("win1252", ORIGIN_DETECTED)) == "It’s"


def test_decode_unknown_name_falls_back_to_utf8():
    resolver = EncodingResolver(detector=_no_detection)
    text = resolver.decode("città".encode("utf-8"), ResolvedEncoding("x-bogus", ORIGIN_DEFAULT))
    assert text == "città"


def test_decode_document_logs_replacements(caplog):
    resolver = EncodingResolver(detector=_detector("utf-8", 0.99))
    with caplog.at_level(logging.WARNING, logger="reader_ingest.workflows.encoding_resolver"):
        document = resolver.decode_document(b"Gioved\xec", "text/html; charset=utf-8")
    assert document.replacement_count == 1
    assert "Replacement characters found: 1" in caplog.text
    payload = document.to_dict()
    assert payload["replacement_count"] == 1
    assert payload["encoding"] == "utf8"
    assert payload["origin"] == ORIGIN_DECLARED


def test_real_detector_decodes_declared_utf8_page():
    page = "<html><head><meta charset=\"utf-8\"></head><body><p>Giovedì, in città, il caffè è pronto.</p></body></html>"
    document = EncodingResolver().decode_document(page.encode("utf-8"), "text/html; charset=UTF-8")
    assert "Giovedì" in document.text
    assert "città" in document.text
    assert document.replacement_count == 0


def test_resolved_name_always_has_decoder_or_is_default():
    rng = random.Random(1234)
    names = CharsetNameNormalizer()
    resolver = EncodingResolver()
    headers = [None, "text/html", "text/html; charset=utf-8", "text/html; charset=nope", "charset=windows-1252"]
    for idx in range(40):
        raw = bytes(rng.randrange(256) for _ in range(rng.randrange(0, 400)))
        if idx % 3 == 0:
            raw = b'<meta charset="' + bytes(rng.randrange(33, 127) for _ in range(6)) + b'">' + raw
        resolved = resolver.resolve(raw, headers[idx % len(headers)])
        assert names.exists(resolved.name) or resolved.name == "utf-8"
        assert isinstance(resolver.decode(raw, resolved), str)


def test_decode_bytes_auto_reads_content_type_case_insensitively(monkeypatch):
    monkeypatch.setattr(encoding_resolver, "detect_with_charset_normalizer", _no_detection)
    text = decode_bytes_auto(b"citt\xe0", {"Content-Type": "text/html; charset=iso-8859-1"})
    assert text == "città"


@pytest.mark.parametrize("raw", [b"", None, bytearray(b"abc"), memoryview(b"abc")])
def test_resolve_and_decode_accept_odd_buffers(raw):
    resolver = EncodingResolver(detector=_no_detection)
    resolved = resolver.resolve(raw)
    assert resolved.name == "utf-8"
    assert resolver.decode(raw, resolved) in {"", "abc"}
