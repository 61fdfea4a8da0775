from __future__ import annotations

import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from . import encoding_resolver
from .charset_names import CharsetNameNormalizer
from .ingest_config import (
    CHARSET_NAME_MAP,
    ENV_HTTP_TIMEOUT,
    ENV_LOG_LEVEL,
    ENV_SNIPPET_MAX_CHARS,
    http_timeout,
    log_level_name,
    snippet_max_chars,
)
from .ingest_utils import collect_environment_warnings


_DETECTOR_SAMPLE = b"Charset detection sample: plain ASCII text for the doctor check."


def _detector_status() -> Tuple[bool, str]:
    """Run the resolver's detector once; charset_normalizer is imported with the resolver."""

    try:
        result = encoding_resolver.detect_with_charset_normalizer(_DETECTOR_SAMPLE)
    except Exception as exc:
        return False, f"detector raised {type(exc).__name__}: {exc}"
    if result is None or not result.encoding:
        return False, "detector returned no encoding for an ASCII sample"
    return True, f"sample detected as {result.encoding}"


def _requests_version() -> Optional[str]:
    try:
        import requests
    except ImportError:
        return None
    return str(getattr(requests, "__version__", "unknown"))


def build_doctor_report(*, normalizer: Optional[CharsetNameNormalizer] = None) -> Dict[str, Any]:
    report: Dict[str, Any] = {
        "generated_at": datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z"),
        "ok": True,
        "checks": [],
        "environment_warnings": collect_environment_warnings(),
    }

    def add_check(
        name: str,
        status: bool,
        *,
        detail: Optional[str] = None,
        remedy: Optional[str] = None,
        level: str = "warn",
        value: Optional[str] = None,
    ) -> None:
        entry = {
            "name": name,
            "status": "ok" if status else "missing",
            "level": level,
            "detail": detail,
        }
        if remedy:
            entry["remedy"] = remedy
        if value is not None:
            entry["value"] = value
        report["checks"].append(entry)
        if not status and level == "warn":
            report["ok"] = False

    detector_ok, detector_detail = _detector_status()
    add_check(
        "charset_normalizer",
        detector_ok,
        detail=detector_detail,
        remedy="pip install --force-reinstall charset-normalizer",
        level="warn",
        value=str(getattr(encoding_resolver.charset_normalizer, "__version__", "unknown")),
    )

    requests_version = _requests_version()
    add_check(
        "requests",
        requests_version is not None,
        detail="inspect-url available" if requests_version else "inspect-url unavailable",
        remedy="pip install requests",
        level="info",
        value=requests_version,
    )

    names = normalizer or CharsetNameNormalizer()
    for raw_name, canonical in sorted(CHARSET_NAME_MAP.items()):
        available = names.exists(canonical)
        add_check(
            f"decoder:{canonical}",
            available,
            detail=f"{raw_name} -> {names.codec_name(canonical) if available else 'no codec'}",
            remedy=f"Documents declaring {raw_name} fall back to detection or UTF-8.",
            level="warn",
        )

    knobs = (
        ("log_level", ENV_LOG_LEVEL, log_level_name()),
        ("snippet_max_chars", ENV_SNIPPET_MAX_CHARS, str(snippet_max_chars())),
        ("http_timeout", ENV_HTTP_TIMEOUT, str(http_timeout())),
    )
    for name, env_name, effective in knobs:
        detail = env_name if os.getenv(env_name) is not None else f"{env_name} unset (default)"
        add_check(name, True, detail=detail, level="info", value=effective)

    return report


def format_doctor_report(report: Dict[str, Any]) -> str:
    lines: List[str] = []
    lines.append("reader-ingest doctor")
    lines.append(f"Generated: {report.get('generated_at')}")
    lines.append("")
    for check in report.get("checks", []):
        name = check.get("name", "check")
        status = check.get("status", "unknown")
        level = check.get("level", "info")
        detail = check.get("detail")
        value = check.get("value")
        label = f"{name}: {status}"
        if value:
            label = f"{label} ({value})"
        lines.append(f"- [{level}] {label}")
        if detail:
            lines.append(f"  detail: {detail}")
        remedy = check.get("remedy")
        if remedy and status != "ok":
            lines.append(f"  remedy: {remedy}")
    warnings = report.get("environment_warnings") or []
    if warnings:
        lines.append("")
        lines.append("Environment warnings:")
        for warning in warnings:
            code = warning.get("code", "warning")
            message = warning.get("message", "")
            remedy = warning.get("remedy", "")
            lines.append(f"- {code}: {message}")
            if remedy:
                lines.append(f"  remedy: {remedy}")
    return "\n".join(lines).rstrip() + "\n"
