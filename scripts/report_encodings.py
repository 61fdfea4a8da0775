#!/usr/bin/env python3
"""Report encoding decisions for a directory of saved raw pages.

Diagnostic tool for humans/project-agents chasing mojibake reports. Every file
in ``--dir`` is treated as raw page bytes; an optional sidecar
``<file>.content-type`` holds the Content-Type header that came with it.

Writes under ``--out``:
  - encoding_report.json (machine-readable)
  - encoding_report.md (human-readable)

Usage:
  uv run python scripts/report_encodings.py --dir fixtures/pages --out run/artifacts/encodings
"""

from __future__ import annotations

import argparse
import json
from collections import Counter
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

SIDECAR_SUFFIX = ".content-type"


@dataclass(frozen=True, slots=True)
class PageReport:
    path: str
    bytes: int
    content_type: Optional[str]
    encoding: str
    origin: str
    declared_source: Optional[str]
    declared_charset: Optional[str]
    detected: Optional[str]
    confidence: float
    replacement_count: int


def _read_content_type(page: Path) -> Optional[str]:
    sidecar = page.with_name(page.name + SIDECAR_SUFFIX)
    if not sidecar.exists():
        return None
    value = sidecar.read_text(encoding="utf-8", errors="ignore").strip()
    return value or None


def collect_reports(directory: Path) -> List[PageReport]:
    from reader_ingest.workflows.encoding_resolver import EncodingResolver

    resolver = EncodingResolver()
    reports: List[PageReport] = []
    for page in sorted(p for p in directory.rglob("*") if p.is_file()):
        if page.name.endswith(SIDECAR_SUFFIX):
            continue
        raw = page.read_bytes()
        content_type = _read_content_type(page)
        document = resolver.decode_document(raw, content_type)
        resolved = document.encoding
        reports.append(
            PageReport(
                path=str(page.relative_to(directory)),
                bytes=len(raw),
                content_type=content_type,
                encoding=resolved.name,
                origin=resolved.origin,
                declared_source=resolved.signal.source if resolved.signal else None,
                declared_charset=resolved.signal.charset if resolved.signal else None,
                detected=resolved.detection.encoding if resolved.detection else None,
                confidence=round(resolved.detection.confidence, 4) if resolved.detection else 0.0,
                replacement_count=document.replacement_count,
            )
        )
    return reports


def build_payload(reports: List[PageReport]) -> Dict[str, Any]:
    origins = Counter(report.origin for report in reports)
    encodings = Counter(report.encoding for report in reports)
    suspicious = [report.path for report in reports if report.replacement_count]
    return {
        "total": len(reports),
        "origin_counts": dict(sorted(origins.items())),
        "encoding_counts": dict(sorted(encodings.items())),
        "with_replacements": suspicious,
        "pages": [asdict(report) for report in reports],
    }


def _write_report(out_dir: Path, payload: Dict[str, Any]) -> tuple[Path, Path]:
    out_dir.mkdir(parents=True, exist_ok=True)
    json_path = out_dir / "encoding_report.json"
    md_path = out_dir / "encoding_report.md"
    json_path.write_text(json.dumps(payload, ensure_ascii=False, indent=2) + "\n", encoding="utf-8")

    lines = []
    lines.append("# Encoding report\n\n")
    lines.append(f"- pages: `{payload.get('total')}`\n")
    for origin, count in (payload.get("origin_counts") or {}).items():
        lines.append(f"- origin {origin}: `{count}`\n")
    lines.append("\n## Encodings\n\n")
    for name, count in (payload.get("encoding_counts") or {}).items():
        lines.append(f"- {name}: `{count}`\n")
    lines.append("\n## Pages with replacement characters\n\n")
    suspicious = payload.get("with_replacements") or []
    if not suspicious:
        lines.append("- none\n")
    pages = {page["path"]: page for page in payload.get("pages", [])}
    for path in suspicious:
        page = pages.get(path, {})
        lines.append(
            f"- `{path}`: {page.get('replacement_count')} replacements, "
            f"{page.get('encoding')} ({page.get('origin')}), "
            f"declared {page.get('declared_charset')} via {page.get('declared_source')}, "
            f"detected {page.get('detected')} @ {page.get('confidence')}\n"
        )
    md_path.write_text("".join(lines), encoding="utf-8")
    return json_path, md_path


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Report encoding decisions for saved raw pages")
    parser.add_argument("--dir", required=True, type=Path, help="Directory of raw page files")
    parser.add_argument("--out", default=Path("run/artifacts/encodings"), type=Path)
    args = parser.parse_args(argv)

    if not args.dir.is_dir():
        print(f"error: not a directory: {args.dir}")
        return 2
    payload = build_payload(collect_reports(args.dir))
    json_path, md_path = _write_report(args.out, payload)
    print(f"Wrote {json_path}")
    print(f"Wrote {md_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
