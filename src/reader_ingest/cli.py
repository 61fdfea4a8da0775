from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Optional

import typer

from .core.keys import (
    K_BLOCKS,
    K_CONFIDENCE,
    K_CONTENT_TYPE,
    K_DETECTION,
    K_ENCODING,
    K_HTML,
    K_ORIGIN,
    K_PREVIEW,
    K_REPLACEMENTS,
    K_TAG,
    K_TEXT,
    K_URL,
)
from .workflows.content_blocks import BLOCK_MEDIA, ContentBlockParser, blocks_to_dicts
from .workflows.doctor import build_doctor_report, format_doctor_report
from .workflows.encoding_resolver import EncodingResolver
from .workflows.ingest_utils import configure_logging, read_input_bytes, read_input_text
from .workflows.text_sanitizer import HTMLTextSanitizer

app = typer.Typer(add_help_option=False, no_args_is_help=False)


def _minimal_help() -> str:
    return """reader-ingest (encoding + content block CLI)

Usage:
  reader-ingest decode <file|-> [--content-type <CT>] [--json] [--out <FILE>]
  reader-ingest blocks <file|-> [--json]
  reader-ingest preview <file|-> [--max-chars <N>]
  reader-ingest inspect-url <url> [--json]
  reader-ingest doctor

Discoverability:
  --help-full     Expanded help + env vars.
  --find <query>  Search commands, flags, env vars.
  --doctor        Run environment diagnostics and exit.
"""


def _help_full() -> str:
    return """reader-ingest CLI (best-effort, never fails on bad page bytes)

Commands:
  decode        Resolve the charset of raw page bytes and print decoded text.
  blocks        Split a UTF-8 article HTML fragment into html/media blocks.
  preview       Print a short plain-text preview of an HTML snippet.
  inspect-url   Fetch a URL once and report the encoding decision.
  doctor        Print environment and decoder diagnostics.

Encoding decision:
  header charset > <meta charset> > http-equiv meta > <meta content> (first 2048 bytes).
  A disagreeing detector overrides a declaration only above 0.8 confidence;
  without a declaration it is trusted above 0.7, otherwise utf-8 is used.

Env vars:
  READER_INGEST_LOG_LEVEL   Logging level (default WARNING).
  READER_SNIPPET_MAX_CHARS  Default preview length (default 300).
  READER_HTTP_TIMEOUT       inspect-url request timeout in seconds (default 20).

Exit codes:
  0 ok, 2 bad input, 3 fatal.
"""


_FIND_INDEX = [
    ("command", "decode", "Resolve charset and print decoded text."),
    ("command", "blocks", "Split article HTML into html/media blocks."),
    ("command", "preview", "Print a plain-text preview of an HTML snippet."),
    ("command", "inspect-url", "Fetch a URL once and report the encoding decision."),
    ("command", "doctor", "Print environment and decoder diagnostics."),
    ("flag", "--content-type", "Content-Type header to use as the declared charset."),
    ("flag", "--json", "Print a JSON summary to stdout."),
    ("flag", "--out", "Write decoded text to a file."),
    ("flag", "--max-chars", "Preview length."),
    ("flag", "--help-full", "Expanded help and env vars."),
    ("flag", "--find", "Search commands, flags, env vars."),
    ("flag", "--doctor", "Run environment diagnostics and exit."),
    ("env", "READER_INGEST_LOG_LEVEL", "Logging level."),
    ("env", "READER_SNIPPET_MAX_CHARS", "Default preview length."),
    ("env", "READER_HTTP_TIMEOUT", "inspect-url request timeout."),
]


def _run_find(query: str) -> str:
    needle = (query or "").strip().lower()
    if not needle:
        return ""
    lines = []
    for category, name, desc in _FIND_INDEX:
        haystack = f"{category} {name} {desc}".lower()
        if needle in haystack:
            lines.append(f"{category} {name} - {desc}")
    return "\n".join(lines)


def _emit_json(payload: object) -> None:
    sys.stdout.write(json.dumps(payload, ensure_ascii=False) + "\n")


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    help: bool = typer.Option(False, "--help", "-h", is_eager=True, help="Show minimal help."),
    help_full: bool = typer.Option(False, "--help-full", is_eager=True, help="Show expanded help."),
    find: Optional[str] = typer.Option(None, "--find", is_eager=True, help="Search commands, flags, env vars."),
    doctor: bool = typer.Option(False, "--doctor", is_eager=True, help="Run environment diagnostics and exit."),
) -> None:
    configure_logging()
    if help_full:
        typer.echo(_help_full())
        raise typer.Exit(code=0)
    if find is not None:
        output = _run_find(find)
        if output:
            typer.echo(output)
        raise typer.Exit(code=0)
    if doctor:
        report = build_doctor_report()
        typer.echo(format_doctor_report(report))
        raise typer.Exit(code=0 if report.get("ok", True) else 2)
    if help or ctx.invoked_subcommand is None:
        typer.echo(_minimal_help())
        raise typer.Exit(code=0)


@app.command("doctor", add_help_option=True)
def doctor_cmd() -> None:
    """Print environment and decoder diagnostics."""
    report = build_doctor_report()
    typer.echo(format_doctor_report(report))
    raise typer.Exit(code=0 if report.get("ok", True) else 2)


@app.command("decode", add_help_option=True)
def decode_cmd(
    path_or_dash: str = typer.Argument(..., help="Path to raw page bytes or '-' for stdin."),
    content_type: Optional[str] = typer.Option(None, "--content-type", help="Content-Type header sent with the page."),
    json_out: bool = typer.Option(False, "--json", help="Print a JSON summary instead of the text."),
    out: Optional[Path] = typer.Option(None, "--out", help="Write decoded text to this file."),
) -> None:
    try:
        raw = read_input_bytes(path_or_dash)
    except OSError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=2)
    try:
        document = EncodingResolver().decode_document(raw, content_type)
        if out is not None:
            out.parent.mkdir(parents=True, exist_ok=True)
            out.write_text(document.text, encoding="utf-8")
    except Exception as exc:
        typer.echo(f"fatal: {exc}", err=True)
        raise typer.Exit(code=3)
    if json_out:
        _emit_json(document.to_dict())
    elif out is None:
        sys.stdout.write(document.text)
    raise typer.Exit(code=0)


@app.command("blocks", add_help_option=True)
def blocks_cmd(
    path_or_dash: str = typer.Argument(..., help="Path to a UTF-8 HTML fragment or '-' for stdin."),
    json_out: bool = typer.Option(False, "--json", help="Print blocks as JSON."),
) -> None:
    try:
        html = read_input_text(path_or_dash)
    except OSError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=2)
    blocks = ContentBlockParser().parse(html)
    if json_out:
        _emit_json({K_BLOCKS: blocks_to_dicts(blocks)})
        raise typer.Exit(code=0)
    for idx, block in enumerate(blocks, start=1):
        payload = block.to_dict()
        if block.kind == BLOCK_MEDIA:
            typer.echo(f"[{idx}] media ({payload.get(K_TAG) or 'embed'}): {payload[K_URL]}")
        else:
            first_line = payload[K_HTML].strip().splitlines()[0] if payload[K_HTML].strip() else ""
            typer.echo(f"[{idx}] html ({len(payload[K_HTML])} chars): {first_line[:80]}")
    raise typer.Exit(code=0)


@app.command("preview", add_help_option=True)
def preview_cmd(
    path_or_dash: str = typer.Argument(..., help="Path to a UTF-8 HTML snippet or '-' for stdin."),
    max_chars: Optional[int] = typer.Option(None, "--max-chars", help="Preview length (default READER_SNIPPET_MAX_CHARS)."),
    json_out: bool = typer.Option(False, "--json", help="Print the preview as JSON."),
) -> None:
    try:
        html = read_input_text(path_or_dash)
    except OSError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=2)
    if max_chars is not None and max_chars <= 0:
        typer.echo("error: --max-chars must be positive", err=True)
        raise typer.Exit(code=2)
    text = HTMLTextSanitizer().snippet(html, max_chars)
    if json_out:
        _emit_json({K_PREVIEW: text})
    else:
        typer.echo(text)
    raise typer.Exit(code=0)


@app.command("inspect-url", add_help_option=True)
def inspect_url_cmd(
    url: str = typer.Argument(..., help="URL to fetch once."),
    json_out: bool = typer.Option(False, "--json", help="Print a JSON summary (without the text)."),
) -> None:
    from .workflows.page_fetch import inspect_url

    try:
        summary = inspect_url(url)
    except Exception as exc:
        typer.echo(f"fatal: {exc}", err=True)
        raise typer.Exit(code=3)
    summary.pop(K_TEXT, None)
    if json_out:
        _emit_json(summary)
    else:
        detection = summary.get(K_DETECTION) or {}
        typer.echo(f"url: {summary.get(K_URL)}")
        typer.echo(f"content-type: {summary.get(K_CONTENT_TYPE)}")
        typer.echo(f"encoding: {summary.get(K_ENCODING)} ({summary.get(K_ORIGIN)})")
        typer.echo(f"detected: {detection.get(K_ENCODING)} (confidence: {detection.get(K_CONFIDENCE)})")
        typer.echo(f"replacement characters: {summary.get(K_REPLACEMENTS)}")
    raise typer.Exit(code=0)


if __name__ == "__main__":
    app()
