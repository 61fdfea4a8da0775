"""Single-shot page fetch used by ``reader-ingest inspect-url``.

No retries or anti-bot headers: production fetching lives upstream. This only
exists to reproduce an encoding decision against a live page.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import requests

from .encoding_resolver import DecodedDocument, EncodingResolver
from .ingest_config import DEFAULT_USER_AGENT, HDR_CONTENT_TYPE, HDR_USER_AGENT, http_timeout
from ..core.keys import K_BYTES, K_CONTENT_TYPE, K_STATUS, K_TEXT, K_URL

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FetchedPage:
    url: str
    status: int
    content_type: Optional[str]
    body: bytes


FetchFunc = Callable[[str, int], FetchedPage]


def _default_fetch(url: str, timeout: int) -> FetchedPage:
    resp = requests.get(url, headers={HDR_USER_AGENT: DEFAULT_USER_AGENT}, timeout=timeout)
    resp.raise_for_status()
    return FetchedPage(
        url=resp.url or url,
        status=resp.status_code,
        content_type=resp.headers.get(HDR_CONTENT_TYPE),
        body=resp.content,
    )


def inspect_url(
    url: str,
    *,
    fetch: Optional[FetchFunc] = None,
    resolver: Optional[EncodingResolver] = None,
    timeout: Optional[int] = None,
) -> Dict[str, Any]:
    """Fetch ``url`` once and report how its bytes were decoded."""

    fetcher = fetch or _default_fetch
    page = fetcher(url, timeout or http_timeout())
    logger.info("fetched %s (%d bytes, Content-Type: %s)", page.url, len(page.body), page.content_type)
    document: DecodedDocument = (resolver or EncodingResolver()).decode_document(page.body, page.content_type)
    summary = document.to_dict()
    summary.update(
        {
            K_URL: page.url,
            K_STATUS: page.status,
            K_CONTENT_TYPE: page.content_type,
            K_BYTES: len(page.body),
            K_TEXT: document.text,
        }
    )
    return summary


__all__ = ["FetchedPage", "inspect_url"]
