"""Split article HTML into ordered markup and embedded-media blocks.

The scan looks for ``<iframe>...</iframe>`` and ``<video>...</video>`` elements
only; everything between them is passed through verbatim as markup. The scan
is linear in the fragment length.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, Iterator, List, Optional, Sequence, Set, Tuple, Union

from .media_utils import player_url, youtube_thumbnail_url
from ..core.keys import K_HTML, K_OFFSET, K_PLAYER_URL, K_TAG, K_THUMBNAIL_URL, K_TYPE, K_URL

logger = logging.getLogger(__name__)

BLOCK_HTML = "html"
BLOCK_MEDIA = "media"

MEDIA_TAGS = ("iframe", "video")

_MEDIA_OPEN_RE = re.compile(r"<(iframe|video)(?=[\s/>])", re.I)
_MEDIA_CLOSE_RES = {tag: re.compile(rf"</{tag}\s*>", re.I) for tag in MEDIA_TAGS}
_SRC_RE = re.compile(r"""(?<![\w-])src\s*=\s*(?:"([^"]*)"|'([^']*)')""", re.I)


class MalformedInput(ValueError):
    """Raised internally when a fragment cannot be scanned."""


@dataclass(frozen=True)
class HtmlBlock:
    html: str
    offset: int = field(default=0, compare=False)

    kind: ClassVar[str] = BLOCK_HTML

    @property
    def end(self) -> int:
        return self.offset + len(self.html)

    def to_dict(self) -> Dict[str, Any]:
        return {K_TYPE: self.kind, K_HTML: self.html, K_OFFSET: self.offset}


@dataclass(frozen=True)
class MediaBlock:
    url: str
    tag: str = field(default="", compare=False)
    raw: str = field(default="", compare=False, repr=False)
    offset: int = field(default=0, compare=False)

    kind: ClassVar[str] = BLOCK_MEDIA

    @property
    def end(self) -> int:
        return self.offset + len(self.raw)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            K_TYPE: self.kind,
            K_URL: self.url,
            K_TAG: self.tag,
            K_OFFSET: self.offset,
            K_PLAYER_URL: player_url(self.url),
        }
        thumbnail = youtube_thumbnail_url(self.url)
        if thumbnail:
            payload[K_THUMBNAIL_URL] = thumbnail
        return payload


ContentBlock = Union[HtmlBlock, MediaBlock]


def extract_src(element: str) -> Optional[str]:
    """Return the first quoted ``src`` value inside a media element, verbatim.

    ``None`` means no ``src`` attribute; an empty attribute yields ``""``.
    """

    match = _SRC_RE.search(element or "")
    if not match:
        return None
    return match.group(1) if match.group(1) is not None else match.group(2)


def iter_media_spans(html: str) -> Iterator[Tuple[str, int, int]]:
    """Yield ``(tag, start, end)`` for each complete media element, left to right.

    A tag whose closing element never appears again is dropped from the search
    for the rest of the fragment, which keeps the scan linear.
    """

    pos = 0
    exhausted: Set[str] = set()
    while len(exhausted) < len(MEDIA_TAGS):
        opener = _MEDIA_OPEN_RE.search(html, pos)
        if opener is None:
            return
        tag = opener.group(1).lower()
        if tag in exhausted:
            pos = opener.end()
            continue
        closer = _MEDIA_CLOSE_RES[tag].search(html, opener.end())
        if closer is None:
            exhausted.add(tag)
            pos = opener.end()
            continue
        yield tag, opener.start(), closer.end()
        pos = closer.end()


class ContentBlockParser:
    """Turns an article HTML fragment into a non-empty list of blocks."""

    def _gap(self, html: str, start: int, end: int) -> Optional[HtmlBlock]:
        if end <= start:
            return None
        text = html[start:end]
        if not text.strip():
            return None
        return HtmlBlock(text, offset=start)

    def _scan(self, html: Any) -> List[ContentBlock]:
        if not isinstance(html, str):
            raise MalformedInput(f"expected str fragment, got {type(html).__name__}")
        blocks: List[ContentBlock] = []
        last = 0
        for tag, start, end in iter_media_spans(html):
            gap = self._gap(html, last, start)
            if gap is not None:
                blocks.append(gap)
            element = html[start:end]
            src = extract_src(element)
            if src is not None:
                blocks.append(MediaBlock(src, tag=tag, raw=element, offset=start))
            else:
                blocks.append(HtmlBlock(element, offset=start))
            last = end
        tail = self._gap(html, last, len(html))
        if tail is not None:
            blocks.append(tail)
        return blocks

    def parse(self, html: str) -> List[ContentBlock]:
        try:
            blocks = self._scan(html)
        except MalformedInput as exc:
            logger.debug("Content block scan skipped: %s", exc)
            blocks = []
        if not blocks:
            return [HtmlBlock(html if isinstance(html, str) else "")]
        return blocks


def parse_content_blocks(html: str) -> List[ContentBlock]:
    return ContentBlockParser().parse(html)


def media_urls(blocks: Sequence[ContentBlock]) -> List[str]:
    return [block.url for block in blocks if isinstance(block, MediaBlock)]


def blocks_to_dicts(blocks: Sequence[ContentBlock]) -> List[Dict[str, Any]]:
    return [block.to_dict() for block in blocks]


__all__ = [
    "BLOCK_HTML",
    "BLOCK_MEDIA",
    "ContentBlock",
    "ContentBlockParser",
    "HtmlBlock",
    "MalformedInput",
    "MediaBlock",
    "blocks_to_dicts",
    "extract_src",
    "iter_media_spans",
    "media_urls",
    "parse_content_blocks",
]
