"""Helpers for media block URLs (YouTube ids, thumbnails, player URLs)."""

from __future__ import annotations

import re
from typing import Optional

_YOUTUBE_ID_RE = re.compile(r"(youtu\.be/|v/|u/\w/|embed/|watch\?v=|&v=)([^#&?/]*)", re.I)
_YOUTUBE_ID_LENGTH = 11
_PLAYER_PARAMS = "autoplay=1&playsinline=1"


def youtube_video_id(url: str) -> Optional[str]:
    """Return the 11-character YouTube video id embedded in ``url``."""

    if not url:
        return None
    for match in _YOUTUBE_ID_RE.finditer(url):
        video_id = match.group(2)
        if len(video_id) == _YOUTUBE_ID_LENGTH:
            return video_id
    return None


def youtube_thumbnail_url(url: str) -> Optional[str]:
    video_id = youtube_video_id(url)
    if not video_id:
        return None
    return f"https://img.youtube.com/vi/{video_id}/hqdefault.jpg"


def player_url(url: str) -> str:
    """Rewrite YouTube watch/short links into autoplaying embed URLs.

    Anything else (including URLs that are already embeds) is returned as is.
    """

    if not url:
        return url or ""
    if "youtube.com/watch" not in url and "youtu.be/" not in url:
        return url
    final = url.replace("watch?v=", "embed/").replace("youtu.be/", "www.youtube.com/embed/")
    if "?" not in final and "&" in final:
        # watch?v=ID&t=10 leaves the remaining params without a query marker
        final = final.replace("&", "?", 1)
    separator = "&" if "?" in final else "?"
    return f"{final}{separator}{_PLAYER_PARAMS}"


__all__ = ["player_url", "youtube_thumbnail_url", "youtube_video_id"]
