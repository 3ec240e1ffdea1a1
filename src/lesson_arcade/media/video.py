from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import parse_qs, urlparse

import requests
from pydantic import BaseModel

from lesson_arcade.errors import MetadataLookupError

logger = logging.getLogger(__name__)

DEFAULT_OEMBED_ENDPOINT = "https://www.youtube.com/oembed"


class VideoMetadata(BaseModel):
    """Title and author reported by the oEmbed provider."""

    title: str
    author_name: Optional[str] = None


def extract_video_id(url: str) -> Optional[str]:
    """Return the YouTube video id from a ``youtu.be`` or ``youtube.com/watch`` URL."""
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return None
    host = (parsed.hostname or "").lower()
    if host == "youtu.be":
        video_id = parsed.path.lstrip("/").split("/", 1)[0]
    elif "youtube.com" in host:
        video_id = parse_qs(parsed.query).get("v", [""])[0]
    else:
        video_id = ""
    return video_id or None


def embed_url(url: str) -> Optional[str]:
    video_id = extract_video_id(url)
    if video_id is None:
        return None
    return f"https://www.youtube.com/embed/{video_id}?rel=0"


def fetch_video_metadata(
    url: str,
    *,
    endpoint: str = DEFAULT_OEMBED_ENDPOINT,
    timeout: float = 10.0,
    session: Optional[requests.Session] = None,
) -> VideoMetadata:
    """Look up title and author for a video URL, raising ``MetadataLookupError`` on any failure."""
    http_get = session.get if session is not None else requests.get
    try:
        response = http_get(endpoint, params={"url": url, "format": "json"}, timeout=timeout)
        response.raise_for_status()
        data = response.json()
    except requests.RequestException as exc:
        logger.warning("oEmbed lookup failed for %s: %s", url, exc)
        raise MetadataLookupError(f"Could not fetch video details for {url}.") from exc
    except ValueError as exc:
        raise MetadataLookupError(f"oEmbed response for {url} was not JSON.") from exc

    title = data.get("title") if isinstance(data, dict) else None
    if not isinstance(title, str) or not title.strip():
        raise MetadataLookupError(f"oEmbed response for {url} carried no title.")
    author = data.get("author_name")
    return VideoMetadata(title=title.strip(), author_name=author if isinstance(author, str) else None)
