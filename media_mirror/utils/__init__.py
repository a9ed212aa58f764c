"""
Utility functions for media-mirror.

This module provides small pure helpers used across the application:
    - Thumbnail URL derivation from Drive links or ids
    - Thumbnail gap filling for entities read back from the store
    - Proxy URL construction for mirrored entities
    - Playlist id extraction from YouTube URLs
    - Remote (RFC 3339) timestamp parsing

None of these perform I/O.

Usage:
    from media_mirror.utils import (
        resolve_thumbnail,
        fill_thumbnail,
        build_proxy_url,
        extract_playlist_id,
        parse_remote_timestamp
    )
"""

import re
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any
from urllib.parse import urlencode


DRIVE_THUMBNAIL_TEMPLATE = "https://lh3.googleusercontent.com/drive-storage/{id}=s220"

# Drive file ids are 25+ characters of [A-Za-z0-9_-]
_DRIVE_ID_PATTERN = re.compile(r"[-\w]{25,}", re.ASCII)

_PLAYLIST_ID_PATTERN = re.compile(r"list=([a-zA-Z0-9_-]+)")


def resolve_thumbnail(value: str | None, template: str = DRIVE_THUMBNAIL_TEMPLATE) -> str | None:
    """
    Derive a thumbnail CDN URL from anything that embeds a Drive id.

    Args:
        value: A Drive link (webViewLink, proxy URL, ...) or a bare id.
        template: URL template with an {id} placeholder.

    Returns:
        The CDN URL built from the first id-shaped token, the input
        unchanged when no token is found, or None for None.

    Examples:
        resolve_thumbnail("https://drive.google.com/file/d/1AbCdEfGhIjKlMnOpQrStUvWxYz/view")
        # "https://lh3.googleusercontent.com/drive-storage/1AbCdEfGhIjKlMnOpQrStUvWxYz=s220"

        resolve_thumbnail("not-a-link")  # "not-a-link"
    """
    if value is None:
        return None

    match = _DRIVE_ID_PATTERN.search(value)
    if match is None:
        return value
    return template.format(id=match.group(0))


def fill_thumbnail(entity: Any) -> Any:
    """
    Return a mirrored entity with its thumbnail filled in for display.

    A stored thumbnail is kept as is. A missing one is derived from the
    entity URL with resolve_thumbnail(). The entity must be a dataclass
    with url and thumbnail_url fields.
    """
    if entity.thumbnail_url is not None:
        return entity
    return replace(entity, thumbnail_url=resolve_thumbnail(entity.url))


def build_proxy_url(base_url: str, remote_id: str, name: str) -> str:
    """
    Build the proxy URL a mirrored Drive entity is served from.

    Args:
        base_url: Proxy base, without trailing slash.
        remote_id: Drive file id.
        name: File name, query-encoded.

    Example:
        build_proxy_url("http://localhost:9090/api/ggdrive", "1Ab", "gong 360.jpg")
        # "http://localhost:9090/api/ggdrive/proxy?id=1Ab&name=gong+360.jpg"
    """
    return f"{base_url.rstrip('/')}/proxy?{urlencode({'id': remote_id, 'name': name})}"


def extract_playlist_id(url: str) -> str | None:
    """Return the list=... parameter of a YouTube URL, or None."""
    if not url:
        return None
    match = _PLAYLIST_ID_PATTERN.search(url)
    return match.group(1) if match else None


def parse_remote_timestamp(value: str | None) -> datetime | None:
    """
    Parse an RFC 3339 timestamp as returned by Drive and YouTube.

    Accepts a trailing 'Z' and fractional seconds. A value without offset
    is taken as UTC.

    Returns:
        Timezone-aware datetime, or None if value is empty or unparseable.
    """
    if not value:
        return None

    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
