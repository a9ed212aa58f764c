"""
YouTube data models for media-mirror.

Builds the mirrored PlaylistVideo from a videos.list resource.
"""

from datetime import datetime, timezone
from typing import Any

from media_mirror.core.models import PlaylistVideo
from media_mirror.utils import parse_remote_timestamp


WATCH_URL_TEMPLATE = "https://www.youtube.com/watch?v={id}"
SYNC_NOTE = "Synced from YouTube playlist"

# Highest quality first
THUMBNAIL_PRIORITY = ("high", "medium", "default")


class MalformedVideoRecord(ValueError):
    """A videos.list item lacks the fields needed to mirror it."""


def best_thumbnail(thumbnails: dict[str, Any] | None) -> str | None:
    """Return the URL of the best available thumbnail, or None."""
    if not thumbnails:
        return None
    for quality in THUMBNAIL_PRIORITY:
        url = (thumbnails.get(quality) or {}).get("url")
        if url:
            return url
    return None


def playlist_video_from_api(data: dict[str, Any], scope: str) -> PlaylistVideo:
    """
    Create a PlaylistVideo from a videos.list item.

    Args:
        data: One item of videos.list()["items"] with the snippet part.
        scope: Scope tag stamped on the video.

    Returns:
        PlaylistVideo keyed by the video id. created_at is the video's
        publishedAt, or now when YouTube omits it.

    Raises:
        MalformedVideoRecord: No id, no snippet or no title.

    Example:
        details = client.list_media_details(video_ids)
        videos = [playlist_video_from_api(item, "ede") for item in details]
    """
    video_id = data.get("id")
    snippet = data.get("snippet")
    if not video_id or not isinstance(snippet, dict) or not snippet.get("title"):
        raise MalformedVideoRecord(f"Video record {video_id or '<no id>'} has no snippet title")

    return PlaylistVideo(
        id=video_id,
        name=snippet["title"],
        scope=scope,
        url=WATCH_URL_TEMPLATE.format(id=video_id),
        thumbnail_url=best_thumbnail(snippet.get("thumbnails")),
        note=SYNC_NOTE,
        created_at=parse_remote_timestamp(snippet.get("publishedAt")) or datetime.now(timezone.utc),
    )
