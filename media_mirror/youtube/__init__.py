"""
YouTube playlist mirroring for media-mirror.

This module provides:
    - client: YouTube Data API v3 client (requests)
    - models: PlaylistVideo construction from API resources
    - sync: Page-by-page playlist mirroring

Usage:
    from media_mirror.youtube import PlaylistClient, PlaylistSync

    client = PlaylistClient(config.youtube.api_key, timeout=config.youtube.timeout)
    PlaylistSync(client, database, config).sync_all()
"""

from media_mirror.youtube.client import PlaylistClient
from media_mirror.youtube.models import playlist_video_from_api
from media_mirror.youtube.sync import PlaylistSync

__all__ = [
    "PlaylistClient",
    "PlaylistSync",
    "playlist_video_from_api",
]
