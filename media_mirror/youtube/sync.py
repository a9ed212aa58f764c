"""
Playlist mirroring for media-mirror.

Copies every video of the configured YouTube playlist into the
playlist_videos table.

Loop:
    1. Fetch a page of playlist items (50 per page)
    2. Fetch the details of that page's videos in one call
    3. Build and upsert each video immediately
    4. Follow nextPageToken until there is none

Unlike the Drive reconciler there is no orphan deletion: videos removed
from the playlist stay mirrored until reset() empties the table. A page
failure aborts the sync; pages already written stay committed.
"""

from media_mirror.core.config import Config
from media_mirror.core.database import Database
from media_mirror.core.exceptions import ConfigError, ReconciliationAborted, RemoteSourceError
from media_mirror.core.logger import get_logger
from media_mirror.core.models import MirroredKind, PlaylistVideo
from media_mirror.utils import extract_playlist_id
from media_mirror.youtube.client import MAX_PAGE_SIZE, PlaylistClient
from media_mirror.youtube.models import MalformedVideoRecord, playlist_video_from_api


logger = get_logger(__name__)


class PlaylistSync:
    """
    Mirrors one YouTube playlist.

    Attributes:
        client: PlaylistClient.
        database: Local store.
        config: Application config (playlist URL, default scope).
    """

    def __init__(self, client: PlaylistClient, database: Database, config: Config) -> None:
        self.client = client
        self.database = database
        self.config = config

    @property
    def playlist_id(self) -> str:
        """
        The list=... id of the configured playlist URL.

        Raises:
            ConfigError: If the URL is missing or carries no list parameter.
        """
        url = self.config.youtube.playlist_url
        playlist_id = extract_playlist_id(url)
        if playlist_id is None:
            raise ConfigError(
                f"Playlist URL has no list= parameter: '{url}'",
                details={"field": "youtube.playlist_url", "value": url}
            )
        return playlist_id

    def sync_all(self) -> list[PlaylistVideo]:
        """
        Mirror every video of the playlist.

        Returns:
            The videos written, in playlist order.

        Raises:
            ConfigError: Playlist URL unusable.
            ReconciliationAborted: A page or detail fetch failed. Videos from
                                   earlier pages are already stored.
        """
        playlist_id = self.playlist_id
        scope = self.config.youtube.default_scope

        synced: list[PlaylistVideo] = []
        page_token: str | None = None
        page_number = 0

        while True:
            page_number += 1
            try:
                video_ids, page_token = self.client.list_playlist_entries(
                    playlist_id, page_token=page_token, page_size=MAX_PAGE_SIZE
                )
                details = self.client.list_media_details(video_ids)
            except RemoteSourceError as e:
                raise ReconciliationAborted(
                    f"Playlist sync failed on page {page_number}: {e.message}",
                    failures={f"page {page_number}": e},
                    details={"playlist_id": playlist_id, "synced": len(synced)}
                ) from e

            for record in details:
                try:
                    video = playlist_video_from_api(record, scope)
                except MalformedVideoRecord as e:
                    logger.warning(f"Skipping playlist video: {e}")
                    continue
                self.database.upsert(MirroredKind.PLAYLIST, video)
                synced.append(video)

            logger.debug(f"Playlist page {page_number}: {len(details)} videos")

            if not page_token:
                break

        logger.info(f"Synced {len(synced)} videos from playlist {playlist_id}")
        return synced

    def reset(self) -> int:
        """Delete every mirrored playlist video. Returns the count removed."""
        removed = self.database.delete_all(MirroredKind.PLAYLIST)
        logger.info(f"Reset playlist: removed {removed} rows")
        return removed
