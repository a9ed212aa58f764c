"""
YouTube Data API v3 client for media-mirror.

Only the two read calls the playlist mirror needs:

    playlistItems.list  one page of a playlist -> video ids + next token
    videos.list         details (snippet, statistics) for a batch of ids

Errors are mapped like the Drive client's:
    timeouts                -> TransientNetworkFailure(is_timeout=True)
    connection failures     -> TransientNetworkFailure
    HTTP 404                -> RemoteEntryNotFound
    HTTP 429 / 5xx          -> TransientNetworkFailure
    other HTTP / bad JSON   -> RemoteSourceError
"""

from typing import Any

import requests

from media_mirror.core.exceptions import (
    RemoteEntryNotFound,
    RemoteSourceError,
    TransientNetworkFailure,
)
from media_mirror.core.logger import get_logger


logger = get_logger(__name__)

API_BASE_URL = "https://www.googleapis.com/youtube/v3"

# videos.list accepts at most 50 ids per call
MAX_PAGE_SIZE = 50


class PlaylistClient:
    """
    Synchronous YouTube Data API client over a requests.Session.

    Attributes:
        api_key: API key sent with every request.
        timeout: Per-request timeout in seconds.
        session: Shared HTTP session.
    """

    def __init__(
        self,
        api_key: str,
        timeout: float = 30.0,
        session: requests.Session | None = None
    ) -> None:
        self.api_key = api_key
        self.timeout = timeout
        self.base_url = API_BASE_URL
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json"})

    def _get(self, endpoint: str, params: dict[str, Any]) -> dict[str, Any]:
        """
        GET an API endpoint and return the decoded JSON body.

        Raises:
            RemoteSourceError: Any failure, mapped as in the module docstring.
        """
        params = dict(params, key=self.api_key)
        url = f"{self.base_url}/{endpoint}"
        details = {"endpoint": endpoint}

        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            raise TransientNetworkFailure(
                f"YouTube {endpoint} request timed out",
                details=dict(details, original_error=str(e)),
                is_timeout=True
            ) from e
        except requests.exceptions.ConnectionError as e:
            raise TransientNetworkFailure(
                f"YouTube {endpoint} connection failed: {e}",
                details=dict(details, original_error=str(e))
            ) from e
        except requests.exceptions.RequestException as e:
            raise RemoteSourceError(
                f"YouTube {endpoint} request failed: {e}",
                details=dict(details, original_error=str(e))
            ) from e

        status = response.status_code
        if status >= 400:
            details["http_status"] = status
            message = f"YouTube {endpoint} failed with HTTP {status}"
            if status == 404:
                raise RemoteEntryNotFound(message, details=details)
            if status == 429 or status >= 500:
                raise TransientNetworkFailure(message, details=details)
            raise RemoteSourceError(message, details=details)

        try:
            return response.json()
        except ValueError as e:
            raise RemoteSourceError(
                f"YouTube {endpoint} returned invalid JSON",
                details=dict(details, original_error=str(e))
            ) from e

    def list_playlist_entries(
        self,
        playlist_id: str,
        page_token: str | None = None,
        page_size: int = MAX_PAGE_SIZE
    ) -> tuple[list[str], str | None]:
        """
        Fetch one page of a playlist.

        Returns:
            Tuple of (video ids in playlist order, next_page_token or None).
            Items without a video id (deleted / private) are skipped.
        """
        params = {
            "part": "snippet,contentDetails",
            "playlistId": playlist_id,
            "maxResults": min(page_size, MAX_PAGE_SIZE),
        }
        if page_token:
            params["pageToken"] = page_token

        data = self._get("playlistItems", params)

        video_ids = []
        for item in data.get("items", []):
            video_id = (item.get("contentDetails") or {}).get("videoId")
            if video_id:
                video_ids.append(video_id)

        return video_ids, data.get("nextPageToken")

    def list_media_details(self, video_ids: list[str]) -> list[dict[str, Any]]:
        """
        Fetch snippet and statistics for a batch of videos in one call.

        Returns:
            Raw video resources. Ids YouTube no longer knows are absent.
        """
        if not video_ids:
            return []

        data = self._get("videos", {
            "part": "snippet,statistics",
            "id": ",".join(video_ids[:MAX_PAGE_SIZE]),
        })
        return list(data.get("items", []))
