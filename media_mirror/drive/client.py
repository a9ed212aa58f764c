"""
Google Drive client for media-mirror.

Thin adapter over a googleapiclient Drive v3 resource. It normalizes
responses into RemoteEntry objects and maps library failures onto the
application's error taxonomy:

    HttpError 404               -> RemoteEntryNotFound
    HttpError 429 / 5xx         -> TransientNetworkFailure
    socket timeout              -> TransientNetworkFailure(is_timeout=True)
    connection reset / refused  -> TransientNetworkFailure
    any other HttpError         -> RemoteSourceError

Requests execute on a per-thread authorized transport when the client is
built from a service account: httplib2.Http objects must not be shared
between threads, and the background delete worker runs on its own thread.

The client does not retry. Retrying is the upload pipeline's job; listing
failures abort the sync pass that issued them.

Usage:
    client = DriveClient.from_service_account(config.drive.credentials_file)
    entries, next_token = client.list_children(folder_id)
"""

import socket
import threading
from pathlib import Path
from typing import Any, BinaryIO, Callable

import httplib2
from google.oauth2 import service_account
from google_auth_httplib2 import AuthorizedHttp
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaFileUpload, MediaIoBaseDownload

from media_mirror.core.exceptions import (
    RemoteEntryNotFound,
    RemoteSourceError,
    TransientNetworkFailure,
)
from media_mirror.core.logger import get_logger
from media_mirror.drive.models import ENTRY_FIELDS, RemoteEntry


logger = get_logger(__name__)

DRIVE_SCOPES = ["https://www.googleapis.com/auth/drive"]

LIST_ORDER = "createdTime desc, name asc"
MAX_PAGE_SIZE = 1000


def _translate_error(error: Exception, operation: str, remote_id: str) -> RemoteSourceError:
    """Map a googleapiclient / transport exception to a RemoteSourceError."""
    details = {"remote_id": remote_id, "operation": operation, "original_error": str(error)}

    if isinstance(error, HttpError):
        status = error.resp.status
        details["http_status"] = status
        if status == 404:
            return RemoteEntryNotFound(f"Drive entry {remote_id} not found", details=details)
        if status == 429 or status >= 500:
            return TransientNetworkFailure(
                f"Drive {operation} failed with HTTP {status}", details=details
            )
        return RemoteSourceError(f"Drive {operation} failed with HTTP {status}", details=details)

    if isinstance(error, (socket.timeout, TimeoutError)):
        return TransientNetworkFailure(
            f"Drive {operation} timed out", details=details, is_timeout=True
        )

    if isinstance(error, ConnectionError):
        return TransientNetworkFailure(f"Drive {operation} connection failed: {error}", details=details)

    return RemoteSourceError(f"Drive {operation} failed: {error}", details=details)


class DriveClient:
    """
    Synchronous Drive v3 adapter.

    Attributes:
        service: An authenticated googleapiclient Drive resource
                 (the result of build("drive", "v3", ...)).
        http_factory: Builds a fresh authorized transport. When set, each
                      thread executes requests on its own transport.
    """

    def __init__(self, service: Any, http_factory: Callable[[], Any] | None = None) -> None:
        self.service = service
        self.http_factory = http_factory
        self._local = threading.local()

    @classmethod
    def from_service_account(cls, credentials_file: Path) -> "DriveClient":
        """
        Build a client from a service-account JSON key.

        Args:
            credentials_file: Path to the key file.

        Raises:
            RemoteSourceError: If the key cannot be loaded.
        """
        try:
            credentials = service_account.Credentials.from_service_account_file(
                str(credentials_file), scopes=DRIVE_SCOPES
            )
        except (OSError, ValueError) as e:
            raise RemoteSourceError(
                f"Failed to load Drive credentials: {e}",
                details={"file_path": str(credentials_file)}
            ) from e

        service = build("drive", "v3", credentials=credentials, cache_discovery=False)
        return cls(service, http_factory=lambda: AuthorizedHttp(credentials, http=httplib2.Http()))

    def _thread_http(self) -> Any:
        """This thread's transport, or None to use the service's own."""
        if self.http_factory is None:
            return None
        http = getattr(self._local, "http", None)
        if http is None:
            http = self._local.http = self.http_factory()
        return http

    def _execute_kwargs(self) -> dict[str, Any]:
        http = self._thread_http()
        return {} if http is None else {"http": http}

    # =========================================================================
    # Listing
    # =========================================================================

    def list_children(
        self,
        folder_id: str,
        page_token: str | None = None,
        page_size: int = 200
    ) -> tuple[list[RemoteEntry], str | None]:
        """
        List one page of a folder's direct, non-trashed children.

        Args:
            folder_id: Drive folder id.
            page_token: Token from the previous page, None for the first page.
            page_size: Entries per page (capped at Drive's maximum).

        Returns:
            Tuple of (entries, next_page_token or None).

        Raises:
            RemoteSourceError: Any listing failure (see module docstring).
        """
        try:
            result = self.service.files().list(
                q=f"'{folder_id}' in parents and trashed = false",
                fields=f"nextPageToken, files({ENTRY_FIELDS})",
                pageToken=page_token,
                pageSize=min(page_size, MAX_PAGE_SIZE),
                orderBy=LIST_ORDER,
                supportsAllDrives=True,
                includeItemsFromAllDrives=True,
            ).execute(**self._execute_kwargs())
        except Exception as e:
            raise _translate_error(e, "list", folder_id) from e

        entries = [RemoteEntry.from_drive_api(f) for f in result.get("files", [])]
        logger.debug(f"Listed {len(entries)} entries in folder {folder_id}")
        return entries, result.get("nextPageToken")

    def get_entry(self, entry_id: str, fields: str = ENTRY_FIELDS) -> RemoteEntry:
        """Fetch a single entry's metadata."""
        try:
            data = self.service.files().get(
                fileId=entry_id,
                fields=fields,
                supportsAllDrives=True,
            ).execute(**self._execute_kwargs())
        except Exception as e:
            raise _translate_error(e, "get", entry_id) from e

        data.setdefault("id", entry_id)
        return RemoteEntry.from_drive_api(data)

    # =========================================================================
    # Mutations
    # =========================================================================

    def create_entry(self, metadata: dict[str, Any], path: Path, mime_type: str) -> str:
        """
        Upload a local file as a new Drive entry.

        Args:
            metadata: Drive file resource body (name, parents, description,
                      appProperties, ...).
            path: Local file to upload.
            mime_type: Content type sent with the upload.

        Returns:
            The new entry's id.
        """
        name = metadata.get("name", str(path))
        try:
            media = MediaFileUpload(str(path), mimetype=mime_type, resumable=False)
            created = self.service.files().create(
                body=metadata,
                media_body=media,
                fields="id",
                supportsAllDrives=True,
            ).execute(**self._execute_kwargs())
        except Exception as e:
            raise _translate_error(e, "create", name) from e

        remote_id = (created or {}).get("id")
        if not remote_id:
            raise RemoteSourceError(
                f"Drive create of {name} returned no id",
                details={"operation": "create", "remote_id": name}
            )
        return remote_id

    def set_public(self, entry_id: str) -> None:
        """Grant anyone-with-the-link read access."""
        try:
            self.service.permissions().create(
                fileId=entry_id,
                body={"type": "anyone", "role": "reader"},
                supportsAllDrives=True,
            ).execute(**self._execute_kwargs())
        except Exception as e:
            raise _translate_error(e, "publish", entry_id) from e

    def delete_entry(self, entry_id: str) -> None:
        try:
            self.service.files().delete(fileId=entry_id, supportsAllDrives=True).execute(
                **self._execute_kwargs()
            )
        except Exception as e:
            raise _translate_error(e, "delete", entry_id) from e

    def fetch_content(self, entry_id: str, stream: BinaryIO) -> None:
        """
        Stream an entry's bytes into a writable binary stream.

        Used by the content proxy; the stream is not closed.
        """
        try:
            request = self.service.files().get_media(fileId=entry_id, supportsAllDrives=True)
            http = self._thread_http()
            if http is not None:
                request.http = http
            downloader = MediaIoBaseDownload(stream, request)
            done = False
            while not done:
                _, done = downloader.next_chunk()
        except Exception as e:
            raise _translate_error(e, "fetch", entry_id) from e
