"""
Upload pipeline for media-mirror.

Pushes a local image (or binary glTF model) into the Drive folder of a
MEDIA scope and makes it publicly readable.

Steps:
    (a) Sniff the content type from the file bytes (Pillow); a .glb
        extension is taken as model/gltf-binary
    (b) Reject anything outside the allowed set, before any network call
    (c) Resolve the target folder from the scope (unknown -> default scope)
    (d) Create the Drive entry with name, parent, description and the
        subtype app property
    (e) Grant anyone/reader (best effort)
    (f) Return the proxy URL for the new entry

Retry:
    Steps (d)-(f) run up to upload.max_attempts times. After a timeout the
    pipeline sleeps attempt * timeout_backoff seconds, after any other
    failure attempt * error_backoff seconds. There is no sleep after the
    final attempt. Content-type rejection is never retried.
"""

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from PIL import Image, UnidentifiedImageError

from media_mirror.core.config import Config
from media_mirror.core.exceptions import (
    ConfigError,
    TransientNetworkFailure,
    UnsupportedContentType,
    UploadFailed,
)
from media_mirror.core.logger import get_logger, log_remote_failure
from media_mirror.core.models import AssetSubtype, MirroredKind
from media_mirror.drive.client import DriveClient
from media_mirror.drive.models import GLTF_MIME_TYPE, UPLOAD_MIME_TYPES
from media_mirror.utils import build_proxy_url


logger = get_logger(__name__)

UNKNOWN_MIME_TYPE = "application/octet-stream"
GLB_EXTENSION = ".glb"

# Multi-picture JPEGs from phone cameras open as MPO
FORMAT_MIME_OVERRIDES = {"MPO": "image/jpeg"}


@dataclass(frozen=True)
class UploadRequest:
    """
    What to upload and how to label it.

    Attributes:
        scope: Target scope tag; unknown or empty uses the default scope.
        name: Remote file name. Defaults to the local file name.
        note: Stored as the Drive description.
        subtype: Written to appProperties["type"] for 3D and 360 uploads.
    """
    scope: str | None = None
    name: str | None = None
    note: str | None = None
    subtype: AssetSubtype | None = None


@dataclass(frozen=True)
class UploadResult:
    """
    Attributes:
        remote_id: Id of the created Drive entry.
        url: Proxy URL the entry is served from.
        mime_type: Sniffed content type.
        scope: Scope the entry was filed under.
        name: Remote file name.
        attempts: Attempts used (1 when the first try succeeded).
    """
    remote_id: str
    url: str
    mime_type: str
    scope: str
    name: str
    attempts: int


def sniff_content_type(path: Path) -> str:
    """
    Detect a file's MIME type from its bytes.

    A .glb extension wins over sniffing. Anything Pillow cannot identify
    is reported as application/octet-stream.
    """
    if path.suffix.lower() == GLB_EXTENSION:
        return GLTF_MIME_TYPE

    try:
        with Image.open(path) as img:
            image_format = img.format
    except UnidentifiedImageError:
        return UNKNOWN_MIME_TYPE

    if image_format in FORMAT_MIME_OVERRIDES:
        return FORMAT_MIME_OVERRIDES[image_format]
    return Image.MIME.get(image_format or "", UNKNOWN_MIME_TYPE)


class UploadPipeline:
    """
    Uploads local files to Drive with bounded retries.

    Attributes:
        client: DriveClient used for create and publish.
        config: Application config (scope folders, proxy base, retry policy).
        sleep: Blocking sleep function; injectable for tests.
    """

    def __init__(
        self,
        client: DriveClient,
        config: Config,
        sleep: Callable[[float], None] = time.sleep
    ) -> None:
        self.client = client
        self.config = config
        self.sleep = sleep

    def resolve_folder(self, scope: str | None) -> tuple[str, str]:
        """
        Return (scope, folder_id) for an upload.

        Unknown or empty scopes fall back to drive.default_scope.
        """
        folders = self.config.drive.folders_for(MirroredKind.MEDIA.config_key)
        tag = (scope or "").strip().lower()
        if tag not in folders:
            if tag:
                logger.warning(
                    f"Unknown upload scope '{scope}', using '{self.config.drive.default_scope}'"
                )
            tag = self.config.drive.default_scope
        if tag not in folders:
            raise ConfigError(
                "No media folders configured for uploads",
                details={"field": "drive.scopes.media"}
            )
        return tag, folders[tag]

    def _build_metadata(
        self,
        name: str,
        folder_id: str,
        request: UploadRequest
    ) -> dict:
        metadata = {"name": name, "parents": [folder_id]}
        if request.note:
            metadata["description"] = request.note
        if request.subtype in (AssetSubtype.MODEL_3D, AssetSubtype.PHOTO_360):
            metadata["appProperties"] = {"type": request.subtype.value}
        return metadata

    def _attempt(self, path: Path, metadata: dict, mime_type: str) -> str:
        remote_id = self.client.create_entry(metadata, path, mime_type)
        try:
            self.client.set_public(remote_id)
        except Exception as e:
            log_remote_failure(logger, "publish", remote_id, e)
        return remote_id

    def _backoff(self, attempt: int, error: BaseException) -> float:
        policy = self.config.upload
        if isinstance(error, TransientNetworkFailure) and error.is_timeout:
            return attempt * policy.timeout_backoff
        return attempt * policy.error_backoff

    def upload(self, path: Path, request: UploadRequest) -> UploadResult:
        """
        Upload one file.

        Args:
            path: Local file.
            request: Scope, name, note and subtype for the new entry.

        Returns:
            UploadResult for the created entry.

        Raises:
            UnsupportedContentType: The file is not an allowed image type.
                                    Raised before any network call.
            UploadFailed: Every attempt failed. Carries the attempt count
                          and the final attempt's exception.
        """
        path = Path(path)
        try:
            mime_type = sniff_content_type(path)
        except OSError as e:
            raise UnsupportedContentType(
                f"Cannot read upload file: {e}",
                details={"file_path": str(path), "original_error": str(e)}
            ) from e

        if mime_type not in UPLOAD_MIME_TYPES:
            raise UnsupportedContentType(
                f"Only image files are allowed. Detected type: {mime_type}",
                details={"file_path": str(path), "mime_type": mime_type}
            )

        scope, folder_id = self.resolve_folder(request.scope)
        name = request.name or path.name
        metadata = self._build_metadata(name, folder_id, request)

        max_attempts = self.config.upload.max_attempts
        last_error: BaseException | None = None

        for attempt in range(1, max_attempts + 1):
            try:
                remote_id = self._attempt(path, metadata, mime_type)
            except Exception as e:
                last_error = e
                logger.warning(f"Upload attempt {attempt}/{max_attempts} for {name} failed: {e}")
                if attempt < max_attempts:
                    self.sleep(self._backoff(attempt, e))
                continue

            url = build_proxy_url(self.config.proxy.base_url, remote_id, name)
            logger.info(f"Uploaded {name} to scope '{scope}' as {remote_id}")
            return UploadResult(
                remote_id=remote_id,
                url=url,
                mime_type=mime_type,
                scope=scope,
                name=name,
                attempts=attempt,
            )

        raise UploadFailed(
            f"Upload of {name} failed after {max_attempts} attempts: {last_error}",
            attempts=max_attempts,
            last_cause=last_error,
            details={"file_path": str(path), "scope": scope}
        )
