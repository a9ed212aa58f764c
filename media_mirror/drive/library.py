"""
Library facade over the local mirror.

Ties the upload pipeline, the local store and the remote delete queue
together for the operations that act on single entities:

    upload(path, request)   upload to Drive and mirror the new MediaAsset
    delete(kind, id)        drop the local row, then delete remotely in
                            the background
    get(kind, id)           read one entity (EntityNotFound on a miss)
    find_page(kind, ...)    page through a kind, newest first

Entities read back carry a thumbnail: a stored one as is, otherwise one
derived from the entity URL.
"""

from datetime import datetime, timezone
from pathlib import Path

from media_mirror.core.config import Config
from media_mirror.core.database import Database
from media_mirror.core.exceptions import EntityNotFound, RemoteSourceError
from media_mirror.core.logger import get_logger
from media_mirror.core.models import AssetSubtype, MediaAsset, MirroredEntity, MirroredKind
from media_mirror.drive.client import DriveClient
from media_mirror.drive.deleter import RemoteDeleteQueue
from media_mirror.drive.models import GLTF_MIME_TYPE, MIME_TYPES_BY_KIND
from media_mirror.drive.uploader import GLB_EXTENSION, UploadPipeline, UploadRequest
from media_mirror.utils import fill_thumbnail, resolve_thumbnail


logger = get_logger(__name__)


class MediaLibrary:
    """
    Single-entity operations on the mirror.

    Attributes:
        client: DriveClient for thumbnail lookups.
        database: Local store.
        pipeline: UploadPipeline used by upload().
        delete_queue: RemoteDeleteQueue used by delete().
    """

    def __init__(
        self,
        client: DriveClient,
        database: Database,
        config: Config,
        pipeline: UploadPipeline | None = None,
        delete_queue: RemoteDeleteQueue | None = None
    ) -> None:
        self.client = client
        self.database = database
        self.config = config
        self.pipeline = pipeline or UploadPipeline(client, config)
        self.delete_queue = delete_queue or RemoteDeleteQueue(client)

    def _thumbnail_for(self, remote_id: str, url: str) -> str | None:
        """Drive's thumbnailLink when available, else the derived CDN URL."""
        try:
            entry = self.client.get_entry(remote_id, fields="id, thumbnailLink")
        except RemoteSourceError as e:
            logger.debug(f"No thumbnail for {remote_id} from Drive: {e}")
        else:
            if entry.thumbnail_link:
                return entry.thumbnail_link
        return resolve_thumbnail(url)

    def upload(self, path: Path, request: UploadRequest) -> MediaAsset:
        """
        Upload a file and record it as a MediaAsset.

        A .glb file is always stored as MODEL_3D, whatever the request says.

        Returns:
            The MediaAsset now in the local store.

        Raises:
            UnsupportedContentType, UploadFailed: From the pipeline. Nothing
            is written locally in that case.
        """
        path = Path(path)
        subtype = request.subtype
        if path.suffix.lower() == GLB_EXTENSION:
            subtype = AssetSubtype.MODEL_3D
        if subtype is not request.subtype:
            request = UploadRequest(
                scope=request.scope,
                name=request.name,
                note=request.note,
                subtype=subtype,
            )

        result = self.pipeline.upload(path, request)

        if subtype is None:
            subtype = AssetSubtype.MODEL_3D if result.mime_type == GLTF_MIME_TYPE else AssetSubtype.NORMAL

        asset = MediaAsset(
            id=result.remote_id,
            name=result.name,
            scope=result.scope,
            url=result.url,
            thumbnail_url=self._thumbnail_for(result.remote_id, result.url),
            subtype=subtype,
            note=request.note,
            created_at=datetime.now(timezone.utc),
        )
        self.database.upsert(MirroredKind.MEDIA, asset)
        return asset

    def delete(self, kind: MirroredKind, entity_id: str) -> None:
        """
        Delete an entity locally, then remotely in the background.

        The remote outcome is never reported back; failures end up in the
        remote failures log.

        Raises:
            EntityNotFound: No local row with this id.
            ValueError: The kind is not backed by Drive.
        """
        if kind not in MIME_TYPES_BY_KIND:
            raise ValueError(f"{kind.name} entities cannot be deleted remotely")

        if not self.database.delete_by_id(kind, entity_id):
            raise EntityNotFound(
                f"No {kind.config_key} entity with id {entity_id}",
                details={"kind": kind.config_key, "remote_id": entity_id}
            )

        logger.info(f"Deleted {kind.config_key} {entity_id} locally, queueing remote delete")
        self.delete_queue.submit(entity_id)

    def get(self, kind: MirroredKind, entity_id: str) -> MirroredEntity:
        entity = self.database.get(kind, entity_id)
        if entity is None:
            raise EntityNotFound(
                f"No {kind.config_key} entity with id {entity_id}",
                details={"kind": kind.config_key, "remote_id": entity_id}
            )
        return fill_thumbnail(entity)

    def find_page(
        self,
        kind: MirroredKind,
        scope: str | None = None,
        search: str | None = None,
        offset: int = 0,
        limit: int = 20
    ) -> list[MirroredEntity]:
        page = self.database.find_page(kind, scope=scope, search=search, offset=offset, limit=limit)
        return [fill_thumbnail(entity) for entity in page]

    def close(self) -> None:
        """Drain pending remote deletes."""
        self.delete_queue.shutdown(wait=True)
