"""
Drive data models for media-mirror.

RemoteEntry is the normalized shape of one Drive file or folder as returned
by files.list / files.get. The factories at the bottom turn a leaf entry
into the entity mirrored locally (MediaAsset or ClipAsset).

MIME Sets:
    MEDIA_MIME_TYPES    images plus binary glTF models
    CLIP_MIME_TYPES     mp4 video
    FOLDER_MIME_TYPE    Drive's folder pseudo-type
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from media_mirror.core.models import AssetSubtype, ClipAsset, MediaAsset, MirroredKind
from media_mirror.utils import build_proxy_url, parse_remote_timestamp, resolve_thumbnail


FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
GLTF_MIME_TYPE = "model/gltf-binary"

MEDIA_MIME_TYPES = frozenset({
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
    GLTF_MIME_TYPE,
})
CLIP_MIME_TYPES = frozenset({"video/mp4"})

# Uploads are images only; sync accepts glTF as well
UPLOAD_MIME_TYPES = MEDIA_MIME_TYPES

MIME_TYPES_BY_KIND: dict[MirroredKind, frozenset[str]] = {
    MirroredKind.MEDIA: MEDIA_MIME_TYPES,
    MirroredKind.CLIP: CLIP_MIME_TYPES,
}

# Fields requested for every listed or fetched entry
ENTRY_FIELDS = (
    "id, name, mimeType, parents, webViewLink, thumbnailLink, "
    "description, createdTime, appProperties"
)


@dataclass(frozen=True)
class RemoteEntry:
    """
    One file or folder on Drive.

    Attributes:
        id: Drive file id.
        name: File name.
        mime_type: Drive mimeType.
        parents: Parent folder ids (a file may have several).
        web_view_link: Browser link, used as thumbnail fallback input.
        thumbnail_link: Drive-generated thumbnail, may be None.
        description: Free-text description, mirrored as the note.
        created_time: Creation time, None if Drive omitted it.
        app_properties: Application key/value properties (e.g. {"type": "3D"}).
    """
    id: str
    name: str
    mime_type: str
    parents: tuple[str, ...] = ()
    web_view_link: str | None = None
    thumbnail_link: str | None = None
    description: str | None = None
    created_time: datetime | None = None
    app_properties: dict[str, str] = field(default_factory=dict)

    @property
    def is_folder(self) -> bool:
        return self.mime_type == FOLDER_MIME_TYPE

    @classmethod
    def from_drive_api(cls, data: dict[str, Any]) -> "RemoteEntry":
        """
        Create a RemoteEntry from a Drive v3 file resource.

        Args:
            data: One item of files.list()["files"], or a files.get() result.
                  Only "id" is required; missing fields take defaults.

        Example:
            result = service.files().list(q=..., fields=...).execute()
            entries = [RemoteEntry.from_drive_api(f) for f in result.get("files", [])]
        """
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            mime_type=data.get("mimeType", ""),
            parents=tuple(data.get("parents") or ()),
            web_view_link=data.get("webViewLink"),
            thumbnail_link=data.get("thumbnailLink"),
            description=data.get("description"),
            created_time=parse_remote_timestamp(data.get("createdTime")),
            app_properties=dict(data.get("appProperties") or {}),
        )


def infer_subtype(entry: RemoteEntry) -> AssetSubtype:
    """
    Work out the MediaAsset subtype of a Drive entry.

    Order:
        1. glTF binary MIME type -> MODEL_3D
        2. "360" anywhere in the name -> PHOTO_360
        3. appProperties["type"] matching a subtype name or value
        4. NORMAL
    """
    if entry.mime_type == GLTF_MIME_TYPE:
        return AssetSubtype.MODEL_3D
    if "360" in entry.name:
        return AssetSubtype.PHOTO_360
    return AssetSubtype.parse(entry.app_properties.get("type")) or AssetSubtype.NORMAL


def thumbnail_for(entry: RemoteEntry, fallback_url: str) -> str | None:
    """Drive's thumbnail when present, else the CDN URL derived from the view link."""
    if entry.thumbnail_link:
        return entry.thumbnail_link
    return resolve_thumbnail(entry.web_view_link or fallback_url)


def media_asset_from_entry(entry: RemoteEntry, scope: str, proxy_base_url: str) -> MediaAsset:
    """Build the MediaAsset mirrored for a Drive leaf under a scope tag."""
    url = build_proxy_url(proxy_base_url, entry.id, entry.name)
    return MediaAsset(
        id=entry.id,
        name=entry.name,
        scope=scope,
        url=url,
        thumbnail_url=thumbnail_for(entry, url),
        subtype=infer_subtype(entry),
        note=entry.description,
        created_at=entry.created_time or datetime.now(timezone.utc),
    )


def clip_asset_from_entry(entry: RemoteEntry, scope: str, proxy_base_url: str) -> ClipAsset:
    """Build the ClipAsset mirrored for a Drive video leaf under a scope tag."""
    url = build_proxy_url(proxy_base_url, entry.id, entry.name)
    return ClipAsset(
        id=entry.id,
        name=entry.name,
        scope=scope,
        url=url,
        thumbnail_url=thumbnail_for(entry, url),
        note=entry.description,
        created_at=entry.created_time or datetime.now(timezone.utc),
    )
