"""
Mirrored entity models for media-mirror.

Three kinds of entity are mirrored locally, one SQLite table each:

    MediaAsset     Drive images and 3D models      table media_assets
    ClipAsset      Drive video files               table clip_assets
    PlaylistVideo  YouTube playlist videos         table playlist_videos

Design Decisions:
    - All dataclasses are frozen (immutable); a sync builds fresh entities
      and upserts them instead of mutating stored ones
    - The id is the remote source's id, reused verbatim as primary key,
      so upsert is idempotent and orphan deletion is a set difference
    - Models are independent of the remote API formats; the factories that
      build them live next to each client (drive.models, youtube.models)
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Union


class MirroredKind(Enum):
    """Locally persisted entity kinds. The value is the table name."""
    MEDIA = "media_assets"
    CLIP = "clip_assets"
    PLAYLIST = "playlist_videos"

    @property
    def config_key(self) -> str:
        """Key under drive.scopes in config.yaml ("media" / "clip")."""
        return self.name.lower()

    @classmethod
    def from_name(cls, name: str) -> "MirroredKind":
        """Parse "media", "clip" or "playlist" (case-insensitive)."""
        try:
            return cls[name.strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown mirrored kind: {name}") from None


class AssetSubtype(Enum):
    """
    Subtype of a MediaAsset.

    The value is what gets written to Drive's appProperties["type"] on upload.
    """
    MODEL_3D = "3D"
    PHOTO_360 = "360"
    NORMAL = ""

    @classmethod
    def parse(cls, raw: str | None) -> "AssetSubtype | None":
        """
        Match either the member name ("MODEL_3D") or its value ("3D").

        Returns None when nothing matches, including for an empty string.
        """
        if not raw:
            return None
        candidate = raw.strip()
        for member in cls:
            if candidate.upper() == member.name or (member.value and candidate.upper() == member.value):
                return member
        return None


def _to_iso(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def _from_iso(value: str | None) -> datetime:
    if not value:
        return datetime.now(timezone.utc)
    return datetime.fromisoformat(value)


@dataclass(frozen=True)
class MediaAsset:
    """
    Immutable representation of a mirrored Drive image or 3D model.

    Attributes:
        id: Drive file id, reused as primary key.
        name: File name on Drive.
        scope: Caller-supplied scope tag (e.g. "ede"). Not recoverable from Drive.
        url: Proxy URL ({base}/proxy?id=...&name=...).
        thumbnail_url: Drive thumbnail, or the CDN URL derived from the id.
        subtype: 3D model, 360 photo or plain image.
        note: Drive description, may be None.
        created_at: Drive creation time.
    """
    id: str
    name: str
    scope: str
    url: str
    thumbnail_url: str | None
    subtype: AssetSubtype
    note: str | None
    created_at: datetime

    def to_database_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "scope": self.scope,
            "url": self.url,
            "thumbnail_url": self.thumbnail_url,
            "subtype": self.subtype.name,
            "note": self.note,
            "created_at": _to_iso(self.created_at),
        }

    @classmethod
    def from_database_row(cls, row: dict[str, Any]) -> "MediaAsset":
        return cls(
            id=row["id"],
            name=row["name"],
            scope=row["scope"],
            url=row["url"],
            thumbnail_url=row["thumbnail_url"],
            subtype=AssetSubtype[row["subtype"]] if row.get("subtype") else AssetSubtype.NORMAL,
            note=row["note"],
            created_at=_from_iso(row["created_at"]),
        )


@dataclass(frozen=True)
class ClipAsset:
    """
    Immutable representation of a mirrored Drive video file.

    Same shape as MediaAsset without a subtype.
    """
    id: str
    name: str
    scope: str
    url: str
    thumbnail_url: str | None
    note: str | None
    created_at: datetime

    def to_database_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "scope": self.scope,
            "url": self.url,
            "thumbnail_url": self.thumbnail_url,
            "note": self.note,
            "created_at": _to_iso(self.created_at),
        }

    @classmethod
    def from_database_row(cls, row: dict[str, Any]) -> "ClipAsset":
        return cls(
            id=row["id"],
            name=row["name"],
            scope=row["scope"],
            url=row["url"],
            thumbnail_url=row["thumbnail_url"],
            note=row["note"],
            created_at=_from_iso(row["created_at"]),
        )


@dataclass(frozen=True)
class PlaylistVideo:
    """
    Immutable representation of a mirrored YouTube playlist video.

    Attributes:
        id: YouTube video id (the playlist item's underlying video).
        url: Canonical watch URL.
        scope: Default scope tag; the playlist carries no per-item category.
    """
    id: str
    name: str
    scope: str
    url: str
    thumbnail_url: str | None
    note: str | None
    created_at: datetime

    def to_database_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "scope": self.scope,
            "url": self.url,
            "thumbnail_url": self.thumbnail_url,
            "note": self.note,
            "created_at": _to_iso(self.created_at),
        }

    @classmethod
    def from_database_row(cls, row: dict[str, Any]) -> "PlaylistVideo":
        return cls(
            id=row["id"],
            name=row["name"],
            scope=row["scope"],
            url=row["url"],
            thumbnail_url=row["thumbnail_url"],
            note=row["note"],
            created_at=_from_iso(row["created_at"]),
        )


MirroredEntity = Union[MediaAsset, ClipAsset, PlaylistVideo]

ENTITY_TYPES: dict[MirroredKind, type] = {
    MirroredKind.MEDIA: MediaAsset,
    MirroredKind.CLIP: ClipAsset,
    MirroredKind.PLAYLIST: PlaylistVideo,
}
