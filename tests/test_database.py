"""Test the SQLite local store"""

import sqlite3
from datetime import datetime, timezone

import pytest

from media_mirror.core.database import DATABASE_VERSION, Database
from media_mirror.core.exceptions import DatabaseError
from media_mirror.core.models import AssetSubtype, MediaAsset, MirroredKind, PlaylistVideo


def asset(asset_id: str, scope: str = "ede", name: str | None = None, day: int = 1, **fields) -> MediaAsset:
    values = dict(
        id=asset_id,
        name=name or f"{asset_id}.jpg",
        scope=scope,
        url=f"http://proxy/{asset_id}",
        thumbnail_url=None,
        subtype=AssetSubtype.NORMAL,
        note=None,
        created_at=datetime(2024, 1, day, tzinfo=timezone.utc),
    )
    values.update(fields)
    return MediaAsset(**values)


class TestDatabase:
    """Test store semantics"""

    def test_missing_parent_directory(self, temp_dir):
        with pytest.raises(DatabaseError):
            Database(temp_dir / "missing" / "mirror.db")

    def test_version_mismatch(self, temp_dir):
        path = temp_dir / "mirror.db"
        Database(path).close()
        conn = sqlite3.connect(path)
        conn.execute("UPDATE schema_version SET version = ?", (DATABASE_VERSION + 1,))
        conn.commit()
        conn.close()

        with pytest.raises(DatabaseError):
            Database(path)

    def test_upsert_is_idempotent(self, database):
        database.upsert(MirroredKind.MEDIA, asset("a"))
        database.upsert(MirroredKind.MEDIA, asset("a"))
        assert database.count(MirroredKind.MEDIA) == 1

    def test_upsert_overwrites_every_field(self, database):
        database.upsert(MirroredKind.MEDIA, asset("a", note="old"))
        updated = asset("a", scope="jrai", note=None, subtype=AssetSubtype.MODEL_3D, thumbnail_url="t")

        database.upsert(MirroredKind.MEDIA, updated)

        assert database.get(MirroredKind.MEDIA, "a") == updated

    def test_wrong_entity_type(self, database):
        with pytest.raises(TypeError):
            database.upsert(MirroredKind.CLIP, asset("a"))

    def test_kinds_are_separate_tables(self, database):
        database.upsert(MirroredKind.MEDIA, asset("a"))
        database.upsert(MirroredKind.PLAYLIST, PlaylistVideo(
            id="a",
            name="Video",
            scope="ede",
            url="https://www.youtube.com/watch?v=a",
            thumbnail_url=None,
            note="Synced from YouTube playlist",
            created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        ))

        database.delete_all(MirroredKind.MEDIA)

        assert database.exists(MirroredKind.PLAYLIST, "a")

    def test_find_all_ids_by_scope(self, database):
        database.upsert_all(MirroredKind.MEDIA, [asset("a"), asset("b", scope="jrai")])
        assert database.find_all_ids(MirroredKind.MEDIA) == {"a", "b"}
        assert database.find_all_ids(MirroredKind.MEDIA, scope="jrai") == {"b"}

    def test_delete_all_by_ids(self, database):
        database.upsert_all(MirroredKind.MEDIA, [asset(i) for i in "abc"])
        assert database.delete_all_by_ids(MirroredKind.MEDIA, ["a", "c", "zzz"]) == 2
        assert database.find_all_ids(MirroredKind.MEDIA) == {"b"}

    def test_delete_many_ids(self, database):
        """Batches larger than SQLite's parameter limit"""
        database.upsert_all(MirroredKind.MEDIA, [asset(f"id{i}") for i in range(2000)])
        assert database.delete_all_by_ids(MirroredKind.MEDIA, [f"id{i}" for i in range(2000)]) == 2000

    def test_empty_batches(self, database):
        assert database.upsert_all(MirroredKind.MEDIA, []) == 0
        assert database.delete_all_by_ids(MirroredKind.MEDIA, []) == 0

    def test_delete_by_id(self, database):
        database.upsert(MirroredKind.MEDIA, asset("a"))
        assert database.delete_by_id(MirroredKind.MEDIA, "a") is True
        assert database.delete_by_id(MirroredKind.MEDIA, "a") is False

    def test_delete_all_returns_count(self, database):
        database.upsert_all(MirroredKind.MEDIA, [asset(i) for i in "abc"])
        assert database.delete_all(MirroredKind.MEDIA) == 3

    def test_get_missing(self, database):
        assert database.get(MirroredKind.MEDIA, "nope") is None

    def test_find_page(self, database):
        database.upsert_all(MirroredKind.MEDIA, [
            asset("a", name="Gong Festival.jpg", day=1),
            asset("b", name="gong 360.jpg", day=3, scope="jrai"),
            asset("c", name="Longhouse.jpg", day=2),
        ])

        assert [a.id for a in database.find_page(MirroredKind.MEDIA)] == ["b", "c", "a"]
        assert [a.id for a in database.find_page(MirroredKind.MEDIA, search="GONG")] == ["b", "a"]
        assert [a.id for a in database.find_page(MirroredKind.MEDIA, scope="ede")] == ["c", "a"]
        assert [a.id for a in database.find_page(MirroredKind.MEDIA, offset=1, limit=1)] == ["c"]

    def test_count_by_scope(self, database):
        database.upsert_all(MirroredKind.MEDIA, [asset("a"), asset("b", scope="jrai")])
        assert database.count(MirroredKind.MEDIA, scope="ede") == 1
