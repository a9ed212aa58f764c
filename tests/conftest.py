"""Test configuration and fixtures"""

import tempfile
from datetime import datetime, timezone
from pathlib import Path

import pytest
from PIL import Image

from media_mirror.core.config import Config, parse_config
from media_mirror.core.database import Database
from media_mirror.core.exceptions import RemoteEntryNotFound
from media_mirror.drive.models import FOLDER_MIME_TYPE, RemoteEntry


MEDIA_FOLDERS = {
    "ede": "folder_media_ede",
    "jrai": "folder_media_jrai",
    "mnong": "folder_media_mnong",
}
CLIP_FOLDERS = {"ede": "folder_clip_ede"}


class FakeDriveClient:
    """
    In-memory Drive folder tree.

    Failure injection:
        list_failures: folder id -> exception raised when listing it
        create_failures: exceptions raised by successive create_entry calls
        publish_failures: entry id -> exception raised by set_public
        delete_failures: entry id -> exception raised by delete_entry
    """

    def __init__(self):
        self.children: dict[str, list[RemoteEntry]] = {}
        self.entries: dict[str, RemoteEntry] = {}
        self.list_failures: dict[str, Exception] = {}
        self.create_failures: list[Exception] = []
        self.publish_failures: dict[str, Exception] = {}
        self.delete_failures: dict[str, Exception] = {}
        self.list_calls: list[tuple[str, str | None, int]] = []
        self.created: list[tuple[dict, Path, str]] = []
        self.published: list[str] = []
        self.deleted: list[str] = []
        self._next_id = 0

    def add_folder(self, parent_id: str, folder_id: str, name: str | None = None) -> str:
        entry = RemoteEntry(id=folder_id, name=name or folder_id, mime_type=FOLDER_MIME_TYPE)
        self.children.setdefault(parent_id, []).append(entry)
        self.children.setdefault(folder_id, [])
        self.entries[folder_id] = entry
        return folder_id

    def add_file(
        self,
        parent_id: str,
        file_id: str,
        name: str,
        mime_type: str = "image/jpeg",
        **fields
    ) -> RemoteEntry:
        fields.setdefault("created_time", datetime(2024, 1, 1, tzinfo=timezone.utc))
        entry = RemoteEntry(id=file_id, name=name, mime_type=mime_type, parents=(parent_id,), **fields)
        self.children.setdefault(parent_id, []).append(entry)
        self.entries[file_id] = entry
        return entry

    def remove(self, parent_id: str, entry_id: str) -> None:
        self.children[parent_id] = [e for e in self.children[parent_id] if e.id != entry_id]

    def list_children(self, folder_id, page_token=None, page_size=200):
        self.list_calls.append((folder_id, page_token, page_size))
        if folder_id in self.list_failures:
            raise self.list_failures[folder_id]

        children = self.children.get(folder_id, [])
        start = int(page_token) if page_token else 0
        end = start + page_size
        next_token = str(end) if end < len(children) else None
        return list(children[start:end]), next_token

    def get_entry(self, entry_id, fields=None):
        if entry_id not in self.entries:
            raise RemoteEntryNotFound(f"Drive entry {entry_id} not found")
        return self.entries[entry_id]

    def create_entry(self, metadata, path, mime_type):
        if self.create_failures:
            raise self.create_failures.pop(0)

        self._next_id += 1
        entry_id = f"uploaded{self._next_id:03d}".ljust(33, "x")
        self.created.append((metadata, Path(path), mime_type))
        parent_id = metadata["parents"][0]
        self.add_file(
            parent_id,
            entry_id,
            metadata["name"],
            mime_type,
            description=metadata.get("description"),
            app_properties=metadata.get("appProperties", {}),
        )
        return entry_id

    def set_public(self, entry_id):
        if entry_id in self.publish_failures:
            raise self.publish_failures[entry_id]
        self.published.append(entry_id)

    def delete_entry(self, entry_id):
        if entry_id in self.delete_failures:
            raise self.delete_failures[entry_id]
        self.deleted.append(entry_id)

    def fetch_content(self, entry_id, stream):
        stream.write(b"")


class FakePlaylistClient:
    """
    In-memory playlist: pages of video ids plus a details table.

    Failure injection:
        list_failures: page index -> exception raised when fetching that page
        detail_failures: page index -> exception raised by its detail fetch
    """

    def __init__(self, pages: list[list[str]] | None = None, details: dict[str, dict] | None = None):
        self.pages = pages or []
        self.details = details or {}
        self.list_failures: dict[int, Exception] = {}
        self.detail_failures: dict[int, Exception] = {}
        self.list_calls: list[tuple[str, str | None]] = []
        self.detail_calls: list[list[str]] = []
        self._current_page = 0

    def list_playlist_entries(self, playlist_id, page_token=None, page_size=50):
        self.list_calls.append((playlist_id, page_token))
        index = int(page_token) if page_token else 0
        self._current_page = index
        if index in self.list_failures:
            raise self.list_failures[index]

        ids = self.pages[index] if index < len(self.pages) else []
        next_token = str(index + 1) if index + 1 < len(self.pages) else None
        return list(ids), next_token

    def list_media_details(self, ids):
        self.detail_calls.append(list(ids))
        if self._current_page in self.detail_failures:
            raise self.detail_failures[self._current_page]
        return [self.details[video_id] for video_id in ids if video_id in self.details]


def make_video(video_id: str, title: str | None = "Video", published: str = "2024-03-01T10:00:00Z", **thumbs) -> dict:
    """Build a videos.list item."""
    snippet = {"publishedAt": published, "thumbnails": {q: {"url": u} for q, u in thumbs.items()}}
    if title is not None:
        snippet["title"] = title
    return {"id": video_id, "snippet": snippet, "statistics": {"viewCount": "1"}}


def make_raw_config(storage_dir: Path, **overrides) -> dict:
    raw = {
        "drive": {
            "credentials_file": None,
            "scopes": {"media": dict(MEDIA_FOLDERS), "clip": dict(CLIP_FOLDERS)},
            "default_scope": "ede",
            "page_size": 2,
            "publish_clips": True,
        },
        "youtube": {
            "api_key": "test-key",
            "playlist_url": "https://www.youtube.com/playlist?list=PLtest_123-abc",
            "default_scope": "ede",
        },
        "storage": {"directory": str(storage_dir)},
        "proxy": {"base_url": "http://localhost:9090/api/ggdrive"},
        "upload": {"max_attempts": 4, "timeout_backoff": 3.0, "error_backoff": 1.0},
    }
    for section, values in overrides.items():
        raw[section].update(values)
    return raw


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests"""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def config(temp_dir) -> Config:
    """Sample configuration with three media scopes and one clip scope"""
    return parse_config(make_raw_config(temp_dir), base_dir=temp_dir)


@pytest.fixture
def database(temp_dir):
    """Database on a temporary SQLite file"""
    db = Database(temp_dir / "mirror.db")
    yield db
    db.close()


@pytest.fixture
def drive_client():
    """Fake Drive with the configured scope folders present and empty"""
    client = FakeDriveClient()
    for folder_id in list(MEDIA_FOLDERS.values()) + list(CLIP_FOLDERS.values()):
        client.children[folder_id] = []
    return client


@pytest.fixture
def playlist_client():
    return FakePlaylistClient()


@pytest.fixture
def png_file(temp_dir) -> Path:
    """A small real PNG file"""
    path = temp_dir / "gong.png"
    Image.new("RGB", (4, 4), color=(200, 30, 30)).save(path, format="PNG")
    return path
