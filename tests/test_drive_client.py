"""Test the Drive client adapter"""

import io
import socket
import threading
from unittest.mock import MagicMock

import httplib2
import pytest
from googleapiclient.errors import HttpError

from media_mirror.core.exceptions import (
    RemoteEntryNotFound,
    RemoteSourceError,
    TransientNetworkFailure,
)
from media_mirror.core.models import AssetSubtype
from media_mirror.drive.client import DriveClient
from media_mirror.drive.models import (
    FOLDER_MIME_TYPE,
    RemoteEntry,
    infer_subtype,
)


def http_error(status: int) -> HttpError:
    return HttpError(httplib2.Response({"status": status}), b"")


@pytest.fixture
def service():
    return MagicMock()


@pytest.fixture
def client(service):
    return DriveClient(service)


class TestRemoteEntry:
    """Test normalization of Drive resources"""

    def test_from_drive_api(self):
        entry = RemoteEntry.from_drive_api({
            "id": "abc",
            "name": "gong.jpg",
            "mimeType": "image/jpeg",
            "parents": ["p1"],
            "webViewLink": "https://drive.google.com/file/d/abc/view",
            "createdTime": "2024-02-03T04:05:06.000Z",
            "appProperties": {"type": "360"},
        })

        assert entry.parents == ("p1",)
        assert entry.created_time.year == 2024
        assert entry.thumbnail_link is None
        assert not entry.is_folder

    def test_folder(self):
        assert RemoteEntry.from_drive_api({"id": "f", "mimeType": FOLDER_MIME_TYPE}).is_folder

    def test_subtype_inference(self):
        def entry(name="a.jpg", mime="image/jpeg", props=None):
            return RemoteEntry(id="x", name=name, mime_type=mime, app_properties=props or {})

        assert infer_subtype(entry(mime="model/gltf-binary", name="360.glb")) is AssetSubtype.MODEL_3D
        assert infer_subtype(entry(name="pano 360.jpg", props={"type": "3D"})) is AssetSubtype.PHOTO_360
        assert infer_subtype(entry(props={"type": "3D"})) is AssetSubtype.MODEL_3D
        assert infer_subtype(entry(props={"type": "MODEL_3D"})) is AssetSubtype.MODEL_3D
        assert infer_subtype(entry(props={"type": "weird"})) is AssetSubtype.NORMAL
        assert infer_subtype(entry()) is AssetSubtype.NORMAL


class TestDriveClient:
    """Test request shapes and error mapping"""

    def test_list_children(self, client, service):
        service.files().list().execute.return_value = {
            "files": [{"id": "a", "name": "a.jpg", "mimeType": "image/jpeg"}],
            "nextPageToken": "tok",
        }

        entries, token = client.list_children("folder1", page_token="prev", page_size=50)

        assert [e.id for e in entries] == ["a"]
        assert token == "tok"
        kwargs = service.files().list.call_args.kwargs
        assert kwargs["q"] == "'folder1' in parents and trashed = false"
        assert kwargs["orderBy"] == "createdTime desc, name asc"
        assert kwargs["pageToken"] == "prev"
        assert kwargs["pageSize"] == 50

    def test_last_page(self, client, service):
        service.files().list().execute.return_value = {"files": []}
        assert client.list_children("folder1") == ([], None)

    @pytest.mark.parametrize("status, expected", [
        (404, RemoteEntryNotFound),
        (429, TransientNetworkFailure),
        (503, TransientNetworkFailure),
        (403, RemoteSourceError),
    ])
    def test_http_error_mapping(self, client, service, status, expected):
        service.files().list().execute.side_effect = http_error(status)

        with pytest.raises(expected) as exc_info:
            client.list_children("folder1")

        assert exc_info.value.details["http_status"] == status

    def test_forbidden_is_not_transient(self, client, service):
        service.files().delete().execute.side_effect = http_error(403)
        with pytest.raises(RemoteSourceError) as exc_info:
            client.delete_entry("x")
        assert not isinstance(exc_info.value, TransientNetworkFailure)

    def test_timeout_mapping(self, client, service):
        service.files().create().execute.side_effect = socket.timeout("timed out")

        with pytest.raises(TransientNetworkFailure) as exc_info:
            client.create_entry({"name": "a.jpg", "parents": ["p"]}, __file__, "image/jpeg")

        assert exc_info.value.is_timeout is True

    def test_connection_reset_mapping(self, client, service):
        service.permissions().create().execute.side_effect = ConnectionResetError("reset")

        with pytest.raises(TransientNetworkFailure) as exc_info:
            client.set_public("x")

        assert exc_info.value.is_timeout is False

    def test_set_public_body(self, client, service):
        client.set_public("x")
        kwargs = service.permissions().create.call_args.kwargs
        assert kwargs["fileId"] == "x"
        assert kwargs["body"] == {"type": "anyone", "role": "reader"}

    def test_create_entry_returns_id(self, client, service):
        service.files().create().execute.return_value = {"id": "new"}
        assert client.create_entry({"name": "a.jpg"}, __file__, "image/jpeg") == "new"

    def test_create_entry_without_id(self, client, service):
        service.files().create().execute.return_value = {}
        with pytest.raises(RemoteSourceError):
            client.create_entry({"name": "a.jpg"}, __file__, "image/jpeg")

    def test_create_entry_missing_file(self, client, temp_dir):
        with pytest.raises(RemoteSourceError):
            client.create_entry({"name": "a.jpg"}, temp_dir / "missing.jpg", "image/jpeg")

    def test_transport_per_thread(self, service):
        """Each thread executes on its own transport, reused across its calls"""
        transports = []

        def new_transport():
            transports.append(object())
            return transports[-1]

        client = DriveClient(service, http_factory=new_transport)
        client.delete_entry("a")
        client.delete_entry("b")
        worker = threading.Thread(target=client.delete_entry, args=("c",))
        worker.start()
        worker.join()

        used = [c.kwargs["http"] for c in service.files().delete().execute.call_args_list]
        assert len(transports) == 2
        assert used == [transports[0], transports[0], transports[1]]

    def test_no_factory_uses_service_transport(self, client, service):
        client.delete_entry("a")
        assert service.files().delete().execute.call_args.kwargs == {}

    def test_get_entry(self, client, service):
        service.files().get().execute.return_value = {"thumbnailLink": "https://thumb"}
        entry = client.get_entry("x", fields="id, thumbnailLink")
        assert entry.id == "x"
        assert entry.thumbnail_link == "https://thumb"

    def test_fetch_content_not_found(self, client, service):
        service.files().get_media.side_effect = http_error(404)
        with pytest.raises(RemoteEntryNotFound):
            client.fetch_content("x", io.BytesIO())
