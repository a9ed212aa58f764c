"""Test the upload pipeline"""

import pytest
from PIL import Image

from media_mirror.core.exceptions import (
    RemoteSourceError,
    TransientNetworkFailure,
    UnsupportedContentType,
    UploadFailed,
)
from media_mirror.core.models import AssetSubtype
from media_mirror.drive.uploader import UploadPipeline, UploadRequest, sniff_content_type

from conftest import MEDIA_FOLDERS


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def pipeline(drive_client, config, sleeps):
    return UploadPipeline(drive_client, config, sleep=sleeps.append)


class TestContentSniffing:
    """Test MIME detection from file bytes"""

    def test_png(self, png_file):
        assert sniff_content_type(png_file) == "image/png"

    def test_extension_is_ignored_for_images(self, png_file):
        """Bytes decide, not the file name"""
        renamed = png_file.with_name("actually_png.jpg")
        png_file.rename(renamed)
        assert sniff_content_type(renamed) == "image/png"

    def test_glb_override(self, temp_dir):
        path = temp_dir / "statue.glb"
        path.write_bytes(b"glTF\x02\x00\x00\x00")
        assert sniff_content_type(path) == "model/gltf-binary"

    def test_not_an_image(self, temp_dir):
        path = temp_dir / "notes.txt"
        path.write_text("hello")
        assert sniff_content_type(path) == "application/octet-stream"

    def test_multi_picture_jpeg(self, temp_dir):
        """Camera JPEGs with MPO markers upload as image/jpeg"""
        path = temp_dir / "phone.jpg"
        Image.new("RGB", (4, 4), "red").save(
            path, "MPO", save_all=True, append_images=[Image.new("RGB", (4, 4), "blue")]
        )
        with Image.open(path) as img:
            assert img.format == "MPO"

        assert sniff_content_type(path) == "image/jpeg"


class TestUploadPipeline:
    """Test create, publish and retry behavior"""

    def test_success(self, pipeline, drive_client, png_file, sleeps):
        result = pipeline.upload(png_file, UploadRequest(scope="jrai", note="Harvest"))

        assert result.attempts == 1
        assert result.mime_type == "image/png"
        assert result.scope == "jrai"
        assert result.url == (
            f"http://localhost:9090/api/ggdrive/proxy?id={result.remote_id}&name=gong.png"
        )
        metadata, _, mime_type = drive_client.created[0]
        assert metadata == {"name": "gong.png", "parents": [MEDIA_FOLDERS["jrai"]], "description": "Harvest"}
        assert mime_type == "image/png"
        assert drive_client.published == [result.remote_id]
        assert sleeps == []

    def test_subtype_app_property(self, pipeline, drive_client, png_file):
        pipeline.upload(png_file, UploadRequest(scope="ede", subtype=AssetSubtype.PHOTO_360))
        metadata = drive_client.created[0][0]
        assert metadata["appProperties"] == {"type": "360"}

    def test_normal_subtype_has_no_app_property(self, pipeline, drive_client, png_file):
        pipeline.upload(png_file, UploadRequest(scope="ede", subtype=AssetSubtype.NORMAL))
        assert "appProperties" not in drive_client.created[0][0]

    def test_unknown_scope_uses_default(self, pipeline, drive_client, png_file):
        result = pipeline.upload(png_file, UploadRequest(scope="bahnar"))
        assert result.scope == "ede"
        assert drive_client.created[0][0]["parents"] == [MEDIA_FOLDERS["ede"]]

    def test_empty_scope_uses_default(self, pipeline, png_file):
        assert pipeline.upload(png_file, UploadRequest()).scope == "ede"

    def test_unsupported_type_makes_no_call(self, pipeline, drive_client, temp_dir, sleeps):
        """Rejected content never reaches the network and is never retried"""
        path = temp_dir / "report.pdf"
        path.write_bytes(b"%PDF-1.7")

        with pytest.raises(UnsupportedContentType):
            pipeline.upload(path, UploadRequest(scope="ede"))

        assert drive_client.created == []
        assert sleeps == []

    def test_retry_then_success(self, pipeline, drive_client, png_file, sleeps):
        """Timeouts back off 3s per attempt, other errors 1s per attempt"""
        drive_client.create_failures = [
            TransientNetworkFailure("timed out", is_timeout=True),
            RemoteSourceError("500"),
        ]

        result = pipeline.upload(png_file, UploadRequest(scope="ede"))

        assert result.attempts == 3
        assert sleeps == [3.0, 2.0]

    def test_three_timeouts_then_success(self, pipeline, drive_client, png_file, sleeps):
        drive_client.create_failures = [
            TransientNetworkFailure("timed out", is_timeout=True) for _ in range(3)
        ]

        result = pipeline.upload(png_file, UploadRequest(scope="ede"))

        assert result.attempts == 4
        assert sleeps == [3.0, 6.0, 9.0]
        assert len(drive_client.created) == 1

    def test_unexpected_errors_are_retried(self, pipeline, drive_client, png_file, sleeps):
        """Errors outside the remote taxonomy use the 1s schedule and end in UploadFailed"""
        last = RuntimeError("boom")
        drive_client.create_failures = [RuntimeError("boom"), KeyError("id"), ValueError("bad"), last]

        with pytest.raises(UploadFailed) as exc_info:
            pipeline.upload(png_file, UploadRequest(scope="ede"))

        assert exc_info.value.attempts == 4
        assert exc_info.value.last_cause is last
        assert sleeps == [1.0, 2.0, 3.0]

    def test_retries_exhausted(self, pipeline, drive_client, png_file, sleeps):
        """Four attempts, three sleeps, no sleep after the last"""
        last = TransientNetworkFailure("timed out", is_timeout=True)
        drive_client.create_failures = [
            TransientNetworkFailure("timed out", is_timeout=True),
            TransientNetworkFailure("timed out", is_timeout=True),
            RemoteSourceError("boom"),
            last,
        ]

        with pytest.raises(UploadFailed) as exc_info:
            pipeline.upload(png_file, UploadRequest(scope="ede"))

        assert exc_info.value.attempts == 4
        assert exc_info.value.last_cause is last
        assert sleeps == [3.0, 6.0, 3.0]
        assert drive_client.created == []

    def test_publish_failure_still_succeeds(self, pipeline, drive_client, png_file, sleeps):
        """A failed permission grant is logged, not retried"""
        drive_client.publish_failures["uploaded001".ljust(33, "x")] = RemoteSourceError("403")

        result = pipeline.upload(png_file, UploadRequest(scope="ede"))

        assert result.attempts == 1
        assert drive_client.published == []
        assert sleeps == []

    def test_unexpected_publish_error_is_swallowed(self, pipeline, drive_client, png_file, sleeps):
        drive_client.publish_failures["uploaded001".ljust(33, "x")] = RuntimeError("socket closed")

        result = pipeline.upload(png_file, UploadRequest(scope="ede"))

        assert result.attempts == 1
        assert len(drive_client.created) == 1
        assert sleeps == []

    def test_custom_name(self, pipeline, drive_client, png_file):
        result = pipeline.upload(png_file, UploadRequest(scope="ede", name="drum.png"))
        assert result.name == "drum.png"
        assert result.url.endswith("name=drum.png")
