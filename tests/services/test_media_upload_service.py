"""Tests for review media storage"""
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError

from review_service.core.config import Config
from review_service.core.errors import ExternalServiceError
from review_service.services.media_upload_service import MediaUploadService, media_type_for, new_media_id
from review_service.validators.review_validators import validate_media_file


class TestMediaHelpers:
    """Test id and type helpers"""

    def test_media_id_format(self):
        """Test ids are media- plus eight alphanumerics"""
        media_id = new_media_id()
        assert media_id.startswith("media-")
        assert len(media_id) == 14
        assert media_id[6:].isalnum()

    def test_media_type(self):
        """Test video extensions are recognised"""
        assert media_type_for("mp4") == "video"
        assert media_type_for("MOV") == "video"
        assert media_type_for("jpg") == "image"

    def test_validate_media_file(self):
        """Test extension and size checks"""
        allowed = ["jpg", "png", "mp4"]
        assert validate_media_file("photo.JPG", 100, allowed, 1000) is None
        assert validate_media_file("doc.pdf", 100, allowed, 1000) is not None
        assert validate_media_file("photo.jpg", 5000, allowed, 1000) is not None


class TestLocalDisk:
    """Test storing media on the local filesystem"""

    @pytest.mark.asyncio
    async def test_upload_to_public_disk(self, tmp_path):
        """Test a file is written under the public root with a public URL"""
        settings = Config(
            _env_file=None,
            filesystem_disk="public",
            media_public_root=str(tmp_path),
            app_url="http://reviews.test/",
        )
        service = MediaUploadService(settings)

        media = await service.upload_media("photo.jpg", b"jpeg-bytes", "rev-1", "image/jpeg")

        assert media["type"] == "image"
        assert media["path"] == f"reviews/rev-1/{media['id']}.jpg"
        assert media["url"] == f"http://reviews.test/storage/{media['path']}"
        assert (tmp_path / media["path"]).read_bytes() == b"jpeg-bytes"

    @pytest.mark.asyncio
    async def test_upload_many_skips_failures(self, tmp_path):
        """Test one failing file does not drop the others"""
        settings = Config(_env_file=None, filesystem_disk="local", media_local_root=str(tmp_path))
        service = MediaUploadService(settings)
        original_write = MediaUploadService._write_file

        def flaky_write(root, path, content):
            if content == b"bad":
                raise OSError("disk full")
            original_write(root, path, content)

        with patch.object(MediaUploadService, "_write_file", staticmethod(flaky_write)):
            with patch('review_service.services.media_upload_service.logger') as mock_logger:
                media = await service.upload_many(
                    [("a.png", b"good", "image/png"), ("b.png", b"bad", "image/png"), ("c.mp4", b"good", None)],
                    "rev-1",
                )

        assert [m["type"] for m in media] == ["image", "video"]
        mock_logger.error.assert_called_once()


class TestS3Disk:
    """Test storing media on S3"""

    @pytest.fixture
    def settings(self):
        return Config(
            _env_file=None,
            filesystem_disk="s3",
            aws_bucket="review-media",
            aws_default_region="eu-west-1",
        )

    @pytest.mark.asyncio
    async def test_upload_to_s3(self, settings):
        """Test the object is put with its content type and an S3 URL"""
        s3 = MagicMock()
        service = MediaUploadService(settings, s3_client=s3)

        media = await service.upload_media("clip.mp4", b"video", "rev-2", "video/mp4")

        s3.put_object.assert_called_once_with(
            Bucket="review-media",
            Key=media["path"],
            Body=b"video",
            ContentType="video/mp4",
        )
        assert media["type"] == "video"
        assert media["url"] == f"https://review-media.s3.eu-west-1.amazonaws.com/{media['path']}"

    @pytest.mark.asyncio
    async def test_s3_error(self, settings):
        """Test AWS failures surface as ExternalServiceError"""
        s3 = MagicMock()
        s3.put_object.side_effect = ClientError({"Error": {"Code": "AccessDenied", "Message": "no"}}, "PutObject")
        service = MediaUploadService(settings, s3_client=s3)

        with pytest.raises(ExternalServiceError):
            await service.upload_media("clip.mp4", b"video", "rev-2")
