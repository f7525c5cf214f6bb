import asyncio
import os
import secrets
import string
from typing import Any, Dict, Iterable, List, Optional, Tuple

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from review_service.core.config import Config, config as default_config
from review_service.core.errors import ConfigurationError, ExternalServiceError, StorageError
from review_service.core.logger import logger
from review_service.models.review import MediaType
from review_service.validators.review_validators import media_extension

VIDEO_EXTENSIONS = ("mp4", "mov", "avi")
MEDIA_ID_ALPHABET = string.ascii_letters + string.digits


def new_media_id() -> str:
    return "media-" + "".join(secrets.choice(MEDIA_ID_ALPHABET) for _ in range(8))


def media_type_for(extension: str) -> str:
    return MediaType.VIDEO.value if extension.lower() in VIDEO_EXTENSIONS else MediaType.IMAGE.value


class MediaUploadService:
    """Stores review attachments on the configured disk (local, public or s3)."""

    def __init__(self, settings: Config = None, s3_client=None):
        self.settings = settings or default_config
        self.disk = self.settings.filesystem_disk
        self._s3_client = s3_client

    def _get_s3_client(self):
        if self._s3_client is None:
            self._s3_client = boto3.client(
                "s3",
                region_name=self.settings.aws_default_region,
                aws_access_key_id=self.settings.aws_access_key_id,
                aws_secret_access_key=self.settings.aws_secret_access_key,
            )
        return self._s3_client

    def file_url(self, path: str) -> str:
        app_url = self.settings.app_url.rstrip("/")
        if self.disk == "public":
            return f"{app_url}/storage/{path}"
        if self.disk == "s3":
            return f"https://{self.settings.aws_bucket}.s3.{self.settings.aws_default_region}.amazonaws.com/{path}"
        if self.disk == "local":
            return f"{app_url}/files/{path}"
        return f"/storage/{path}"

    @staticmethod
    def _write_file(root: str, path: str, content: bytes):
        destination = os.path.join(root, path)
        os.makedirs(os.path.dirname(destination), exist_ok=True)
        with open(destination, "wb") as handle:
            handle.write(content)

    async def _store(self, path: str, content: bytes, content_type: Optional[str]):
        if self.disk == "s3":
            if not self.settings.aws_bucket:
                raise ConfigurationError("AWS_BUCKET must be set to store media on s3")
            extra = {"ContentType": content_type} if content_type else {}
            try:
                await asyncio.to_thread(
                    self._get_s3_client().put_object,
                    Bucket=self.settings.aws_bucket,
                    Key=path,
                    Body=content,
                    **extra,
                )
            except (BotoCoreError, ClientError) as e:
                raise ExternalServiceError("Failed to upload media to S3", details={"path": path, "reason": str(e)})
            return

        root = self.settings.media_public_root if self.disk == "public" else self.settings.media_local_root
        try:
            await asyncio.to_thread(self._write_file, root, path, content)
        except OSError as e:
            raise StorageError("Failed to write media file", details={"path": path, "reason": str(e)})

    async def upload_media(
        self,
        filename: str,
        content: bytes,
        review_id: str,
        content_type: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Store one file and describe it.

        Returns:
            {id, type, path, url}
        """
        media_id = new_media_id()
        extension = media_extension(filename)
        path = f"reviews/{review_id}/{media_id}.{extension}"

        await self._store(path, content, content_type)

        return {
            "id": media_id,
            "type": media_type_for(extension),
            "path": path,
            "url": self.file_url(path),
        }

    async def upload_many(
        self,
        files: Iterable[Tuple[str, bytes, Optional[str]]],
        review_id: str,
    ) -> List[Dict[str, Any]]:
        """Store several files; any that fail are logged and left out"""
        media = []
        for filename, content, content_type in files:
            try:
                media.append(await self.upload_media(filename, content, review_id, content_type))
            except (StorageError, ExternalServiceError, ConfigurationError) as e:
                logger.error(
                    "Failed to store review media",
                    error=e,
                    metadata={"reviewId": review_id, "filename": filename, "disk": self.disk},
                )
        return media
