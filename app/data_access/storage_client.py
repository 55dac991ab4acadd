# Object storage access (S3-compatible bucket)
# app/data_access/storage_client.py

import logging
from typing import Optional
from uuid import uuid4

import aioboto3
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class ObjectStorageError(Exception):
    """Raised when the object store rejects or fails an operation."""
    pass


class StoredObject(BaseModel):
    """Result of an upload: the public URL and the identifier used to delete the object later."""
    url: str
    id: str


class ObjectStorageClient:
    """
    Uploads and deletes movie images in an S3-compatible bucket.

    The object key doubles as the remote identifier stored on MovieImage rows.
    """
    def __init__(
        self,
        bucket_name: str,
        public_base_url: str,
        endpoint_url: Optional[str] = None,
        access_key: Optional[str] = None,
        secret_key: Optional[str] = None,
        region: Optional[str] = None,
        key_prefix: str = "",
        session: Optional[aioboto3.Session] = None,
    ):
        if not bucket_name:
            raise ValueError("A bucket name is required for object storage.")
        if not public_base_url:
            raise ValueError("A public base URL is required for object storage.")
        self.bucket_name = bucket_name
        self.public_base_url = public_base_url.rstrip("/")
        self.endpoint_url = endpoint_url
        self.access_key = access_key
        self.secret_key = secret_key
        self.region = region
        self.key_prefix = key_prefix
        self.session = session or aioboto3.Session()
        logger.info(f"Object storage client configured for bucket '{bucket_name}'")

    def _client(self):
        return self.session.client(
            "s3",
            endpoint_url=self.endpoint_url,
            aws_access_key_id=self.access_key,
            aws_secret_access_key=self.secret_key,
            region_name=self.region,
        )

    def build_key(self, filename: str) -> str:
        # Random component keeps keys unique when two uploads share a filename
        return f"{self.key_prefix}{uuid4().hex}/{filename}"

    def public_url(self, key: str) -> str:
        return f"{self.public_base_url}/{key}"

    async def upload_image(self, data: bytes, filename: str, content_type: str = "image/jpeg") -> StoredObject:
        """
        Uploads image bytes.

        Args:
            data: Raw image bytes.
            filename: Name used for the object key.
            content_type: MIME type stored with the object.

        Returns:
            StoredObject with the public URL and the object key.

        Raises:
            ObjectStorageError: If the upload fails.
        """
        key = self.build_key(filename)
        try:
            async with self._client() as s3:
                logger.info(f"Uploading {len(data)} bytes to s3://{self.bucket_name}/{key}...")
                await s3.put_object(Bucket=self.bucket_name, Key=key, Body=data, ContentType=content_type)
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Storage error uploading s3://{self.bucket_name}/{key}: {e}", exc_info=True)
            raise ObjectStorageError(f"Failed to upload {filename}: {e}") from e

        logger.info(f"Successfully uploaded s3://{self.bucket_name}/{key}")
        return StoredObject(url=self.public_url(key), id=key)

    async def delete_image(self, object_id: str) -> None:
        """
        Deletes an object by its key.

        Raises:
            ObjectStorageError: If the delete fails.
        """
        try:
            async with self._client() as s3:
                logger.info(f"Deleting s3://{self.bucket_name}/{object_id}...")
                await s3.delete_object(Bucket=self.bucket_name, Key=object_id)
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Storage error deleting s3://{self.bucket_name}/{object_id}: {e}", exc_info=True)
            raise ObjectStorageError(f"Failed to delete {object_id}: {e}") from e

        logger.info(f"Successfully deleted s3://{self.bucket_name}/{object_id}")
