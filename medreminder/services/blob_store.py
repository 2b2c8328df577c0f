"""
Storage for generated report exports.

Local storage writes under REPORTS_LOCAL_DIR and serves files from
REPORTS_BASE_URL; S3 storage uploads to AWS_S3_BUCKET and hands out presigned
GET URLs.
"""
import os
import uuid
from typing import Optional, Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from medreminder.core.config import settings
from medreminder.core.errors import StorageError


_EXTENSIONS = {
    "text/csv": "csv",
    "application/json": "json",
}


def _blob_name(content_type: str) -> str:
    return f"{uuid.uuid4().hex}.{_EXTENSIONS.get(content_type, 'bin')}"


class BlobStore(Protocol):
    def store(self, data: bytes, content_type: str = "text/csv") -> str:
        """Persist ``data`` and return its blob id."""
        ...

    def get_url(self, blob_id: str) -> str:
        ...


class LocalBlobStore:
    def __init__(self, root_dir: str, base_url: str):
        self.root_dir = os.path.abspath(root_dir)
        self.base_url = base_url.rstrip("/")

    def store(self, data: bytes, content_type: str = "text/csv") -> str:
        blob_id = _blob_name(content_type)
        try:
            os.makedirs(self.root_dir, exist_ok=True)
            with open(os.path.join(self.root_dir, blob_id), "wb") as f_out:
                f_out.write(data)
        except OSError as e:
            raise StorageError(f"Failed to write {blob_id} under {self.root_dir}: {e}") from e
        return blob_id

    def get_url(self, blob_id: str) -> str:
        if not os.path.exists(os.path.join(self.root_dir, blob_id)):
            raise StorageError(f"Blob {blob_id} not found under {self.root_dir}")
        return f"{self.base_url}/{blob_id}"


class S3BlobStore:
    def __init__(self, bucket: str, prefix: str = "reports", expires_in: int = 3600, client=None):
        if not bucket or str(bucket).strip() == "":
            raise StorageError("S3 bucket is empty. Set AWS_S3_BUCKET or disable USE_S3_UPLOADS.")
        self.bucket = bucket
        self.prefix = prefix.strip("/")
        self.expires_in = expires_in
        self._client = client

    def _get_client(self):
        if self._client is not None:
            return self._client
        client_kwargs = {}
        if settings.AWS_REGION:
            client_kwargs["region_name"] = settings.AWS_REGION
        if settings.AWS_ACCESS_KEY_ID and settings.AWS_SECRET_ACCESS_KEY:
            client_kwargs["aws_access_key_id"] = settings.AWS_ACCESS_KEY_ID
            client_kwargs["aws_secret_access_key"] = settings.AWS_SECRET_ACCESS_KEY
        self._client = boto3.client("s3", **client_kwargs)
        return self._client

    def _key(self, blob_id: str) -> str:
        return f"{self.prefix}/{blob_id}" if self.prefix else blob_id

    def store(self, data: bytes, content_type: str = "text/csv") -> str:
        blob_id = _blob_name(content_type)
        try:
            self._get_client().put_object(Bucket=self.bucket, Key=self._key(blob_id), Body=data, ContentType=content_type)
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Failed to upload to S3 s3://{self.bucket}/{self._key(blob_id)}: {e}") from e
        return blob_id

    def get_url(self, blob_id: str) -> str:
        try:
            return self._get_client().generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket, "Key": self._key(blob_id)},
                ExpiresIn=self.expires_in,
            )
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Failed to presign s3://{self.bucket}/{self._key(blob_id)}: {e}") from e


def get_blob_store(root_dir: Optional[str] = None) -> BlobStore:
    if settings.USE_S3_UPLOADS:
        return S3BlobStore(
            bucket=settings.AWS_S3_BUCKET,
            prefix=settings.REPORTS_S3_PREFIX,
            expires_in=settings.PRESIGNED_URL_TTL_SECONDS,
        )
    return LocalBlobStore(root_dir or settings.REPORTS_LOCAL_DIR, settings.REPORTS_BASE_URL)
