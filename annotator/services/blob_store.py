"""
Blob storage for original and annotated PDFs.

Blobs are addressed by string keys such as ``pdfs/<user>/<ts>-<name>.pdf``.
Two backends are provided:
- LocalBlobStore: files under a root directory, read through HMAC-signed
  URLs served by the /blobs router
- S3BlobStore: an S3 bucket, read through presigned GET URLs
"""

import hashlib
import hmac
import logging
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional
from urllib.parse import quote, urlencode

from .errors import BlobNotFoundError, BlobStoreError

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPE = "application/pdf"


def epoch_millis(moment: datetime) -> int:
    """Milliseconds since the epoch for key suffixes; naive datetimes are UTC."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return int(moment.timestamp() * 1000)


class BlobStore(ABC):
    """Key/value store for PDF bytes."""

    @abstractmethod
    def put(self, key: str, data: bytes, content_type: str = PDF_CONTENT_TYPE) -> None:
        """Store bytes under a key, replacing any existing blob."""

    @abstractmethod
    def get(self, key: str) -> bytes:
        """Read a blob. Raises BlobNotFoundError if it does not exist."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Delete a blob. Raises BlobNotFoundError if it does not exist."""

    @abstractmethod
    def signed_url(self, key: str, expires_in: int = 3600) -> str:
        """Time-limited URL that reads the blob without credentials."""

    def close(self) -> None:
        """Release client resources."""


class LocalBlobStore(BlobStore):
    """Filesystem blob store with HMAC-signed read URLs."""

    URL_PREFIX = "/blobs"

    def __init__(self, root_dir: Path | str, base_url: str, signing_secret: str):
        self.root_dir = Path(root_dir).resolve()
        self.base_url = base_url.rstrip("/")
        self._secret = signing_secret.encode("utf-8")
        self.root_dir.mkdir(parents=True, exist_ok=True)

    def _path_for(self, key: str) -> Path:
        if not key or key.startswith("/") or ".." in key.replace("\\", "/").split("/"):
            raise BlobStoreError(f"Invalid blob key: {key!r}")
        path = (self.root_dir / key).resolve()
        if self.root_dir not in path.parents:
            raise BlobStoreError(f"Invalid blob key: {key!r}")
        return path

    def put(self, key: str, data: bytes, content_type: str = PDF_CONTENT_TYPE) -> None:
        path = self._path_for(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp = path.with_suffix(path.suffix + ".tmp")
            tmp.write_bytes(data)
            tmp.replace(path)
        except OSError as e:
            raise BlobStoreError(f"Failed to write blob {key}", details=str(e)) from e
        logger.info(f"Stored blob {key} ({len(data)} bytes)")

    def get(self, key: str) -> bytes:
        path = self._path_for(key)
        if not path.is_file():
            raise BlobNotFoundError(f"Blob not found: {key}")
        try:
            return path.read_bytes()
        except OSError as e:
            raise BlobStoreError(f"Failed to read blob {key}", details=str(e)) from e

    def delete(self, key: str) -> None:
        path = self._path_for(key)
        if not path.is_file():
            raise BlobNotFoundError(f"Blob not found: {key}")
        try:
            path.unlink()
        except OSError as e:
            raise BlobStoreError(f"Failed to delete blob {key}", details=str(e)) from e
        logger.info(f"Deleted blob {key}")

    def _signature(self, key: str, expires: int) -> str:
        message = f"{key}:{expires}".encode("utf-8")
        return hmac.new(self._secret, message, hashlib.sha256).hexdigest()

    def signed_url(self, key: str, expires_in: int = 3600) -> str:
        self._path_for(key)
        expires = int(time.time()) + expires_in
        query = urlencode({"expires": expires, "signature": self._signature(key, expires)})
        return f"{self.base_url}{self.URL_PREFIX}/{quote(key)}?{query}"

    def verify_signature(self, key: str, expires: int, signature: str, now: Optional[float] = None) -> bool:
        """Check a signed URL's parameters. Expired links are rejected."""
        current = time.time() if now is None else now
        if expires < current:
            return False
        return hmac.compare_digest(self._signature(key, expires), signature)


class S3BlobStore(BlobStore):
    """S3 bucket blob store."""

    def __init__(
        self,
        bucket_name: str,
        region: str,
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        client=None,
    ):
        self.bucket_name = bucket_name
        self.region = region
        if client is None:
            import boto3
            client = boto3.client(
                "s3",
                region_name=region,
                aws_access_key_id=access_key_id,
                aws_secret_access_key=secret_access_key,
            )
        self._client = client

    def _is_missing(self, error: Exception) -> bool:
        response = getattr(error, "response", None) or {}
        code = str(response.get("Error", {}).get("Code", ""))
        return code in ("NoSuchKey", "404", "NotFound")

    def put(self, key: str, data: bytes, content_type: str = PDF_CONTENT_TYPE) -> None:
        try:
            self._client.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=data,
                ContentType=content_type,
                ContentDisposition="inline",
            )
        except Exception as e:
            raise BlobStoreError(f"S3 upload failed for {key}", details=str(e)) from e
        logger.info(f"Uploaded s3://{self.bucket_name}/{key} ({len(data)} bytes)")

    def get(self, key: str) -> bytes:
        try:
            obj = self._client.get_object(Bucket=self.bucket_name, Key=key)
            return obj["Body"].read()
        except Exception as e:
            if self._is_missing(e):
                raise BlobNotFoundError(f"Blob not found: {key}") from e
            raise BlobStoreError(f"S3 download failed for {key}", details=str(e)) from e

    def delete(self, key: str) -> None:
        try:
            self._client.delete_object(Bucket=self.bucket_name, Key=key)
        except Exception as e:
            if self._is_missing(e):
                raise BlobNotFoundError(f"Blob not found: {key}") from e
            raise BlobStoreError(f"S3 delete failed for {key}", details=str(e)) from e
        logger.info(f"Deleted s3://{self.bucket_name}/{key}")

    def signed_url(self, key: str, expires_in: int = 3600) -> str:
        try:
            return self._client.generate_presigned_url(
                "get_object",
                Params={
                    "Bucket": self.bucket_name,
                    "Key": key,
                    "ResponseContentType": PDF_CONTENT_TYPE,
                    "ResponseContentDisposition": 'inline; filename="document.pdf"',
                },
                ExpiresIn=expires_in,
            )
        except Exception as e:
            raise BlobStoreError(f"Failed to sign URL for {key}", details=str(e)) from e

    def close(self) -> None:
        close = getattr(self._client, "close", None)
        if close is not None:
            close()


def create_blob_store(settings) -> BlobStore:
    """Build the blob store selected by settings.storage_backend."""
    backend = settings.storage_backend.lower()
    if backend == "s3":
        if not settings.s3_configured:
            raise BlobStoreError(
                "Storage configuration is missing",
                details="AWS_BUCKET_NAME, AWS_REGION, AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY are required",
            )
        return S3BlobStore(
            bucket_name=settings.aws_bucket_name,
            region=settings.aws_region,
            access_key_id=settings.aws_access_key_id,
            secret_access_key=settings.aws_secret_access_key,
        )
    if backend == "local":
        return LocalBlobStore(
            root_dir=settings.storage_dir,
            base_url=settings.public_base_url,
            signing_secret=settings.blob_signing_secret,
        )
    raise ValueError(f"Unknown storage backend: {settings.storage_backend}")
