### app/utils/storage.py

# Standard library imports
import io
import random
import shutil
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import BinaryIO, Optional

# Third party imports
import boto3
from botocore.exceptions import BotoCoreError, ClientError

# Local imports
from app.core.config import settings
from app.utils.logger import get_logger

logger = get_logger(__name__)

ORIGINALS_FOLDER = "originals"
SIGNED_FOLDER = "signed"


class StorageError(Exception):
    """Raised when the blob store cannot persist a file."""


@dataclass(frozen=True)
class StoredFile:
    """Where a stored blob lives and how to reach it."""

    stored_name: str
    public_url: str
    folder: str = ORIGINALS_FOLDER


def unique_name(suffix: str) -> str:
    """Timestamped, collision-resistant file name, e.g. 1718000000000-482913-nda.html"""
    return f"{int(time.time() * 1000)}-{random.randint(100000, 999999)}{suffix}"


class BlobStore(ABC):
    """Interface the envelope code uses for original and signed documents."""

    @abstractmethod
    def store(self, content: bytes, suggested_name: str, content_type: str, folder: str = ORIGINALS_FOLDER) -> StoredFile:
        """Persist generated content under the given name"""

    @abstractmethod
    def receive_upload(self, file_obj: BinaryIO, folder: str = SIGNED_FOLDER, suffix: str = ".pdf", content_type: str = "application/pdf") -> StoredFile:
        """Persist an uploaded stream under a fresh name"""

    @abstractmethod
    def discard(self, stored: StoredFile) -> None:
        """Remove a stored file that will never be referenced"""


class LocalBlobStore(BlobStore):
    """Files on local disk, served by the app under /storage."""

    def __init__(self, root: Optional[str] = None, base_url: Optional[str] = None):
        self.root = Path(root or settings.storage_dir)
        self.base_url = (base_url or settings.storage_base_url).rstrip("/")
        for folder in (ORIGINALS_FOLDER, SIGNED_FOLDER):
            (self.root / folder).mkdir(parents=True, exist_ok=True)

    def _target(self, folder: str, name: str) -> Path:
        target = self.root / folder / name
        target.parent.mkdir(parents=True, exist_ok=True)
        return target

    def _stored(self, folder: str, name: str) -> StoredFile:
        return StoredFile(stored_name=name, public_url=f"{self.base_url}/{folder}/{name}", folder=folder)

    def store(self, content: bytes, suggested_name: str, content_type: str, folder: str = ORIGINALS_FOLDER) -> StoredFile:
        """Write generated content to disk"""
        try:
            self._target(folder, suggested_name).write_bytes(content)
        except OSError as e:
            logger.error("Error writing file to local storage", name=suggested_name, error_message=str(e))
            raise StorageError(f"Could not store {suggested_name}") from e
        return self._stored(folder, suggested_name)

    def receive_upload(self, file_obj: BinaryIO, folder: str = SIGNED_FOLDER, suffix: str = ".pdf", content_type: str = "application/pdf") -> StoredFile:
        """Copy an uploaded stream to disk under a fresh name"""
        name = unique_name(suffix)
        try:
            with open(self._target(folder, name), "wb") as out:
                shutil.copyfileobj(file_obj, out)
        except OSError as e:
            logger.error("Error writing upload to local storage", name=name, error_message=str(e))
            raise StorageError("Could not store uploaded file") from e
        return self._stored(folder, name)

    def discard(self, stored: StoredFile) -> None:
        """Delete a file from disk"""
        try:
            (self.root / stored.folder / stored.stored_name).unlink(missing_ok=True)
        except OSError as e:
            logger.error("Error deleting file from local storage", name=stored.stored_name, error_message=str(e))
            raise StorageError(f"Could not delete {stored.stored_name}") from e


class S3BlobStore(BlobStore):
    """
    Files in an S3 bucket. Objects are written with `s3_object_acl`
    (public-read by default) so their URLs stay valid for as long as the
    envelope is kept.
    """

    def __init__(self):
        """Initialize S3 client with AWS credentials"""
        if not settings.s3_bucket_name:
            raise StorageError("S3 storage requires S3_BUCKET_NAME")
        self.s3_client = boto3.client(
            's3',
            aws_access_key_id=settings.aws_access_key_id,
            aws_secret_access_key=settings.aws_secret_access_key,
            region_name=settings.aws_region
        )
        self.bucket_name = settings.s3_bucket_name
        self.public_base_url = (
            settings.s3_public_base_url
            or f"https://{self.bucket_name}.s3.{settings.aws_region}.amazonaws.com"
        ).rstrip("/")
        self.object_acl = settings.s3_object_acl

    def _public_url(self, key: str) -> str:
        return f"{self.public_base_url}/{key}"

    def _upload(self, file_obj: BinaryIO, folder: str, name: str, content_type: str) -> StoredFile:
        key = f"{folder}/{name}"
        extra_args = {'ContentType': content_type}
        if self.object_acl:
            extra_args['ACL'] = self.object_acl
        try:
            self.s3_client.upload_fileobj(
                file_obj,
                self.bucket_name,
                key,
                ExtraArgs=extra_args
            )
        except (BotoCoreError, ClientError) as e:
            logger.error("Error uploading file to S3", key=key, error_message=str(e))
            raise StorageError(f"Could not store {key}") from e
        return StoredFile(stored_name=name, public_url=self._public_url(key), folder=folder)

    def store(self, content: bytes, suggested_name: str, content_type: str, folder: str = ORIGINALS_FOLDER) -> StoredFile:
        """Upload generated content"""
        return self._upload(io.BytesIO(content), folder, suggested_name, content_type)

    def receive_upload(self, file_obj: BinaryIO, folder: str = SIGNED_FOLDER, suffix: str = ".pdf", content_type: str = "application/pdf") -> StoredFile:
        """Upload a signer-submitted stream under a fresh name"""
        return self._upload(file_obj, folder, unique_name(suffix), content_type)

    def discard(self, stored: StoredFile) -> None:
        """Delete an object from the bucket"""
        key = f"{stored.folder}/{stored.stored_name}"
        try:
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=key)
        except (BotoCoreError, ClientError) as e:
            logger.error("Error deleting file from S3", key=key, error_message=str(e))
            raise StorageError(f"Could not delete {key}") from e


@lru_cache()
def get_blob_store() -> BlobStore:
    """Dependency returning the configured blob store"""
    if settings.storage_backend.lower() == "s3":
        return S3BlobStore()
    return LocalBlobStore()
