import io
import re

import pytest
from botocore.exceptions import ClientError
from botocore.stub import Stubber
from fastapi import UploadFile

from app.core.config import settings
from app.utils.file_utils import validate_file
from app.utils.storage import (
    BlobStore, LocalBlobStore, S3BlobStore, StorageError, StoredFile, unique_name,
)


def test_unique_name_format():
    name = unique_name("-nda.html")
    assert re.match(r"^\d{13}-\d{6}-nda\.html$", name)


def test_local_store_writes_originals(tmp_path):
    store = LocalBlobStore(root=str(tmp_path), base_url="http://files.test/storage/")
    stored = store.store(b"<html>doc</html>", "1-123456-nda.html", "text/html")

    assert stored.stored_name == "1-123456-nda.html"
    assert stored.public_url == "http://files.test/storage/originals/1-123456-nda.html"
    assert (tmp_path / "originals" / "1-123456-nda.html").read_bytes() == b"<html>doc</html>"


def test_local_store_receives_uploads_under_fresh_names(tmp_path):
    store = LocalBlobStore(root=str(tmp_path), base_url="http://files.test/storage")
    first = store.receive_upload(io.BytesIO(b"%PDF-1"))
    second = store.receive_upload(io.BytesIO(b"%PDF-2"))

    assert first.stored_name != second.stored_name
    assert first.public_url.startswith("http://files.test/storage/signed/")
    assert first.stored_name.endswith(".pdf")
    assert (tmp_path / "signed" / second.stored_name).read_bytes() == b"%PDF-2"


def test_local_store_failure_raises_storage_error(tmp_path):
    store = LocalBlobStore(root=str(tmp_path), base_url="http://files.test/storage")
    # a directory where the file should go
    (tmp_path / "originals" / "taken.html").mkdir()
    with pytest.raises(StorageError):
        store.store(b"x", "taken.html", "text/html")


def make_upload(filename, size=None):
    return UploadFile(file=io.BytesIO(b"%PDF"), filename=filename, size=size)


def test_validate_file_accepts_pdf():
    assert validate_file(make_upload("signed.PDF", size=4)) == (True, None)


def test_validate_file_rejects_missing_file():
    assert validate_file(None) == (False, "Missing file in upload")
    assert validate_file(make_upload("")) == (False, "Missing file in upload")


def test_validate_file_rejects_other_types():
    is_valid, error = validate_file(make_upload("signed.docx"))
    assert not is_valid
    assert "not allowed" in error

    is_valid, error = validate_file(make_upload("signed"))
    assert not is_valid


def test_validate_file_rejects_oversized_upload():
    too_big = settings.allowed_file_size * 1024 + 1
    is_valid, error = validate_file(make_upload("signed.pdf", size=too_big))
    assert not is_valid
    assert "exceeds" in error


# === S3 backend ===

class RecordingS3Client:
    """Stands in for the boto3 client's managed upload."""

    def __init__(self, error=None):
        self.error = error
        self.uploads = []

    def upload_fileobj(self, file_obj, bucket, key, ExtraArgs=None):
        if self.error:
            raise self.error
        self.uploads.append({"bucket": bucket, "key": key, "body": file_obj.read(), "extra": ExtraArgs})


@pytest.fixture()
def s3_settings(monkeypatch):
    monkeypatch.setattr(settings, "s3_bucket_name", "envelopes-bucket")
    monkeypatch.setattr(settings, "aws_region", "ap-southeast-1")
    monkeypatch.setattr(settings, "s3_public_base_url", None)
    monkeypatch.setattr(settings, "s3_object_acl", "public-read")
    return settings


def test_s3_store_returns_permanent_public_url(s3_settings):
    store = S3BlobStore()
    store.s3_client = RecordingS3Client()

    stored = store.store(b"<html/>", "1-123456-nda.html", "text/html")

    assert stored.public_url == (
        "https://envelopes-bucket.s3.ap-southeast-1.amazonaws.com/originals/1-123456-nda.html"
    )
    assert "Signature" not in stored.public_url and "Expires" not in stored.public_url
    assert store.s3_client.uploads == [{
        "bucket": "envelopes-bucket",
        "key": "originals/1-123456-nda.html",
        "body": b"<html/>",
        "extra": {"ContentType": "text/html", "ACL": "public-read"},
    }]


def test_s3_public_base_url_overrides_bucket_url(s3_settings):
    s3_settings.s3_public_base_url = "https://cdn.x.com/docs/"
    s3_settings.s3_object_acl = None
    store = S3BlobStore()
    store.s3_client = RecordingS3Client()

    stored = store.receive_upload(io.BytesIO(b"%PDF"))

    assert stored.folder == "signed"
    assert stored.public_url == f"https://cdn.x.com/docs/signed/{stored.stored_name}"
    assert store.s3_client.uploads[0]["extra"] == {"ContentType": "application/pdf"}


def test_s3_upload_failure_raises_storage_error(s3_settings):
    store = S3BlobStore()
    store.s3_client = RecordingS3Client(
        error=ClientError({"Error": {"Code": "AccessDenied", "Message": "denied"}}, "PutObject")
    )
    with pytest.raises(StorageError):
        store.receive_upload(io.BytesIO(b"%PDF"))


def test_s3_discard_deletes_the_object(s3_settings):
    store = S3BlobStore()
    stored = StoredFile(stored_name="1-123456.pdf", public_url="unused", folder="signed")

    with Stubber(store.s3_client) as stubber:
        stubber.add_response(
            "delete_object", {}, {"Bucket": "envelopes-bucket", "Key": "signed/1-123456.pdf"}
        )
        store.discard(stored)
        stubber.assert_no_pending_responses()

    with Stubber(store.s3_client) as stubber:
        stubber.add_client_error("delete_object", service_error_code="AccessDenied")
        with pytest.raises(StorageError):
            store.discard(stored)


def test_s3_requires_a_bucket(s3_settings):
    s3_settings.s3_bucket_name = None
    with pytest.raises(StorageError):
        S3BlobStore()


def test_local_discard_removes_the_file(tmp_path):
    store = LocalBlobStore(root=str(tmp_path), base_url="http://files.test/storage")
    stored = store.receive_upload(io.BytesIO(b"%PDF"))
    target = tmp_path / "signed" / stored.stored_name
    assert target.exists()

    store.discard(stored)
    assert not target.exists()
    # already gone is fine
    store.discard(stored)


def test_blob_store_is_abstract():
    with pytest.raises(TypeError):
        BlobStore()
