"""
Tests for S3BlobStore with a mocked boto3 client.
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from boto3.exceptions import S3UploadFailedError
from botocore.exceptions import ClientError

from studyspark.boundary.aws.s3_client import S3BlobStore
from studyspark.core.exceptions import BlobStoreError

BUCKET = "studyspark-uploads"


def client_error(code: str, operation: str = "HeadObject") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


@pytest.fixture
def s3_client():
    return MagicMock()


@pytest.fixture
def store(s3_client):
    return S3BlobStore(bucket=BUCKET, region="us-east-1", s3_client=s3_client)


async def test_put_sends_metadata_and_progress(store, s3_client):
    progress = MagicMock()

    await store.put("a1-notes.pdf", b"%PDF", metadata={"summaryMode": "cheat-sheet"}, progress_callback=progress)

    args, kwargs = s3_client.upload_fileobj.call_args
    assert args[1:] == (BUCKET, "a1-notes.pdf")
    assert args[0].read() == b"%PDF"
    assert kwargs["ExtraArgs"] == {
        "ContentType": "application/pdf",
        "Metadata": {"summaryMode": "cheat-sheet"},
    }
    assert kwargs["Callback"] is progress


async def test_put_failure_wrapped(store, s3_client):
    s3_client.upload_fileobj.side_effect = client_error("AccessDenied", "PutObject")

    with pytest.raises(BlobStoreError):
        await store.put("a1-notes.pdf", b"%PDF")


async def test_multipart_upload_failure_wrapped(store, s3_client):
    s3_client.upload_fileobj.side_effect = S3UploadFailedError(
        "Failed to upload a1-notes.pdf to uploads/a1-notes.pdf: An error occurred (AccessDenied)"
    )

    with pytest.raises(BlobStoreError, match="AccessDenied") as exc_info:
        await store.put("a1-notes.pdf", b"%PDF")

    assert isinstance(exc_info.value.__cause__, S3UploadFailedError)


async def test_download_to(store, s3_client, tmp_path):
    path = str(tmp_path / "notes.pdf")

    assert await store.download_to("a1-notes.pdf", path) == path
    s3_client.download_file.assert_called_once_with(Bucket=BUCKET, Key="a1-notes.pdf", Filename=path)


async def test_missing_object_reported_as_not_found(store, s3_client):
    s3_client.download_file.side_effect = client_error("404")

    with pytest.raises(BlobStoreError, match="File not found"):
        await store.download_to("missing.pdf", "/tmp/missing.pdf")


async def test_get_metadata(store, s3_client):
    s3_client.head_object.return_value = {"Metadata": {"summarymode": "detailed"}}

    assert await store.get_metadata("a1-notes.pdf") == {"summarymode": "detailed"}


async def test_get_metadata_without_user_metadata(store, s3_client):
    s3_client.head_object.return_value = {"ContentLength": 10}

    assert await store.get_metadata("a1-notes.pdf") == {}


async def test_delete_failure_wrapped(store, s3_client):
    s3_client.delete_object.side_effect = client_error("AccessDenied", "DeleteObject")

    with pytest.raises(BlobStoreError):
        await store.delete("a1-notes.pdf")


async def test_list_walks_all_pages(store, s3_client):
    first = datetime(2026, 1, 1, tzinfo=timezone.utc)
    second = datetime(2026, 1, 2, tzinfo=timezone.utc)
    paginator = MagicMock()
    paginator.paginate.return_value = [
        {"Contents": [{"Key": "one.pdf", "LastModified": first}]},
        {"Contents": [{"Key": "two.pdf", "LastModified": second}]},
        {},
    ]
    s3_client.get_paginator.return_value = paginator

    blobs = await store.list()

    assert [(b.name, b.time_created) for b in blobs] == [("one.pdf", first), ("two.pdf", second)]
    s3_client.get_paginator.assert_called_once_with("list_objects_v2")
    paginator.paginate.assert_called_once_with(Bucket=BUCKET, Prefix="")


def test_presigned_upload_url_headers(store, s3_client):
    s3_client.generate_presigned_url.return_value = "https://s3.example/presigned"

    url, expires_at, headers = store.generate_presigned_upload_url(
        "a1-notes.pdf", metadata={"summaryMode": "cheat-sheet"}, expires_in=600
    )

    assert url == "https://s3.example/presigned"
    assert expires_at > datetime.now(timezone.utc)
    assert headers == {
        "Content-Type": "application/pdf",
        "x-amz-meta-summarymode": "cheat-sheet",
    }
    kwargs = s3_client.generate_presigned_url.call_args.kwargs
    assert kwargs["ClientMethod"] == "put_object"
    assert kwargs["ExpiresIn"] == 600
    assert kwargs["Params"]["Metadata"] == {"summaryMode": "cheat-sheet"}
