"""Unit tests for the object-store repository."""

from unittest.mock import MagicMock

import pytest
from uploadflow.repositories.storage_repo import StorageRepository
from botocore.exceptions import ClientError


@pytest.mark.asyncio
async def test_complete_numbers_parts_from_one(fake_s3, storage_repo):
    session_id = await storage_repo.create_multipart_upload("k.jpg", "image/jpeg")
    tags = [fake_s3.receive_part(session_id, n, bytes([n])) for n in (1, 2, 3)]

    etag = await storage_repo.complete_multipart_upload("k.jpg", session_id, tags)

    assert etag == f'"final-{session_id}-3"'
    assert fake_s3.objects["k.jpg"] == b"\x01\x02\x03"


@pytest.mark.asyncio
async def test_abort_is_best_effort():
    client = MagicMock()
    client.abort_multipart_upload.side_effect = ClientError(
        {"Error": {"Code": "NoSuchUpload", "Message": "gone"}}, "AbortMultipartUpload"
    )
    repo = StorageRepository(client, "bucket")

    assert await repo.abort_multipart_upload("k.jpg", "gone") is False
    client.abort_multipart_upload.assert_called_once_with(
        Bucket="bucket", Key="k.jpg", UploadId="gone"
    )


@pytest.mark.asyncio
async def test_put_url_is_signed_for_content_type():
    client = MagicMock()
    client.generate_presigned_url.return_value = "https://signed"
    repo = StorageRepository(client, "bucket")

    url = await repo.generate_put_url("k.jpg", "image/jpeg", 900)

    assert url == "https://signed"
    client.generate_presigned_url.assert_called_once_with(
        "put_object",
        Params={"Bucket": "bucket", "Key": "k.jpg", "ContentType": "image/jpeg"},
        ExpiresIn=900,
    )
