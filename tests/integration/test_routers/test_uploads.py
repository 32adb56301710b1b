"""Integration tests for upload routes."""

import uuid

import pytest
from httpx import AsyncClient


async def init_upload(client, filename="photo.jpg", size=2_000_000, content_type="image/jpeg", **extra):
    response = await client.post(
        "/uploads/init",
        json={"filename": filename, "fileSizeBytes": size, "contentType": content_type, **extra},
    )
    return response


def complete_body(init, tags):
    return {
        "uploadId": init["uploadId"],
        "objectKey": init["objectKey"],
        "filename": "photo.jpg",
        "fileSizeBytes": 2_000_000,
        "contentType": "image/jpeg",
        "multipartSessionId": init["multipartSessionId"],
        "partTags": tags,
    }


@pytest.mark.asyncio
@pytest.mark.integration
async def test_health_check(client: AsyncClient):
    """Test health check endpoint."""
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_init_small_file(client: AsyncClient):
    response = await init_upload(client)

    assert response.status_code == 202
    data = response.json()
    assert data["multipart"] is False
    assert data["multipartSessionId"] is None
    assert len(data["presignedUrls"]) == 1
    assert data["expiresInMinutes"] == 15

    status = await client.get(f"/uploads/{data['uploadId']}")
    assert status.status_code == 200
    assert status.json()["status"] == "INITIATED"
    assert status.json()["progress"] == 0


@pytest.mark.asyncio
@pytest.mark.integration
async def test_init_large_file_is_multipart(client: AsyncClient):
    response = await init_upload(client, size=50_000_000)

    assert response.status_code == 202
    data = response.json()
    assert data["multipart"] is True
    assert data["partSize"] == 5_000_000
    assert data["numberOfParts"] == 10
    assert len(data["presignedUrls"]) == 10


@pytest.mark.asyncio
@pytest.mark.integration
async def test_init_rejects_disallowed_type(client: AsyncClient):
    response = await init_upload(client, filename="clip.mp4", content_type="video/mp4")

    assert response.status_code == 400
    assert response.json()["error_code"] == "validation_error"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_init_missing_field_is_validation_error(client: AsyncClient, count_jobs):
    response = await client.post("/uploads/init", json={"filename": "a.jpg", "fileSizeBytes": 10})

    assert response.status_code == 400
    assert response.json()["error_code"] == "validation_error"
    assert "contentType" in response.json()["detail"]
    assert await count_jobs() == 0


@pytest.mark.asyncio
@pytest.mark.integration
async def test_init_presign_failure_creates_nothing(client: AsyncClient, fake_s3, count_jobs):
    fake_s3.fail_presign_parts = {3}

    response = await init_upload(client, size=30_000_000)

    assert response.status_code == 500
    assert response.json()["error_code"] == "presign_error"
    assert await count_jobs() == 0


@pytest.mark.asyncio
@pytest.mark.integration
async def test_complete_single_part(client: AsyncClient):
    init = (await init_upload(client)).json()

    response = await client.post("/uploads/complete", json=complete_body(init, ['"etag-1"']))

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "COMPLETED"
    assert data["publicUrl"] == f"https://cdn.example.com/{init['objectKey']}"

    status = (await client.get(f"/uploads/{init['uploadId']}")).json()
    assert status["status"] == "COMPLETED"
    assert status["progress"] == 100
    assert status["completedAt"] is not None


@pytest.mark.asyncio
@pytest.mark.integration
async def test_complete_with_missing_parts_is_retryable(client: AsyncClient):
    init = (await init_upload(client, size=50_000_000)).json()
    body = complete_body(init, ["only-one"])
    body["fileSizeBytes"] = 50_000_000

    response = await client.post("/uploads/complete", json=body)

    assert response.status_code == 500
    assert response.json()["error_code"] == "finalize_commit_error"
    status = (await client.get(f"/uploads/{init['uploadId']}")).json()
    assert status["status"] == "INITIATED"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_complete_requires_tags(client: AsyncClient):
    init = (await init_upload(client)).json()

    response = await client.post("/uploads/complete", json=complete_body(init, []))

    assert response.status_code == 400
    assert response.json()["error_code"] == "validation_error"
    assert "partTags" in response.json()["detail"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_abort(client: AsyncClient, fake_s3):
    init = (await init_upload(client, size=20_000_000)).json()

    response = await client.delete(f"/uploads/{init['uploadId']}")

    assert response.status_code == 204
    assert fake_s3.aborted == [init["multipartSessionId"]]
    status = (await client.get(f"/uploads/{init['uploadId']}")).json()
    assert status["status"] == "ABORTED"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_unknown_upload_is_404(client: AsyncClient):
    missing = uuid.uuid4()

    assert (await client.get(f"/uploads/{missing}")).status_code == 404
    response = await client.delete(f"/uploads/{missing}")
    assert response.status_code == 404
    assert response.json()["error_code"] == "not_found"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_fail_and_progress(client: AsyncClient):
    init = (await init_upload(client)).json()
    upload_id = init["uploadId"]

    assert (await client.post(f"/uploads/{upload_id}/progress", json={"progress": 40})).status_code == 204
    assert (await client.post(f"/uploads/{upload_id}/progress", json={"progress": 101})).status_code == 400
    assert (await client.get(f"/uploads/{upload_id}")).json()["progress"] == 40

    response = await client.post(f"/uploads/{upload_id}/fail", json={"reason": "Part 1 timed out"})
    assert response.status_code == 204
    assert (await client.get(f"/uploads/{upload_id}")).json()["status"] == "FAILED"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_batch_status(client: AsyncClient):
    first = (await init_upload(client, filename="a.jpg")).json()
    second = (await init_upload(client, filename="b.jpg")).json()

    response = await client.post(
        "/uploads/status/batch",
        json=[second["uploadId"], str(uuid.uuid4()), first["uploadId"]],
    )

    assert response.status_code == 200
    assert [item["uploadId"] for item in response.json()] == [second["uploadId"], first["uploadId"]]
    assert [item["filename"] for item in response.json()] == ["b.jpg", "a.jpg"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_batches(client: AsyncClient):
    created = await client.post("/uploads/batches", json={"fileCount": 2, "totalSizeBytes": 4_000_000})
    assert created.status_code == 201
    batch_id = created.json()["batchId"]

    init = (await init_upload(client, batchId=batch_id)).json()
    await client.post("/uploads/complete", json=complete_body(init, ["etag"]))

    summary = await client.get(f"/uploads/batches/{batch_id}")
    assert summary.status_code == 200
    data = summary.json()
    assert data["completed"] == 1
    assert data["pending"] == 1
    assert data["uploadedBytes"] == 2_000_000

    assert (await client.get(f"/uploads/batches/{uuid.uuid4()}")).status_code == 404
