"""End-to-end upload flow: coordinator -> API -> object store."""

import pytest
from uploadflow.client.api import UploadApiClient
from uploadflow.client.coordinator import ClientTransferCoordinator, FileStatus
from uploadflow.client.source import UploadSource


@pytest.mark.asyncio
async def test_multipart_upload_end_to_end(client, store_http, fake_s3, tmp_path):
    path = tmp_path / "panorama.jpg"
    data = bytes(range(256)) * 60_000  # 15.36 MB, four parts
    path.write_bytes(data)

    coordinator = ClientTransferCoordinator(UploadApiClient(client), store_http)
    item = await coordinator.upload_file(UploadSource.from_path(path))

    assert item.status == FileStatus.COMPLETED, item.error
    status = await UploadApiClient(client).get_status(item.upload_id)
    assert status.status == "COMPLETED"
    assert status.progress == 100

    key = item.public_url.split("https://cdn.example.com/", 1)[1]
    assert fake_s3.objects[key] == data
    assert fake_s3.sessions == {}


@pytest.mark.asyncio
async def test_single_part_upload_end_to_end(client, store_http, fake_s3):
    source = UploadSource.from_bytes("small.png", b"\x89PNG" + b"\x00" * 1000)

    coordinator = ClientTransferCoordinator(UploadApiClient(client), store_http)
    item = await coordinator.upload_file(source)

    assert item.status == FileStatus.COMPLETED, item.error
    key = item.public_url.split("https://cdn.example.com/", 1)[1]
    assert fake_s3.objects[key] == source.data


@pytest.mark.asyncio
async def test_rejected_file_never_reaches_store(client, store_http, fake_s3):
    source = UploadSource.from_bytes("movie.mov", b"x" * 100)

    coordinator = ClientTransferCoordinator(UploadApiClient(client), store_http)
    item = await coordinator.upload_file(source)

    assert item.status == FileStatus.FAILED
    assert item.upload_id is None
    assert fake_s3.objects == {}
