"""Pytest configuration and fixtures."""

import hashlib
import itertools
import os
import threading
import time
from typing import AsyncGenerator
from urllib.parse import parse_qs, urlparse

# Must be set before uploadflow.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import httpx
import pytest
from botocore.exceptions import ClientError
from httpx import AsyncClient, ASGITransport
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from uploadflow.main import app
from uploadflow.config.database import Base, get_db
from uploadflow.core.dependencies import get_planner, get_storage_repo
from uploadflow.middleware.rate_limit import limiter
from uploadflow.models.upload_job import UploadJob
from uploadflow.repositories.artifact_repo import ArtifactRepository
from uploadflow.repositories.batch_repo import BatchRepository
from uploadflow.repositories.storage_repo import StorageRepository
from uploadflow.repositories.upload_job_repo import UploadJobRepository
from uploadflow.services.credential_service import DirectUploadCredentialIssuer
from uploadflow.services.finalize_service import FinalizeReconciler
from uploadflow.services.planner import UploadPlanner
from uploadflow.services.upload_service import UploadService

# Test database URL (in-memory SQLite for testing)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

BUCKET = "test-bucket"
STORE_HOST = "s3.test"

ALLOWED_TYPES = ["image/jpeg", "image/png", "image/webp", "image/heic", "image/heif"]
MAX_FILE_SIZE = 50 * 1024 * 1024
MULTIPART_THRESHOLD = 10_000_000
PART_SIZE = 5_000_000


def client_error(code: str, operation: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


class FakeS3Client:
    """
    In-memory stand-in for a boto3 S3 client.

    Multipart sessions remember the parts they received; completing a session
    with a tag list that does not match is rejected like S3 does (InvalidPart).
    """

    def __init__(self):
        self._ids = itertools.count(1)
        self.sessions = {}
        self.objects = {}
        self.aborted = []
        self.completed = []
        self.fail_presign_parts = set()
        self.fail_create_multipart = False
        self.presign_delay = 0.0
        self.presign_in_flight = 0
        self.peak_presign = 0
        self._presign_lock = threading.Lock()

    # boto3 surface

    def generate_presigned_url(self, operation, Params, ExpiresIn):
        with self._presign_lock:
            self.presign_in_flight += 1
            self.peak_presign = max(self.peak_presign, self.presign_in_flight)
        try:
            time.sleep(self.presign_delay)
            return self._sign(operation, Params, ExpiresIn)
        finally:
            with self._presign_lock:
                self.presign_in_flight -= 1

    def _sign(self, operation, Params, ExpiresIn):
        if operation == "upload_part":
            if Params["PartNumber"] in self.fail_presign_parts:
                raise client_error("InternalError", "GeneratePresignedUrl")
            return (
                f"https://{STORE_HOST}/{Params['Bucket']}/{Params['Key']}"
                f"?uploadId={Params['UploadId']}&partNumber={Params['PartNumber']}"
                f"&expires={ExpiresIn}"
            )
        return f"https://{STORE_HOST}/{Params['Bucket']}/{Params['Key']}?expires={ExpiresIn}"

    def create_multipart_upload(self, Bucket, Key, ContentType):
        if self.fail_create_multipart:
            raise client_error("ServiceUnavailable", "CreateMultipartUpload")
        session_id = f"session-{next(self._ids)}"
        self.sessions[session_id] = {"key": Key, "parts": {}}
        return {"UploadId": session_id}

    def complete_multipart_upload(self, Bucket, Key, UploadId, MultipartUpload):
        session = self.sessions.get(UploadId)
        if session is None or session["key"] != Key:
            raise client_error("NoSuchUpload", "CompleteMultipartUpload")
        sent = [(p["PartNumber"], p["ETag"]) for p in MultipartUpload["Parts"]]
        received = sorted(session["parts"].items())
        if sent != received:
            raise client_error("InvalidPart", "CompleteMultipartUpload")
        del self.sessions[UploadId]
        self.objects[Key] = b"".join(session["bodies"][n] for n, _ in received)
        self.completed.append(UploadId)
        return {"ETag": f'"final-{UploadId}-{len(received)}"'}

    def abort_multipart_upload(self, Bucket, Key, UploadId):
        if UploadId not in self.sessions:
            raise client_error("NoSuchUpload", "AbortMultipartUpload")
        del self.sessions[UploadId]
        self.aborted.append(UploadId)
        return {}

    # helpers for tests

    def receive_part(self, session_id: str, part_number: int, body: bytes) -> str:
        """Record a part as if it were PUT to its signed URL. Returns the bare ETag."""
        etag = hashlib.md5(body).hexdigest()
        session = self.sessions[session_id]
        session["parts"][part_number] = etag
        session.setdefault("bodies", {})[part_number] = body
        return etag

    def handle(self, request: httpx.Request, body: bytes) -> httpx.Response:
        """Serve a PUT to a signed URL produced by generate_presigned_url."""
        url = urlparse(str(request.url))
        key = url.path.split("/", 2)[2]
        query = parse_qs(url.query)
        if "uploadId" in query:
            session_id = query["uploadId"][0]
            if session_id not in self.sessions:
                return httpx.Response(404, text="NoSuchUpload")
            etag = self.receive_part(session_id, int(query["partNumber"][0]), body)
        else:
            self.objects[key] = body
            etag = hashlib.md5(body).hexdigest()
        return httpx.Response(200, headers={"ETag": f'"{etag}"'})


@pytest.fixture(scope="function")
async def db_engine():
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture(scope="function")
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def fake_s3() -> FakeS3Client:
    return FakeS3Client()


@pytest.fixture
def storage_repo(fake_s3) -> StorageRepository:
    return StorageRepository(fake_s3, BUCKET)


@pytest.fixture
def planner() -> UploadPlanner:
    return UploadPlanner(
        max_file_size=MAX_FILE_SIZE,
        multipart_threshold=MULTIPART_THRESHOLD,
        part_size=PART_SIZE,
        allowed_content_types=ALLOWED_TYPES,
    )


@pytest.fixture
def job_repo(db_session) -> UploadJobRepository:
    return UploadJobRepository(db_session)


@pytest.fixture
def upload_service(db_session, storage_repo, planner) -> UploadService:
    return UploadService(
        planner=planner,
        issuer=DirectUploadCredentialIssuer(storage_repo, url_ttl_minutes=15),
        storage_repo=storage_repo,
        job_repo=UploadJobRepository(db_session),
        batch_repo=BatchRepository(db_session),
    )


@pytest.fixture
def reconciler(db_session, storage_repo) -> FinalizeReconciler:
    job_repo = UploadJobRepository(db_session)
    return FinalizeReconciler(
        storage_repo=storage_repo,
        job_repo=job_repo,
        artifact_repo=ArtifactRepository(db_session),
        commit_timeout=5.0,
    )


@pytest.fixture
def count_jobs(db_session):
    """Number of rows in upload_jobs."""

    async def count() -> int:
        result = await db_session.execute(select(func.count(UploadJob.id)))
        return result.scalar_one()

    return count


@pytest.fixture(scope="function")
async def client(db_session: AsyncSession, storage_repo, planner) -> AsyncGenerator[AsyncClient, None]:
    """Create test HTTP client."""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage_repo] = lambda: storage_repo
    app.dependency_overrides[get_planner] = lambda: planner
    limiter.enabled = False

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    limiter.enabled = True
    app.dependency_overrides.clear()


@pytest.fixture
async def store_http(fake_s3) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client whose PUTs to signed URLs land in fake_s3."""

    async def handler(request: httpx.Request) -> httpx.Response:
        body = await request.aread()
        return fake_s3.handle(request, body)

    async with AsyncClient(transport=httpx.MockTransport(handler)) as ac:
        yield ac
