"""
Client-side coordination of many concurrent direct uploads.

Every file in a batch starts at once, and every part of a multipart file
starts at once; the transport's connection pool is the only throttle unless
max_concurrency is set. A failed part fails its file and nothing else.
"""

import asyncio
import contextlib
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional
from uuid import UUID
import httpx
from ..core.exceptions import FinalizeCommitError, PartTransferError, UploadError
from ..schemas.upload import UploadCompleteRequest, UploadInitResponse
from ..utils.logger import get_logger
from .api import UploadApiClient
from .source import UploadSource
from .transfer import DEFAULT_CHUNK_SIZE, put_part

logger = get_logger(__name__)


class FileStatus(str, Enum):
    """Client-side state of one file."""

    PENDING = "pending"
    UPLOADING = "uploading"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class FileProgress:
    """Live progress of one file, and its final result once terminal."""

    filename: str
    upload_id: Optional[UUID] = None
    status: FileStatus = FileStatus.PENDING
    progress: float = 0.0
    artifact_id: Optional[UUID] = None
    public_url: Optional[str] = None
    error: Optional[str] = None
    retryable: bool = False
    part_fractions: List[float] = field(default_factory=list, repr=False)

    @property
    def is_terminal(self) -> bool:
        return self.status in (FileStatus.COMPLETED, FileStatus.FAILED)

    def update_part(self, index: int, fraction: float) -> None:
        # Parts are equal-sized (bar the last), so each weighs the same
        self.part_fractions[index] = max(self.part_fractions[index], fraction)
        self.progress = 100.0 * sum(self.part_fractions) / len(self.part_fractions)


@dataclass
class BatchResult:
    """Outcome of upload_batch, one entry per source in input order."""

    files: List[FileProgress]

    @property
    def succeeded(self) -> List[FileProgress]:
        return [f for f in self.files if f.status == FileStatus.COMPLETED]

    @property
    def failed(self) -> List[FileProgress]:
        return [f for f in self.files if f.status == FileStatus.FAILED]

    @property
    def progress(self) -> float:
        return batch_progress(self.files)


def batch_progress(files: List[FileProgress]) -> float:
    """Fraction of files that reached a terminal state."""
    if not files:
        return 1.0
    return sum(1 for f in files if f.is_terminal) / len(files)


BatchProgressCallback = Callable[[List[FileProgress], float], None]


class ClientTransferCoordinator:
    """Uploads batches of files straight to the object store."""

    def __init__(
        self,
        api: UploadApiClient,
        storage_http: httpx.AsyncClient,
        max_concurrency: Optional[int] = None,
        report_failures: bool = True,
        report_progress: bool = False,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        complete_attempts: int = 3,
    ):
        """
        Args:
            api: Client for the orchestration API
            storage_http: HTTP client used for the presigned PUTs
            max_concurrency: Optional cap on simultaneous part transfers
            report_failures: Tell the server when a file fails so it can
                release the multipart session
            report_progress: Push per-file progress to the server in 10% steps
            chunk_size: Granularity of progress reporting within a part
            complete_attempts: Tries of the finalize call while the store
                commit keeps failing with a retryable error
        """
        self.api = api
        self.storage_http = storage_http
        self.report_failures = report_failures
        self.report_progress = report_progress
        self.chunk_size = chunk_size
        self.complete_attempts = max(complete_attempts, 1)
        self._slots = asyncio.Semaphore(max_concurrency) if max_concurrency else None

    async def upload_batch(
        self,
        sources: List[UploadSource],
        on_progress: Optional[BatchProgressCallback] = None,
        batch_id: Optional[UUID] = None,
    ) -> BatchResult:
        """Upload every source concurrently. Never raises for a single file's failure."""
        files = [FileProgress(filename=s.filename) for s in sources]

        def notify() -> None:
            if on_progress:
                on_progress(files, batch_progress(files))

        logger.info("Starting batch upload", files=len(sources), batch_id=str(batch_id) if batch_id else None)
        await asyncio.gather(
            *(
                self._upload_file(source, state, notify, batch_id)
                for source, state in zip(sources, files)
            )
        )

        result = BatchResult(files=files)
        logger.info(
            "Batch upload finished",
            succeeded=len(result.succeeded),
            failed=len(result.failed),
        )
        return result

    async def upload_file(self, source: UploadSource) -> FileProgress:
        """Upload a single file."""
        result = await self.upload_batch([source])
        return result.files[0]

    async def _upload_file(
        self,
        source: UploadSource,
        state: FileProgress,
        notify: Callable[[], None],
        batch_id: Optional[UUID],
    ) -> None:
        finalizing = False
        try:
            init = await self.api.initiate(source, batch_id)
            state.upload_id = init.upload_id
            state.status = FileStatus.UPLOADING
            notify()

            tags = await self._transfer(source, init, state, notify)

            finalizing = True
            completed = await self._complete(
                UploadCompleteRequest(
                    upload_id=init.upload_id,
                    object_key=init.object_key,
                    filename=source.filename,
                    file_size_bytes=source.size,
                    content_type=source.content_type,
                    multipart_session_id=init.multipart_session_id,
                    part_tags=tags,
                )
            )
            state.artifact_id = completed.artifact_id
            state.public_url = completed.public_url
            state.progress = 100.0
            state.status = FileStatus.COMPLETED
        except FinalizeCommitError as e:
            # Every part is in the store and the job is still open
            await self._mark_failed(state, e, retryable=True, report=False)
        except UploadError as e:
            await self._mark_failed(state, e, report=not finalizing)
        except httpx.HTTPError as e:
            # Transport failure talking to the orchestration API
            await self._mark_failed(
                state,
                UploadError(f"API request failed: {e}"),
                retryable=finalizing,
                report=not finalizing,
            )
        except Exception as e:
            # Unreadable source file or malformed API response
            logger.error("Unexpected upload error", filename=state.filename, exc_info=e)
            await self._mark_failed(
                state, UploadError(f"{type(e).__name__}: {e}"), report=not finalizing
            )
        finally:
            notify()

    async def _complete(self, request: UploadCompleteRequest):
        """Finalize, retrying with the same tags while the store commit fails."""
        for attempt in range(1, self.complete_attempts + 1):
            try:
                return await self.api.complete(request)
            except FinalizeCommitError as e:
                if attempt == self.complete_attempts:
                    raise
                logger.warning(
                    "Finalize commit failed, retrying",
                    upload_id=str(request.upload_id),
                    attempt=attempt,
                    error=e.message,
                )

    async def _transfer(
        self,
        source: UploadSource,
        init: UploadInitResponse,
        state: FileProgress,
        notify: Callable[[], None],
    ) -> List[str]:
        """PUT every part concurrently. Returns tags in part order."""
        if init.multipart:
            if not init.part_size or not init.number_of_parts:
                raise UploadError("Invalid multipart upload response")
            ranges = [
                (start, min(start + init.part_size, source.size))
                for start in range(0, source.size, init.part_size)
            ]
        else:
            ranges = [(0, source.size)]

        if len(ranges) != len(init.presigned_urls):
            raise UploadError(
                f"Expected {len(ranges)} presigned URLs, got {len(init.presigned_urls)}"
            )

        state.part_fractions = [0.0] * len(ranges)
        reporter = _ProgressReporter(self.api, init.upload_id) if self.report_progress else None

        async def send(index: int, url: str, start: int, end: int) -> str:
            def on_part_progress(fraction: float) -> None:
                state.update_part(index, fraction)
                notify()

            async with self._slots or contextlib.nullcontext():
                body = await source.read_range(start, end)
                tag = await put_part(
                    self.storage_http,
                    url,
                    body,
                    part_number=index + 1,
                    content_type=None if init.multipart else source.content_type,
                    on_progress=on_part_progress,
                    chunk_size=self.chunk_size,
                )
            if reporter:
                await reporter.maybe_report(state.progress)
            return tag

        tasks = [
            asyncio.create_task(send(index, url, start, end))
            for index, (url, (start, end)) in enumerate(zip(init.presigned_urls, ranges))
        ]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            # One part failed: the file is lost, stop its siblings
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def _mark_failed(
        self,
        state: FileProgress,
        error: UploadError,
        retryable: Optional[bool] = None,
        report: bool = True,
    ) -> None:
        """
        Record a file failure. With report=True the server is told to fail the
        job and release its multipart session.
        """
        if retryable is None:
            retryable = isinstance(error, PartTransferError) and error.retryable
        state.status = FileStatus.FAILED
        state.error = error.message
        state.retryable = retryable
        logger.warning(
            "File upload failed",
            filename=state.filename,
            upload_id=str(state.upload_id) if state.upload_id else None,
            error=error.message,
            retryable=state.retryable,
        )

        if report and self.report_failures and state.upload_id is not None:
            try:
                await self.api.fail(state.upload_id, error.message)
            except (UploadError, httpx.HTTPError) as e:
                logger.warning(
                    "Could not report failed upload",
                    upload_id=str(state.upload_id),
                    error=str(e),
                )


class _ProgressReporter:
    """Sends progress to the server each time a file crosses a new 10% step."""

    def __init__(self, api: UploadApiClient, upload_id: UUID):
        self.api = api
        self.upload_id = upload_id
        self.last_step = 0

    async def maybe_report(self, progress: float) -> None:
        step = int(progress // 10) * 10
        if step <= self.last_step or step >= 100:
            # 100 is recorded by finalize
            return
        self.last_step = step
        try:
            await self.api.report_progress(self.upload_id, step)
        except (UploadError, httpx.HTTPError) as e:
            logger.debug("Progress report failed", upload_id=str(self.upload_id), error=str(e))
