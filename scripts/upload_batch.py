"""Upload every file in a directory straight to the object store."""

import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import httpx

from uploadflow.client.api import UploadApiClient
from uploadflow.client.coordinator import ClientTransferCoordinator
from uploadflow.client.source import UploadSource
from uploadflow.utils.logger import configure_logging, get_logger

logger = get_logger(__name__)


async def upload_directory(
    api_url: str,
    directory: Path,
    max_concurrency: int = None,
    report_progress: bool = False,
    use_batch: bool = True,
) -> int:
    """Upload all regular files under directory. Returns the number that failed."""
    sources = [UploadSource.from_path(p) for p in sorted(directory.iterdir()) if p.is_file()]
    if not sources:
        print(f"No files found in {directory}")
        return 0

    limits = httpx.Limits(max_connections=max_concurrency or 100)
    timeout = httpx.Timeout(30.0, write=120.0)
    async with httpx.AsyncClient(base_url=api_url, timeout=timeout) as api_http, \
            httpx.AsyncClient(timeout=timeout, limits=limits) as storage_http:
        api = UploadApiClient(api_http)
        batch_id = None
        if use_batch:
            batch_id = await api.create_batch(
                file_count=len(sources), total_size_bytes=sum(s.size for s in sources)
            )

        last_shown = -1

        def show(files, fraction):
            nonlocal last_shown
            percent = int(fraction * 100)
            if percent != last_shown:
                last_shown = percent
                print(f"\r{percent:3d}% of files done", end="", flush=True)

        coordinator = ClientTransferCoordinator(
            api,
            storage_http,
            max_concurrency=max_concurrency,
            report_progress=report_progress,
        )
        result = await coordinator.upload_batch(sources, on_progress=show, batch_id=batch_id)

    print()
    for item in result.succeeded:
        print(f"  OK    {item.filename} -> {item.public_url}")
    for item in result.failed:
        hint = " (retryable)" if item.retryable else ""
        print(f"  FAIL  {item.filename}: {item.error}{hint}")
    print(f"{len(result.succeeded)} uploaded, {len(result.failed)} failed")
    return len(result.failed)


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Upload a directory of files")
    parser.add_argument("directory", type=Path, help="Directory containing the files")
    parser.add_argument(
        "--api-url",
        default="http://localhost:8000",
        help="Base URL of the upload API",
    )
    parser.add_argument(
        "--max-concurrency",
        type=int,
        default=None,
        help="Cap on simultaneous part transfers (default: unbounded)",
    )
    parser.add_argument(
        "--report-progress",
        action="store_true",
        help="Push per-file progress to the server",
    )
    parser.add_argument(
        "--no-batch",
        action="store_true",
        help="Do not group the uploads into a batch",
    )

    args = parser.parse_args()

    if not args.directory.is_dir():
        parser.error(f"{args.directory} is not a directory")

    configure_logging()
    failed = asyncio.run(
        upload_directory(
            args.api_url,
            args.directory,
            max_concurrency=args.max_concurrency,
            report_progress=args.report_progress,
            use_batch=not args.no_batch,
        )
    )
    sys.exit(1 if failed else 0)
