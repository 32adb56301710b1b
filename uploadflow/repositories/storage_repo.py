"""Storage repository: presigning and multipart sessions against S3."""

import asyncio
from typing import Optional
from botocore.client import BaseClient
from botocore.exceptions import BotoCoreError, ClientError
from ..utils.logger import get_logger

logger = get_logger(__name__)

# Errors raised by boto3 for a failed store call
STORAGE_ERRORS = (ClientError, BotoCoreError)


class StorageRepository:
    """
    Repository for object-store operations.

    boto3 is blocking, so every call runs in a worker thread and the event
    loop keeps serving other uploads while it waits.
    """

    def __init__(self, client: BaseClient, bucket_name: str):
        self.client = client
        self.bucket_name = bucket_name

    async def generate_put_url(self, key: str, content_type: str, expiration: int) -> str:
        """
        Presign a single PUT of the whole object.
        Args:
            key: Object key
            content_type: MIME type the client must send
            expiration: URL lifetime in seconds
        Returns:
            Presigned URL
        """
        return await asyncio.to_thread(
            self.client.generate_presigned_url,
            "put_object",
            Params={"Bucket": self.bucket_name, "Key": key, "ContentType": content_type},
            ExpiresIn=expiration,
        )

    async def create_multipart_upload(self, key: str, content_type: str) -> str:
        """Open a multipart session and return its id."""
        response = await asyncio.to_thread(
            self.client.create_multipart_upload,
            Bucket=self.bucket_name,
            Key=key,
            ContentType=content_type,
        )
        return response["UploadId"]

    async def generate_part_url(
        self, key: str, session_id: str, part_number: int, expiration: int
    ) -> str:
        """Presign the upload of one part (1-indexed) of a multipart session."""
        return await asyncio.to_thread(
            self.client.generate_presigned_url,
            "upload_part",
            Params={
                "Bucket": self.bucket_name,
                "Key": key,
                "UploadId": session_id,
                "PartNumber": part_number,
            },
            ExpiresIn=expiration,
        )

    async def complete_multipart_upload(
        self, key: str, session_id: str, etags: list[str]
    ) -> Optional[str]:
        """
        Commit a multipart session. Tags are in part order, part 1 first.
        The store rejects the call if tags or part count do not match what it
        received. Returns the ETag of the assembled object.
        """
        multipart_upload = {
            "Parts": [
                {"PartNumber": index, "ETag": etag}
                for index, etag in enumerate(etags, start=1)
            ]
        }
        response = await asyncio.to_thread(
            self.client.complete_multipart_upload,
            Bucket=self.bucket_name,
            Key=key,
            UploadId=session_id,
            MultipartUpload=multipart_upload,
        )
        return response.get("ETag")

    async def abort_multipart_upload(self, key: str, session_id: str) -> bool:
        """Abort a multipart session and release uploaded parts. Best effort."""
        try:
            await asyncio.to_thread(
                self.client.abort_multipart_upload,
                Bucket=self.bucket_name,
                Key=key,
                UploadId=session_id,
            )
            return True
        except STORAGE_ERRORS as e:
            logger.warning(
                "Failed to abort multipart session",
                object_key=key,
                session_id=session_id,
                error=str(e),
            )
            return False
