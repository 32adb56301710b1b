"""Direct-upload credential issuance (presigned URLs, multipart sessions)."""

import asyncio
from dataclasses import dataclass, field
from typing import List, Optional
from ..core.exceptions import PresignError
from ..repositories.storage_repo import STORAGE_ERRORS, StorageRepository
from ..services.planner import UploadPlan
from ..utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class IssuedCredentials:
    """Signed URLs for one planned transfer, in part order."""

    presigned_urls: List[str]
    expires_in_minutes: int
    multipart_session_id: Optional[str] = None
    part_size: Optional[int] = None
    number_of_parts: int = 1
    multipart: bool = field(init=False)

    def __post_init__(self):
        self.multipart = self.multipart_session_id is not None


class DirectUploadCredentialIssuer:
    """Turns an UploadPlan into time-limited signed URLs."""

    def __init__(self, storage_repo: StorageRepository, url_ttl_minutes: int):
        self.storage_repo = storage_repo
        self.url_ttl_minutes = url_ttl_minutes

    @property
    def url_ttl_seconds(self) -> int:
        return self.url_ttl_minutes * 60

    async def issue(self, plan: UploadPlan, object_key: str) -> IssuedCredentials:
        """
        Issue credentials for a planned transfer.
        Either every URL is returned or PresignError is raised; a partial set
        never leaves this method.
        """
        if not plan.multipart:
            try:
                url = await self.storage_repo.generate_put_url(
                    object_key, plan.content_type, self.url_ttl_seconds
                )
            except STORAGE_ERRORS as e:
                logger.error("Failed to presign upload", object_key=object_key, error=str(e))
                raise PresignError(f"Failed to presign upload: {e}") from e
            return IssuedCredentials(
                presigned_urls=[url], expires_in_minutes=self.url_ttl_minutes
            )

        try:
            session_id = await self.storage_repo.create_multipart_upload(
                object_key, plan.content_type
            )
        except STORAGE_ERRORS as e:
            logger.error("Failed to open multipart session", object_key=object_key, error=str(e))
            raise PresignError(f"Failed to initiate multipart upload: {e}") from e

        urls = await self._sign_parts(object_key, session_id, plan.number_of_parts)

        logger.info(
            "Multipart credentials issued",
            object_key=object_key,
            session_id=session_id,
            parts=plan.number_of_parts,
        )
        return IssuedCredentials(
            presigned_urls=urls,
            expires_in_minutes=self.url_ttl_minutes,
            multipart_session_id=session_id,
            part_size=plan.part_size,
            number_of_parts=plan.number_of_parts,
        )

    async def _sign_parts(self, object_key: str, session_id: str, number_of_parts: int) -> List[str]:
        """Sign every part URL concurrently. Aborts the session if any signing fails."""
        results = await asyncio.gather(
            *(
                self.storage_repo.generate_part_url(
                    object_key, session_id, part_number, self.url_ttl_seconds
                )
                for part_number in range(1, number_of_parts + 1)
            ),
            return_exceptions=True,
        )

        errors = [r for r in results if isinstance(r, BaseException)]
        if errors:
            logger.error(
                "Failed to presign multipart parts",
                object_key=object_key,
                failed_parts=len(errors),
                error=str(errors[0]),
            )
            await self.storage_repo.abort_multipart_upload(object_key, session_id)
            raise PresignError(f"Failed to presign part URLs: {errors[0]}") from errors[0]

        return list(results)
