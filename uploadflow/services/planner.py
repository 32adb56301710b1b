"""Upload planning: single PUT or multipart, decided from size and type."""

import math
from dataclasses import dataclass
from typing import Iterable, Optional
from ..core.exceptions import PlanningError, ValidationError
from ..utils.constants import MAX_FILENAME_LENGTH, MAX_MULTIPART_PARTS
from ..utils.helpers import get_extension


@dataclass(frozen=True)
class UploadPlan:
    """Transfer strategy for one file."""

    filename: str
    file_size: int
    content_type: str
    multipart: bool
    part_size: Optional[int] = None
    number_of_parts: int = 1

    def part_ranges(self) -> list[tuple[int, int]]:
        """Byte ranges [start, end) of each part, in part order."""
        if not self.multipart:
            return [(0, self.file_size)]
        return [
            (start, min(start + self.part_size, self.file_size))
            for start in range(0, self.file_size, self.part_size)
        ]


class UploadPlanner:
    """Pure planning logic. No I/O."""

    def __init__(
        self,
        max_file_size: int,
        multipart_threshold: int,
        part_size: int,
        allowed_content_types: Iterable[str],
    ):
        if part_size <= 0:
            raise ValueError("part_size must be positive")
        self.max_file_size = max_file_size
        self.multipart_threshold = multipart_threshold
        self.part_size = part_size
        self.allowed_content_types = frozenset(allowed_content_types)

    @classmethod
    def from_settings(cls, settings) -> "UploadPlanner":
        return cls(
            max_file_size=settings.max_file_size_bytes,
            multipart_threshold=settings.multipart_threshold_bytes,
            part_size=settings.part_size_bytes,
            allowed_content_types=settings.allowed_content_types,
        )

    def validate(self, filename: str, file_size: int, content_type: str) -> None:
        """Raise ValidationError for malformed input."""
        if not filename or not filename.strip():
            raise ValidationError("Filename is required")
        if len(filename) > MAX_FILENAME_LENGTH:
            raise ValidationError(
                f"Filename must not exceed {MAX_FILENAME_LENGTH} characters"
            )
        if not get_extension(filename):
            raise ValidationError("Filename must have an extension")
        if file_size is None or file_size <= 0:
            raise ValidationError("File size must be greater than 0")
        if file_size > self.max_file_size:
            raise ValidationError(
                f"File size exceeds maximum allowed size of {self.max_file_size} bytes"
            )
        if content_type not in self.allowed_content_types:
            raise ValidationError(
                f"Content type {content_type} is not allowed. "
                f"Allowed types: {', '.join(sorted(self.allowed_content_types))}"
            )

    def plan(self, filename: str, file_size: int, content_type: str) -> UploadPlan:
        """Validate the declared file and decide how it is transferred."""
        self.validate(filename, file_size, content_type)

        if file_size <= self.multipart_threshold:
            return UploadPlan(
                filename=filename,
                file_size=file_size,
                content_type=content_type,
                multipart=False,
            )

        number_of_parts = math.ceil(file_size / self.part_size)
        if number_of_parts > MAX_MULTIPART_PARTS:
            raise PlanningError(
                f"File needs {number_of_parts} parts; the store allows {MAX_MULTIPART_PARTS}"
            )

        return UploadPlan(
            filename=filename,
            file_size=file_size,
            content_type=content_type,
            multipart=True,
            part_size=self.part_size,
            number_of_parts=number_of_parts,
        )
