"""Local files handed to the transfer coordinator."""

import asyncio
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


@dataclass
class UploadSource:
    """
    One file to upload: held in memory or read from disk by byte range.
    Parts of a path-backed source are read only when their transfer starts.
    """

    filename: str
    content_type: str
    size: int
    data: Optional[bytes] = None
    path: Optional[Path] = None

    @classmethod
    def from_bytes(
        cls, filename: str, data: bytes, content_type: Optional[str] = None
    ) -> "UploadSource":
        return cls(
            filename=filename,
            content_type=content_type or guess_content_type(filename),
            size=len(data),
            data=data,
        )

    @classmethod
    def from_path(cls, path, content_type: Optional[str] = None) -> "UploadSource":
        path = Path(path)
        return cls(
            filename=path.name,
            content_type=content_type or guess_content_type(path.name),
            size=path.stat().st_size,
            path=path,
        )

    async def read_range(self, start: int, end: int) -> bytes:
        """Bytes [start, end) of the file."""
        if self.data is not None:
            return self.data[start:end]
        return await asyncio.to_thread(self._read_file_range, start, end)

    def _read_file_range(self, start: int, end: int) -> bytes:
        with open(self.path, "rb") as f:
            f.seek(start)
            return f.read(end - start)


def guess_content_type(filename: str) -> str:
    content_type, _ = mimetypes.guess_type(filename)
    return content_type or "application/octet-stream"
