import logging
import mimetypes
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import aiofiles

from studyhub.config import get_settings
from studyhub.utils.exceptions import AttachmentRejectedError, UpstreamFailureError


logger = logging.getLogger(__name__)

ALLOWED_DOCUMENT_TYPES = frozenset({
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "text/plain",
})


def is_allowed_type(content_type: str) -> bool:
    return content_type.startswith("image/") or content_type in ALLOWED_DOCUMENT_TYPES


@dataclass(frozen=True)
class StoredBlob:
    url: str
    original_filename: str
    # "image" or "file", matching the message kind the upload becomes
    kind: str


class LocalBlobStorage:
    """Stores chat attachments on local disk and hands back public URLs.

    Files are served by the static mount configured in ``main``.
    """

    def __init__(self, base_path: str, base_url: str, max_bytes: int) -> None:
        self.base_path = Path(base_path)
        self.base_url = base_url.rstrip("/")
        self.max_bytes = max_bytes

    async def store(self, content: bytes, content_type: Optional[str], original_filename: Optional[str]) -> StoredBlob:
        content_type = (content_type or "application/octet-stream").split(";")[0].strip().lower()
        if not is_allowed_type(content_type):
            raise AttachmentRejectedError("Invalid file type. Only images, PDFs, and documents are allowed.")
        if len(content) > self.max_bytes:
            raise AttachmentRejectedError(f"File too large. Maximum size is {self.max_bytes // (1024 * 1024)}MB")
        if not content:
            raise AttachmentRejectedError("No file uploaded")

        original_filename = Path(original_filename or "attachment").name
        filename = f"{uuid.uuid4().hex}{self._extension(content_type, original_filename)}"
        try:
            self.base_path.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(self.base_path / filename, "wb") as fh:
                await fh.write(content)
        except OSError as exc:
            logger.error("Failed to store attachment %s", original_filename, exc_info=True)
            raise UpstreamFailureError("File storage unavailable") from exc

        url = f"{self.base_url}/{filename}"
        logger.info("Stored attachment %s as %s", original_filename, url)
        kind = "image" if content_type.startswith("image/") else "file"
        return StoredBlob(url=url, original_filename=original_filename, kind=kind)

    @staticmethod
    def _extension(content_type: str, original_filename: str) -> str:
        suffix = Path(original_filename).suffix
        if suffix:
            return suffix.lower()
        return mimetypes.guess_extension(content_type) or ""


def get_blob_storage() -> LocalBlobStorage:
    settings = get_settings()
    return LocalBlobStorage(settings.upload_dir, settings.upload_url_prefix, settings.max_upload_bytes)
