"""
Upload pipeline: persists generated or user-supplied images to blob storage.
Generation failures and storage failures are reported separately.
"""
import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Sequence

from quizgen.core.config import settings
from quizgen.services.image_generation.base import BatchOutcome, ImageKind, ImageResult
from quizgen.storage.base import (
    Storage,
    StorageError,
    bucket_for_kind,
    extract_storage_path,
    generate_image_path,
)
from quizgen.utils.metrics import image_uploads_total

logger = logging.getLogger(__name__)

GENERATED_IMAGE_CONTENT_TYPE = "image/png"
GENERATED_IMAGE_EXTENSION = "png"
_EXTENSION_RE = re.compile(r"[a-z0-9]{1,5}")


class UploadValidationError(ValueError):
    """Rejected manual upload (type or size)."""


@dataclass(frozen=True)
class UploadedImage:
    index: int
    url: str | None = None
    bucket: str | None = None
    path: str | None = None
    generation_error: str | None = None
    upload_error: str | None = None

    @property
    def error(self) -> str | None:
        return self.generation_error or self.upload_error


class ImageUploadService:
    def __init__(self, storage: Storage) -> None:
        self.storage = storage

    async def upload_image(
        self,
        kind: ImageKind,
        content: bytes,
        content_type: str = GENERATED_IMAGE_CONTENT_TYPE,
        extension: str = GENERATED_IMAGE_EXTENSION,
    ) -> tuple[str, str, str]:
        """Upload one image to its kind's bucket; returns (url, bucket, path). Raises StorageError."""
        bucket = bucket_for_kind(kind)
        path = generate_image_path(kind.value, extension)
        try:
            url, path = await self.storage.upload_unique(
                bucket, path, content, content_type, prefix=kind.value
            )
        except StorageError:
            image_uploads_total.labels(bucket=bucket, status="failure").inc()
            raise
        image_uploads_total.labels(bucket=bucket, status="success").inc()
        return url, bucket, path

    async def upload_batch(
        self,
        outcome: BatchOutcome,
        kinds: Sequence[ImageKind],
    ) -> list[UploadedImage]:
        """
        Upload every successful payload; one UploadedImage per request, in order.
        Failed generations become url=None with generation_error set.
        """
        if len(outcome.results) != len(kinds):
            raise ValueError("Outcome results and kinds must have the same length")

        return list(await asyncio.gather(*(
            self._upload_one(index, result, kind)
            for index, (result, kind) in enumerate(zip(outcome.results, kinds))
        )))

    async def _upload_one(self, index: int, result: ImageResult, kind: ImageKind) -> UploadedImage:
        if not result.success:
            return UploadedImage(index=index, generation_error=result.error)
        try:
            url, bucket, path = await self.upload_image(kind, result.payload)
        except StorageError as e:
            logger.warning(
                "image_upload_failed",
                extra={"index": index, "bucket": bucket_for_kind(kind), "error": str(e)},
            )
            return UploadedImage(index=index, bucket=bucket_for_kind(kind), upload_error=str(e))
        return UploadedImage(index=index, url=url, bucket=bucket, path=path)

    async def delete_image(self, bucket: str, path_or_url: str) -> str:
        """Delete by in-bucket path or public URL; returns the path removed."""
        path = extract_storage_path(bucket, path_or_url)
        await self.storage.delete(bucket, path)
        return path


def validate_manual_upload(content_type: str | None, size: int) -> None:
    """Raises UploadValidationError for disallowed type or oversized file."""
    if (content_type or "").lower() not in settings.allowed_upload_content_types_set:
        raise UploadValidationError("Invalid file type. Only JPEG, PNG, and WebP are allowed")
    if size > settings.max_upload_size_bytes:
        raise UploadValidationError(
            f"File size exceeds {settings.max_upload_size_mb}MB limit"
        )
    if size == 0:
        raise UploadValidationError("Uploaded file is empty")


def extension_for(filename: str | None, default: str = "jpg") -> str:
    """Lowercase filename suffix, or default when it is missing or not a plain extension."""
    if filename and "." in filename:
        extension = filename.rsplit(".", 1)[-1].lower()
        if _EXTENSION_RE.fullmatch(extension):
            return extension
    return default
