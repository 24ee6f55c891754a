import secrets
import string
import time
from abc import ABC, abstractmethod

from quizgen.services.image_generation.base import ImageKind

QUESTION_IMAGES_BUCKET = "question-images"
ANSWER_IMAGES_BUCKET = "answer-images"

STORAGE_BUCKETS = {
    ImageKind.QUESTION: QUESTION_IMAGES_BUCKET,
    ImageKind.ANSWER: ANSWER_IMAGES_BUCKET,
}

_PATH_ALPHABET = string.ascii_lowercase + string.digits


class StorageError(Exception):
    """Raised when the blob store rejects an operation."""


class BucketNotFoundError(StorageError):
    pass


class StoragePermissionError(StorageError):
    pass


class ObjectExistsError(StorageError):
    pass


def bucket_for_kind(kind: ImageKind) -> str:
    return STORAGE_BUCKETS[kind]


def generate_image_path(prefix: str, extension: str) -> str:
    """Unique object name like 'question-1718000000000-k3j9x0a.png'."""
    timestamp = int(time.time() * 1000)
    suffix = "".join(secrets.choice(_PATH_ALPHABET) for _ in range(7))
    return f"{prefix}-{timestamp}-{suffix}.{extension.lstrip('.')}"


def extract_storage_path(bucket: str, path_or_url: str) -> str:
    """Accept either an in-bucket path or a public URL and return the in-bucket path."""
    marker = f"{bucket}/"
    if "/" in path_or_url and marker in path_or_url:
        return path_or_url.split(marker, 1)[1]
    return path_or_url


class Storage(ABC):
    @abstractmethod
    async def upload(self, bucket: str, path: str, content: bytes, content_type: str) -> str:
        """Store content under bucket/path; returns the public URL."""
        raise NotImplementedError

    @abstractmethod
    async def delete(self, bucket: str, path: str) -> None:
        raise NotImplementedError

    async def upload_unique(
        self,
        bucket: str,
        path: str,
        content: bytes,
        content_type: str,
        prefix: str,
    ) -> tuple[str, str]:
        """
        Upload, retrying once under a fresh path if the object already exists.
        Returns (public_url, path).
        """
        try:
            return await self.upload(bucket, path, content, content_type), path
        except ObjectExistsError:
            extension = path.rsplit(".", 1)[-1] if "." in path else "jpg"
            new_path = generate_image_path(prefix, extension)
            return await self.upload(bucket, new_path, content, content_type), new_path
