"""Filesystem storage for local development and tests."""
from pathlib import Path

from quizgen.storage.base import (
    BucketNotFoundError,
    ObjectExistsError,
    Storage,
    StorageError,
)


class LocalStorage(Storage):
    def __init__(self, base_path: str, public_base_url: str, buckets: tuple[str, ...] = ()) -> None:
        self.base_path = Path(base_path)
        self.public_base_url = public_base_url.rstrip("/")
        for bucket in buckets:
            (self.base_path / bucket).mkdir(parents=True, exist_ok=True)

    def _object_path(self, bucket: str, path: str) -> Path:
        bucket_dir = self.base_path / bucket
        if not bucket_dir.is_dir():
            raise BucketNotFoundError(f'Bucket "{bucket}" not found')
        target = (bucket_dir / path).resolve()
        if bucket_dir.resolve() not in target.parents:
            raise StorageError(f"Invalid object path: {path}")
        return target

    def public_url(self, bucket: str, path: str) -> str:
        return f"{self.public_base_url}/{bucket}/{path}"

    async def upload(self, bucket: str, path: str, content: bytes, content_type: str) -> str:
        target = self._object_path(bucket, path)
        if target.exists():
            raise ObjectExistsError(f"The resource already exists: {bucket}/{path}")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)
        except OSError as e:
            raise StorageError(f"Failed to write {bucket}/{path}: {e}") from e
        return self.public_url(bucket, path)

    async def delete(self, bucket: str, path: str) -> None:
        target = self._object_path(bucket, path)
        try:
            target.unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to delete {bucket}/{path}: {e}") from e
