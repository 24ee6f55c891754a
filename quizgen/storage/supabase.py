"""
Supabase Storage backend (REST API over httpx).
"""
import logging

import httpx

from quizgen.storage.base import (
    BucketNotFoundError,
    ObjectExistsError,
    Storage,
    StorageError,
    StoragePermissionError,
)

logger = logging.getLogger(__name__)


class SupabaseStorage(Storage):
    def __init__(
        self,
        url: str,
        service_key: str,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if not url or not service_key:
            raise StorageError("Supabase storage requires SUPABASE_URL and SUPABASE_SERVICE_KEY")
        self.url = url.rstrip("/")
        self.service_key = service_key
        self.timeout = timeout
        self._client = client

    @property
    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.service_key}",
            "apikey": self.service_key,
        }

    def public_url(self, bucket: str, path: str) -> str:
        return f"{self.url}/storage/v1/object/public/{bucket}/{path}"

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            if self._client is not None:
                return await self._client.request(method, url, **kwargs)
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                return await client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise StorageError(f"Storage request failed: {e}") from e

    @staticmethod
    def _raise_for_error(response: httpx.Response, bucket: str) -> None:
        if response.is_success:
            return
        message = response.text
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            message = str(body.get("message") or body.get("error") or message)
        lowered = message.lower()
        if "bucket not found" in lowered or "does not exist" in lowered:
            raise BucketNotFoundError(
                f'Bucket "{bucket}" not found. Please create it in Supabase Storage.'
            )
        if "already exists" in lowered or "duplicate" in lowered:
            raise ObjectExistsError(message)
        if response.status_code in (401, 403) or "row-level security" in lowered or "permission" in lowered:
            raise StoragePermissionError(
                f'Permission denied. Bucket "{bucket}" may need public read/write access.'
            )
        raise StorageError(f"Storage operation failed: {message}")

    async def upload(self, bucket: str, path: str, content: bytes, content_type: str) -> str:
        response = await self._request(
            "POST",
            f"{self.url}/storage/v1/object/{bucket}/{path}",
            headers={
                **self._headers,
                "Content-Type": content_type,
                "Cache-Control": "3600",
                "x-upsert": "false",
            },
            content=content,
        )
        self._raise_for_error(response, bucket)
        return self.public_url(bucket, path)

    async def delete(self, bucket: str, path: str) -> None:
        response = await self._request(
            "DELETE",
            f"{self.url}/storage/v1/object/{bucket}",
            headers=self._headers,
            json={"prefixes": [path]},
        )
        self._raise_for_error(response, bucket)
        logger.info("storage_object_deleted", extra={"bucket": bucket, "storage_path": path})
