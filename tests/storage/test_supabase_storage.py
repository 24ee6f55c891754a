import asyncio
import json

import httpx
import pytest

from quizgen.storage.base import (
    BucketNotFoundError,
    ObjectExistsError,
    StorageError,
    StoragePermissionError,
)
from quizgen.storage.supabase import SupabaseStorage

SUPABASE_URL = "https://quiz.supabase.co"


def _storage(handler):
    requests = []

    def recording(request):
        requests.append(request)
        return handler(request)

    storage = SupabaseStorage(
        url=SUPABASE_URL + "/",
        service_key="service-key",
        client=httpx.AsyncClient(transport=httpx.MockTransport(recording)),
    )
    return storage, requests


def test_requires_configuration():
    with pytest.raises(StorageError):
        SupabaseStorage(url="", service_key="")


def test_upload_request_and_public_url():
    storage, requests = _storage(lambda request: httpx.Response(200, json={"Key": "question-images/q.png"}))
    url = asyncio.run(storage.upload("question-images", "q.png", b"png-bytes", "image/png"))

    assert url == f"{SUPABASE_URL}/storage/v1/object/public/question-images/q.png"
    request = requests[0]
    assert request.method == "POST"
    assert str(request.url) == f"{SUPABASE_URL}/storage/v1/object/question-images/q.png"
    assert request.headers["Authorization"] == "Bearer service-key"
    assert request.headers["apikey"] == "service-key"
    assert request.headers["Content-Type"] == "image/png"
    assert request.headers["x-upsert"] == "false"
    assert request.content == b"png-bytes"


def test_delete_uses_prefixes_body():
    storage, requests = _storage(lambda request: httpx.Response(200, json=[]))
    asyncio.run(storage.delete("answer-images", "answer-1-abc.png"))

    request = requests[0]
    assert request.method == "DELETE"
    assert str(request.url) == f"{SUPABASE_URL}/storage/v1/object/answer-images"
    assert json.loads(request.content) == {"prefixes": ["answer-1-abc.png"]}


@pytest.mark.parametrize("status,body,error", [
    (404, {"message": "Bucket not found"}, BucketNotFoundError),
    (409, {"message": "The resource already exists"}, ObjectExistsError),
    (400, {"error": "Duplicate", "message": "duplicate key value"}, ObjectExistsError),
    (403, {"message": "new row violates row-level security policy"}, StoragePermissionError),
    (401, {"message": "Invalid JWT"}, StoragePermissionError),
    (500, {"message": "internal"}, StorageError),
])
def test_error_mapping(status, body, error):
    storage, _ = _storage(lambda request: httpx.Response(status, json=body))
    with pytest.raises(error):
        asyncio.run(storage.upload("question-images", "q.png", b"x", "image/png"))


def test_bucket_not_found_message_names_bucket():
    storage, _ = _storage(lambda request: httpx.Response(404, json={"message": "Bucket not found"}))
    with pytest.raises(BucketNotFoundError, match='Bucket "answer-images" not found'):
        asyncio.run(storage.upload("answer-images", "a.png", b"x", "image/png"))


def test_upload_unique_retries_on_conflict():
    calls = []

    def handler(request):
        calls.append(request.url.path)
        if len(calls) == 1:
            return httpx.Response(409, json={"message": "The resource already exists"})
        return httpx.Response(200, json={})

    storage, _ = _storage(handler)
    url, path = asyncio.run(
        storage.upload_unique("question-images", "question-1-dup.png", b"x", "image/png", "question")
    )

    assert len(calls) == 2
    assert path != "question-1-dup.png"
    assert url.endswith(f"/question-images/{path}")


def test_transport_error_is_storage_error():
    def handler(request):
        raise httpx.ConnectError("unreachable", request=request)

    storage, _ = _storage(handler)
    with pytest.raises(StorageError, match="Storage request failed"):
        asyncio.run(storage.upload("question-images", "q.png", b"x", "image/png"))
