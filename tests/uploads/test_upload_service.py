"""Tests for ImageUploadService and manual upload validation."""
import asyncio
import re

import pytest

from quizgen.services.image_generation.base import BatchOutcome, ImageKind, ImageResult
from quizgen.services.uploads.service import (
    ImageUploadService,
    UploadValidationError,
    extension_for,
    validate_manual_upload,
)
from quizgen.storage.base import (
    ANSWER_IMAGES_BUCKET,
    QUESTION_IMAGES_BUCKET,
    Storage,
    StoragePermissionError,
)
from quizgen.storage.local import LocalStorage


class RejectingStorage(Storage):
    """Accepts nothing for one bucket."""

    def __init__(self, inner: Storage, rejected_bucket: str):
        self.inner = inner
        self.rejected_bucket = rejected_bucket

    async def upload(self, bucket, path, content, content_type):
        if bucket == self.rejected_bucket:
            raise StoragePermissionError(f'Permission denied. Bucket "{bucket}" may need public read/write access.')
        return await self.inner.upload(bucket, path, content, content_type)

    async def delete(self, bucket, path):
        await self.inner.delete(bucket, path)


@pytest.fixture
def local_storage(tmp_path):
    return LocalStorage(
        base_path=str(tmp_path),
        public_base_url="http://cdn.test",
        buckets=(QUESTION_IMAGES_BUCKET, ANSWER_IMAGES_BUCKET),
    )


class TestUploadImage:
    def test_routes_kind_to_bucket(self, local_storage, tmp_path):
        service = ImageUploadService(local_storage)
        url, bucket, path = asyncio.run(service.upload_image(ImageKind.ANSWER, b"bytes"))

        assert bucket == ANSWER_IMAGES_BUCKET
        assert re.fullmatch(r"answer-\d+-[a-z0-9]{7}\.png", path)
        assert url == f"http://cdn.test/answer-images/{path}"
        assert (tmp_path / ANSWER_IMAGES_BUCKET / path).read_bytes() == b"bytes"

    def test_storage_error_propagates(self, local_storage):
        service = ImageUploadService(RejectingStorage(local_storage, QUESTION_IMAGES_BUCKET))
        with pytest.raises(StoragePermissionError):
            asyncio.run(service.upload_image(ImageKind.QUESTION, b"bytes"))

    def test_delete_accepts_public_url(self, local_storage, tmp_path):
        service = ImageUploadService(local_storage)
        url, bucket, path = asyncio.run(service.upload_image(ImageKind.QUESTION, b"bytes"))

        removed = asyncio.run(service.delete_image(bucket, url))
        assert removed == path
        assert not (tmp_path / bucket / path).exists()


class TestUploadBatch:
    def test_keeps_order_and_separates_failures(self, local_storage):
        outcome = BatchOutcome.from_results([
            ImageResult.ok(b"q0"),
            ImageResult.failed("Rate limit exceeded (429). Please wait before trying again."),
            ImageResult.ok(b"a2"),
        ])
        kinds = [ImageKind.QUESTION, ImageKind.QUESTION, ImageKind.ANSWER]
        uploaded = asyncio.run(ImageUploadService(local_storage).upload_batch(outcome, kinds))

        assert [item.index for item in uploaded] == [0, 1, 2]
        assert uploaded[0].url and uploaded[0].bucket == QUESTION_IMAGES_BUCKET
        assert uploaded[1].url is None
        assert uploaded[1].generation_error.startswith("Rate limit exceeded")
        assert uploaded[1].upload_error is None
        assert uploaded[2].bucket == ANSWER_IMAGES_BUCKET
        assert uploaded[2].error is None

    def test_upload_failure_is_reported_per_item(self, local_storage):
        outcome = BatchOutcome.from_results([ImageResult.ok(b"q"), ImageResult.ok(b"a")])
        service = ImageUploadService(RejectingStorage(local_storage, ANSWER_IMAGES_BUCKET))
        uploaded = asyncio.run(service.upload_batch(outcome, [ImageKind.QUESTION, ImageKind.ANSWER]))

        assert uploaded[0].url is not None
        assert uploaded[1].url is None
        assert uploaded[1].generation_error is None
        assert "Permission denied" in uploaded[1].upload_error
        assert uploaded[1].error == uploaded[1].upload_error

    def test_empty_outcome(self, local_storage):
        uploaded = asyncio.run(ImageUploadService(local_storage).upload_batch(BatchOutcome.empty(), []))
        assert uploaded == []

    def test_length_mismatch(self, local_storage):
        outcome = BatchOutcome.from_results([ImageResult.ok(b"q")])
        with pytest.raises(ValueError):
            asyncio.run(ImageUploadService(local_storage).upload_batch(outcome, []))


class TestManualUploadValidation:
    @pytest.mark.parametrize("content_type", ["image/jpeg", "image/png", "image/webp", "IMAGE/PNG"])
    def test_allowed_types(self, content_type):
        validate_manual_upload(content_type, 1024)

    @pytest.mark.parametrize("content_type", ["image/gif", "application/pdf", None])
    def test_rejected_types(self, content_type):
        with pytest.raises(UploadValidationError, match="Invalid file type"):
            validate_manual_upload(content_type, 1024)

    def test_size_limit(self):
        validate_manual_upload("image/png", 5 * 1024 * 1024)
        with pytest.raises(UploadValidationError, match="File size exceeds 5MB limit"):
            validate_manual_upload("image/png", 5 * 1024 * 1024 + 1)

    def test_empty_file(self):
        with pytest.raises(UploadValidationError, match="empty"):
            validate_manual_upload("image/png", 0)

    @pytest.mark.parametrize("filename,expected", [
        ("photo.JPEG", "jpeg"),
        ("diagram.final.webp", "webp"),
        ("noext", "jpg"),
        ("shot.png/../../x", "jpg"),
        ("image.verylongext", "jpg"),
        ("image.", "jpg"),
        (None, "jpg"),
    ])
    def test_extension_for(self, filename, expected):
        assert extension_for(filename) == expected
