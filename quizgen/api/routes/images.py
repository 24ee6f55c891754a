"""
Image API: AI generation (single and batch) and manual upload/delete.
Generation failures inside a batch are data (200 with per-item errors);
5xx is reserved for requests that could not be attempted at all.
"""
import logging
from typing import Callable

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status

from quizgen.core.config import settings
from quizgen.schemas.images import (
    DeleteImageIn,
    GenerateImageIn,
    GenerateImageOut,
    GenerateImagesIn,
    GenerateImagesOut,
    GeneratedImageOut,
    UploadImageOut,
)
from quizgen.services.image_generation import (
    ConfigurationError,
    ImageGenerationService,
    ImageProvider,
    ImageServiceFactory,
    InvalidArgumentError,
    generate_images,
)
from quizgen.services.image_generation.base import parse_kind, parse_provider
from quizgen.services.uploads.service import (
    ImageUploadService,
    UploadValidationError,
    extension_for,
    validate_manual_upload,
)
from quizgen.storage.base import (
    STORAGE_BUCKETS,
    BucketNotFoundError,
    StorageError,
    StoragePermissionError,
)
from quizgen.storage.factory import get_storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["images"])

ServiceBuilder = Callable[[ImageProvider], ImageGenerationService]


def get_service_builder() -> ServiceBuilder:
    return ImageServiceFactory.create_from_settings


def get_upload_service() -> ImageUploadService:
    return ImageUploadService(get_storage())


def _ensure_generation_enabled() -> None:
    if not settings.image_generation_enabled:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"error": "Image generation is currently disabled", "enabled": False},
        )


def _available_service(build_service: ServiceBuilder, provider: ImageProvider) -> ImageGenerationService:
    service = build_service(provider)
    if not service.is_available():
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Image provider {provider.value} is not configured"},
        )
    return service


def _storage_status(error: StorageError) -> int:
    if isinstance(error, BucketNotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(error, StoragePermissionError):
        return status.HTTP_403_FORBIDDEN
    return status.HTTP_500_INTERNAL_SERVER_ERROR


# ---------- POST /api/generate/image ----------
@router.post("/generate/image", response_model=GenerateImageOut)
async def generate_image(
    body: GenerateImageIn,
    build_service: ServiceBuilder = Depends(get_service_builder),
    uploads: ImageUploadService = Depends(get_upload_service),
):
    """Generate one image and store it in the bucket for its type."""
    _ensure_generation_enabled()
    try:
        provider = body.provider or parse_provider(settings.image_provider)
    except ConfigurationError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail={"error": str(e)})
    service = _available_service(build_service, provider)

    try:
        outcome = await generate_images(provider, [body.prompt], [body.type], service=service)
    except InvalidArgumentError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail={"error": str(e)})
    result = outcome.results[0]
    if not result.success:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={
                "error": "Failed to generate image",
                "details": result.error,
                "failure_type": result.failure_type.value if result.failure_type else None,
            },
        )

    try:
        url, bucket, path = await uploads.upload_image(body.type, result.payload)
    except StorageError as e:
        logger.exception("generated_image_upload_failed", extra={"provider": provider.value})
        raise HTTPException(
            status_code=_storage_status(e),
            detail={"error": "Failed to upload image", "details": str(e)},
        )
    return GenerateImageOut(url=url, bucket=bucket, path=path)


# ---------- POST /api/generate/images ----------
@router.post("/generate/images", response_model=GenerateImagesOut)
async def generate_images_batch(
    body: GenerateImagesIn,
    build_service: ServiceBuilder = Depends(get_service_builder),
    uploads: ImageUploadService = Depends(get_upload_service),
):
    """
    Generate a batch; each item reports url or error in request order.
    Gemini batches are paced by quota (about a minute per image).
    """
    _ensure_generation_enabled()
    if len(body.prompts) != len(body.types):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "Prompts and types arrays must have the same length"},
        )

    service = _available_service(build_service, body.provider) if body.prompts else None
    try:
        outcome = await generate_images(body.provider, body.prompts, body.types, service=service)
    except InvalidArgumentError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail={"error": str(e)})

    uploaded = await uploads.upload_batch(outcome, body.types)
    return GenerateImagesOut(
        images=[GeneratedImageOut(index=u.index, url=u.url, error=u.error) for u in uploaded],
        success_count=outcome.success_count,
        failure_count=outcome.failure_count,
        requested=len(body.prompts),
    )


# ---------- POST /api/upload/image ----------
@router.post("/upload/image", response_model=UploadImageOut)
async def upload_image(
    file: UploadFile = File(...),
    type: str = Form(...),
    uploads: ImageUploadService = Depends(get_upload_service),
):
    """Multipart: file (JPEG/PNG/WebP), type (question | answer)."""
    try:
        kind = parse_kind(type)
    except InvalidArgumentError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail={"error": str(e)})

    content = await file.read()
    try:
        validate_manual_upload(file.content_type, len(content))
    except UploadValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail={"error": str(e)})

    try:
        url, bucket, path = await uploads.upload_image(
            kind, content, content_type=file.content_type, extension=extension_for(file.filename)
        )
    except StorageError as e:
        logger.exception("manual_image_upload_failed")
        raise HTTPException(
            status_code=_storage_status(e),
            detail={"error": "Failed to upload image", "details": str(e)},
        )
    return UploadImageOut(url=url, path=path, bucket=bucket)


# ---------- DELETE /api/upload/image ----------
@router.delete("/upload/image")
async def delete_image(
    body: DeleteImageIn,
    uploads: ImageUploadService = Depends(get_upload_service),
):
    """Delete by in-bucket path or public URL."""
    if body.bucket not in STORAGE_BUCKETS.values():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail={"error": "Unknown bucket"})
    try:
        path = await uploads.delete_image(body.bucket, body.path)
    except StorageError as e:
        raise HTTPException(
            status_code=_storage_status(e),
            detail={"error": "Failed to delete image", "details": str(e)},
        )
    return {"ok": True, "path": path}
