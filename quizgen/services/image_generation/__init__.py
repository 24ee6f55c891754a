"""
Image generation service with multi-provider support.
"""
from .base import (
    BatchOutcome,
    ConfigurationError,
    ImageGenerationError,
    ImageGenerationService,
    ImageKind,
    ImageProvider,
    ImageResult,
    InvalidArgumentError,
)
from .batch import BatchGenerator, generate_images_batch
from .config import IMAGE_GENERATION_CONFIG, ProviderConfig, get_provider_config
from .factory import ImageServiceFactory
from .failure_types import FailureType, classify_error_text, is_retryable_error
from .router import generate_images

__all__ = [
    "BatchOutcome",
    "ConfigurationError",
    "ImageGenerationError",
    "ImageGenerationService",
    "ImageKind",
    "ImageProvider",
    "ImageResult",
    "InvalidArgumentError",
    "BatchGenerator",
    "generate_images_batch",
    "IMAGE_GENERATION_CONFIG",
    "ProviderConfig",
    "get_provider_config",
    "ImageServiceFactory",
    "FailureType",
    "classify_error_text",
    "is_retryable_error",
    "generate_images",
]
