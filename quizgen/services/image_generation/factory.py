"""
Factory for creating image generation services based on configuration.
"""
import logging
from typing import Optional

from quizgen.core.config import Settings, settings as default_settings
from quizgen.services.image_generation.base import (
    ImageGenerationService,
    ImageProvider,
    parse_provider,
)
from quizgen.services.image_generation.providers.google_vertex import VertexImagenService
from quizgen.services.image_generation.providers.openai import OpenAIImageService

logger = logging.getLogger(__name__)


class ImageServiceFactory:
    """Factory for creating image generation services."""

    PROVIDERS: dict[ImageProvider, type[ImageGenerationService]] = {
        ImageProvider.OPENAI: OpenAIImageService,
        ImageProvider.GEMINI: VertexImagenService,
    }

    @classmethod
    def create(cls, provider: ImageProvider | str, config: dict) -> ImageGenerationService:
        """
        Create service instance by provider.

        Raises:
            ConfigurationError: If provider is unknown
        """
        key = parse_provider(provider)
        service_class = cls.PROVIDERS[key]

        logger.info("image_service_created", extra={"provider": key.value})
        service = service_class(config)

        if not service.is_available():
            logger.warning("image_service_not_configured", extra={"provider": key.value})

        return service

    @classmethod
    def build_config(cls, provider: ImageProvider | str, settings: Settings) -> dict:
        """Provider-specific config dict from application settings."""
        key = parse_provider(provider)
        if key == ImageProvider.OPENAI:
            return {
                "api_key": settings.openai_api_key,
                "model": settings.openai_image_model,
                "size": settings.openai_image_size,
                "quality": settings.openai_image_quality,
                "timeout": settings.openai_request_timeout,
            }
        return {
            "project_id": settings.google_cloud_project_id,
            "location": settings.google_cloud_location,
            "service_account_email": settings.google_cloud_service_account_email,
            "private_key": settings.google_cloud_private_key,
            "token_url": settings.google_oauth_token_url,
            "model": settings.google_vertex_image_model,
            "fallback_model": settings.google_vertex_fallback_model,
            "timeout": settings.google_vertex_timeout,
        }

    @classmethod
    def create_from_settings(
        cls,
        provider: ImageProvider | str | None = None,
        settings: Optional[Settings] = None,
    ) -> ImageGenerationService:
        """
        Create service from application settings.

        Args:
            provider: Provider to use; defaults to settings.image_provider
            settings: Settings object; defaults to the process-wide settings
        """
        settings = settings or default_settings
        key = parse_provider(provider or settings.image_provider)
        return cls.create(key, cls.build_config(key, settings))

    @classmethod
    def get_available_providers(cls) -> list[str]:
        return [p.value for p in cls.PROVIDERS]


def create_service(provider: ImageProvider | str) -> ImageGenerationService:
    return ImageServiceFactory.create_from_settings(provider)
