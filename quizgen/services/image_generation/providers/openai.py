"""
OpenAI DALL-E provider for image generation.
Fast backend: one request per image, safe to run several in parallel.
"""
import base64
import binascii
import logging

import httpx
from openai import (
    APIConnectionError,
    AsyncOpenAI,
    AuthenticationError,
    BadRequestError,
    OpenAIError,
    PermissionDeniedError,
    RateLimitError,
)

from quizgen.services.image_generation.base import (
    ImageGenerationError,
    ImageGenerationService,
    ImageKind,
    ImageProvider,
    ImageResult,
    ProviderNotConfiguredError,
    UpstreamAuthError,
    UpstreamBadRequestError,
    UpstreamMalformedResponseError,
    UpstreamNetworkError,
    UpstreamPermissionError,
    UpstreamRateLimitError,
)
from quizgen.services.image_generation.prompts import build_educational_prompt

logger = logging.getLogger(__name__)


class OpenAIImageService(ImageGenerationService):
    """OpenAI DALL-E image generation service."""

    provider = ImageProvider.OPENAI

    def __init__(
        self,
        config: dict,
        client: AsyncOpenAI | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        super().__init__(config)
        self.api_key = config.get("api_key")
        self.model = config.get("model", "dall-e-3")
        self.size = config.get("size", "1024x1024")
        self.quality = config.get("quality", "standard")
        self.timeout = config.get("timeout", 120.0)
        self._http_client = http_client

        if client is not None:
            self.client = client
        elif self.api_key:
            self.client = AsyncOpenAI(api_key=self.api_key, timeout=self.timeout)
        else:
            self.client = None

    def is_available(self) -> bool:
        """Check if OpenAI is configured."""
        return bool(self.api_key and self.client)

    async def generate_image(self, prompt: str, kind: ImageKind) -> ImageResult:
        try:
            content = await self._generate(prompt, kind)
        except ImageGenerationError as e:
            logger.warning(
                "openai_image_generation_failed",
                extra={"provider": self.provider.value, "kind": kind.value, "error": str(e)},
            )
            return ImageResult.from_error(e)
        except Exception as e:
            logger.exception(
                "openai_image_generation_unexpected_error",
                extra={"provider": self.provider.value, "kind": kind.value},
            )
            return ImageResult.failed(f"Unexpected error: {type(e).__name__}: {e}")
        return ImageResult.ok(content)

    async def _generate(self, prompt: str, kind: ImageKind) -> bytes:
        if not self.is_available():
            raise ProviderNotConfiguredError("OPENAI_API_KEY not configured")

        enhanced_prompt = build_educational_prompt(
            prompt, kind, extra_requirements=("Square aspect ratio (1:1)",)
        )
        try:
            response = await self.client.images.generate(
                model=self.model,
                prompt=enhanced_prompt,
                n=1,
                size=self.size,
                quality=self.quality,
                response_format="url",
            )
        except RateLimitError as e:
            raise UpstreamRateLimitError(str(e), http_status=429) from e
        except AuthenticationError as e:
            raise UpstreamAuthError(str(e), http_status=401) from e
        except PermissionDeniedError as e:
            raise UpstreamPermissionError(str(e), http_status=403) from e
        except BadRequestError as e:
            raise UpstreamBadRequestError(str(e), http_status=400) from e
        except APIConnectionError as e:
            raise UpstreamNetworkError(str(e) or "Connection to OpenAI failed") from e
        except OpenAIError as e:
            raise ImageGenerationError(str(e) or "Unknown error from OpenAI") from e

        image = response.data[0] if response.data else None
        if image is not None and getattr(image, "b64_json", None):
            try:
                return base64.b64decode(image.b64_json)
            except (binascii.Error, ValueError) as e:
                raise UpstreamMalformedResponseError("Invalid base64 image data from OpenAI") from e

        image_url = getattr(image, "url", None) if image is not None else None
        if not image_url:
            raise UpstreamMalformedResponseError("No image URL returned from OpenAI")

        content = await self._download(image_url)
        if not content:
            raise UpstreamMalformedResponseError("Downloaded image from OpenAI is empty")
        return content

    async def _download(self, url: str) -> bytes:
        try:
            if self._http_client is not None:
                img_response = await self._http_client.get(url)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as http_client:
                    img_response = await http_client.get(url)
        except httpx.HTTPError as e:
            raise UpstreamNetworkError(f"Failed to download image: {e}") from e

        if img_response.is_error:
            raise UpstreamNetworkError(
                f"Failed to download image: {img_response.reason_phrase}",
                http_status=img_response.status_code,
            )
        return img_response.content
