"""
Google Vertex AI Imagen provider for image generation.
Quota-bound backend: the batch config runs it serially with long pauses.
"""
import base64
import binascii
import logging
from typing import Any

import httpx

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
from quizgen.services.image_generation.failure_types import classify_http_status
from quizgen.services.image_generation.prompts import build_educational_prompt
from quizgen.services.image_generation.providers.google_credentials import ServiceAccountCredentials

logger = logging.getLogger(__name__)

# Field names seen for the base64 image across Imagen model versions
PREDICTION_IMAGE_FIELDS = ("bytesBase64Encoded", "imageBytes", "bytes", "base64Bytes")


def extract_image_from_prediction_response(data: Any) -> bytes:
    """Pull the first image out of a :predict response."""
    predictions = data.get("predictions") if isinstance(data, dict) else None
    if not predictions or not isinstance(predictions, list):
        raise UpstreamMalformedResponseError(
            "Invalid response from Imagen API: no predictions found"
        )

    prediction = predictions[0] if isinstance(predictions[0], dict) else {}
    image_b64 = None
    for field in PREDICTION_IMAGE_FIELDS:
        if prediction.get(field):
            image_b64 = prediction[field]
            break
    if not image_b64:
        generated = prediction.get("generatedImages")
        if isinstance(generated, list) and generated and isinstance(generated[0], dict):
            image_b64 = generated[0].get("bytesBase64Encoded")

    if not image_b64 or not isinstance(image_b64, str):
        available = ", ".join(prediction.keys()) or "none"
        raise UpstreamMalformedResponseError(
            "Invalid response from Imagen API: no image data found in prediction. "
            f"Available fields: {available}"
        )

    # data URLs carry a "data:image/png;base64," prefix
    if "," in image_b64:
        image_b64 = image_b64.split(",", 1)[1]
    try:
        content = base64.b64decode(image_b64)
    except (binascii.Error, ValueError) as e:
        raise UpstreamMalformedResponseError("Invalid base64 image data from Imagen API") from e
    if not content:
        raise UpstreamMalformedResponseError("Imagen API returned an empty image")
    return content


def error_for_status(status_code: int, error_text: str) -> ImageGenerationError:
    """Translate a failed :predict status into a readable, typed error."""
    if status_code == 401:
        return UpstreamAuthError(
            "Authentication failed. Check your Google Cloud credentials.", http_status=401
        )
    if status_code == 403:
        return UpstreamPermissionError(
            "Permission denied (403). Check service account permissions and API enablement.",
            http_status=403,
        )
    if status_code == 429:
        return UpstreamRateLimitError(
            "Rate limit exceeded (429). Please wait before trying again.", http_status=429
        )
    if status_code == 400:
        return UpstreamBadRequestError(f"Invalid request: {error_text}", http_status=400)
    return ImageGenerationError(
        f"Imagen API error ({status_code}): {error_text}",
        http_status=status_code,
        failure_type=classify_http_status(status_code),
    )


class VertexImagenService(ImageGenerationService):
    """Google Vertex AI Imagen service."""

    provider = ImageProvider.GEMINI

    def __init__(
        self,
        config: dict,
        credentials: ServiceAccountCredentials | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        super().__init__(config)
        self.project_id = config.get("project_id")
        self.location = config.get("location") or "us-central1"
        self.model = config.get("model", "imagen-3.0-generate-001")
        self.fallback_model = config.get("fallback_model", "imagegeneration@006")
        self.timeout = config.get("timeout", 120.0)
        self.credentials = credentials or ServiceAccountCredentials(
            email=config.get("service_account_email") or "",
            private_key=config.get("private_key") or "",
            token_url=config.get("token_url") or "https://oauth2.googleapis.com/token",
        )
        self._http_client = http_client

    def is_available(self) -> bool:
        """Check if Google Vertex AI is configured."""
        return bool(self.project_id and self.credentials.is_configured())

    def model_url(self, model: str) -> str:
        return (
            f"https://{self.location}-aiplatform.googleapis.com/v1/"
            f"projects/{self.project_id}/locations/{self.location}/"
            f"publishers/google/models/{model}:predict"
        )

    def build_payload(self, prompt: str, kind: ImageKind) -> dict[str, Any]:
        return {
            "instances": [
                {
                    "prompt": build_educational_prompt(prompt, kind),
                }
            ],
            "parameters": {
                "sampleCount": 1,
                "aspectRatio": "1:1",
                "safetyFilterLevel": "block_some",
                "personGeneration": "allow_all",
            },
        }

    async def generate_image(self, prompt: str, kind: ImageKind) -> ImageResult:
        try:
            if self._http_client is not None:
                content = await self._generate(self._http_client, prompt, kind)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    content = await self._generate(client, prompt, kind)
        except ImageGenerationError as e:
            logger.warning(
                "vertex_image_generation_failed",
                extra={"provider": self.provider.value, "kind": kind.value, "error": str(e)},
            )
            return ImageResult.from_error(e)
        except Exception as e:
            logger.exception(
                "vertex_image_generation_unexpected_error",
                extra={"provider": self.provider.value, "kind": kind.value},
            )
            return ImageResult.failed(f"Unexpected error: {type(e).__name__}: {e}")
        return ImageResult.ok(content)

    async def _generate(self, client: httpx.AsyncClient, prompt: str, kind: ImageKind) -> bytes:
        if not self.project_id:
            raise ProviderNotConfiguredError(
                "GOOGLE_CLOUD_PROJECT_ID environment variable is required"
            )

        access_token = await self.credentials.fetch_access_token(client)
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
        }
        payload = self.build_payload(prompt, kind)

        response = await self._post(client, self.model_url(self.model), headers, payload)
        if response.is_success:
            return extract_image_from_prediction_response(self._json(response))

        error_text = response.text
        if response.status_code == 404 and self.fallback_model:
            logger.info(
                "vertex_model_not_found_trying_fallback",
                extra={"provider": self.provider.value, "error": self.model},
            )
            retry_response = await self._post(
                client, self.model_url(self.fallback_model), headers, payload
            )
            if retry_response.is_success:
                return extract_image_from_prediction_response(self._json(retry_response))
            raise ImageGenerationError(
                f"Both model endpoints failed. Last error: {retry_response.text}",
                http_status=retry_response.status_code,
                failure_type=classify_http_status(retry_response.status_code),
            )

        raise error_for_status(response.status_code, error_text)

    async def _post(
        self,
        client: httpx.AsyncClient,
        url: str,
        headers: dict[str, str],
        payload: dict[str, Any],
    ) -> httpx.Response:
        try:
            return await client.post(url, headers=headers, json=payload, timeout=self.timeout)
        except httpx.HTTPError as e:
            raise UpstreamNetworkError(f"Imagen API request failed: {e}") from e

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise UpstreamMalformedResponseError("Invalid response from Imagen API: not JSON") from e
