"""
Main entry point for image generation.
Validates the request shape and hands it to the batch generator.
"""
from typing import Optional, Sequence

from quizgen.services.image_generation.base import (
    BatchOutcome,
    ImageGenerationService,
    ImageKind,
    ImageProvider,
    InvalidArgumentError,
    parse_kind,
    parse_provider,
)
from quizgen.services.image_generation.batch import ProgressCallback, generate_images_batch


async def generate_images(
    provider: ImageProvider | str,
    prompts: Sequence[str],
    kinds: Sequence[ImageKind | str],
    on_progress: Optional[ProgressCallback] = None,
    *,
    service: Optional[ImageGenerationService] = None,
) -> BatchOutcome:
    """
    Generate one image per prompt with the given provider.

    Args:
        provider: Provider identifier ("openai" or "gemini")
        prompts: Image descriptions
        kinds: "question" / "answer" per prompt; must match prompts length
        on_progress: Called as (completed, total) after each window
        service: Preconstructed service (defaults to one built from settings)

    Returns:
        BatchOutcome with results in input order

    Raises:
        ConfigurationError: unknown provider
        InvalidArgumentError: length mismatch, empty prompt or unknown kind
    """
    key = parse_provider(provider)
    if len(prompts) != len(kinds):
        raise InvalidArgumentError("Prompts and types arrays must have the same length")
    if len(prompts) == 0:
        return BatchOutcome.empty()

    parsed_kinds = [parse_kind(k) for k in kinds]
    for index, prompt in enumerate(prompts):
        if not isinstance(prompt, str) or not prompt.strip():
            raise InvalidArgumentError(f"Prompt at index {index} must be non-empty text")

    return await generate_images_batch(
        key, list(prompts), parsed_kinds, on_progress=on_progress, service=service
    )
