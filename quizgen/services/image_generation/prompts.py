"""Prompt templates shared by image providers."""
from quizgen.services.image_generation.base import ImageKind

_KIND_LABELS = {
    ImageKind.QUESTION: "question",
    ImageKind.ANSWER: "answer option",
}

_REQUIREMENTS = (
    "The image should be clear and educational",
    "Suitable for a quiz context",
    "Professional and appropriate for students",
    "High quality and visually appealing",
    "Simple and clear to understand",
)


def build_educational_prompt(prompt: str, kind: ImageKind, extra_requirements: tuple[str, ...] = ()) -> str:
    """Wrap the quiz author's raw description in the fixed educational-context template."""
    requirements = "\n".join(f"- {line}" for line in (*_REQUIREMENTS, *extra_requirements))
    return (
        f"Generate a clear, educational image for a quiz {_KIND_LABELS[kind]}.\n\n"
        f"Context: {prompt}\n\n"
        f"Requirements:\n{requirements}\n\n"
        f"Generate an image that represents: {prompt}"
    )
