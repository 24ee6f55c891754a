"""
LLM question drafting: asks OpenAI for quiz questions and keeps only the
ones that match the requested shape.
"""
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any

from openai import OpenAI, OpenAIError

from quizgen.core.config import settings
from quizgen.utils.metrics import question_generation_requests_total

logger = logging.getLogger(__name__)

SINGLE_CHOICE = "SINGLE_CHOICE"
MULTI_CHOICE = "MULTI_CHOICE"

SYSTEM_PROMPT = (
    "You are a helpful quiz question generator. Return a JSON object with a "
    '"questions" key containing an array of questions. No markdown, no explanations.'
)

_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


class QuestionGenerationError(Exception):
    """Drafting failed; details is safe to return to the client."""

    def __init__(self, message: str, details: str | None = None, code: str | None = None):
        super().__init__(message)
        self.details = details
        self.code = code


@dataclass(frozen=True)
class QuestionRequest:
    description: str
    single_choice_count: int
    multi_choice_count: int
    answer_count: int

    @property
    def total(self) -> int:
        return self.single_choice_count + self.multi_choice_count

    def validate(self) -> None:
        if not self.description or not self.description.strip():
            raise ValueError("All fields are required")
        if self.single_choice_count < 0 or self.multi_choice_count < 0 or self.answer_count < 2:
            raise ValueError("Invalid question or answer counts")
        if self.total == 0:
            raise ValueError("At least one question type must be specified")


@dataclass(frozen=True)
class DraftOption:
    text: str
    is_correct: bool


@dataclass(frozen=True)
class DraftQuestion:
    text: str
    type: str
    options: list[DraftOption] = field(default_factory=list)


def build_prompt(request: QuestionRequest) -> str:
    return f"""Generate {request.total} quiz questions based on the following description: "{request.description}"

Requirements:
- Generate exactly {request.single_choice_count} single choice questions (each has exactly ONE correct answer)
- Generate exactly {request.multi_choice_count} multiple choice questions (each has ONE or MORE correct answers)
- Each question must have exactly {request.answer_count} options
- For single choice questions: mark exactly ONE option as correct
- For multiple choice questions: mark at least ONE option as correct (can be multiple)

Format your response as a JSON object with a "questions" key containing an array. Each question should have this structure:
{{
  "questions": [
    {{
      "text": "Question text here",
      "type": "SINGLE_CHOICE" or "MULTI_CHOICE",
      "options": [
        {{"text": "Option 1", "isCorrect": true or false}},
        {{"text": "Option 2", "isCorrect": true or false}},
        ...
      ]
    }},
    ...
  ]
}}

Return ONLY the JSON object, no other text or explanation."""


def _questions_from_parsed(parsed: Any) -> Any:
    if isinstance(parsed, list):
        return parsed
    if isinstance(parsed, dict):
        if parsed.get("questions"):
            return parsed["questions"]
        if parsed.get("data"):
            return parsed["data"]
        values = list(parsed.values())
        return values[0] if values else None
    return None


def parse_questions_payload(text: str) -> list[dict[str, Any]]:
    """Extract the question array from model output; tolerates surrounding prose."""
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as e:
        match = _JSON_OBJECT_RE.search(text)
        if not match:
            raise QuestionGenerationError(
                "Failed to parse OpenAI response as JSON", details=str(e)
            ) from e
        try:
            parsed = json.loads(match.group(0))
        except json.JSONDecodeError as e2:
            raise QuestionGenerationError(
                "Failed to parse OpenAI response as JSON", details=str(e2)
            ) from e2

    questions = _questions_from_parsed(parsed)
    if not questions:
        raise QuestionGenerationError(
            "Invalid response format from OpenAI",
            details="Response does not contain questions array",
        )
    if not isinstance(questions, list):
        raise QuestionGenerationError(
            "Invalid response format from OpenAI",
            details=f"Expected array but got {type(questions).__name__}",
        )
    return questions


def validate_questions(raw_questions: list[Any], answer_count: int) -> list[DraftQuestion]:
    """Normalize and keep only well-formed questions with the requested option count."""
    validated: list[DraftQuestion] = []
    for raw in raw_questions:
        if not isinstance(raw, dict):
            continue
        text = str(raw.get("text") or "").strip()
        options_raw = raw.get("options")
        if not text or not raw.get("type") or not isinstance(options_raw, list):
            continue
        question_type = SINGLE_CHOICE if raw["type"] == SINGLE_CHOICE else MULTI_CHOICE
        options = []
        for opt in options_raw:
            if not isinstance(opt, dict):
                continue
            option_text = str(opt.get("text") or "").strip()
            if option_text:
                options.append(DraftOption(text=option_text, is_correct=bool(opt.get("isCorrect"))))
        if len(options) != answer_count:
            continue
        correct = sum(1 for opt in options if opt.is_correct)
        if question_type == SINGLE_CHOICE and correct != 1:
            continue
        if question_type == MULTI_CHOICE and correct < 1:
            continue
        validated.append(DraftQuestion(text=text, type=question_type, options=options))
    return validated


def _is_quota_error(error: OpenAIError) -> bool:
    message = str(error).lower()
    status = getattr(error, "status_code", None)
    return status == 429 or "quota" in message or "billing" in message or "exceeded" in message


class QuestionDraftService:
    def __init__(self, client: OpenAI | None = None, model: str | None = None) -> None:
        self.model = model or settings.openai_text_model
        if client is not None:
            self.client = client
        elif settings.openai_api_key:
            self.client = OpenAI(api_key=settings.openai_api_key, timeout=settings.openai_request_timeout)
        else:
            self.client = None

    def is_available(self) -> bool:
        return self.client is not None

    def generate(self, request: QuestionRequest) -> list[DraftQuestion]:
        """
        Raises:
            ValueError: invalid request
            QuestionGenerationError: upstream or parsing failure
        """
        request.validate()
        if not self.is_available():
            raise QuestionGenerationError("OpenAI API key not configured")

        try:
            completion = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": build_prompt(request)},
                ],
                temperature=settings.openai_text_temperature,
                response_format={"type": "json_object"},
            )
        except OpenAIError as e:
            question_generation_requests_total.labels(status="upstream_error").inc()
            logger.exception("question_generation_upstream_error")
            quota = _is_quota_error(e)
            raise QuestionGenerationError(
                "OpenAI API quota exceeded" if quota else "OpenAI API error",
                details=str(e),
                code=str(getattr(e, "status_code", None) or getattr(e, "code", None) or "UNKNOWN"),
            ) from e

        content = completion.choices[0].message.content if completion.choices else None
        if not content:
            question_generation_requests_total.labels(status="empty").inc()
            raise QuestionGenerationError("No response from OpenAI")

        questions = validate_questions(parse_questions_payload(content), request.answer_count)
        if not questions:
            question_generation_requests_total.labels(status="invalid").inc()
            raise QuestionGenerationError("No valid questions generated")

        question_generation_requests_total.labels(status="success").inc()
        logger.info("questions_generated", extra={"question_count": len(questions)})
        return questions
