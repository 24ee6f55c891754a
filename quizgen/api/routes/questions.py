import logging

from fastapi import APIRouter, Depends, HTTPException, status

from quizgen.schemas.questions import (
    DraftOptionOut,
    DraftQuestionOut,
    GenerateQuestionsIn,
    GenerateQuestionsOut,
)
from quizgen.services.questions.service import (
    QuestionDraftService,
    QuestionGenerationError,
    QuestionRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/teacher/quiz", tags=["questions"])


def get_question_service() -> QuestionDraftService:
    return QuestionDraftService()


@router.post("/{quiz_id}/generate-questions", response_model=GenerateQuestionsOut)
def generate_questions(
    quiz_id: str,
    body: GenerateQuestionsIn,
    service: QuestionDraftService = Depends(get_question_service),
):
    """Draft questions with the LLM; the quiz author reviews them before saving."""
    request = QuestionRequest(
        description=body.description,
        single_choice_count=body.single_choice_count,
        multi_choice_count=body.multi_choice_count,
        answer_count=body.answer_count,
    )
    logger.info("question_generation_requested", extra={"quiz_id": quiz_id, "question_count": request.total})
    try:
        questions = service.generate(request)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail={"error": str(e)})
    except QuestionGenerationError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": str(e), "details": e.details, "code": e.code},
        )

    return GenerateQuestionsOut(
        questions=[
            DraftQuestionOut(
                text=q.text,
                type=q.type,
                options=[DraftOptionOut(text=o.text, is_correct=o.is_correct) for o in q.options],
            )
            for q in questions
        ]
    )
