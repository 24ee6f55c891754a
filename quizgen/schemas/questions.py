from pydantic import BaseModel, ConfigDict, Field


class GenerateQuestionsIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    description: str = ""
    single_choice_count: int = Field(alias="singleChoiceCount")
    multi_choice_count: int = Field(alias="multiChoiceCount")
    answer_count: int = Field(alias="answerCount")


class DraftOptionOut(BaseModel):
    text: str
    is_correct: bool = Field(serialization_alias="isCorrect")


class DraftQuestionOut(BaseModel):
    text: str
    type: str
    options: list[DraftOptionOut]


class GenerateQuestionsOut(BaseModel):
    questions: list[DraftQuestionOut]
