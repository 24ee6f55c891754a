from pydantic import BaseModel, ConfigDict, Field

from quizgen.services.image_generation.base import ImageKind, ImageProvider


class GenerateImageIn(BaseModel):
    prompt: str = Field(min_length=1)
    type: ImageKind
    provider: ImageProvider | None = None


class GenerateImageOut(BaseModel):
    url: str
    bucket: str
    path: str


class GenerateImagesIn(BaseModel):
    provider: ImageProvider
    prompts: list[str]
    types: list[ImageKind]


class GeneratedImageOut(BaseModel):
    index: int
    url: str | None = None
    error: str | None = None


class GenerateImagesOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    images: list[GeneratedImageOut]
    success_count: int = Field(serialization_alias="successCount")
    failure_count: int = Field(serialization_alias="failureCount")
    requested: int


class UploadImageOut(BaseModel):
    url: str
    path: str
    bucket: str


class DeleteImageIn(BaseModel):
    bucket: str
    path: str
