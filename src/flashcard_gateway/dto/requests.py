"""Request DTOs for the dispatch endpoint.

The inbound body is a tagged union on ``type``: each operation kind has its
own required-field set. Field names follow the wire format (camelCase
aliases for ``courseData`` and ``existingQuestions``).
"""

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

MIN_BATCH_COUNT = 1
MAX_BATCH_COUNT = 50
DEFAULT_BATCH_COUNT = 10
DEFAULT_LANGUAGE = "en"


class CourseData(BaseModel):
    """Subject and outline produced by a previous analyze call."""

    subject: str = Field(..., description="Main subject of the course")
    outline: list[str] = Field(..., description="Ordered key points of the course")


class _OperationBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    transcript: str = Field(..., min_length=1, description="Plain-text course transcript")
    language: str = Field(DEFAULT_LANGUAGE, min_length=1, description="Output language code (en, fr, ...)")


class AnalyzeRequest(_OperationBase):
    """Derive a subject and a 3-5 point outline from a transcript."""

    type: Literal["analyze"] = "analyze"


class FlashcardBatchRequest(_OperationBase):
    """Generate a batch of question/answer flashcards."""

    type: Literal["generate-batch"] = "generate-batch"
    course_data: CourseData = Field(..., alias="courseData")
    count: int = Field(DEFAULT_BATCH_COUNT, ge=MIN_BATCH_COUNT, le=MAX_BATCH_COUNT)
    existing_questions: list[str] = Field(
        default_factory=list,
        alias="existingQuestions",
        description="Questions already shown to the user, to avoid repeats",
    )


class McqBatchRequest(_OperationBase):
    """Generate a batch of four-option multiple-choice questions."""

    type: Literal["generate-mcq-batch"] = "generate-mcq-batch"
    course_data: CourseData = Field(..., alias="courseData")
    count: int = Field(DEFAULT_BATCH_COUNT, ge=MIN_BATCH_COUNT, le=MAX_BATCH_COUNT)


OperationRequest = Annotated[
    AnalyzeRequest | FlashcardBatchRequest | McqBatchRequest,
    Field(discriminator="type"),
]

operation_request_adapter: TypeAdapter[OperationRequest] = TypeAdapter(OperationRequest)
