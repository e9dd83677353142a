from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from assessment_engine.schemas.common import BaseSchema


class ValidationIn(BaseModel):
    manual_score: float = Field(ge=-1, le=1)
    notes: str | None = Field(default=None, max_length=2000)


class BatchValidationItem(ValidationIn):
    submission_id: UUID


class BatchValidationIn(BaseModel):
    validations: list[BatchValidationItem] = Field(min_length=1)


class OpenAnswerOut(BaseSchema):
    id: UUID
    result_id: UUID
    simulation_id: UUID
    student_id: UUID
    question_id: UUID
    answer_text: str
    points: float
    auto_score: float
    missed_keywords: list[str]
    manual_score: float | None
    final_score: float | None
    is_validated: bool
    validated_by: UUID | None
    validated_at: datetime | None
    notes: str | None
    created_at: datetime


class BatchValidationResponse(BaseModel):
    result_id: UUID
    pending_open_answers: int
    reviewed_at: datetime | None
    total_score: float
    percentage_score: float
