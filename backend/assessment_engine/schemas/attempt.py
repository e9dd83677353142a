from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from assessment_engine.schemas.common import BaseSchema
from assessment_engine.services.answer_evaluator import SubmittedAnswer


class AnswerIn(BaseModel):
    question_id: UUID
    answer_id: UUID | None = None
    answer_text: str | None = None
    time_spent: int = Field(default=0, ge=0)
    flagged: bool = False

    def to_submitted(self) -> SubmittedAnswer:
        return SubmittedAnswer(
            question_id=self.question_id,
            answer_id=self.answer_id,
            answer_text=self.answer_text or None,
            time_spent=self.time_spent,
            flagged=self.flagged,
        )


class AnswerOut(BaseSchema):
    question_id: UUID
    answer_id: UUID | None = None
    answer_text: str | None = None
    time_spent: int = 0
    flagged: bool = False


class AttemptStart(BaseModel):
    assignment_id: UUID | None = None


class CheckpointIn(BaseModel):
    answers: list[AnswerIn] = Field(default_factory=list)
    elapsed_seconds: int = Field(ge=0)
    section_times: dict[str, int] = Field(default_factory=dict)
    current_section: int = Field(default=0, ge=0)


class SubmitIn(BaseModel):
    # Omitted answers fall back to the last checkpoint.
    answers: list[AnswerIn] | None = None
    total_elapsed: int | None = Field(default=None, ge=0)


class AttemptOut(BaseSchema):
    id: UUID
    simulation_id: UUID
    assignment_id: UUID | None
    status: str
    started_at: datetime
    duration_seconds: int
    question_order: list[str]
    option_order: dict[str, list[str]]


class AttemptStartResponse(BaseModel):
    attempt: AttemptOut
    resumed: bool
    answers: list[AnswerOut] = Field(default_factory=list)
    section_times: dict[str, int] = Field(default_factory=dict)
    current_section: int = 0


class CheckpointResponse(BaseModel):
    attempt_id: UUID
    status: str
    duration_seconds: int
    saved_answers: int


class PreviewResponse(BaseModel):
    simulation_id: UUID
    title: str
    assignment_id: UUID | None
    access_mode: str
    duration_minutes: int | None
    starts_at: datetime | None
    ends_at: datetime | None
    question_count: int
    allowed: bool
    reason: str
