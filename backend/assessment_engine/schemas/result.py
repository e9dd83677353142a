from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from assessment_engine.schemas.common import BaseSchema, PaginatedResponse


class ScoreSummary(BaseSchema):
    total_questions: int
    correct_answers: int
    wrong_answers: int
    blank_answers: int
    pending_open_answers: int
    total_score: float
    percentage_score: float
    subject_breakdown: dict[str, dict[str, int]] = Field(default_factory=dict)


class SubmitResponse(BaseModel):
    result_id: UUID
    status: str
    completed_at: datetime | None
    duration_seconds: int
    # Present only when the simulation discloses results on submit.
    score: ScoreSummary | None = None
    passed: bool | None = None


class AnswerReviewOut(BaseSchema):
    question_id: str
    answer_id: str | None = None
    answer_text: str | None = None
    time_spent: int = 0
    earned_points: float | None = None
    outcome: str | None = None
    correct_option_id: str | None = None


class ResultReviewOut(BaseModel):
    id: UUID
    simulation_id: UUID
    simulation_title: str
    student_id: UUID
    assignment_id: UUID | None
    entry_mode: str
    started_at: datetime
    completed_at: datetime | None
    duration_seconds: int
    reviewed_at: datetime | None
    score: ScoreSummary
    passed: bool | None
    answers_disclosed: bool
    correctness_disclosed: bool
    answers: list[AnswerReviewOut] = Field(default_factory=list)


class ResultListItem(BaseSchema):
    id: UUID
    simulation_id: UUID
    assignment_id: UUID | None
    entry_mode: str
    completed_at: datetime | None
    duration_seconds: int
    total_score: float
    percentage_score: float
    pending_open_answers: int


class ResultListResponse(PaginatedResponse[ResultListItem]):
    pass


class SelfCorrectionIn(BaseModel):
    question_id: UUID
    is_correct: bool
