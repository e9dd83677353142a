from uuid import UUID

from pydantic import BaseModel, Field

from assessment_engine.schemas.attempt import AnswerIn


class PaperEntryIn(BaseModel):
    student_id: UUID
    present: bool = True
    answers: list[AnswerIn] = Field(default_factory=list)


class PaperResultsIn(BaseModel):
    assignment_id: UUID | None = None
    entries: list[PaperEntryIn] = Field(min_length=1)
