from datetime import datetime
from uuid import UUID

from pydantic import BaseModel

from assessment_engine.schemas.common import BaseSchema


class LeaderboardRowOut(BaseSchema):
    rank: int
    display_name: str
    is_anonymous: bool
    is_current_user: bool
    student_id: UUID | None
    total_score: float
    percentage_score: float
    duration_seconds: int
    completed_at: datetime | None


class LeaderboardResponse(BaseModel):
    simulation_id: UUID
    assignment_id: UUID | None
    items: list[LeaderboardRowOut]
