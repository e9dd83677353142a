from datetime import datetime
from uuid import UUID

from assessment_engine.schemas.common import BaseSchema


class AssignmentOut(BaseSchema):
    id: UUID
    simulation_id: UUID
    student_id: UUID | None
    group_id: UUID | None
    starts_at: datetime | None
    ends_at: datetime | None
    status: str


class SimulationStatusOut(BaseSchema):
    id: UUID
    title: str
    status: str
