from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from assessment_engine.models import GroupMember, ProctoredSession, Simulation, SimulationAssignment
from assessment_engine.models.constants import ROOM_LIVE_STATUSES
from assessment_engine.repositories.ports import AssignmentStore


class SqlAssignmentStore(AssignmentStore):
    def __init__(self, db: Session) -> None:
        self.db = db

    def get_assignment(self, assignment_id: UUID, *, for_update: bool = False) -> SimulationAssignment | None:
        stmt = select(SimulationAssignment).where(SimulationAssignment.id == assignment_id)
        if for_update:
            stmt = stmt.with_for_update()
        return self.db.scalar(stmt)

    def list_for_student(self, student_id: UUID, simulation_id: UUID) -> list[SimulationAssignment]:
        group_ids = select(GroupMember.group_id).where(GroupMember.student_id == student_id)
        return list(
            self.db.scalars(
                select(SimulationAssignment)
                .where(
                    SimulationAssignment.simulation_id == simulation_id,
                    or_(
                        SimulationAssignment.student_id == student_id,
                        SimulationAssignment.group_id.in_(group_ids),
                    ),
                )
                .order_by(SimulationAssignment.created_at.asc())
            ).all()
        )

    def list_for_simulation(self, simulation_id: UUID) -> list[SimulationAssignment]:
        return list(
            self.db.scalars(
                select(SimulationAssignment)
                .where(SimulationAssignment.simulation_id == simulation_id)
                .order_by(SimulationAssignment.created_at.asc())
            ).all()
        )

    def group_member_ids(self, group_id: UUID) -> set[UUID]:
        return set(self.db.scalars(select(GroupMember.student_id).where(GroupMember.group_id == group_id)).all())

    def live_session(self, assignment_id: UUID) -> ProctoredSession | None:
        return self.db.scalar(
            select(ProctoredSession)
            .where(
                ProctoredSession.assignment_id == assignment_id,
                ProctoredSession.status.in_(ROOM_LIVE_STATUSES),
            )
            .order_by(ProctoredSession.created_at.desc())
            .limit(1)
        )

    def live_sessions(
        self, *, simulation_id: UUID | None = None, assignment_id: UUID | None = None
    ) -> list[ProctoredSession]:
        stmt = select(ProctoredSession).where(ProctoredSession.status.in_(ROOM_LIVE_STATUSES))
        if simulation_id:
            stmt = stmt.where(ProctoredSession.simulation_id == simulation_id)
        if assignment_id:
            stmt = stmt.where(ProctoredSession.assignment_id == assignment_id)
        return list(self.db.scalars(stmt.with_for_update()).all())

    def save(self, item: SimulationAssignment | ProctoredSession | Simulation) -> None:
        self.db.add(item)
        self.db.flush()
