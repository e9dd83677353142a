import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from assessment_engine.db.base_class import Base
from assessment_engine.db.types import UTCDateTime
from assessment_engine.models.constants import ASSIGNMENT_STATUS_VALUES, ROOM_STATUS_VALUES, values_check
from assessment_engine.models.mixins import AuditUserMixin, TimestampMixin, UUIDPrimaryKeyMixin


class SimulationAssignment(UUIDPrimaryKeyMixin, TimestampMixin, AuditUserMixin, Base):
    __tablename__ = 'simulation_assignments'
    __table_args__ = (
        CheckConstraint(
            values_check('status', ASSIGNMENT_STATUS_VALUES), name='simulation_assignment_status_values'
        ),
        CheckConstraint(
            '(student_id IS NULL) <> (group_id IS NULL)',
            name='simulation_assignment_single_target',
        ),
    )

    simulation_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey('simulations.id', ondelete='CASCADE'), nullable=False
    )
    student_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey('students.id', ondelete='CASCADE'), nullable=True
    )
    group_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey('groups.id', ondelete='CASCADE'), nullable=True
    )
    starts_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    ends_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default='active')
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    @property
    def is_active(self) -> bool:
        return self.status == 'active'


class ProctoredSession(UUIDPrimaryKeyMixin, TimestampMixin, AuditUserMixin, Base):
    """Live proctoring room for one assignment: waiting -> started -> completed."""

    __tablename__ = 'proctored_sessions'
    __table_args__ = (
        CheckConstraint(values_check('status', ROOM_STATUS_VALUES), name='proctored_session_status_values'),
    )

    assignment_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey('simulation_assignments.id', ondelete='CASCADE'), nullable=False
    )
    simulation_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey('simulations.id', ondelete='CASCADE'), nullable=False
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False, default='waiting')
    actual_start_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)


Index('ix_simulation_assignments_simulation_id', SimulationAssignment.simulation_id)
Index('ix_simulation_assignments_student_id', SimulationAssignment.student_id)
Index('ix_simulation_assignments_group_id', SimulationAssignment.group_id)
Index('ix_proctored_sessions_assignment_status', ProctoredSession.assignment_id, ProctoredSession.status)
