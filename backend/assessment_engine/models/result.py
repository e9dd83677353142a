import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from assessment_engine.db.base_class import Base
from assessment_engine.db.types import JSONType, UTCDateTime
from assessment_engine.models.constants import RESULT_ENTRY_MODE_VALUES, RESULT_STATUS_VALUES, values_check
from assessment_engine.models.mixins import AuditUserMixin, TimestampMixin, UUIDPrimaryKeyMixin


class SimulationResult(UUIDPrimaryKeyMixin, TimestampMixin, AuditUserMixin, Base):
    """One test-taker's attempt at a simulation, in progress or completed."""

    __tablename__ = 'simulation_results'
    __table_args__ = (
        CheckConstraint(values_check('status', RESULT_STATUS_VALUES), name='simulation_result_status_values'),
        CheckConstraint(
            values_check('entry_mode', RESULT_ENTRY_MODE_VALUES), name='simulation_result_entry_mode_values'
        ),
        CheckConstraint('pending_open_answers >= 0', name='simulation_result_pending_non_negative'),
    )

    simulation_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey('simulations.id', ondelete='CASCADE'), nullable=False
    )
    student_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey('students.id', ondelete='CASCADE'), nullable=False
    )
    assignment_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey('simulation_assignments.id', ondelete='SET NULL'), nullable=True
    )
    # Assignment id as text, or 'public' for unscoped attempts; backs the in-progress uniqueness index.
    scope_key: Mapped[str] = mapped_column(String(64), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default='in_progress')
    entry_mode: Mapped[str] = mapped_column(String(10), nullable=False, default='online')

    started_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    duration_seconds: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    question_order: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    option_order: Mapped[dict[str, list[str]]] = mapped_column(JSONType, nullable=False, default=dict)
    checkpoint_data: Mapped[Any | None] = mapped_column(JSONType, nullable=True)
    answers: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, nullable=False, default=list)
    subject_breakdown: Mapped[dict[str, dict[str, int]]] = mapped_column(JSONType, nullable=False, default=dict)

    total_questions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    correct_answers: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    wrong_answers: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    blank_answers: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    pending_open_answers: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    percentage_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    reviewed_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    reviewed_by: Mapped[uuid.UUID | None] = mapped_column(Uuid(as_uuid=True), nullable=True)

    open_answer_submissions: Mapped[list['OpenAnswerSubmission']] = relationship(
        back_populates='result', cascade='all, delete-orphan', passive_deletes=True
    )

    @property
    def is_completed(self) -> bool:
        return self.status == 'completed'


class OpenAnswerSubmission(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A free-text answer waiting for (or having received) staff grading."""

    __tablename__ = 'open_answer_submissions'
    __table_args__ = (
        CheckConstraint(
            'manual_score IS NULL OR (manual_score >= -1 AND manual_score <= 1)',
            name='open_answer_manual_score_range',
        ),
    )

    result_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey('simulation_results.id', ondelete='CASCADE'), nullable=False
    )
    simulation_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)
    student_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)
    question_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)
    answer_text: Mapped[str] = mapped_column(Text, nullable=False)
    points: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)

    auto_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    missed_keywords: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    manual_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    final_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    is_validated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    validated_by: Mapped[uuid.UUID | None] = mapped_column(Uuid(as_uuid=True), nullable=True)
    validated_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    result: Mapped['SimulationResult'] = relationship(back_populates='open_answer_submissions')


Index('ix_simulation_results_simulation_id', SimulationResult.simulation_id)
Index('ix_simulation_results_student_simulation', SimulationResult.student_id, SimulationResult.simulation_id)
Index(
    'uq_simulation_results_in_progress',
    SimulationResult.student_id,
    SimulationResult.simulation_id,
    SimulationResult.scope_key,
    unique=True,
    postgresql_where=text("status = 'in_progress'"),
    sqlite_where=text("status = 'in_progress'"),
)
Index('ix_open_answer_submissions_result_id', OpenAnswerSubmission.result_id)
Index('ix_open_answer_submissions_pending', OpenAnswerSubmission.simulation_id, OpenAnswerSubmission.is_validated)
