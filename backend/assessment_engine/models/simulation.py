import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from assessment_engine.db.base_class import Base
from assessment_engine.db.types import UTCDateTime
from assessment_engine.models.constants import (
    ACCESS_MODE_VALUES,
    QUESTION_TYPE_VALUES,
    SIMULATION_STATUS_VALUES,
    values_check,
)
from assessment_engine.models.mixins import AuditUserMixin, TimestampMixin, UUIDPrimaryKeyMixin


class Question(UUIDPrimaryKeyMixin, TimestampMixin, AuditUserMixin, Base):
    __tablename__ = 'questions'
    __table_args__ = (
        CheckConstraint(values_check('question_type', QUESTION_TYPE_VALUES), name='question_type_values'),
    )

    question_type: Mapped[str] = mapped_column(String(30), nullable=False, default='single_choice')
    text: Mapped[str] = mapped_column(Text, nullable=False)
    subject: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    points: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)
    negative_points: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    explanation: Mapped[str | None] = mapped_column(Text, nullable=True)

    options: Mapped[list['QuestionOption']] = relationship(
        back_populates='question',
        cascade='all, delete-orphan',
        order_by='QuestionOption.order_index',
    )
    keywords: Mapped[list['QuestionKeyword']] = relationship(
        back_populates='question',
        cascade='all, delete-orphan',
    )


class QuestionOption(UUIDPrimaryKeyMixin, TimestampMixin, AuditUserMixin, Base):
    __tablename__ = 'question_options'
    __table_args__ = (UniqueConstraint('question_id', 'order_index', name='uq_question_option_order'),)

    question_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey('questions.id', ondelete='CASCADE'), nullable=False
    )
    text: Mapped[str] = mapped_column(Text, nullable=False)
    label: Mapped[str | None] = mapped_column(String(5), nullable=True)
    is_correct: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    order_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    question: Mapped['Question'] = relationship(back_populates='options')


class QuestionKeyword(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = 'question_keywords'

    question_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey('questions.id', ondelete='CASCADE'), nullable=False
    )
    keyword: Mapped[str] = mapped_column(String(200), nullable=False)
    weight: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)
    is_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    question: Mapped['Question'] = relationship(back_populates='keywords')


class Simulation(UUIDPrimaryKeyMixin, TimestampMixin, AuditUserMixin, Base):
    __tablename__ = 'simulations'
    __table_args__ = (
        CheckConstraint(values_check('status', SIMULATION_STATUS_VALUES), name='simulation_status_values'),
        CheckConstraint(values_check('access_mode', ACCESS_MODE_VALUES), name='simulation_access_mode_values'),
        CheckConstraint(
            'NOT (self_correction_enabled AND staff_correction_required)',
            name='simulation_single_correction_mode',
        ),
    )

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    status: Mapped[str] = mapped_column(String(30), nullable=False, default='draft', index=True)
    access_mode: Mapped[str] = mapped_column(String(10), nullable=False, default='open')
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_paper_based: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Scoring policy
    correct_points: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)
    wrong_points: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    blank_points: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    use_question_points: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    max_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    passing_score: Mapped[float | None] = mapped_column(Float, nullable=True)

    # Retry policy
    is_repeatable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    max_attempts: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Disclosure
    show_results: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    show_correct_answers: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    allow_review: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    self_correction_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    staff_correction_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    randomize_order: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    randomize_answers: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    duration_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    starts_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    ends_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    questions: Mapped[list['SimulationQuestion']] = relationship(
        back_populates='simulation',
        cascade='all, delete-orphan',
        order_by='SimulationQuestion.order_index',
    )


class SimulationQuestion(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = 'simulation_questions'
    __table_args__ = (
        UniqueConstraint('simulation_id', 'question_id', name='uq_simulation_question'),
    )

    simulation_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey('simulations.id', ondelete='CASCADE'), nullable=False
    )
    question_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey('questions.id', ondelete='RESTRICT'), nullable=False
    )
    order_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    custom_points: Mapped[float | None] = mapped_column(Float, nullable=True)
    custom_negative_points: Mapped[float | None] = mapped_column(Float, nullable=True)

    simulation: Mapped['Simulation'] = relationship(back_populates='questions')
    question: Mapped['Question'] = relationship()


Index('ix_question_options_question_id', QuestionOption.question_id)
Index('ix_question_keywords_question_id', QuestionKeyword.question_id)
Index('ix_simulation_questions_simulation_id', SimulationQuestion.simulation_id)
