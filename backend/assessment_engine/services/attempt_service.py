"""Lifecycle of a single attempt: start (or resume), checkpoint, submit.

An attempt moves ``in_progress -> completed`` exactly once. Starting is gated
by the access resolver and, for proctored rooms, by the session invalidator;
submitting hands the answers to the evaluator and the score aggregator.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from assessment_engine.core.clock import Clock, ensure_utc, utc_now
from assessment_engine.core.errors import ForbiddenError, InvalidStateError, NotFoundError
from assessment_engine.core.randomness import RandomSource, SeededRandomSource
from assessment_engine.models import OpenAnswerSubmission, Simulation, SimulationAssignment, SimulationResult, Student
from assessment_engine.repositories.ports import AssignmentStore, QuestionBank, ResultRepository, StudentDirectory
from assessment_engine.services.access_resolver import AccessDecision, AccessResolver, scope_key_for
from assessment_engine.services.answer_evaluator import ScoringPolicy, ScoringQuestion, SubmittedAnswer, evaluate
from assessment_engine.services.checkpoint_codec import (
    EnvelopeSnapshot,
    Snapshot,
    SnapshotDecodeError,
    decode_snapshot,
    encode_snapshot,
)
from assessment_engine.services.notification_service import (
    CORRECTION_REQUESTED,
    SIMULATION_COMPLETED,
    NotificationEvent,
    NotificationOutbox,
)
from assessment_engine.services.score_aggregator import ScoreAggregator
from assessment_engine.services.session_invalidator import SessionInvalidator


logger = logging.getLogger(__name__)

PUBLISHED_STATUS = 'published'


@dataclass(frozen=True)
class StartedAttempt:
    result: SimulationResult
    resumed: bool
    snapshot: Snapshot


@dataclass(frozen=True)
class Preview:
    simulation: Simulation
    assignment: SimulationAssignment | None
    decision: AccessDecision
    question_count: int


@dataclass(frozen=True)
class SubmittedAttempt:
    result: SimulationResult
    submissions: list[OpenAnswerSubmission]


class AttemptStateMachine:
    def __init__(
        self,
        *,
        students: StudentDirectory,
        questions: QuestionBank,
        assignments: AssignmentStore,
        results: ResultRepository,
        outbox: NotificationOutbox,
        random_source: RandomSource | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self.students = students
        self.questions = questions
        self.assignments = assignments
        self.results = results
        self.outbox = outbox
        self.random_source = random_source or SeededRandomSource()
        self.clock = clock
        self.access = AccessResolver(assignments, clock=clock)
        self.invalidator = SessionInvalidator(assignments, results, clock=clock)
        self.aggregator = ScoreAggregator(results)

    def _published_simulation(self, simulation_id: UUID) -> Simulation:
        simulation = self.questions.get_simulation(simulation_id)
        if simulation is None or simulation.status != PUBLISHED_STATUS:
            raise NotFoundError('Simulation not found', code='simulation_not_found')
        return simulation

    def preview(self, student: Student, simulation_id: UUID, *, assignment_id: UUID | None = None) -> Preview:
        simulation = self._published_simulation(simulation_id)
        assignment = self.access.resolve_assignment(student, simulation, assignment_id)
        decision = self.access.date_decision(simulation, assignment)
        decision.raise_if_denied()
        return Preview(
            simulation=simulation,
            assignment=assignment,
            decision=decision,
            question_count=len(self.questions.get_scoring_questions(simulation.id)),
        )

    def start(self, student: Student, simulation_id: UUID, *, assignment_id: UUID | None = None) -> StartedAttempt:
        simulation = self._published_simulation(simulation_id)
        if simulation.is_paper_based:
            raise InvalidStateError('This simulation is taken on paper', code='paper_based_simulation')

        self.students.lock_student(student.id)
        assignment = self.access.resolve_assignment(student, simulation, assignment_id)
        self.access.require_open_assignment(assignment)
        self.access.date_decision(simulation, assignment).raise_if_denied()

        scope_key = scope_key_for(assignment)
        existing = self.results.find_in_progress(student.id, simulation.id, scope_key)
        existing = self.invalidator.supersede_stale_attempt(simulation, assignment, existing)

        completed = self.results.count_completed(student.id, simulation.id, scope_key)
        self.access.attempt_decision(
            simulation, completed_count=completed, has_in_progress=existing is not None
        ).raise_if_denied()

        if existing is not None:
            logger.info('Resuming attempt %s for student %s', existing.id, student.id)
            return StartedAttempt(result=existing, resumed=True, snapshot=_stored_snapshot(existing))

        questions = self.questions.get_scoring_questions(simulation.id)
        result = SimulationResult(
            simulation_id=simulation.id,
            student_id=student.id,
            assignment_id=assignment.id if assignment else None,
            scope_key=scope_key,
            status='in_progress',
            entry_mode='online',
            started_at=self.clock(),
            duration_seconds=0,
            question_order=self._question_order(simulation, questions),
            option_order=self._option_order(simulation, questions),
            checkpoint_data=None,
            answers=[],
            subject_breakdown={},
            total_questions=len(questions),
            correct_answers=0,
            wrong_answers=0,
            blank_answers=0,
            pending_open_answers=0,
            total_score=0.0,
            percentage_score=0.0,
            created_by=student.user_id,
        )
        self.results.add(result)
        logger.info(
            'Started attempt %s for student %s on simulation %s (%s)',
            result.id,
            student.id,
            simulation.id,
            scope_key,
        )
        return StartedAttempt(result=result, resumed=False, snapshot=EnvelopeSnapshot(answers=[]))

    def _question_order(self, simulation: Simulation, questions: list[ScoringQuestion]) -> list[str]:
        ids = [str(question.question_id) for question in questions]
        return self.random_source.shuffle(ids) if simulation.randomize_order else ids

    def _option_order(self, simulation: Simulation, questions: list[ScoringQuestion]) -> dict[str, list[str]]:
        order: dict[str, list[str]] = {}
        for question in questions:
            if not question.option_ids:
                continue
            ids = [str(option_id) for option_id in question.option_ids]
            order[str(question.question_id)] = self.random_source.shuffle(ids) if simulation.randomize_answers else ids
        return order

    def _owned_attempt(self, student: Student, attempt_id: UUID) -> SimulationResult:
        result = self.results.get(attempt_id, for_update=True)
        if result is None:
            raise NotFoundError('Attempt not found', code='attempt_not_found')
        if result.student_id != student.id:
            raise ForbiddenError('This attempt belongs to another student', code='not_owner')
        if result.is_completed:
            raise InvalidStateError('This attempt has already been submitted', code='attempt_already_completed')
        return result

    def checkpoint(
        self,
        student: Student,
        attempt_id: UUID,
        answers: list[SubmittedAnswer],
        elapsed_seconds: int,
        *,
        section_times: dict[str, int] | None = None,
        current_section: int = 0,
    ) -> SimulationResult:
        result = self._owned_attempt(student, attempt_id)
        result.checkpoint_data = encode_snapshot(
            answers, section_times=section_times, current_section=current_section
        )
        result.duration_seconds = max(0, int(elapsed_seconds))
        result.updated_by = student.user_id
        self.results.save(result)
        return result

    def submit(
        self,
        student: Student,
        attempt_id: UUID,
        answers: list[SubmittedAnswer] | None,
        total_elapsed: int | None = None,
    ) -> SubmittedAttempt:
        result = self._owned_attempt(student, attempt_id)
        simulation = self.questions.get_simulation(result.simulation_id)
        if simulation is None:
            raise NotFoundError('Simulation not found', code='simulation_not_found')

        if answers is None:
            answers = _stored_snapshot(result).answers
        now = self.clock()
        if total_elapsed is None:
            total_elapsed = _elapsed_since(result.started_at, now)

        questions = self.questions.get_scoring_questions(simulation.id)
        evaluation = evaluate(questions, answers, ScoringPolicy.from_simulation(simulation))
        submissions = self.aggregator.apply(
            simulation,
            result,
            evaluation,
            duration_seconds=total_elapsed,
            completed_at=now,
        )
        result.checkpoint_data = None
        result.updated_by = student.user_id
        self.results.save(result)

        logger.info(
            'Scored attempt %s: %s correct, %s wrong, %s blank, %s pending, total %.2f',
            result.id,
            result.correct_answers,
            result.wrong_answers,
            result.blank_answers,
            result.pending_open_answers,
            result.total_score,
        )
        self.outbox.publish(
            NotificationEvent(
                event_type=SIMULATION_COMPLETED,
                simulation_id=simulation.id,
                result_id=result.id,
                student_id=student.id,
                payload={'total_score': result.total_score, 'percentage_score': result.percentage_score},
            )
        )
        if submissions:
            self.outbox.publish(
                NotificationEvent(
                    event_type=CORRECTION_REQUESTED,
                    simulation_id=simulation.id,
                    result_id=result.id,
                    student_id=student.id,
                    payload={'open_answers': len(submissions)},
                )
            )
        return SubmittedAttempt(result=result, submissions=submissions)


def _elapsed_since(started_at: datetime | None, now: datetime) -> int:
    started = ensure_utc(started_at)
    if started is None:
        return 0
    return max(0, int((now - started).total_seconds()))


def _stored_snapshot(result: SimulationResult) -> Snapshot:
    try:
        return decode_snapshot(result.checkpoint_data)
    except SnapshotDecodeError as exc:
        logger.warning('Unreadable checkpoint on attempt %s: %s', result.id, exc)
        raise InvalidStateError('The saved progress for this attempt cannot be read', code='checkpoint_unreadable') from exc
