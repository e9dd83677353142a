from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from uuid import UUID

from assessment_engine.core.clock import Clock, utc_now
from assessment_engine.core.errors import ConflictError, InvalidStateError, NotFoundError
from assessment_engine.models import SimulationAssignment, SimulationResult
from assessment_engine.repositories.ports import AssignmentStore, QuestionBank, ResultRepository, StudentDirectory
from assessment_engine.services.access_resolver import scope_key_for
from assessment_engine.services.answer_evaluator import ScoringPolicy, SubmittedAnswer, evaluate
from assessment_engine.services.notification_service import SIMULATION_COMPLETED, NotificationEvent, NotificationOutbox
from assessment_engine.services.score_aggregator import ScoreAggregator


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaperEntry:
    student_id: UUID
    present: bool = True
    answers: list[SubmittedAnswer] = field(default_factory=list)


class PaperResultRecorder:
    """Records results for simulations answered on paper and keyed in by staff."""

    def __init__(
        self,
        *,
        students: StudentDirectory,
        questions: QuestionBank,
        assignments: AssignmentStore,
        results: ResultRepository,
        outbox: NotificationOutbox,
        clock: Clock = utc_now,
    ) -> None:
        self.students = students
        self.questions = questions
        self.assignments = assignments
        self.results = results
        self.outbox = outbox
        self.clock = clock
        self.aggregator = ScoreAggregator(results)

    def record(
        self,
        staff_user_id: UUID,
        simulation_id: UUID,
        entries: list[PaperEntry],
        *,
        assignment_id: UUID | None = None,
    ) -> list[SimulationResult]:
        simulation = self.questions.get_simulation(simulation_id)
        if simulation is None:
            raise NotFoundError('Simulation not found', code='simulation_not_found')
        if not simulation.is_paper_based:
            raise InvalidStateError('This simulation is not paper based', code='not_paper_based')

        assignment: SimulationAssignment | None = None
        if assignment_id is not None:
            assignment = self.assignments.get_assignment(assignment_id)
            if assignment is None or assignment.simulation_id != simulation.id:
                raise NotFoundError('Assignment not found', code='assignment_not_found')

        seen: set[UUID] = set()
        for entry in entries:
            if entry.student_id in seen:
                raise ConflictError('A student appears twice in this batch', code='duplicate_paper_entry')
            seen.add(entry.student_id)
        students = self.students.get_students(seen)
        for entry in entries:
            if entry.student_id not in students:
                raise NotFoundError(f'Student {entry.student_id} not found', code='student_not_found')
            if self.results.exists_for(entry.student_id, simulation.id):
                raise ConflictError(
                    f'Student {entry.student_id} already has a result for this simulation',
                    code='paper_result_exists',
                )

        questions = self.questions.get_scoring_questions(simulation.id)
        policy = ScoringPolicy.from_simulation(simulation)
        absent_policy = dataclasses.replace(policy, blank_points=0.0)
        now = self.clock()

        recorded: list[SimulationResult] = []
        for entry in entries:
            result = SimulationResult(
                simulation_id=simulation.id,
                student_id=entry.student_id,
                assignment_id=assignment.id if assignment else None,
                scope_key=scope_key_for(assignment),
                status='completed',
                entry_mode='paper',
                started_at=now,
                completed_at=now,
                duration_seconds=0,
                question_order=[str(question.question_id) for question in questions],
                option_order={},
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
                created_by=staff_user_id,
            )
            self.results.add(result)

            if entry.present:
                answers = [dataclasses.replace(answer, time_spent=0) for answer in entry.answers]
                evaluation = evaluate(questions, answers, policy)
            else:
                evaluation = evaluate(questions, [], absent_policy)
            self.aggregator.apply(simulation, result, evaluation, duration_seconds=0, completed_at=now)
            self.results.save(result)
            recorded.append(result)

            self.outbox.publish(
                NotificationEvent(
                    event_type=SIMULATION_COMPLETED,
                    simulation_id=simulation.id,
                    result_id=result.id,
                    student_id=entry.student_id,
                    payload={'entry_mode': 'paper', 'present': entry.present},
                )
            )

        logger.info(
            'Recorded %s paper result(s) for simulation %s (%s absent)',
            len(recorded),
            simulation.id,
            sum(1 for entry in entries if not entry.present),
        )
        return recorded
