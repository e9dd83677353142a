from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from assessment_engine.core.errors import ForbiddenError, InvalidStateError, NotFoundError
from assessment_engine.models import SimulationResult, Student
from assessment_engine.models.constants import Correctness, Outcome, correctness_of
from assessment_engine.repositories.ports import QuestionBank, ResultRepository
from assessment_engine.services.score_aggregator import refresh_percentage


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CorrectionDelta:
    correct: int = 0
    wrong: int = 0
    pending: int = 0

    @property
    def is_noop(self) -> bool:
        return self.correct == 0 and self.wrong == 0 and self.pending == 0


def correction_delta(previous: Correctness, is_correct_now: bool) -> CorrectionDelta:
    """Counter changes for moving an answer from ``previous`` to the new verdict."""
    target = Correctness.CORRECT if is_correct_now else Correctness.INCORRECT
    if previous is target:
        return CorrectionDelta()

    correct = 1 if target is Correctness.CORRECT else 0
    wrong = 1 if target is Correctness.INCORRECT else 0
    pending = 0
    match previous:
        case Correctness.PENDING:
            pending = -1
        case Correctness.CORRECT:
            correct -= 1
        case Correctness.INCORRECT:
            wrong -= 1
    return CorrectionDelta(correct=correct, wrong=wrong, pending=pending)


class SelfCorrection:
    def __init__(self, questions: QuestionBank, results: ResultRepository) -> None:
        self.questions = questions
        self.results = results

    def correct(
        self,
        student: Student,
        result_id: UUID,
        question_id: UUID,
        is_correct_now: bool,
    ) -> SimulationResult:
        result = self.results.get(result_id, for_update=True)
        if result is None:
            raise NotFoundError('Result not found', code='result_not_found')
        if result.student_id != student.id:
            raise ForbiddenError('This result belongs to another student', code='not_owner')
        simulation = self.questions.get_simulation(result.simulation_id)
        if simulation is None:
            raise NotFoundError('Simulation not found', code='simulation_not_found')
        if not simulation.self_correction_enabled:
            raise ForbiddenError('Self-correction is not enabled for this simulation', code='self_correction_disabled')
        if not result.is_completed:
            raise InvalidStateError('The attempt has not been submitted yet', code='attempt_not_completed')

        records = [dict(record) for record in result.answers or []]
        index = next(
            (idx for idx, record in enumerate(records) if record.get('question_id') == str(question_id)),
            None,
        )
        if index is None:
            raise NotFoundError('Answer not found in this result', code='answer_not_found')
        record = records[index]
        if not record.get('is_open') or not (record.get('answer_text') or '').strip():
            raise InvalidStateError('Only written answers can be self-corrected', code='answer_not_open')

        previous = correctness_of(Outcome(record['outcome']))
        delta = correction_delta(previous, is_correct_now)
        if delta.is_noop:
            return result

        old_points = float(record.get('earned_points') or 0.0)
        new_points = float(record.get('max_points') or 0.0) if is_correct_now else 0.0
        record['outcome'] = (Outcome.CORRECT if is_correct_now else Outcome.INCORRECT).value
        record['earned_points'] = new_points
        result.answers = records

        result.correct_answers += delta.correct
        result.wrong_answers += delta.wrong
        result.pending_open_answers = max(0, result.pending_open_answers + delta.pending)
        result.total_score = result.total_score - old_points + new_points
        refresh_percentage(simulation, result)
        result.updated_by = student.user_id
        self.results.save(result)

        logger.info(
            'Self-correction on result %s question %s: %s -> %s',
            result.id,
            question_id,
            previous.value,
            'correct' if is_correct_now else 'incorrect',
        )
        return result
