"""Staff grading of free-text answers and the score recalculation it triggers."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from uuid import UUID

from assessment_engine.core.clock import Clock, utc_now
from assessment_engine.core.errors import InvalidStateError, NotFoundError
from assessment_engine.models import OpenAnswerSubmission, SimulationResult
from assessment_engine.models.constants import Outcome
from assessment_engine.repositories.ports import QuestionBank, ResultRepository
from assessment_engine.services.answer_evaluator import UNSPECIFIED_SUBJECT, SubjectTally
from assessment_engine.services.score_aggregator import refresh_percentage


logger = logging.getLogger(__name__)

DEFAULT_PASS_THRESHOLD = 0.5


@dataclass(frozen=True)
class Validation:
    submission_id: UUID
    manual_score: float
    notes: str | None = None


def _check_manual_score(value: float) -> float:
    if not -1.0 <= value <= 1.0:
        raise InvalidStateError('Manual score must be between -1 and 1', code='manual_score_out_of_range')
    return float(value)


class GradingQueue:
    def __init__(
        self,
        questions: QuestionBank,
        results: ResultRepository,
        *,
        pass_threshold: float = DEFAULT_PASS_THRESHOLD,
        clock: Clock = utc_now,
    ) -> None:
        self.questions = questions
        self.results = results
        self.pass_threshold = pass_threshold
        self.clock = clock

    def list_pending(self, *, simulation_id: UUID | None = None) -> list[OpenAnswerSubmission]:
        return self.results.list_pending_submissions(simulation_id=simulation_id)

    def _locked_result(self, result_id: UUID) -> SimulationResult:
        result = self.results.get(result_id, for_update=True)
        if result is None:
            raise NotFoundError('Result not found', code='result_not_found')
        return result

    def _apply(self, submission: OpenAnswerSubmission, validation: Validation, validator_id: UUID) -> None:
        score = _check_manual_score(validation.manual_score)
        submission.manual_score = score
        submission.final_score = score
        submission.is_validated = True
        submission.validated_by = validator_id
        submission.validated_at = self.clock()
        if validation.notes is not None:
            submission.notes = validation.notes
        self.results.save_submission(submission)

    def validate(
        self,
        validator_id: UUID,
        submission_id: UUID,
        manual_score: float,
        notes: str | None = None,
    ) -> OpenAnswerSubmission:
        submission = self.results.get_submission(submission_id)
        if submission is None:
            raise NotFoundError('Open answer not found', code='submission_not_found')
        result = self._locked_result(submission.result_id)
        submission = self.results.get_submission(submission_id, for_update=True) or submission

        self._apply(submission, Validation(submission_id, manual_score, notes), validator_id)
        self._refresh(result, validator_id)
        return submission

    def validate_batch(
        self,
        validator_id: UUID,
        result_id: UUID,
        validations: Sequence[Validation],
    ) -> SimulationResult:
        if not validations:
            raise InvalidStateError('No validations supplied', code='empty_batch')
        result = self._locked_result(result_id)

        by_id = {item.id: item for item in self.results.list_submissions(result.id)}
        missing = [str(item.submission_id) for item in validations if item.submission_id not in by_id]
        if missing:
            raise NotFoundError(
                f'Open answers not found on this result: {", ".join(missing)}',
                code='submission_not_found',
            )
        # Range-check every row before applying any.
        for item in validations:
            _check_manual_score(item.manual_score)

        for item in validations:
            self._apply(by_id[item.submission_id], item, validator_id)
        logger.info('Validated %s open answer(s) on result %s', len(validations), result.id)
        self._refresh(result, validator_id)
        return result

    def _refresh(self, result: SimulationResult, validator_id: UUID) -> None:
        submissions = self.results.list_submissions(result.id)
        remaining = sum(1 for item in submissions if not item.is_validated)
        result.pending_open_answers = remaining
        if remaining == 0:
            result.reviewed_at = self.clock()
            result.reviewed_by = validator_id
            self.recalculate(result, submissions)
        else:
            self.results.save(result)

    def recalculate(
        self,
        result: SimulationResult,
        submissions: list[OpenAnswerSubmission] | None = None,
    ) -> SimulationResult:
        """Rebuild scores and counters from the stored answers and graded submissions.

        Every call starts from the full answer list, so running it again for the
        same result yields the same numbers.
        """
        simulation = self.questions.get_simulation(result.simulation_id)
        if simulation is None:
            raise NotFoundError('Simulation not found', code='simulation_not_found')
        if submissions is None:
            submissions = self.results.list_submissions(result.id)
        graded = {
            str(item.question_id): item
            for item in submissions
            if item.is_validated and item.final_score is not None
        }

        records = [dict(record) for record in result.answers or []]
        counts = {outcome: 0 for outcome in Outcome}
        subjects: dict[str, SubjectTally] = {}
        for record in records:
            submission = graded.get(record.get('question_id'))
            if submission is not None:
                record['earned_points'] = submission.final_score * submission.points
                passed = submission.final_score >= self.pass_threshold
                record['outcome'] = (Outcome.CORRECT if passed else Outcome.INCORRECT).value

            outcome = Outcome(record['outcome'])
            counts[outcome] += 1
            tally = subjects.setdefault(record.get('subject') or UNSPECIFIED_SUBJECT, SubjectTally())
            match outcome:
                case Outcome.CORRECT:
                    tally.correct += 1
                case Outcome.INCORRECT:
                    tally.wrong += 1
                case Outcome.BLANK:
                    tally.blank += 1
                case Outcome.PENDING:
                    tally.pending += 1

        result.answers = records
        result.subject_breakdown = {name: tally.as_dict() for name, tally in subjects.items()}
        result.correct_answers = counts[Outcome.CORRECT]
        result.wrong_answers = counts[Outcome.INCORRECT]
        result.blank_answers = counts[Outcome.BLANK]
        result.total_score = sum(float(record.get('earned_points') or 0.0) for record in records)
        refresh_percentage(simulation, result)
        self.results.save(result)

        logger.info(
            'Recalculated result %s: total %.2f (%s%%), %s correct, %s wrong',
            result.id,
            result.total_score,
            result.percentage_score,
            result.correct_answers,
            result.wrong_answers,
        )
        return result
