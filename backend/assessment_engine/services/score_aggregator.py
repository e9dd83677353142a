from __future__ import annotations

import logging
from datetime import datetime

from assessment_engine.models import OpenAnswerSubmission, Simulation, SimulationResult
from assessment_engine.repositories.ports import ResultRepository
from assessment_engine.services.answer_evaluator import Evaluation


logger = logging.getLogger(__name__)


def effective_max_score(simulation: Simulation, total_questions: int) -> float:
    if simulation.max_score:
        return float(simulation.max_score)
    return float(total_questions) * float(simulation.correct_points)


def percentage(total_score: float, max_score: float) -> float:
    if max_score <= 0:
        return 0.0
    return round(total_score / max_score * 100, 2)


def passed(simulation: Simulation, result: SimulationResult) -> bool | None:
    if simulation.passing_score is None or not result.is_completed:
        return None
    return result.total_score >= simulation.passing_score


def refresh_percentage(simulation: Simulation, result: SimulationResult) -> None:
    result.percentage_score = percentage(
        result.total_score, effective_max_score(simulation, result.total_questions)
    )


class ScoreAggregator:
    def __init__(self, results: ResultRepository) -> None:
        self.results = results

    def apply(
        self,
        simulation: Simulation,
        result: SimulationResult,
        evaluation: Evaluation,
        *,
        duration_seconds: int,
        completed_at: datetime,
    ) -> list[OpenAnswerSubmission]:
        """Write the evaluation onto ``result`` and open review items if staff grade free text."""
        result.answers = [item.to_record() for item in evaluation.evaluations]
        result.subject_breakdown = {name: tally.as_dict() for name, tally in evaluation.subjects.items()}
        result.total_questions = len(evaluation.evaluations)
        result.correct_answers = evaluation.correct
        result.wrong_answers = evaluation.wrong
        result.blank_answers = evaluation.blank
        result.pending_open_answers = evaluation.pending
        result.total_score = evaluation.total_score
        refresh_percentage(simulation, result)
        result.duration_seconds = max(0, int(duration_seconds))
        result.completed_at = completed_at
        result.status = 'completed'

        submissions: list[OpenAnswerSubmission] = []
        if not simulation.staff_correction_required:
            return submissions

        for item in evaluation.pending_evaluations:
            keyword_score = item.keyword_score
            submission = OpenAnswerSubmission(
                result_id=result.id,
                simulation_id=simulation.id,
                student_id=result.student_id,
                question_id=item.question_id,
                answer_text=item.answer_text or '',
                points=item.max_points,
                auto_score=keyword_score.score if keyword_score else 0.0,
                missed_keywords=list(keyword_score.missed_required) if keyword_score else [],
                manual_score=None,
                final_score=None,
                is_validated=False,
            )
            submissions.append(self.results.add_submission(submission))

        if submissions:
            logger.info('Queued %s open answer(s) for review on result %s', len(submissions), result.id)
        return submissions
