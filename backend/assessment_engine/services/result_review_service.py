from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from assessment_engine.core.actor import Actor
from assessment_engine.core.errors import ForbiddenError, InvalidStateError, NotFoundError
from assessment_engine.models import Simulation, SimulationResult
from assessment_engine.repositories.ports import QuestionBank, ResultRepository
from assessment_engine.services.score_aggregator import passed


@dataclass(frozen=True)
class AnswerReview:
    question_id: str
    answer_id: str | None
    answer_text: str | None
    time_spent: int
    earned_points: float | None = None
    outcome: str | None = None
    correct_option_id: str | None = None


@dataclass(frozen=True)
class ResultReview:
    result: SimulationResult
    simulation: Simulation
    passed: bool | None
    answers: list[AnswerReview] = field(default_factory=list)
    answers_disclosed: bool = False
    correctness_disclosed: bool = False


def _review_answer(record: dict[str, Any], correct_option: str | None, *, disclose: bool) -> AnswerReview:
    review = AnswerReview(
        question_id=record['question_id'],
        answer_id=record.get('answer_id'),
        answer_text=record.get('answer_text'),
        time_spent=int(record.get('time_spent') or 0),
    )
    if not disclose:
        return review
    return AnswerReview(
        question_id=review.question_id,
        answer_id=review.answer_id,
        answer_text=review.answer_text,
        time_spent=review.time_spent,
        earned_points=record.get('earned_points'),
        outcome=record.get('outcome'),
        correct_option_id=correct_option,
    )


class ResultReviewer:
    def __init__(self, questions: QuestionBank, results: ResultRepository) -> None:
        self.questions = questions
        self.results = results

    def review(self, actor: Actor, result_id: UUID) -> ResultReview:
        result = self.results.get(result_id)
        if result is None:
            raise NotFoundError('Result not found', code='result_not_found')
        if not actor.is_staff and result.student_id != actor.student_id:
            raise ForbiddenError('You can only view your own results', code='not_owner')
        if not result.is_completed:
            raise InvalidStateError('The attempt has not been submitted yet', code='attempt_not_completed')
        simulation = self.questions.get_simulation(result.simulation_id)
        if simulation is None:
            raise NotFoundError('Simulation not found', code='simulation_not_found')

        show_answers = actor.is_staff or simulation.allow_review
        show_correctness = actor.is_staff or simulation.show_correct_answers
        answers: list[AnswerReview] = []
        if show_answers:
            correct_options = {
                str(question.question_id): str(question.correct_option_id) if question.correct_option_id else None
                for question in self.questions.get_scoring_questions(simulation.id)
            }
            answers = [
                _review_answer(record, correct_options.get(record['question_id']), disclose=show_correctness)
                for record in result.answers or []
            ]
        return ResultReview(
            result=result,
            simulation=simulation,
            passed=passed(simulation, result),
            answers=answers,
            answers_disclosed=show_answers,
            correctness_disclosed=show_answers and show_correctness,
        )

    def my_results(
        self,
        student_id: UUID,
        *,
        simulation_id: UUID | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[SimulationResult], int]:
        return self.results.list_completed_for_student(
            student_id, simulation_id=simulation_id, page=page, page_size=page_size
        )
