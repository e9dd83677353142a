from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from assessment_engine.models import Question, Simulation, SimulationQuestion
from assessment_engine.repositories.ports import QuestionBank
from assessment_engine.services.answer_evaluator import KeywordRule, ScoringQuestion


class SqlQuestionBank(QuestionBank):
    def __init__(self, db: Session) -> None:
        self.db = db

    def get_simulation(self, simulation_id: UUID) -> Simulation | None:
        return self.db.scalar(select(Simulation).where(Simulation.id == simulation_id))

    def get_scoring_questions(self, simulation_id: UUID) -> list[ScoringQuestion]:
        rows = self.db.scalars(
            select(SimulationQuestion)
            .where(SimulationQuestion.simulation_id == simulation_id)
            .options(
                joinedload(SimulationQuestion.question).selectinload(Question.options),
                joinedload(SimulationQuestion.question).selectinload(Question.keywords),
            )
            .order_by(SimulationQuestion.order_index.asc())
        ).all()
        return [_to_scoring_question(row) for row in rows]


def _to_scoring_question(item: SimulationQuestion) -> ScoringQuestion:
    question = item.question
    options = sorted(question.options, key=lambda option: option.order_index)
    correct = next((option.id for option in options if option.is_correct), None)
    return ScoringQuestion(
        question_id=question.id,
        question_type=question.question_type,
        correct_option_id=correct,
        points=question.points,
        negative_points=question.negative_points,
        custom_points=item.custom_points,
        custom_negative_points=item.custom_negative_points,
        subject=question.subject,
        keywords=tuple(
            KeywordRule(keyword=keyword.keyword, weight=keyword.weight, is_required=keyword.is_required)
            for keyword in question.keywords
        ),
        option_ids=tuple(option.id for option in options),
    )
