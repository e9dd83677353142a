"""Pure scoring of submitted answers against a simulation's questions.

Nothing here touches storage: callers hand in the ordered questions (as
served by the question bank), the raw answers and the scoring policy, and get
back per-question outcomes plus the aggregate counts.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from assessment_engine.models.constants import Outcome

CHOICE_QUESTION = 'single_choice'
OPEN_QUESTION = 'open_text'


@dataclass(frozen=True)
class ScoringPolicy:
    correct_points: float = 1.0
    wrong_points: float = 0.0
    blank_points: float = 0.0
    use_question_points: bool = False

    @classmethod
    def from_simulation(cls, simulation: Any) -> ScoringPolicy:
        return cls(
            correct_points=float(simulation.correct_points),
            wrong_points=float(simulation.wrong_points),
            blank_points=float(simulation.blank_points),
            use_question_points=bool(simulation.use_question_points),
        )


@dataclass(frozen=True)
class KeywordRule:
    keyword: str
    weight: float = 1.0
    is_required: bool = False


@dataclass(frozen=True)
class ScoringQuestion:
    question_id: UUID
    question_type: str
    correct_option_id: UUID | None = None
    points: float | None = None
    negative_points: float | None = None
    custom_points: float | None = None
    custom_negative_points: float | None = None
    subject: str | None = None
    keywords: tuple[KeywordRule, ...] = ()
    option_ids: tuple[UUID, ...] = ()

    @property
    def is_open(self) -> bool:
        return self.question_type == OPEN_QUESTION


@dataclass(frozen=True)
class SubmittedAnswer:
    question_id: UUID
    answer_id: UUID | None = None
    answer_text: str | None = None
    time_spent: int = 0
    flagged: bool = False

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> SubmittedAnswer:
        answer_id = payload.get('answer_id')
        return cls(
            question_id=UUID(str(payload['question_id'])),
            answer_id=UUID(str(answer_id)) if answer_id else None,
            answer_text=payload.get('answer_text') or None,
            time_spent=int(payload.get('time_spent') or 0),
            flagged=bool(payload.get('flagged', False)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            'question_id': str(self.question_id),
            'answer_id': str(self.answer_id) if self.answer_id else None,
            'answer_text': self.answer_text,
            'time_spent': self.time_spent,
            'flagged': self.flagged,
        }


@dataclass(frozen=True)
class KeywordScore:
    score: float
    matched: tuple[str, ...] = ()
    missed_required: tuple[str, ...] = ()


@dataclass
class QuestionEvaluation:
    question_id: UUID
    outcome: Outcome
    earned_points: float
    max_points: float
    is_open: bool
    subject: str | None = None
    answer_id: UUID | None = None
    answer_text: str | None = None
    time_spent: int = 0
    keyword_score: KeywordScore | None = None

    def to_record(self) -> dict[str, Any]:
        """Serialized form stored in ``SimulationResult.answers``."""
        return {
            'question_id': str(self.question_id),
            'answer_id': str(self.answer_id) if self.answer_id else None,
            'answer_text': self.answer_text,
            'outcome': self.outcome.value,
            'earned_points': self.earned_points,
            'max_points': self.max_points,
            'is_open': self.is_open,
            'subject': self.subject,
            'time_spent': self.time_spent,
            'auto_score': self.keyword_score.score if self.keyword_score else None,
        }


@dataclass
class SubjectTally:
    correct: int = 0
    wrong: int = 0
    blank: int = 0
    pending: int = 0

    def as_dict(self) -> dict[str, int]:
        return {'correct': self.correct, 'wrong': self.wrong, 'blank': self.blank, 'pending': self.pending}


@dataclass
class Evaluation:
    evaluations: list[QuestionEvaluation] = field(default_factory=list)
    correct: int = 0
    wrong: int = 0
    blank: int = 0
    pending: int = 0
    subjects: dict[str, SubjectTally] = field(default_factory=dict)

    @property
    def total_score(self) -> float:
        return sum(item.earned_points for item in self.evaluations)

    @property
    def pending_evaluations(self) -> list[QuestionEvaluation]:
        return [item for item in self.evaluations if item.outcome is Outcome.PENDING]


UNSPECIFIED_SUBJECT = 'unspecified'


def resolve_points(question: ScoringQuestion, policy: ScoringPolicy) -> tuple[float, float]:
    """Return ``(correct_points, wrong_points)`` for one question.

    Precedence: per-question custom override, then the question's own points
    (when the policy opts into them), then the simulation-level default.
    """
    if question.custom_points is not None:
        correct = question.custom_points
    elif policy.use_question_points and question.points is not None:
        correct = question.points
    else:
        correct = policy.correct_points

    if question.custom_negative_points is not None:
        wrong = question.custom_negative_points
    elif policy.use_question_points and question.negative_points is not None:
        wrong = question.negative_points
    else:
        wrong = policy.wrong_points

    return float(correct), float(wrong)


def score_keywords(text: str, keywords: Iterable[KeywordRule]) -> KeywordScore:
    """Weighted case-insensitive substring match of a free-text answer."""
    haystack = (text or '').lower()
    total_weight = 0.0
    matched_weight = 0.0
    matched: list[str] = []
    missed_required: list[str] = []

    for rule in keywords:
        total_weight += rule.weight
        needle = rule.keyword.strip().lower()
        if needle and needle in haystack:
            matched_weight += rule.weight
            matched.append(rule.keyword)
        elif rule.is_required:
            missed_required.append(rule.keyword)

    score = matched_weight / total_weight if total_weight > 0 else 0.0
    return KeywordScore(score=score, matched=tuple(matched), missed_required=tuple(missed_required))


def evaluate_question(
    question: ScoringQuestion,
    answer: SubmittedAnswer | None,
    policy: ScoringPolicy,
) -> QuestionEvaluation:
    correct_points, wrong_points = resolve_points(question, policy)
    base = {
        'question_id': question.question_id,
        'max_points': correct_points,
        'is_open': question.is_open,
        'subject': question.subject,
        'answer_id': answer.answer_id if answer else None,
        'answer_text': answer.answer_text if answer and question.is_open else None,
        'time_spent': answer.time_spent if answer else 0,
    }

    if question.is_open:
        text = (answer.answer_text or '').strip() if answer else ''
        if not text:
            return QuestionEvaluation(outcome=Outcome.BLANK, earned_points=policy.blank_points, **base)
        return QuestionEvaluation(
            outcome=Outcome.PENDING,
            earned_points=0.0,
            keyword_score=score_keywords(text, question.keywords),
            **base,
        )

    if answer is None or answer.answer_id is None:
        return QuestionEvaluation(outcome=Outcome.BLANK, earned_points=policy.blank_points, **base)
    if question.correct_option_id is not None and answer.answer_id == question.correct_option_id:
        return QuestionEvaluation(outcome=Outcome.CORRECT, earned_points=correct_points, **base)
    return QuestionEvaluation(outcome=Outcome.INCORRECT, earned_points=wrong_points, **base)


def evaluate(
    questions: Sequence[ScoringQuestion],
    answers: Iterable[SubmittedAnswer],
    policy: ScoringPolicy,
) -> Evaluation:
    answers_by_question = {answer.question_id: answer for answer in answers}
    result = Evaluation()

    for question in questions:
        item = evaluate_question(question, answers_by_question.get(question.question_id), policy)
        result.evaluations.append(item)

        tally = result.subjects.setdefault(question.subject or UNSPECIFIED_SUBJECT, SubjectTally())
        if item.outcome is Outcome.CORRECT:
            result.correct += 1
            tally.correct += 1
        elif item.outcome is Outcome.INCORRECT:
            result.wrong += 1
            tally.wrong += 1
        elif item.outcome is Outcome.BLANK:
            result.blank += 1
            tally.blank += 1
        else:
            result.pending += 1
            tally.pending += 1

    return result
