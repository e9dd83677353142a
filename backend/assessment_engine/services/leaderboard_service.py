from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from assessment_engine.core.actor import Actor
from assessment_engine.core.clock import ensure_utc
from assessment_engine.core.errors import NotFoundError
from assessment_engine.models import Simulation, SimulationResult, Student
from assessment_engine.repositories.ports import AssignmentStore, QuestionBank, ResultRepository, StudentDirectory

PSEUDONYM_ADJECTIVES = (
    'Mysterious',
    'Brilliant',
    'Brave',
    'Diligent',
    'Energetic',
    'Fantastic',
    'Clever',
    'Resourceful',
    'Hardworking',
    'Methodical',
    'Remarkable',
    'Original',
    'Persevering',
    'Resolute',
    'Tenacious',
)

DEFAULT_LIMIT = 50

_EPOCH = datetime.min.replace(tzinfo=UTC)


@dataclass(frozen=True)
class RankedResult:
    rank: int
    position: int
    result: SimulationResult


@dataclass(frozen=True)
class LeaderboardRow:
    rank: int
    display_name: str
    is_anonymous: bool
    is_current_user: bool
    student_id: UUID | None
    total_score: float
    percentage_score: float
    duration_seconds: int
    completed_at: datetime | None


def _completed_key(result: SimulationResult) -> datetime:
    completed = ensure_utc(result.completed_at)
    return completed if completed is not None else _EPOCH


def latest_per_student(results: Iterable[SimulationResult]) -> list[SimulationResult]:
    latest: dict[UUID, SimulationResult] = {}
    for result in results:
        current = latest.get(result.student_id)
        if current is None or _completed_key(result) > _completed_key(current):
            latest[result.student_id] = result
    return list(latest.values())


def rank_results(results: Sequence[SimulationResult]) -> list[RankedResult]:
    """Score descending, faster first; tied scores share the rank of the first row in the tie."""
    ordered = sorted(results, key=lambda item: (-item.total_score, item.duration_seconds))
    ranked: list[RankedResult] = []
    for position, result in enumerate(ordered):
        if position > 0 and result.total_score == ordered[position - 1].total_score:
            rank = ranked[-1].rank
        else:
            rank = position + 1
        ranked.append(RankedResult(rank=rank, position=position, result=result))
    return ranked


def pseudonym(position: int, rank: int) -> str:
    adjective = PSEUDONYM_ADJECTIVES[position % len(PSEUDONYM_ADJECTIVES)]
    return f'{adjective} Participant #{rank}'


def can_reveal(viewer: Actor, simulation: Simulation, student_id: UUID) -> bool:
    if viewer.is_admin:
        return True
    if simulation.created_by is not None and simulation.created_by == viewer.user_id:
        return True
    return viewer.student_id is not None and viewer.student_id == student_id


def build_rows(
    ranked: Sequence[RankedResult],
    *,
    viewer: Actor,
    simulation: Simulation,
    students: dict[UUID, Student],
) -> list[LeaderboardRow]:
    rows = []
    for item in ranked:
        result = item.result
        reveal = can_reveal(viewer, simulation, result.student_id)
        student = students.get(result.student_id)
        if reveal and student is not None:
            name = student.full_name
        else:
            name = pseudonym(item.position, item.rank)
        rows.append(
            LeaderboardRow(
                rank=item.rank,
                display_name=name,
                is_anonymous=not (reveal and student is not None),
                is_current_user=viewer.student_id == result.student_id,
                student_id=result.student_id if reveal else None,
                total_score=result.total_score,
                percentage_score=result.percentage_score,
                duration_seconds=result.duration_seconds,
                completed_at=result.completed_at,
            )
        )
    return rows


class LeaderboardRanker:
    def __init__(
        self,
        *,
        questions: QuestionBank,
        assignments: AssignmentStore,
        results: ResultRepository,
        students: StudentDirectory,
        limit: int = DEFAULT_LIMIT,
    ) -> None:
        self.questions = questions
        self.assignments = assignments
        self.results = results
        self.students = students
        self.limit = limit

    def leaderboard(
        self,
        simulation_id: UUID,
        viewer: Actor,
        *,
        assignment_id: UUID | None = None,
        limit: int | None = None,
    ) -> list[LeaderboardRow]:
        simulation = self.questions.get_simulation(simulation_id)
        if simulation is None:
            raise NotFoundError('Simulation not found', code='simulation_not_found')

        if assignment_id is None:
            completed = self.results.list_completed(simulation.id)
        else:
            assignment = self.assignments.get_assignment(assignment_id)
            if assignment is None or assignment.simulation_id != simulation.id:
                raise NotFoundError('Assignment not found', code='assignment_not_found')
            if assignment.group_id is not None:
                members = self.assignments.group_member_ids(assignment.group_id)
                completed = self.results.list_completed(simulation.id, student_ids=members)
            else:
                completed = self.results.list_completed(simulation.id, assignment_id=assignment.id)

        ranked = rank_results(latest_per_student(completed))
        ranked = ranked[: limit or self.limit]
        students = self.students.get_students(item.result.student_id for item in ranked)
        return build_rows(ranked, viewer=viewer, simulation=simulation, students=students)
