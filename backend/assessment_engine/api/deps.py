from collections.abc import Callable
from uuid import UUID

from fastapi import BackgroundTasks, Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from assessment_engine.core.actor import Actor
from assessment_engine.core.config import settings
from assessment_engine.core.errors import NotFoundError
from assessment_engine.core.randomness import SeededRandomSource
from assessment_engine.db.session import get_db
from assessment_engine.models import Student
from assessment_engine.models.constants import ROLE_VALUES
from assessment_engine.repositories.assignments import SqlAssignmentStore
from assessment_engine.repositories.question_bank import SqlQuestionBank
from assessment_engine.repositories.results import SqlResultRepository
from assessment_engine.repositories.students import SqlStudentDirectory
from assessment_engine.services.assignment_service import AssignmentLifecycle
from assessment_engine.services.attempt_service import AttemptStateMachine
from assessment_engine.services.grading_service import GradingQueue
from assessment_engine.services.leaderboard_service import LeaderboardRanker
from assessment_engine.services.notification_service import NotificationOutbox, get_dispatcher
from assessment_engine.services.paper_result_service import PaperResultRecorder
from assessment_engine.services.result_review_service import ResultReviewer
from assessment_engine.services.self_correction_service import SelfCorrection


class Engine:
    """Request-scoped wiring of the repositories and engine components over one session."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.students = SqlStudentDirectory(db)
        self.questions = SqlQuestionBank(db)
        self.assignments = SqlAssignmentStore(db)
        self.results = SqlResultRepository(db)
        self.outbox = NotificationOutbox()

    def attempts(self) -> AttemptStateMachine:
        return AttemptStateMachine(
            students=self.students,
            questions=self.questions,
            assignments=self.assignments,
            results=self.results,
            outbox=self.outbox,
            random_source=SeededRandomSource(settings.SHUFFLE_SEED),
        )

    def self_correction(self) -> SelfCorrection:
        return SelfCorrection(self.questions, self.results)

    def grading(self) -> GradingQueue:
        return GradingQueue(self.questions, self.results, pass_threshold=settings.OPEN_ANSWER_PASS_THRESHOLD)

    def leaderboard(self) -> LeaderboardRanker:
        return LeaderboardRanker(
            questions=self.questions,
            assignments=self.assignments,
            results=self.results,
            students=self.students,
            limit=settings.LEADERBOARD_LIMIT,
        )

    def paper_results(self) -> PaperResultRecorder:
        return PaperResultRecorder(
            students=self.students,
            questions=self.questions,
            assignments=self.assignments,
            results=self.results,
            outbox=self.outbox,
        )

    def reviewer(self) -> ResultReviewer:
        return ResultReviewer(self.questions, self.results)

    def assignment_lifecycle(self) -> AssignmentLifecycle:
        return AssignmentLifecycle(self.questions, self.assignments, self.results)

    def commit(self, background_tasks: BackgroundTasks) -> None:
        """Commit the unit of work, then hand buffered notifications to the background."""
        self.db.commit()
        dispatcher = get_dispatcher()
        for event in self.outbox.drain():
            background_tasks.add_task(dispatcher.deliver, event)


def get_engine(db: Session = Depends(get_db)) -> Engine:
    return Engine(db)


def get_current_actor(
    x_actor_id: str | None = Header(default=None),
    x_actor_role: str | None = Header(default=None),
    engine: Engine = Depends(get_engine),
) -> Actor:
    if not x_actor_id or not x_actor_role:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail='Missing caller identity')
    try:
        user_id = UUID(x_actor_id)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail='Invalid caller identity') from exc
    role = x_actor_role.strip().lower()
    if role not in ROLE_VALUES:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail='Unknown caller role')

    student = engine.students.get_student_by_user(user_id)
    return Actor(user_id=user_id, role=role, student_id=student.id if student else None)


def require_roles(*required_roles: str) -> Callable:
    required_set = set(required_roles)

    def role_checker(actor: Actor = Depends(get_current_actor)) -> Actor:
        if actor.is_admin:
            return actor
        if actor.role not in required_set:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail='Insufficient role permissions',
            )
        return actor

    return role_checker


def get_current_student(
    actor: Actor = Depends(get_current_actor),
    engine: Engine = Depends(get_engine),
) -> Student:
    student = engine.students.get_student(actor.student_id) if actor.student_id else None
    if student is None:
        raise NotFoundError('No student profile for this user', code='student_not_found')
    return student
