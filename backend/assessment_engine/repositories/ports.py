"""Storage ports consumed by the engine services.

Each service receives the ports it needs explicitly; production wiring uses
the SQLAlchemy implementations in this package, tests use in-memory fakes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from uuid import UUID

from assessment_engine.models import (
    OpenAnswerSubmission,
    ProctoredSession,
    Simulation,
    SimulationAssignment,
    SimulationResult,
    Student,
)
from assessment_engine.services.answer_evaluator import ScoringQuestion


class StudentDirectory(ABC):
    @abstractmethod
    def get_student(self, student_id: UUID) -> Student | None:
        pass

    @abstractmethod
    def get_student_by_user(self, user_id: UUID) -> Student | None:
        pass

    @abstractmethod
    def get_students(self, student_ids: Iterable[UUID]) -> dict[UUID, Student]:
        pass

    @abstractmethod
    def lock_student(self, student_id: UUID) -> None:
        """Serialize attempt creation for one test-taker until the transaction ends."""


class QuestionBank(ABC):
    @abstractmethod
    def get_simulation(self, simulation_id: UUID) -> Simulation | None:
        pass

    @abstractmethod
    def get_scoring_questions(self, simulation_id: UUID) -> list[ScoringQuestion]:
        """Questions of a simulation in their authored order."""


class AssignmentStore(ABC):
    @abstractmethod
    def get_assignment(self, assignment_id: UUID, *, for_update: bool = False) -> SimulationAssignment | None:
        pass

    @abstractmethod
    def list_for_student(self, student_id: UUID, simulation_id: UUID) -> list[SimulationAssignment]:
        """Assignments reaching the student directly or through group membership."""

    @abstractmethod
    def list_for_simulation(self, simulation_id: UUID) -> list[SimulationAssignment]:
        pass

    @abstractmethod
    def group_member_ids(self, group_id: UUID) -> set[UUID]:
        pass

    @abstractmethod
    def live_session(self, assignment_id: UUID) -> ProctoredSession | None:
        """Newest waiting/started proctored session of the assignment, if any."""

    @abstractmethod
    def live_sessions(
        self, *, simulation_id: UUID | None = None, assignment_id: UUID | None = None
    ) -> list[ProctoredSession]:
        pass

    @abstractmethod
    def save(self, item: SimulationAssignment | ProctoredSession | Simulation) -> None:
        pass


class ResultRepository(ABC):
    @abstractmethod
    def get(self, result_id: UUID, *, for_update: bool = False) -> SimulationResult | None:
        pass

    @abstractmethod
    def find_in_progress(self, student_id: UUID, simulation_id: UUID, scope_key: str) -> SimulationResult | None:
        pass

    @abstractmethod
    def count_completed(self, student_id: UUID, simulation_id: UUID, scope_key: str) -> int:
        pass

    @abstractmethod
    def exists_for(self, student_id: UUID, simulation_id: UUID) -> bool:
        pass

    @abstractmethod
    def list_completed(
        self,
        simulation_id: UUID,
        *,
        assignment_id: UUID | None = None,
        student_ids: set[UUID] | None = None,
    ) -> list[SimulationResult]:
        pass

    @abstractmethod
    def list_completed_for_student(
        self,
        student_id: UUID,
        *,
        simulation_id: UUID | None,
        page: int,
        page_size: int,
    ) -> tuple[list[SimulationResult], int]:
        pass

    @abstractmethod
    def add(self, result: SimulationResult) -> SimulationResult:
        """Persist a new result; a duplicate in-progress attempt raises ``ConflictError``."""

    @abstractmethod
    def save(self, result: SimulationResult) -> None:
        pass

    @abstractmethod
    def delete(self, result: SimulationResult) -> None:
        pass

    @abstractmethod
    def add_submission(self, submission: OpenAnswerSubmission) -> OpenAnswerSubmission:
        pass

    @abstractmethod
    def get_submission(self, submission_id: UUID, *, for_update: bool = False) -> OpenAnswerSubmission | None:
        pass

    @abstractmethod
    def list_submissions(self, result_id: UUID) -> list[OpenAnswerSubmission]:
        pass

    @abstractmethod
    def list_pending_submissions(self, *, simulation_id: UUID | None = None) -> list[OpenAnswerSubmission]:
        pass

    @abstractmethod
    def save_submission(self, submission: OpenAnswerSubmission) -> None:
        pass
