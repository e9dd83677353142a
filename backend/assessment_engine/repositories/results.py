import logging
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from assessment_engine.core.errors import ConflictError
from assessment_engine.models import OpenAnswerSubmission, SimulationResult
from assessment_engine.repositories.ports import ResultRepository


logger = logging.getLogger(__name__)


class SqlResultRepository(ResultRepository):
    def __init__(self, db: Session) -> None:
        self.db = db

    def get(self, result_id: UUID, *, for_update: bool = False) -> SimulationResult | None:
        stmt = select(SimulationResult).where(SimulationResult.id == result_id)
        if for_update:
            stmt = stmt.with_for_update()
        return self.db.scalar(stmt)

    def find_in_progress(self, student_id: UUID, simulation_id: UUID, scope_key: str) -> SimulationResult | None:
        return self.db.scalar(
            select(SimulationResult)
            .where(
                SimulationResult.student_id == student_id,
                SimulationResult.simulation_id == simulation_id,
                SimulationResult.scope_key == scope_key,
                SimulationResult.status == 'in_progress',
            )
            .order_by(SimulationResult.started_at.desc())
            .limit(1)
        )

    def count_completed(self, student_id: UUID, simulation_id: UUID, scope_key: str) -> int:
        total = self.db.scalar(
            select(func.count())
            .select_from(SimulationResult)
            .where(
                SimulationResult.student_id == student_id,
                SimulationResult.simulation_id == simulation_id,
                SimulationResult.scope_key == scope_key,
                SimulationResult.status == 'completed',
            )
        )
        return int(total or 0)

    def exists_for(self, student_id: UUID, simulation_id: UUID) -> bool:
        found = self.db.scalar(
            select(SimulationResult.id)
            .where(SimulationResult.student_id == student_id, SimulationResult.simulation_id == simulation_id)
            .limit(1)
        )
        return found is not None

    def list_completed(
        self,
        simulation_id: UUID,
        *,
        assignment_id: UUID | None = None,
        student_ids: set[UUID] | None = None,
    ) -> list[SimulationResult]:
        stmt = select(SimulationResult).where(
            SimulationResult.simulation_id == simulation_id,
            SimulationResult.status == 'completed',
        )
        if assignment_id:
            stmt = stmt.where(SimulationResult.assignment_id == assignment_id)
        if student_ids is not None:
            if not student_ids:
                return []
            stmt = stmt.where(SimulationResult.student_id.in_(student_ids))
        return list(self.db.scalars(stmt.order_by(SimulationResult.completed_at.asc())).all())

    def list_completed_for_student(
        self,
        student_id: UUID,
        *,
        simulation_id: UUID | None,
        page: int,
        page_size: int,
    ) -> tuple[list[SimulationResult], int]:
        base = select(SimulationResult).where(
            SimulationResult.student_id == student_id,
            SimulationResult.status == 'completed',
        )
        if simulation_id:
            base = base.where(SimulationResult.simulation_id == simulation_id)
        total = self.db.scalar(select(func.count()).select_from(base.subquery()))
        items = self.db.scalars(
            base.order_by(SimulationResult.completed_at.desc()).offset((page - 1) * page_size).limit(page_size)
        ).all()
        return list(items), int(total or 0)

    def add(self, result: SimulationResult) -> SimulationResult:
        self.db.add(result)
        try:
            self.db.flush()
        except IntegrityError as exc:
            self.db.rollback()
            logger.warning(
                'Duplicate result for student %s on simulation %s: %s',
                result.student_id,
                result.simulation_id,
                exc.orig,
            )
            raise ConflictError('An attempt for this simulation is already open', code='duplicate_attempt') from exc
        return result

    def save(self, result: SimulationResult) -> None:
        self.db.add(result)
        self.db.flush()

    def delete(self, result: SimulationResult) -> None:
        self.db.delete(result)
        self.db.flush()

    def add_submission(self, submission: OpenAnswerSubmission) -> OpenAnswerSubmission:
        self.db.add(submission)
        self.db.flush()
        return submission

    def get_submission(self, submission_id: UUID, *, for_update: bool = False) -> OpenAnswerSubmission | None:
        stmt = select(OpenAnswerSubmission).where(OpenAnswerSubmission.id == submission_id)
        if for_update:
            stmt = stmt.with_for_update()
        return self.db.scalar(stmt)

    def list_submissions(self, result_id: UUID) -> list[OpenAnswerSubmission]:
        return list(
            self.db.scalars(
                select(OpenAnswerSubmission)
                .where(OpenAnswerSubmission.result_id == result_id)
                .order_by(OpenAnswerSubmission.created_at.asc())
            ).all()
        )

    def list_pending_submissions(self, *, simulation_id: UUID | None = None) -> list[OpenAnswerSubmission]:
        stmt = select(OpenAnswerSubmission).where(OpenAnswerSubmission.is_validated.is_(False))
        if simulation_id:
            stmt = stmt.where(OpenAnswerSubmission.simulation_id == simulation_id)
        return list(self.db.scalars(stmt.order_by(OpenAnswerSubmission.created_at.asc())).all())

    def save_submission(self, submission: OpenAnswerSubmission) -> None:
        self.db.add(submission)
        self.db.flush()
