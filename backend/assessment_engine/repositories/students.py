from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from assessment_engine.models import Student
from assessment_engine.repositories.ports import StudentDirectory


class SqlStudentDirectory(StudentDirectory):
    def __init__(self, db: Session) -> None:
        self.db = db

    def get_student(self, student_id: UUID) -> Student | None:
        return self.db.scalar(select(Student).where(Student.id == student_id))

    def get_student_by_user(self, user_id: UUID) -> Student | None:
        return self.db.scalar(select(Student).where(Student.user_id == user_id))

    def get_students(self, student_ids: Iterable[UUID]) -> dict[UUID, Student]:
        ids = list(set(student_ids))
        if not ids:
            return {}
        rows = self.db.scalars(select(Student).where(Student.id.in_(ids))).all()
        return {row.id: row for row in rows}

    def lock_student(self, student_id: UUID) -> None:
        self.db.execute(select(Student.id).where(Student.id == student_id).with_for_update())
