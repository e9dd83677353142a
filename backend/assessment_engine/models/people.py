import uuid

from sqlalchemy import ForeignKey, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from assessment_engine.db.base_class import Base
from assessment_engine.models.mixins import TimestampMixin, UUIDPrimaryKeyMixin


class Student(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Test-taker profile, keyed by the identity provider's user id."""

    __tablename__ = 'students'

    user_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False, unique=True)
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)


class Group(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = 'groups'

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    members: Mapped[list['GroupMember']] = relationship(back_populates='group', cascade='all, delete-orphan')


class GroupMember(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = 'group_members'
    __table_args__ = (UniqueConstraint('group_id', 'student_id', name='uq_group_member'),)

    group_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey('groups.id', ondelete='CASCADE'), nullable=False
    )
    student_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey('students.id', ondelete='CASCADE'), nullable=False
    )

    group: Mapped['Group'] = relationship(back_populates='members')
