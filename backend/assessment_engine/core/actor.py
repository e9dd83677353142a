from dataclasses import dataclass
from uuid import UUID

from assessment_engine.models.constants import STAFF_ROLES


@dataclass(frozen=True)
class Actor:
    """Caller identity as asserted by the external identity system."""

    user_id: UUID
    role: str
    student_id: UUID | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == 'admin'

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES
