"""Access decisions for a test-taker against a simulation.

The date gate alone decides read-only preview access; starting an attempt
needs both the date gate and the retry gate.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from assessment_engine.core.clock import Clock, ensure_utc, utc_now
from assessment_engine.core.errors import ForbiddenError, InvalidStateError, NotFoundError
from assessment_engine.models import Simulation, SimulationAssignment, Student
from assessment_engine.models.constants import PUBLIC_SCOPE_KEY
from assessment_engine.repositories.ports import AssignmentStore


logger = logging.getLogger(__name__)

REASON_OK = 'ok'
REASON_NOT_STARTED = 'window_not_started'
REASON_ENDED = 'window_ended'
REASON_ALREADY_COMPLETED = 'already_completed'
REASON_RETRY_LIMIT = 'retry_limit_reached'

_MESSAGES = {
    REASON_NOT_STARTED: 'The simulation has not started yet',
    REASON_ENDED: 'The simulation window has ended',
    REASON_ALREADY_COMPLETED: 'You have already completed this simulation',
    REASON_RETRY_LIMIT: 'You have reached the maximum number of attempts',
}


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    reason: str = REASON_OK

    @property
    def message(self) -> str:
        return _MESSAGES.get(self.reason, 'Allowed')

    def raise_if_denied(self) -> None:
        if not self.allowed:
            raise InvalidStateError(self.message, code=self.reason)


ALLOW = AccessDecision(allowed=True)


def effective_window(
    simulation: Simulation, assignment: SimulationAssignment | None
) -> tuple[datetime | None, datetime | None]:
    # An assignment override replaces the whole window, not each bound separately.
    if assignment is not None and (assignment.starts_at or assignment.ends_at):
        return ensure_utc(assignment.starts_at), ensure_utc(assignment.ends_at)
    return ensure_utc(simulation.starts_at), ensure_utc(simulation.ends_at)


def check_date_access(
    start: datetime | None,
    end: datetime | None,
    now: datetime,
    *,
    assignment_active: bool,
    has_active_session: bool,
) -> AccessDecision:
    if start is not None and now < start and not has_active_session:
        return AccessDecision(allowed=False, reason=REASON_NOT_STARTED)
    if end is not None and now > end and not assignment_active:
        return AccessDecision(allowed=False, reason=REASON_ENDED)
    return ALLOW


def check_attempt_limits(
    completed_count: int,
    *,
    has_in_progress: bool,
    repeatable: bool,
    max_attempts: int | None,
) -> AccessDecision:
    if has_in_progress:
        return ALLOW
    if not repeatable and completed_count > 0:
        return AccessDecision(allowed=False, reason=REASON_ALREADY_COMPLETED)
    if max_attempts and completed_count >= max_attempts:
        return AccessDecision(allowed=False, reason=REASON_RETRY_LIMIT)
    return ALLOW


def scope_key_for(assignment: SimulationAssignment | None) -> str:
    return str(assignment.id) if assignment is not None else PUBLIC_SCOPE_KEY


class AccessResolver:
    def __init__(self, assignments: AssignmentStore, clock: Clock = utc_now) -> None:
        self.assignments = assignments
        self.clock = clock

    def resolve_assignment(
        self,
        student: Student,
        simulation: Simulation,
        assignment_id: UUID | None = None,
    ) -> SimulationAssignment | None:
        """Pick the assignment scoping this attempt, or ``None`` for public/self-authored practice."""
        candidates = self.assignments.list_for_student(student.id, simulation.id)

        if assignment_id is not None:
            assignment = next((item for item in candidates if item.id == assignment_id), None)
            if assignment is None:
                if self.assignments.get_assignment(assignment_id) is None:
                    raise NotFoundError('Assignment not found', code='assignment_not_found')
                raise ForbiddenError('You are not assigned to this simulation', code='not_assigned')
            return assignment

        if candidates:
            # Prefer an open assignment, else the most recent one.
            active = [item for item in candidates if item.is_active]
            return (active or candidates)[-1]

        if simulation.is_public or simulation.created_by == student.user_id:
            return None
        raise ForbiddenError('You do not have access to this simulation', code='no_access')

    def date_decision(
        self,
        simulation: Simulation,
        assignment: SimulationAssignment | None,
        now: datetime | None = None,
    ) -> AccessDecision:
        start, end = effective_window(simulation, assignment)
        has_session = False
        if assignment is not None and start is not None:
            has_session = self.assignments.live_session(assignment.id) is not None
        return check_date_access(
            start,
            end,
            now or self.clock(),
            assignment_active=assignment is not None and assignment.is_active,
            has_active_session=has_session,
        )

    def require_open_assignment(self, assignment: SimulationAssignment | None) -> None:
        if assignment is not None and not assignment.is_active:
            raise ForbiddenError('This assignment has been closed', code='assignment_closed')

    def attempt_decision(
        self,
        simulation: Simulation,
        *,
        completed_count: int,
        has_in_progress: bool,
    ) -> AccessDecision:
        return check_attempt_limits(
            completed_count,
            has_in_progress=has_in_progress,
            repeatable=simulation.is_repeatable,
            max_attempts=simulation.max_attempts,
        )
