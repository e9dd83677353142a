from __future__ import annotations

import logging
from uuid import UUID

from assessment_engine.core.clock import Clock, ensure_utc, utc_now
from assessment_engine.models import Simulation, SimulationAssignment, SimulationResult
from assessment_engine.repositories.ports import AssignmentStore, ResultRepository


logger = logging.getLogger(__name__)

ROOM_ACCESS_MODE = 'room'


class SessionInvalidator:
    """Keeps proctored-room attempts tied to the round they were started in."""

    def __init__(self, assignments: AssignmentStore, results: ResultRepository, clock: Clock = utc_now) -> None:
        self.assignments = assignments
        self.results = results
        self.clock = clock

    def supersede_stale_attempt(
        self,
        simulation: Simulation,
        assignment: SimulationAssignment | None,
        attempt: SimulationResult | None,
    ) -> SimulationResult | None:
        """Return the attempt to resume, or ``None`` when it was discarded."""
        if attempt is None or assignment is None or simulation.access_mode != ROOM_ACCESS_MODE:
            return attempt

        session = self.assignments.live_session(assignment.id)
        if session is None:
            return attempt

        started_at = ensure_utc(attempt.started_at)
        session_created = ensure_utc(session.created_at)
        if started_at is None or session_created is None or started_at >= session_created:
            return attempt

        logger.info(
            'Discarding attempt %s for student %s: proctored session %s opened after it started',
            attempt.id,
            attempt.student_id,
            session.id,
        )
        self.results.delete(attempt)
        return None

    def complete_lingering_sessions(
        self,
        *,
        simulation_id: UUID | None = None,
        assignment_id: UUID | None = None,
    ) -> int:
        sessions = self.assignments.live_sessions(simulation_id=simulation_id, assignment_id=assignment_id)
        now = self.clock()
        for session in sessions:
            session.status = 'completed'
            session.completed_at = now
            self.assignments.save(session)
        if sessions:
            logger.info(
                'Force-completed %s proctored session(s) (simulation=%s assignment=%s)',
                len(sessions),
                simulation_id,
                assignment_id,
            )
        return len(sessions)
