from __future__ import annotations

import logging
from uuid import UUID

from assessment_engine.core.clock import Clock, utc_now
from assessment_engine.core.errors import NotFoundError
from assessment_engine.models import Simulation, SimulationAssignment
from assessment_engine.repositories.ports import AssignmentStore, QuestionBank, ResultRepository
from assessment_engine.services.session_invalidator import SessionInvalidator


logger = logging.getLogger(__name__)


class AssignmentLifecycle:
    def __init__(
        self,
        questions: QuestionBank,
        assignments: AssignmentStore,
        results: ResultRepository,
        clock: Clock = utc_now,
    ) -> None:
        self.questions = questions
        self.assignments = assignments
        self.invalidator = SessionInvalidator(assignments, results, clock=clock)

    def _assignment(self, assignment_id: UUID) -> SimulationAssignment:
        assignment = self.assignments.get_assignment(assignment_id, for_update=True)
        if assignment is None:
            raise NotFoundError('Assignment not found', code='assignment_not_found')
        return assignment

    def close_assignment(self, actor_user_id: UUID, assignment_id: UUID) -> SimulationAssignment:
        assignment = self._assignment(assignment_id)
        self.invalidator.complete_lingering_sessions(assignment_id=assignment.id)
        if assignment.status != 'closed':
            assignment.status = 'closed'
            assignment.updated_by = actor_user_id
            self.assignments.save(assignment)
            logger.info('Closed assignment %s', assignment.id)
        return assignment

    def reopen_assignment(self, actor_user_id: UUID, assignment_id: UUID) -> SimulationAssignment:
        assignment = self._assignment(assignment_id)
        # Every live room of the simulation is completed before reactivation.
        self.invalidator.complete_lingering_sessions(simulation_id=assignment.simulation_id)
        assignment.status = 'active'
        assignment.updated_by = actor_user_id
        self.assignments.save(assignment)
        logger.info('Reopened assignment %s', assignment.id)
        return assignment

    def reopen_simulation(self, actor_user_id: UUID, simulation_id: UUID) -> Simulation:
        simulation = self.questions.get_simulation(simulation_id)
        if simulation is None:
            raise NotFoundError('Simulation not found', code='simulation_not_found')

        self.invalidator.complete_lingering_sessions(simulation_id=simulation.id)
        reopened = 0
        for assignment in self.assignments.list_for_simulation(simulation.id):
            if assignment.status == 'closed':
                assignment.status = 'active'
                assignment.updated_by = actor_user_id
                self.assignments.save(assignment)
                reopened += 1
        if simulation.status == 'closed':
            simulation.status = 'published'
            simulation.updated_by = actor_user_id
            self.assignments.save(simulation)
        logger.info('Reopened simulation %s (%s assignment(s) reactivated)', simulation.id, reopened)
        return simulation
