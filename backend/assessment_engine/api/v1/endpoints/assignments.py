from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, status

from assessment_engine.api.deps import Engine, get_engine, require_roles
from assessment_engine.core.actor import Actor
from assessment_engine.schemas.assignment import AssignmentOut, SimulationStatusOut
from assessment_engine.schemas.paper_result import PaperResultsIn
from assessment_engine.schemas.result import ResultListItem
from assessment_engine.services.paper_result_service import PaperEntry


router = APIRouter(tags=['assignments'])


@router.post('/assignments/{assignment_id}/close', response_model=AssignmentOut)
def close_assignment(
    assignment_id: UUID,
    background_tasks: BackgroundTasks,
    actor: Actor = Depends(require_roles('admin', 'staff')),
    engine: Engine = Depends(get_engine),
) -> AssignmentOut:
    assignment = engine.assignment_lifecycle().close_assignment(actor.user_id, assignment_id)
    engine.commit(background_tasks)
    return AssignmentOut.model_validate(assignment)


@router.post('/assignments/{assignment_id}/reopen', response_model=AssignmentOut)
def reopen_assignment(
    assignment_id: UUID,
    background_tasks: BackgroundTasks,
    actor: Actor = Depends(require_roles('admin', 'staff')),
    engine: Engine = Depends(get_engine),
) -> AssignmentOut:
    assignment = engine.assignment_lifecycle().reopen_assignment(actor.user_id, assignment_id)
    engine.commit(background_tasks)
    return AssignmentOut.model_validate(assignment)


@router.post('/simulations/{simulation_id}/reopen', response_model=SimulationStatusOut)
def reopen_simulation(
    simulation_id: UUID,
    background_tasks: BackgroundTasks,
    actor: Actor = Depends(require_roles('admin', 'staff')),
    engine: Engine = Depends(get_engine),
) -> SimulationStatusOut:
    simulation = engine.assignment_lifecycle().reopen_simulation(actor.user_id, simulation_id)
    engine.commit(background_tasks)
    return SimulationStatusOut.model_validate(simulation)


@router.post(
    '/simulations/{simulation_id}/paper-results',
    response_model=list[ResultListItem],
    status_code=status.HTTP_201_CREATED,
)
def record_paper_results(
    simulation_id: UUID,
    payload: PaperResultsIn,
    background_tasks: BackgroundTasks,
    actor: Actor = Depends(require_roles('admin', 'staff')),
    engine: Engine = Depends(get_engine),
) -> list[ResultListItem]:
    entries = [
        PaperEntry(
            student_id=item.student_id,
            present=item.present,
            answers=[answer.to_submitted() for answer in item.answers],
        )
        for item in payload.entries
    ]
    results = engine.paper_results().record(
        actor.user_id, simulation_id, entries, assignment_id=payload.assignment_id
    )
    engine.commit(background_tasks)
    return [ResultListItem.model_validate(item) for item in results]
