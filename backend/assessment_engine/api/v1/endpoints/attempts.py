from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status

from assessment_engine.api.deps import Engine, get_current_student, get_engine
from assessment_engine.models import Student
from assessment_engine.schemas.attempt import (
    AnswerOut,
    AttemptOut,
    AttemptStart,
    AttemptStartResponse,
    CheckpointIn,
    CheckpointResponse,
    PreviewResponse,
    SubmitIn,
)
from assessment_engine.schemas.result import ScoreSummary, SubmitResponse
from assessment_engine.services.access_resolver import effective_window
from assessment_engine.services.checkpoint_codec import EnvelopeSnapshot
from assessment_engine.services.score_aggregator import passed


router = APIRouter(tags=['attempts'])


@router.get('/simulations/{simulation_id}/preview', response_model=PreviewResponse)
def preview_simulation(
    simulation_id: UUID,
    assignment_id: UUID | None = Query(default=None),
    student: Student = Depends(get_current_student),
    engine: Engine = Depends(get_engine),
) -> PreviewResponse:
    preview = engine.attempts().preview(student, simulation_id, assignment_id=assignment_id)
    simulation = preview.simulation
    assignment = preview.assignment
    starts_at, ends_at = effective_window(simulation, assignment)
    return PreviewResponse(
        simulation_id=simulation.id,
        title=simulation.title,
        assignment_id=assignment.id if assignment else None,
        access_mode=simulation.access_mode,
        duration_minutes=simulation.duration_minutes,
        starts_at=starts_at,
        ends_at=ends_at,
        question_count=preview.question_count,
        allowed=preview.decision.allowed,
        reason=preview.decision.reason,
    )


@router.post('/simulations/{simulation_id}/attempts', response_model=AttemptStartResponse)
def start_attempt(
    simulation_id: UUID,
    background_tasks: BackgroundTasks,
    payload: AttemptStart | None = None,
    student: Student = Depends(get_current_student),
    engine: Engine = Depends(get_engine),
) -> AttemptStartResponse:
    payload = payload or AttemptStart()
    started = engine.attempts().start(student, simulation_id, assignment_id=payload.assignment_id)
    engine.commit(background_tasks)

    snapshot = started.snapshot
    response = AttemptStartResponse(
        attempt=AttemptOut.model_validate(started.result),
        resumed=started.resumed,
        answers=[AnswerOut.model_validate(answer) for answer in snapshot.answers],
    )
    if isinstance(snapshot, EnvelopeSnapshot):
        response.section_times = snapshot.section_times
        response.current_section = snapshot.current_section
    return response


@router.put('/attempts/{attempt_id}/checkpoint', response_model=CheckpointResponse)
def save_checkpoint(
    attempt_id: UUID,
    payload: CheckpointIn,
    background_tasks: BackgroundTasks,
    student: Student = Depends(get_current_student),
    engine: Engine = Depends(get_engine),
) -> CheckpointResponse:
    result = engine.attempts().checkpoint(
        student,
        attempt_id,
        [answer.to_submitted() for answer in payload.answers],
        payload.elapsed_seconds,
        section_times=payload.section_times,
        current_section=payload.current_section,
    )
    engine.commit(background_tasks)
    return CheckpointResponse(
        attempt_id=result.id,
        status=result.status,
        duration_seconds=result.duration_seconds,
        saved_answers=len(payload.answers),
    )


@router.post('/attempts/{attempt_id}/submit', response_model=SubmitResponse, status_code=status.HTTP_200_OK)
def submit_attempt(
    attempt_id: UUID,
    background_tasks: BackgroundTasks,
    payload: SubmitIn | None = None,
    student: Student = Depends(get_current_student),
    engine: Engine = Depends(get_engine),
) -> SubmitResponse:
    payload = payload or SubmitIn()
    answers = [answer.to_submitted() for answer in payload.answers] if payload.answers is not None else None
    submitted = engine.attempts().submit(student, attempt_id, answers, payload.total_elapsed)
    engine.commit(background_tasks)

    result = submitted.result
    response = SubmitResponse(
        result_id=result.id,
        status=result.status,
        completed_at=result.completed_at,
        duration_seconds=result.duration_seconds,
    )
    simulation = engine.questions.get_simulation(result.simulation_id)
    if simulation is not None and simulation.show_results:
        response.score = ScoreSummary.model_validate(result)
        response.passed = passed(simulation, result)
    return response
