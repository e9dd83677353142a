from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Query

from assessment_engine.api.deps import Engine, get_engine, require_roles
from assessment_engine.core.actor import Actor
from assessment_engine.schemas.grading import (
    BatchValidationIn,
    BatchValidationResponse,
    OpenAnswerOut,
    ValidationIn,
)
from assessment_engine.services.grading_service import Validation


router = APIRouter(tags=['grading'])


@router.get('/open-answers', response_model=list[OpenAnswerOut])
def list_pending_open_answers(
    simulation_id: UUID | None = Query(default=None),
    _: Actor = Depends(require_roles('admin', 'staff')),
    engine: Engine = Depends(get_engine),
) -> list[OpenAnswerOut]:
    return [OpenAnswerOut.model_validate(item) for item in engine.grading().list_pending(simulation_id=simulation_id)]


@router.post('/open-answers/{submission_id}/validate', response_model=OpenAnswerOut)
def validate_open_answer(
    submission_id: UUID,
    payload: ValidationIn,
    background_tasks: BackgroundTasks,
    actor: Actor = Depends(require_roles('admin', 'staff')),
    engine: Engine = Depends(get_engine),
) -> OpenAnswerOut:
    submission = engine.grading().validate(actor.user_id, submission_id, payload.manual_score, payload.notes)
    engine.commit(background_tasks)
    return OpenAnswerOut.model_validate(submission)


@router.post('/results/{result_id}/open-answers/validate', response_model=BatchValidationResponse)
def validate_open_answers(
    result_id: UUID,
    payload: BatchValidationIn,
    background_tasks: BackgroundTasks,
    actor: Actor = Depends(require_roles('admin', 'staff')),
    engine: Engine = Depends(get_engine),
) -> BatchValidationResponse:
    result = engine.grading().validate_batch(
        actor.user_id,
        result_id,
        [
            Validation(submission_id=item.submission_id, manual_score=item.manual_score, notes=item.notes)
            for item in payload.validations
        ],
    )
    engine.commit(background_tasks)
    return BatchValidationResponse(
        result_id=result.id,
        pending_open_answers=result.pending_open_answers,
        reviewed_at=result.reviewed_at,
        total_score=result.total_score,
        percentage_score=result.percentage_score,
    )
