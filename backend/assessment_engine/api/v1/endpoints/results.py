from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Query

from assessment_engine.api.deps import Engine, get_current_actor, get_current_student, get_engine
from assessment_engine.core.actor import Actor
from assessment_engine.models import Student
from assessment_engine.schemas.common import PaginationMeta
from assessment_engine.schemas.result import (
    AnswerReviewOut,
    ResultListItem,
    ResultListResponse,
    ResultReviewOut,
    ScoreSummary,
    SelfCorrectionIn,
)
from assessment_engine.services.result_review_service import ResultReview


router = APIRouter(prefix='/results', tags=['results'])


def _review_out(review: ResultReview) -> ResultReviewOut:
    result = review.result
    return ResultReviewOut(
        id=result.id,
        simulation_id=result.simulation_id,
        simulation_title=review.simulation.title,
        student_id=result.student_id,
        assignment_id=result.assignment_id,
        entry_mode=result.entry_mode,
        started_at=result.started_at,
        completed_at=result.completed_at,
        duration_seconds=result.duration_seconds,
        reviewed_at=result.reviewed_at,
        score=ScoreSummary.model_validate(result),
        passed=review.passed,
        answers_disclosed=review.answers_disclosed,
        correctness_disclosed=review.correctness_disclosed,
        answers=[AnswerReviewOut.model_validate(item) for item in review.answers],
    )


@router.get('', response_model=ResultListResponse)
def list_my_results(
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
    simulation_id: UUID | None = Query(default=None),
    student: Student = Depends(get_current_student),
    engine: Engine = Depends(get_engine),
) -> ResultListResponse:
    items, total = engine.reviewer().my_results(
        student.id, simulation_id=simulation_id, page=page, page_size=page_size
    )
    return ResultListResponse(
        items=[ResultListItem.model_validate(item) for item in items],
        meta=PaginationMeta(page=page, page_size=page_size, total=total),
    )


@router.get('/{result_id}', response_model=ResultReviewOut)
def get_result(
    result_id: UUID,
    actor: Actor = Depends(get_current_actor),
    engine: Engine = Depends(get_engine),
) -> ResultReviewOut:
    return _review_out(engine.reviewer().review(actor, result_id))


@router.post('/{result_id}/self-correct', response_model=ResultReviewOut)
def self_correct(
    result_id: UUID,
    payload: SelfCorrectionIn,
    background_tasks: BackgroundTasks,
    actor: Actor = Depends(get_current_actor),
    student: Student = Depends(get_current_student),
    engine: Engine = Depends(get_engine),
) -> ResultReviewOut:
    engine.self_correction().correct(student, result_id, payload.question_id, payload.is_correct)
    engine.commit(background_tasks)
    return _review_out(engine.reviewer().review(actor, result_id))
