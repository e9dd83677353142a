from uuid import UUID

from fastapi import APIRouter, Depends, Query

from assessment_engine.api.deps import Engine, get_current_actor, get_engine
from assessment_engine.core.actor import Actor
from assessment_engine.schemas.leaderboard import LeaderboardResponse, LeaderboardRowOut


router = APIRouter(tags=['leaderboard'])


@router.get('/simulations/{simulation_id}/leaderboard', response_model=LeaderboardResponse)
def get_leaderboard(
    simulation_id: UUID,
    assignment_id: UUID | None = Query(default=None),
    limit: int | None = Query(default=None, ge=1, le=500),
    actor: Actor = Depends(get_current_actor),
    engine: Engine = Depends(get_engine),
) -> LeaderboardResponse:
    rows = engine.leaderboard().leaderboard(simulation_id, actor, assignment_id=assignment_id, limit=limit)
    return LeaderboardResponse(
        simulation_id=simulation_id,
        assignment_id=assignment_id,
        items=[LeaderboardRowOut.model_validate(row) for row in rows],
    )
