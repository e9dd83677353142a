from fastapi import APIRouter

from assessment_engine.api.v1.endpoints import assignments, attempts, grading, health, leaderboard, results


api_router = APIRouter()
api_router.include_router(health.router)
api_router.include_router(attempts.router)
api_router.include_router(results.router)
api_router.include_router(grading.router)
api_router.include_router(leaderboard.router)
api_router.include_router(assignments.router)
