"""Gold rankings for categories, photos, holders and givers."""

from fastapi import APIRouter, Depends, Query

from photosharing.repositories import Repository
from photosharing.routes.dependencies import get_repository
from photosharing.schemas.contracts import LeaderboardContract, ServiceFaultContract

router = APIRouter(prefix="/api", tags=["Leaderboard"])


@router.get(
    "/leaderboard",
    response_model=LeaderboardContract,
    responses={500: {"model": ServiceFaultContract}},
    summary="Leaderboard",
    description="Each count bounds the length of the matching list; 0 leaves it empty.",
)
async def get_leaderboard(
    most_gold_categories_count: int = Query(default=5, ge=0, le=100),
    most_gold_photos_count: int = Query(default=5, ge=0, le=100),
    most_gold_users_count: int = Query(default=5, ge=0, le=100),
    most_giving_users_count: int = Query(default=5, ge=0, le=100),
    repository: Repository = Depends(get_repository),
) -> LeaderboardContract:
    return await repository.get_leaderboard(
        most_gold_categories_count,
        most_gold_photos_count,
        most_gold_users_count,
        most_giving_users_count,
    )
