"""Most-gilded recent photos, shown in the app's hero banner."""

from typing import List

from fastapi import APIRouter, Depends, Query

from photosharing.config import settings
from photosharing.repositories import Repository
from photosharing.routes.dependencies import get_repository
from photosharing.schemas.contracts import PhotoContract, ServiceFaultContract

router = APIRouter(prefix="/api", tags=["Photos"])


@router.get(
    "/herophoto",
    response_model=List[PhotoContract],
    responses={500: {"model": ServiceFaultContract}},
    summary="Top photos by gold from the last few weeks",
    description="The age window is the `hero_images_days_old` setting.",
)
async def get_hero_photos(
    count: int = Query(default=1, ge=1, le=100),
    repository: Repository = Depends(get_repository),
) -> List[PhotoContract]:
    return await repository.get_hero_photos(count, settings.hero_images_days_old)
