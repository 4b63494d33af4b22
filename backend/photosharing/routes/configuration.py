"""Client configuration: build version and category thumbnail counts."""

from fastapi import APIRouter

from photosharing.config import settings
from photosharing.schemas.contracts import ConfigContract

router = APIRouter(prefix="/api", tags=["Config"])


@router.get("/config", response_model=ConfigContract, summary="Client configuration")
async def get_config() -> ConfigContract:
    return ConfigContract(
        build_version=settings.build_version,
        category_thumbnails_large_form_factor=settings.category_thumbnails_large,
        category_thumbnails_small_form_factor=settings.category_thumbnails_small,
    )
