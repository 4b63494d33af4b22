"""
PhotoSharing Backend — Category Routes
========================================

What:  Category listing, previews, per-category photo streams and creation.
How:   New category names are sanitized (trimmed, whitespace collapsed,
       title-cased) before the uniqueness check in the repository.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Query

from photosharing.exceptions import DataLayerError, DataLayerException, ServiceFaultError
from photosharing.repositories import Repository
from photosharing.routes.dependencies import get_registration_reference, get_repository
from photosharing.schemas.contracts import (
    CategoryContract,
    CategoryPreviewContract,
    PagedResponse,
    PhotoContract,
    ServiceFaultContract,
)
from photosharing.services import sanitize_category_name

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Categories"])


@router.get(
    "/categories",
    response_model=List[CategoryContract],
    summary="List all categories",
)
async def get_categories(
    repository: Repository = Depends(get_repository),
) -> List[CategoryContract]:
    return await repository.get_categories()


@router.get(
    "/category",
    response_model=List[CategoryPreviewContract],
    responses={500: {"model": ServiceFaultContract}},
    summary="Category previews with their newest thumbnails",
    description=(
        "Returns every category that has photos together with up to "
        "`number_of_thumbnails` of its newest thumbnails. Categories with the "
        "most recent activity come first."
    ),
)
async def get_categories_preview(
    number_of_thumbnails: int = Query(default=6, ge=1, le=100),
    repository: Repository = Depends(get_repository),
) -> List[CategoryPreviewContract]:
    previews = await repository.get_categories_preview(number_of_thumbnails)
    return sorted(
        previews,
        key=lambda preview: preview.photo_thumbnails[0].created_at,
        reverse=True,
    )


@router.get(
    "/category/{category_id}",
    response_model=PagedResponse[PhotoContract],
    responses={500: {"model": ServiceFaultContract}},
    summary="Page through the active photos of a category",
    description="Pass the previous page's `continuation_token` to fetch the next page.",
)
async def get_category_photo_stream(
    category_id: str,
    continuation_token: str | None = Query(default=None),
    repository: Repository = Depends(get_repository),
) -> PagedResponse[PhotoContract]:
    return await repository.get_category_photo_stream(category_id, continuation_token)


@router.post(
    "/category/{name}",
    response_model=CategoryContract,
    responses={
        403: {"description": "Not signed in, or the category exists", "model": ServiceFaultContract},
        500: {"model": ServiceFaultContract},
    },
    summary="Create a category",
)
async def create_category(
    name: str,
    registration_reference: str = Depends(get_registration_reference),
    repository: Repository = Depends(get_repository),
) -> CategoryContract:
    sanitized_name = sanitize_category_name(name)
    try:
        return await repository.create_category(sanitized_name)
    except DataLayerException as exc:
        if exc.error == DataLayerError.DUPLICATE_KEY_INSERT:
            logger.info("Rejected duplicate category '%s'", sanitized_name)
            raise ServiceFaultError.duplicate_category(exc.message) from exc
        raise
