"""
PhotoSharing Backend — User Photo Stream Routes
=================================================

What:  Pages of photos uploaded by one user.
How:   The caller's own stream includes hidden and flagged photos; another
       user's stream only shows active ones. An unknown user id yields an
       empty page.
"""

from fastapi import APIRouter, Depends, Query

from photosharing.repositories import Repository
from photosharing.routes.dependencies import get_registration_reference, get_repository
from photosharing.schemas.contracts import PagedResponse, PhotoContract, ServiceFaultContract

router = APIRouter(prefix="/api", tags=["User Photos"])


@router.get(
    "/userphoto",
    response_model=PagedResponse[PhotoContract],
    responses={403: {"model": ServiceFaultContract}, 500: {"model": ServiceFaultContract}},
    summary="Page through the signed-in user's photos",
)
async def get_own_photo_stream(
    continuation_token: str | None = Query(default=None),
    registration_reference: str = Depends(get_registration_reference),
    repository: Repository = Depends(get_repository),
) -> PagedResponse[PhotoContract]:
    user = await repository.get_user(None, registration_reference)
    if user.user_id is None:
        return PagedResponse[PhotoContract]()
    return await repository.get_user_photo_stream(user.user_id, continuation_token, include_non_active=True)


@router.get(
    "/userphoto/{user_id}",
    response_model=PagedResponse[PhotoContract],
    responses={500: {"model": ServiceFaultContract}},
    summary="Page through another user's active photos",
)
async def get_user_photo_stream(
    user_id: str,
    continuation_token: str | None = Query(default=None),
    repository: Repository = Depends(get_repository),
) -> PagedResponse[PhotoContract]:
    user = await repository.get_user(user_id)
    if user.user_id is None:
        return PagedResponse[PhotoContract]()
    return await repository.get_user_photo_stream(user.user_id, continuation_token)
