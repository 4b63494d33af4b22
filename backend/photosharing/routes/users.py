"""
PhotoSharing Backend — User Routes
====================================

What:  The signed-in caller's profile.
How:   GET creates the profile (with welcome gold) on first sight of a
       registration reference. PUT only accepts the caller's own profile
       and a profile photo the caller owns; the stored profile photo URL is
       always that photo's thumbnail.
"""

import logging

from fastapi import APIRouter, Depends

from photosharing.exceptions import ServiceFaultError
from photosharing.repositories import Repository
from photosharing.routes.dependencies import get_registration_reference, get_repository
from photosharing.schemas.contracts import ServiceFaultContract, UserContract

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Users"])


@router.get(
    "/user",
    response_model=UserContract,
    responses={403: {"model": ServiceFaultContract}, 500: {"model": ServiceFaultContract}},
    summary="Get (or create) the signed-in user",
)
async def get_user(
    registration_reference: str = Depends(get_registration_reference),
    repository: Repository = Depends(get_repository),
) -> UserContract:
    current_user = await repository.get_user(None, registration_reference)
    if current_user.registration_reference is None:
        logger.info("First request from a new registration reference, creating user")
        current_user = await repository.create_user(registration_reference)
    return current_user


@router.put(
    "/user",
    response_model=UserContract,
    responses={403: {"model": ServiceFaultContract}, 500: {"model": ServiceFaultContract}},
    summary="Update the signed-in user's profile photo",
)
async def update_user_profile(
    user: UserContract,
    registration_reference: str = Depends(get_registration_reference),
    repository: Repository = Depends(get_repository),
) -> UserContract:
    if registration_reference != user.registration_reference:
        raise ServiceFaultError.not_allowed()

    photo = await repository.get_photo(user.profile_photo_id)
    if photo.user is None or photo.user.user_id != user.user_id:
        raise ServiceFaultError.not_allowed()

    return await repository.update_user(user.model_copy(update={"profile_photo_url": photo.thumbnail_url}))
