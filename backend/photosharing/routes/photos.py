"""
PhotoSharing Backend — Photo Routes
=====================================

What:  Read, upload, edit and delete single photos.
How:   Uploads are attributed to the signed-in caller and earn the
       configured new-photo award. Edits require the caller to own the
       photo; deletes are guarded inside the repository.
"""

from fastapi import APIRouter, Depends, Response, status

from photosharing.config import settings
from photosharing.exceptions import ServiceFaultError
from photosharing.repositories import Repository
from photosharing.routes.dependencies import get_photo_validation, get_registration_reference, get_repository
from photosharing.schemas.contracts import PhotoContract, ServiceFaultContract
from photosharing.services import PhotoValidation

router = APIRouter(prefix="/api", tags=["Photos"])

_FAULTS = {
    403: {"description": "Not signed in or not the owner", "model": ServiceFaultContract},
    500: {"description": "Data layer failure", "model": ServiceFaultContract},
}


@router.get(
    "/photo/{photo_id}",
    response_model=PhotoContract,
    responses={500: _FAULTS[500]},
    summary="Get a photo with its owner and annotations",
)
async def get_photo(
    photo_id: str,
    repository: Repository = Depends(get_repository),
) -> PhotoContract:
    return await repository.get_photo(photo_id)


@router.post(
    "/photo",
    response_model=PhotoContract,
    responses=_FAULTS,
    summary="Upload a photo",
    description=(
        "Stores the photo metadata (the image itself is already uploaded to blob "
        "storage) and credits the owner with the new-photo award."
    ),
)
async def insert_photo(
    photo: PhotoContract,
    registration_reference: str = Depends(get_registration_reference),
    repository: Repository = Depends(get_repository),
) -> PhotoContract:
    owner = await repository.get_user(None, registration_reference)
    return await repository.insert_photo(
        photo.model_copy(update={"user": owner}), settings.new_photo_award
    )


@router.put(
    "/photo",
    response_model=PhotoContract,
    responses=_FAULTS,
    summary="Update a photo's category and description",
)
async def update_photo(
    photo: PhotoContract,
    registration_reference: str = Depends(get_registration_reference),
    repository: Repository = Depends(get_repository),
    photo_validation: PhotoValidation = Depends(get_photo_validation),
) -> PhotoContract:
    if not await photo_validation.is_user_photo_owner(registration_reference, photo.id):
        raise ServiceFaultError.not_allowed()
    return await repository.update_photo(photo)


@router.delete(
    "/photo/{photo_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=_FAULTS,
    summary="Delete one of the caller's photos",
)
async def delete_photo(
    photo_id: str,
    registration_reference: str = Depends(get_registration_reference),
    repository: Repository = Depends(get_repository),
) -> Response:
    await repository.delete_photo(photo_id, registration_reference)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
