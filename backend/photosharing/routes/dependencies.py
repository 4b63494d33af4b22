"""
PhotoSharing Backend — Route Dependencies
===========================================

What:  FastAPI dependencies shared by the routers.
How:   The repository is built once in the lifespan and kept on app.state.
       The caller's identity is the X-Registration-Reference header set by
       the authenticating front end; routes that need a signed-in caller
       depend on get_registration_reference.
"""

from fastapi import Depends, Header, Request

from photosharing.exceptions import ServiceFaultError
from photosharing.repositories import Repository
from photosharing.services import PhotoValidation


def get_repository(request: Request) -> Repository:
    return request.app.state.repository


async def get_registration_reference(
    x_registration_reference: str | None = Header(
        default=None,
        description="Registration reference of the signed-in user",
    ),
) -> str:
    """Resolve the signed-in caller or fail with fault 3000."""
    if not x_registration_reference or not x_registration_reference.strip():
        raise ServiceFaultError.user_null()
    return x_registration_reference.strip()


def get_photo_validation(repository: Repository = Depends(get_repository)) -> PhotoValidation:
    return PhotoValidation(repository)
