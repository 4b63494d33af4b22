"""
PhotoSharing Backend — Annotation Routes
==========================================

What:  Comment on a photo (optionally giving gold) and remove a comment.
How:   The author is always the signed-in caller. Their balance must cover
       the gold they give before the repository is called.
"""

from fastapi import APIRouter, Depends, Response, status

from photosharing.exceptions import ServiceFaultError
from photosharing.repositories import Repository
from photosharing.routes.dependencies import get_registration_reference, get_repository
from photosharing.schemas.contracts import AnnotationContract, ServiceFaultContract

router = APIRouter(prefix="/api", tags=["Annotations"])


@router.post(
    "/annotation",
    response_model=AnnotationContract,
    responses={
        403: {"description": "Not signed in or balance too low", "model": ServiceFaultContract},
        500: {"model": ServiceFaultContract},
    },
    summary="Annotate a photo",
)
async def insert_annotation(
    annotation: AnnotationContract,
    registration_reference: str = Depends(get_registration_reference),
    repository: Repository = Depends(get_repository),
) -> AnnotationContract:
    author = await repository.get_user(None, registration_reference)
    if author.gold_balance - annotation.gold_count < 0:
        raise ServiceFaultError.user_balance_too_low()

    return await repository.insert_annotation(annotation.model_copy(update={"from_user": author}))


@router.delete(
    "/annotation/{annotation_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={403: {"model": ServiceFaultContract}, 500: {"model": ServiceFaultContract}},
    summary="Remove an annotation",
)
async def delete_annotation(
    annotation_id: str,
    registration_reference: str = Depends(get_registration_reference),
    repository: Repository = Depends(get_repository),
) -> Response:
    await repository.delete_annotation(annotation_id, registration_reference)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
