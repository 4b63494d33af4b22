"""Report a photo or annotation as objectionable."""

from fastapi import APIRouter, Depends

from photosharing.repositories import Repository
from photosharing.routes.dependencies import get_registration_reference, get_repository
from photosharing.schemas.contracts import ReportContract, ServiceFaultContract

router = APIRouter(prefix="/api", tags=["Reports"])


@router.post(
    "/report",
    response_model=ReportContract,
    responses={403: {"model": ServiceFaultContract}, 500: {"model": ServiceFaultContract}},
    summary="File a report against a photo or an annotation",
)
async def insert_report(
    report: ReportContract,
    registration_reference: str = Depends(get_registration_reference),
    repository: Repository = Depends(get_repository),
) -> ReportContract:
    return await repository.insert_report(report, registration_reference)
