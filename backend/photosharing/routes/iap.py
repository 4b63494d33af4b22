"""
PhotoSharing Backend — In-App Purchase Route
==============================================

What:  Redeems a store receipt for gold.
How:   The receipt is parsed, attributed to the signed-in caller and priced
       from the iap_product_gold setting (unknown products are worth 0).
       Each receipt id can be redeemed once; a second attempt is a
       data-layer fault.
"""

import logging

from fastapi import APIRouter, Depends

from photosharing.config import settings
from photosharing.exceptions import ServiceFaultError
from photosharing.repositories import Repository
from photosharing.routes.dependencies import get_registration_reference, get_repository
from photosharing.schemas.contracts import IapReceiptContract, ServiceFaultContract, UserContract
from photosharing.services import iap_validator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["In-App Purchases"])


@router.post(
    "/iap",
    response_model=UserContract,
    responses={
        400: {"description": "Receipt could not be validated", "model": ServiceFaultContract},
        403: {"model": ServiceFaultContract},
        500: {"model": ServiceFaultContract},
    },
    summary="Redeem an in-app purchase receipt",
)
async def insert_iap_purchase(
    receipt: IapReceiptContract | None = None,
    registration_reference: str = Depends(get_registration_reference),
    repository: Repository = Depends(get_repository),
) -> UserContract:
    if receipt is None:
        raise ServiceFaultError.iap_validation("IapController: Receipt is null")

    purchase = iap_validator.validate_receipt(receipt.data)
    user = await repository.get_user(None, registration_reference)

    gold = settings.gold_for_product(purchase.product_id.strip())
    if gold == 0:
        logger.warning("No gold configured for product %s", purchase.product_id)

    return await repository.insert_iap_purchase(
        purchase.model_copy(update={"user_id": user.user_id, "gold_increment": gold})
    )
