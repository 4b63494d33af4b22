"""
PhotoSharing Backend — In-App Purchase Receipt Validation
===========================================================

What:  Turns a store receipt (XML) into an IapPurchaseContract.
How:   Finds the first ProductReceipt element (namespace-agnostic) and
       reads its Id, ProductId, PurchaseDate and ExpirationDate attributes.
       Unparseable dates are left unset.

Signature verification against the store's public certificate is not
performed; every well-formed receipt is treated as validly signed.

Example receipt:
    <Receipt xmlns="http://schemas.microsoft.com/windows/2012/store/receipt">
      <ProductReceipt Id="6bbf4366-..." ProductId="GoldPack10"
                      PurchaseDate="2015-01-05T21:58:37.873Z"
                      ExpirationDate="9999-12-31T00:00:00Z" ... />
    </Receipt>
"""

import logging
import xml.etree.ElementTree as ElementTree
from datetime import datetime, timezone
from typing import Optional

from photosharing.exceptions import IapValidationError, IapValidationException
from photosharing.schemas.contracts import IapPurchaseContract

logger = logging.getLogger(__name__)


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _parse_date(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.debug("Ignoring unparseable receipt date %r", value)
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


class IapValidator:

    def validate_receipt(self, receipt: Optional[str]) -> IapPurchaseContract:
        """
        Parse a receipt and return the purchase it describes.

        Raises:
            IapValidationException: NO_RECEIPT when empty, BAD_SIGNATURE when
                the document is not a receipt.
        """
        if not receipt or not receipt.strip():
            raise IapValidationException(IapValidationError.NO_RECEIPT, "ValidateXmlSignature: no receipt")

        try:
            root = ElementTree.fromstring(receipt)
        except ElementTree.ParseError as exc:
            raise IapValidationException(
                IapValidationError.BAD_SIGNATURE, f"Receipt is not well-formed XML: {exc}"
            ) from exc

        product = next((el for el in root.iter() if _local_name(el.tag) == "ProductReceipt"), None)
        if product is None or not product.get("Id") or not product.get("ProductId"):
            raise IapValidationException(
                IapValidationError.BAD_SIGNATURE, "ValidateXmlSignature: Bad receipt, no product receipt found"
            )

        return IapPurchaseContract(
            iap_purchase_id=product.get("Id"),
            product_id=product.get("ProductId"),
            purchase_datetime=_parse_date(product.get("PurchaseDate")),
            expiration_datetime=_parse_date(product.get("ExpirationDate")),
        )


iap_validator = IapValidator()
