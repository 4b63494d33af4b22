"""
PhotoSharing Backend — Document Models
========================================

What:  Pydantic models for every document kept in the store, plus the
       conversions between documents and API contracts.
How:   Field aliases give the persisted PascalCase names; `to_body()`
       produces the JSON body the driver stores and `from_body()` reads it
       back. Timestamps serialize through format_timestamp so that the
       stored strings sort chronologically.

Document kinds (DocumentType tag):
    CATEGORY, USER, PHOTO, IAP_PURCHASE, GOLD_TRANSACTION
Annotations and reports are embedded; they have no DocumentType of their own.

Every query filters on DOCUMENT_VERSION. Documents written under another
version are invisible to this service.
"""

import enum
from datetime import datetime
from typing import Annotated, Any, ClassVar, Dict, Iterable, List, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, PlainSerializer

from photosharing.documentdb.timestamps import format_timestamp, parse_timestamp
from photosharing.schemas.contracts import (
    AnnotationContract,
    CategoryContract,
    ContentType,
    IapPurchaseContract,
    PhotoContract,
    PhotoStatus,
    ReportContract,
    ReportReason,
    UserContract,
)

DOCUMENT_VERSION = "1.0"


def _to_datetime(value: Any) -> Any:
    if isinstance(value, str):
        return parse_timestamp(value)
    return value


Timestamp = Annotated[
    datetime,
    BeforeValidator(_to_datetime),
    PlainSerializer(format_timestamp, return_type=str),
]


class GoldTransactionType(int, enum.Enum):
    PHOTO_GOLD_TRANSACTION = 101
    CATEGORY_UP_VOTE_TRANSACTION = 102
    WELCOME_GOLD_TRANSACTION = 103
    FIRST_PROFILE_PIC_UPDATE_TRANSACTION = 104
    IAP_GOLD_TRANSACTION = 105


class _Document(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: Optional[str] = None

    def to_body(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_body(cls, body: Dict[str, Any]):
        return cls.model_validate(body)


class BaseDocument(_Document):
    """A top-level document carrying the type/version discriminators."""

    DOCUMENT_TYPE: ClassVar[str] = ""

    document_version: str = Field(default=DOCUMENT_VERSION, alias="DocumentVersion")

    def to_body(self) -> Dict[str, Any]:
        body = super().to_body()
        body["DocumentType"] = self.DOCUMENT_TYPE
        return body


# ── Embedded documents ────────────────────────────────────────────────────

class ReportDocument(_Document):
    active: bool = Field(default=True, alias="Active")
    created_date_time: Optional[Timestamp] = Field(default=None, alias="CreatedDateTime")
    reporter_user_id: Optional[str] = Field(default=None, alias="ReporterUserId")
    report_reason: ReportReason = Field(alias="ReportReason")

    @classmethod
    def from_contract(cls, contract: ReportContract) -> "ReportDocument":
        return cls(
            id=contract.id,
            active=contract.active,
            reporter_user_id=contract.reporter_user_id,
            report_reason=contract.report_reason,
            created_date_time=contract.created_at,
        )

    def to_contract(self, content_id: str, content_type: ContentType) -> ReportContract:
        return ReportContract(
            id=self.id,
            active=self.active,
            created_at=self.created_date_time,
            reporter_user_id=self.reporter_user_id,
            report_reason=self.report_reason,
            content_id=content_id,
            content_type=content_type,
        )


class AnnotationDocument(_Document):
    created_date_time: Optional[Timestamp] = Field(default=None, alias="CreatedDateTime")
    # Author of the annotation
    user_id: str = Field(alias="UserId")
    gold_count: int = Field(default=0, alias="GoldCount")
    report: Optional[ReportDocument] = Field(default=None, alias="Report")
    text: Optional[str] = Field(default=None, alias="Text")

    @classmethod
    def from_contract(cls, contract: AnnotationContract) -> "AnnotationDocument":
        return cls(
            id=contract.id,
            created_date_time=contract.created_at,
            text=contract.text,
            gold_count=contract.gold_count,
            user_id=contract.from_user.user_id if contract.from_user else None,
        )

    def to_contract(
        self,
        author: Optional[UserContract],
        photo_id: str,
        photo_owner_id: str,
    ) -> AnnotationContract:
        return AnnotationContract(
            id=self.id,
            created_at=self.created_date_time,
            text=self.text,
            gold_count=self.gold_count,
            from_user=author,
            photo_id=photo_id,
            photo_owner_id=photo_owner_id,
        )


# ── Top-level documents ───────────────────────────────────────────────────

class CategoryDocument(BaseDocument):
    DOCUMENT_TYPE: ClassVar[str] = "CATEGORY"

    name: str = Field(alias="Name")

    def to_contract(self) -> CategoryContract:
        return CategoryContract(id=self.id, name=self.name)


class UserDocument(BaseDocument):
    DOCUMENT_TYPE: ClassVar[str] = "USER"

    registration_reference: str = Field(alias="RegistrationReference")
    gold_balance: int = Field(default=0, alias="GoldBalance")
    gold_given: int = Field(default=0, alias="GoldGiven")
    profile_photo_id: Optional[str] = Field(default=None, alias="ProfilePhotoId")
    profile_photo_url: Optional[str] = Field(default=None, alias="ProfilePhotoUrl")
    created_date_time: Optional[Timestamp] = Field(default=None, alias="CreatedDateTime")
    modified_date_time: Optional[Timestamp] = Field(default=None, alias="ModifiedDateTime")

    @classmethod
    def from_contract(cls, contract: UserContract) -> "UserDocument":
        # GoldGiven is not part of the contract; callers that replace an
        # existing user carry it over themselves.
        return cls(
            id=contract.user_id,
            registration_reference=contract.registration_reference,
            gold_balance=contract.gold_balance,
            profile_photo_id=contract.profile_photo_id,
            profile_photo_url=contract.profile_photo_url,
            created_date_time=contract.user_created,
            modified_date_time=contract.user_modified,
        )

    def to_contract(self) -> UserContract:
        return UserContract(
            user_id=self.id,
            registration_reference=self.registration_reference,
            gold_balance=self.gold_balance,
            profile_photo_id=self.profile_photo_id,
            profile_photo_url=self.profile_photo_url,
            user_created=self.created_date_time,
            user_modified=self.modified_date_time,
        )


class PhotoDocument(BaseDocument):
    DOCUMENT_TYPE: ClassVar[str] = "PHOTO"

    annotations: List[AnnotationDocument] = Field(default_factory=list, alias="Annotations")
    category_id: str = Field(alias="CategoryId")
    category_name: Optional[str] = Field(default=None, alias="CategoryName")
    created_date_time: Optional[Timestamp] = Field(default=None, alias="CreatedDateTime")
    description: Optional[str] = Field(default=None, alias="Description")
    gold_count: int = Field(default=0, alias="GoldCount")
    high_resolution_url: str = Field(alias="HighResolutionUrl")
    modified_date_time: Optional[Timestamp] = Field(default=None, alias="ModifiedDateTime")
    os_platform: str = Field(default="", alias="OSPlatform")
    report: Optional[ReportDocument] = Field(default=None, alias="Report")
    standard_url: str = Field(alias="StandardUrl")
    status: PhotoStatus = Field(default=PhotoStatus.ACTIVE, alias="Status")
    thumbnail_url: str = Field(alias="ThumbnailUrl")
    user_id: str = Field(alias="UserId")

    @classmethod
    def from_contract(cls, contract: PhotoContract) -> "PhotoDocument":
        return cls(
            id=contract.id,
            category_id=contract.category_id,
            category_name=contract.category_name,
            user_id=contract.user.user_id if contract.user else None,
            thumbnail_url=contract.thumbnail_url,
            standard_url=contract.standard_url,
            high_resolution_url=contract.high_resolution_url,
            description=contract.description,
            created_date_time=contract.created_at,
            modified_date_time=contract.created_at,
            annotations=[AnnotationDocument.from_contract(a) for a in contract.annotations],
            gold_count=contract.number_of_gold_votes,
            os_platform=contract.os_platform,
            status=contract.status,
        )

    def user_ids(self) -> List[str]:
        """Owner plus every annotation author, in first-seen order."""
        return list(dict.fromkeys([self.user_id] + [a.user_id for a in self.annotations]))

    def find_annotation(self, annotation_id: str) -> Optional[AnnotationDocument]:
        return next((a for a in self.annotations if a.id == annotation_id), None)

    def to_contract(self, users: Iterable["UserDocument"]) -> PhotoContract:
        """Build the contract, resolving owner and annotation authors from `users`."""
        by_id = {u.id: u.to_contract() for u in users}
        return PhotoContract(
            id=self.id,
            user=by_id.get(self.user_id),
            category_id=self.category_id,
            category_name=self.category_name,
            thumbnail_url=self.thumbnail_url,
            standard_url=self.standard_url,
            high_resolution_url=self.high_resolution_url,
            description=self.description,
            created_at=self.created_date_time,
            modified_at=self.modified_date_time,
            annotations=[a.to_contract(by_id.get(a.user_id), self.id, self.user_id) for a in self.annotations],
            number_of_gold_votes=self.gold_count,
            number_of_annotations=len(self.annotations),
            os_platform=self.os_platform,
            status=self.status,
        )


class IapPurchaseDocument(BaseDocument):
    DOCUMENT_TYPE: ClassVar[str] = "IAP_PURCHASE"

    user_id: Optional[str] = Field(default=None, alias="UserId")
    product_id: str = Field(alias="ProductId")
    gold_increment: int = Field(default=0, alias="GoldIncrement")
    purchase_datetime: Optional[Timestamp] = Field(default=None, alias="PurchaseDatetime")
    expiration_datetime: Optional[Timestamp] = Field(default=None, alias="ExpirationDatetime")

    @classmethod
    def from_contract(cls, contract: IapPurchaseContract) -> "IapPurchaseDocument":
        return cls(
            id=contract.iap_purchase_id,
            user_id=contract.user_id,
            product_id=contract.product_id,
            gold_increment=contract.gold_increment,
            purchase_datetime=contract.purchase_datetime,
            expiration_datetime=contract.expiration_datetime,
        )


class GoldTransactionDocument(BaseDocument):
    """Ledger entry; only ever written by the transferGold procedure."""

    DOCUMENT_TYPE: ClassVar[str] = "GOLD_TRANSACTION"

    to_user_id: str = Field(alias="ToUserId")
    from_user_id: Optional[str] = Field(default=None, alias="FromUserId")
    transaction_type: GoldTransactionType = Field(alias="TransactionType")
    gold_count: int = Field(alias="GoldCount")
    photo_id: Optional[str] = Field(default=None, alias="PhotoId")
    created_date_time: Optional[Timestamp] = Field(default=None, alias="CreatedDateTime")


