"""
PhotoSharing Backend — API Data Contracts
===========================================

What:  Pydantic models exchanged between clients, routes and the repository.
How:   The repository speaks only these contracts; document models in
       photosharing.models.documents convert to and from them. FastAPI uses
       them to validate request bodies and to generate the OpenAPI schema.
"""

import enum
from datetime import datetime
from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


# ══════════════════════════════════════════════════════════════════════════
# Enumerations
# ══════════════════════════════════════════════════════════════════════════

class PhotoStatus(str, enum.Enum):
    ACTIVE = "Active"
    HIDDEN = "Hidden"
    DELETED = "Deleted"
    DOESNT_FIT_CATEGORY = "DoesntFitCategory"
    OBJECTIONABLE_CONTENT = "ObjectionableContent"


class ReportReason(str, enum.Enum):
    SPAM = "Spam"
    INAPPROPRIATE = "Inappropriate"
    HARASSMENT = "Harassment"


class ContentType(str, enum.Enum):
    PHOTO = "Photo"
    ANNOTATION = "Annotation"


# ══════════════════════════════════════════════════════════════════════════
# Core Entities
# ══════════════════════════════════════════════════════════════════════════

class CategoryContract(BaseModel):
    id: Optional[str] = None
    name: str


class UserContract(BaseModel):
    """
    A user profile.

    An instance with every field unset is the "no such user yet" value
    returned by Repository.get_user.
    """

    user_id: Optional[str] = None
    registration_reference: Optional[str] = None
    gold_balance: int = 0
    profile_photo_id: Optional[str] = None
    profile_photo_url: Optional[str] = None
    user_created: Optional[datetime] = None
    user_modified: Optional[datetime] = None


class AnnotationContract(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    created_at: Optional[datetime] = None
    text: Optional[str] = None
    gold_count: int = Field(default=0, ge=0)
    from_user: Optional[UserContract] = Field(default=None, alias="from")
    photo_id: str
    photo_owner_id: Optional[str] = None


class PhotoContract(BaseModel):
    id: Optional[str] = None
    category_id: str
    category_name: Optional[str] = None
    user: Optional[UserContract] = None
    thumbnail_url: str
    standard_url: str
    high_resolution_url: str
    description: Optional[str] = None
    os_platform: str = ""
    status: PhotoStatus = PhotoStatus.ACTIVE
    created_at: Optional[datetime] = None
    modified_at: Optional[datetime] = None
    number_of_gold_votes: int = 0
    number_of_annotations: int = 0
    annotations: List[AnnotationContract] = Field(default_factory=list)
    rank: Optional[int] = None


class ReportContract(BaseModel):
    id: Optional[str] = None
    active: bool = True
    content_id: str
    content_type: ContentType
    created_at: Optional[datetime] = None
    reporter_user_id: Optional[str] = None
    report_reason: ReportReason


class IapPurchaseContract(BaseModel):
    iap_purchase_id: str
    product_id: str
    user_id: Optional[str] = None
    gold_increment: int = Field(default=0, ge=0)
    purchase_datetime: Optional[datetime] = None
    expiration_datetime: Optional[datetime] = None


class IapReceiptContract(BaseModel):
    """Request body for POST /api/iap: the raw store receipt XML."""

    data: Optional[str] = None


# ══════════════════════════════════════════════════════════════════════════
# Aggregates & Pages
# ══════════════════════════════════════════════════════════════════════════

class PhotoThumbnailContract(BaseModel):
    created_at: Optional[datetime] = None
    image_url: str


class CategoryPreviewContract(BaseModel):
    id: str
    name: Optional[str] = None
    photo_thumbnails: List[PhotoThumbnailContract] = Field(default_factory=list)


class LeaderboardEntryContract(BaseModel, Generic[T]):
    model: T
    value: int
    rank: int


class LeaderboardContract(BaseModel):
    most_gold_categories: List[LeaderboardEntryContract[CategoryContract]] = Field(default_factory=list)
    most_gold_photos: List[LeaderboardEntryContract[PhotoContract]] = Field(default_factory=list)
    most_gold_users: List[LeaderboardEntryContract[UserContract]] = Field(default_factory=list)
    most_giving_users: List[LeaderboardEntryContract[UserContract]] = Field(default_factory=list)


class PagedResponse(BaseModel, Generic[T]):
    """One page of results; a None continuation_token marks the last page."""

    items: List[T] = Field(default_factory=list)
    continuation_token: Optional[str] = None


# ══════════════════════════════════════════════════════════════════════════
# Service Responses
# ══════════════════════════════════════════════════════════════════════════

class ConfigContract(BaseModel):
    build_version: str
    category_thumbnails_large_form_factor: int = 16
    category_thumbnails_small_form_factor: int = 6


class ServiceFaultContract(BaseModel):
    code: int
    description: str
    source: str
    details: List[str] = Field(default_factory=list)
    request_id: str = ""


class HealthResponse(BaseModel):
    status: str = Field(description="healthy or unhealthy")
    version: str
    database: str = Field(description="connected or disconnected")
    uptime_seconds: float
