"""
PhotoSharing Backend — Repository Contract
============================================

What:  The abstract data-access interface every repository implements.
Who:   Implemented by DocumentDbRepository (store-backed) and
       CachedRepository (decorator); consumed by the routes through
       `request.app.state.repository`.

All methods are coroutines. Failures are reported as DataLayerException.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from photosharing.schemas.contracts import (
    AnnotationContract,
    CategoryContract,
    CategoryPreviewContract,
    IapPurchaseContract,
    LeaderboardContract,
    PagedResponse,
    PhotoContract,
    ReportContract,
    UserContract,
)


class Repository(ABC):

    # ── Categories ────────────────────────────────────────────────────────

    @abstractmethod
    async def create_category(self, name: str) -> CategoryContract:
        """Create a category; DUPLICATE_KEY_INSERT when the name exists."""

    @abstractmethod
    async def get_categories(self) -> List[CategoryContract]:
        """All categories sorted by name."""

    @abstractmethod
    async def get_categories_preview(self, number_of_thumbnails: int) -> List[CategoryPreviewContract]:
        """Categories that have photos, each with its newest thumbnails."""

    # ── Photos ────────────────────────────────────────────────────────────

    @abstractmethod
    async def get_photo(self, photo_id: str) -> PhotoContract:
        ...

    @abstractmethod
    async def get_category_photo_stream(
        self, category_id: str, continuation_token: Optional[str] = None
    ) -> PagedResponse[PhotoContract]:
        ...

    @abstractmethod
    async def get_user_photo_stream(
        self,
        user_id: str,
        continuation_token: Optional[str] = None,
        include_non_active: bool = False,
    ) -> PagedResponse[PhotoContract]:
        ...

    @abstractmethod
    async def get_hero_photos(self, count: int, days_old: int) -> List[PhotoContract]:
        ...

    @abstractmethod
    async def insert_photo(self, photo: PhotoContract, gold_increment: int) -> PhotoContract:
        ...

    @abstractmethod
    async def update_photo(self, photo: PhotoContract) -> PhotoContract:
        """Change category and description only."""

    @abstractmethod
    async def update_photo_status(self, photo: PhotoContract) -> PhotoContract:
        """Change status only."""

    @abstractmethod
    async def delete_photo(self, photo_id: str, registration_reference: str) -> None:
        ...

    # ── Annotations & Reports ─────────────────────────────────────────────

    @abstractmethod
    async def insert_annotation(self, annotation: AnnotationContract) -> AnnotationContract:
        ...

    @abstractmethod
    async def delete_annotation(self, annotation_id: str, registration_reference: str) -> None:
        ...

    @abstractmethod
    async def insert_report(self, report: ReportContract, registration_reference: str) -> ReportContract:
        ...

    # ── Users & Gold ──────────────────────────────────────────────────────

    @abstractmethod
    async def create_user(self, registration_reference: str) -> UserContract:
        ...

    @abstractmethod
    async def get_user(
        self, user_id: Optional[str], registration_reference: Optional[str] = None
    ) -> UserContract:
        """The user, or an empty UserContract when none matches."""

    @abstractmethod
    async def update_user(self, user: UserContract) -> UserContract:
        ...

    @abstractmethod
    async def insert_iap_purchase(self, purchase: IapPurchaseContract) -> UserContract:
        ...

    @abstractmethod
    async def get_leaderboard(
        self,
        most_gold_categories_count: int,
        most_gold_photos_count: int,
        most_gold_users_count: int,
        most_giving_users_count: int,
    ) -> LeaderboardContract:
        ...

    # ── Provisioning ──────────────────────────────────────────────────────

    @abstractmethod
    async def initialize_database_if_not_existing(self, server_path: str) -> None:
        ...

    @abstractmethod
    async def reinitialize_database(self, server_path: str) -> None:
        ...
