"""
PhotoSharing Backend — Caching Repository Decorator
=====================================================

What:  Wraps another Repository and caches its two most expensive reads.
How:   get_categories_preview and get_leaderboard go through
       CacheService.get_or_insert keyed by their arguments. Every other
       operation is forwarded unchanged.

Writes never invalidate the cache. A cached preview or leaderboard stays
stale until the cache service evicts it (its expiration, if configured)
or the process restarts.
"""

from typing import List, Optional

from photosharing.caching import CacheService
from photosharing.repositories.base import Repository
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


class CachedRepository(Repository):

    def __init__(self, repository: Repository, cache_service: CacheService):
        self._repository = repository
        self._cache = cache_service

    # ── Cached reads ──────────────────────────────────────────────────────

    async def get_categories_preview(self, number_of_thumbnails: int) -> List[CategoryPreviewContract]:
        return await self._cache.get_or_insert(
            lambda: self._repository.get_categories_preview(number_of_thumbnails),
            f"GetCategoriesPreview{number_of_thumbnails}",
        )

    async def get_leaderboard(
        self,
        most_gold_categories_count: int,
        most_gold_photos_count: int,
        most_gold_users_count: int,
        most_giving_users_count: int,
    ) -> LeaderboardContract:
        key = (
            f"GetLeaderboard{most_gold_categories_count}{most_gold_photos_count}"
            f"{most_gold_users_count}{most_giving_users_count}"
        )
        return await self._cache.get_or_insert(
            lambda: self._repository.get_leaderboard(
                most_gold_categories_count,
                most_gold_photos_count,
                most_gold_users_count,
                most_giving_users_count,
            ),
            key,
        )

    # ── Pass-through ──────────────────────────────────────────────────────

    async def create_category(self, name: str) -> CategoryContract:
        return await self._repository.create_category(name)

    async def get_categories(self) -> List[CategoryContract]:
        return await self._repository.get_categories()

    async def get_photo(self, photo_id: str) -> PhotoContract:
        return await self._repository.get_photo(photo_id)

    async def get_category_photo_stream(
        self, category_id: str, continuation_token: Optional[str] = None
    ) -> PagedResponse[PhotoContract]:
        return await self._repository.get_category_photo_stream(category_id, continuation_token)

    async def get_user_photo_stream(
        self,
        user_id: str,
        continuation_token: Optional[str] = None,
        include_non_active: bool = False,
    ) -> PagedResponse[PhotoContract]:
        return await self._repository.get_user_photo_stream(user_id, continuation_token, include_non_active)

    async def get_hero_photos(self, count: int, days_old: int) -> List[PhotoContract]:
        return await self._repository.get_hero_photos(count, days_old)

    async def insert_photo(self, photo: PhotoContract, gold_increment: int) -> PhotoContract:
        return await self._repository.insert_photo(photo, gold_increment)

    async def update_photo(self, photo: PhotoContract) -> PhotoContract:
        return await self._repository.update_photo(photo)

    async def update_photo_status(self, photo: PhotoContract) -> PhotoContract:
        return await self._repository.update_photo_status(photo)

    async def delete_photo(self, photo_id: str, registration_reference: str) -> None:
        await self._repository.delete_photo(photo_id, registration_reference)

    async def insert_annotation(self, annotation: AnnotationContract) -> AnnotationContract:
        return await self._repository.insert_annotation(annotation)

    async def delete_annotation(self, annotation_id: str, registration_reference: str) -> None:
        await self._repository.delete_annotation(annotation_id, registration_reference)

    async def insert_report(self, report: ReportContract, registration_reference: str) -> ReportContract:
        return await self._repository.insert_report(report, registration_reference)

    async def create_user(self, registration_reference: str) -> UserContract:
        return await self._repository.create_user(registration_reference)

    async def get_user(
        self, user_id: Optional[str], registration_reference: Optional[str] = None
    ) -> UserContract:
        return await self._repository.get_user(user_id, registration_reference)

    async def update_user(self, user: UserContract) -> UserContract:
        return await self._repository.update_user(user)

    async def insert_iap_purchase(self, purchase: IapPurchaseContract) -> UserContract:
        return await self._repository.insert_iap_purchase(purchase)

    async def initialize_database_if_not_existing(self, server_path: str) -> None:
        await self._repository.initialize_database_if_not_existing(server_path)

    async def reinitialize_database(self, server_path: str) -> None:
        await self._repository.reinitialize_database(server_path)
