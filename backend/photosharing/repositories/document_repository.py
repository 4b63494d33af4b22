"""
PhotoSharing Backend — Document Database Repository
=====================================================

What:  The store-backed implementation of the Repository contract.
How:   Reads and writes document models through DocumentStore. Every
       query filters on DocumentType and DOCUMENT_VERSION. All gold moves
       through the transferGold procedure, which runs atomically inside the
       store.

Multi-step writes:
    insert_photo, insert_annotation, insert_iap_purchase, create_user and
    update_user combine a document write with a gold transfer. The two
    steps commit separately and nothing is compensated when the second
    fails. In insert_annotation the transfer commits first, so a failed
    photo replace leaves the gold applied while the annotation write is
    still pending; that state is logged and the error re-raised.

Known races:
    Category names are unique by check-then-insert only. Photo, purchase
    and user ids are additionally protected by the store's primary key,
    which stops a duplicate record but not an effect that committed
    before it. insert_iap_purchase credits the gold before it writes the
    receipt, so two concurrent redemptions of one receipt can both pass
    the existence check and both credit; the primary key then rejects the
    second receipt with DuplicateKeyInsert after its gold has landed.
"""

import asyncio
import logging
import uuid
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import aiofiles
from sqlalchemy.exc import SQLAlchemyError

from photosharing.documentdb import (
    DocumentConflictError,
    DocumentNotFoundError,
    DocumentStore,
    DocumentStoreError,
    InvalidContinuationTokenError,
)
from photosharing.documentdb.procedures import (
    GET_RECENT_PHOTOS_FOR_CATEGORIES_ID,
    PROCEDURE_FILES,
    TRANSFER_GOLD_ID,
)
from photosharing.documentdb.tables import body_contains, documents, int_field, text_field
from photosharing.documentdb.timestamps import format_timestamp, utc_now
from photosharing.exceptions import DataLayerError, DataLayerException
from photosharing.models.documents import (
    DOCUMENT_VERSION,
    AnnotationDocument,
    CategoryDocument,
    GoldTransactionDocument,
    GoldTransactionType,
    IapPurchaseDocument,
    PhotoDocument,
    ReportDocument,
    UserDocument,
)
from photosharing.repositories.base import Repository
from photosharing.schemas.contracts import (
    AnnotationContract,
    CategoryContract,
    CategoryPreviewContract,
    ContentType,
    IapPurchaseContract,
    LeaderboardContract,
    LeaderboardEntryContract,
    PagedResponse,
    PhotoContract,
    PhotoStatus,
    PhotoThumbnailContract,
    ReportContract,
    UserContract,
)

logger = logging.getLogger(__name__)

# Sentinel account that issues platform gold (welcome, awards, purchases)
SYSTEM_USER_ID = "ffffffff-ffff-ffff-ffff-ffffffffffff"

PHOTO_STREAM_PAGE_SIZE = 100

_NEWEST_FIRST = [(text_field("CreatedDateTime"), True)]


class DocumentDbRepository(Repository):
    """
    Repository over the document store.

    Args:
        store: Driver bound to the database and collection to use
        new_user_gold_balance: Welcome gold credited by create_user
        first_profile_photo_gold_award: Gold credited the first time a user
            sets a profile photo
    """

    def __init__(
        self,
        store: DocumentStore,
        new_user_gold_balance: int,
        first_profile_photo_gold_award: int,
        document_version: str = DOCUMENT_VERSION,
    ):
        self._store = store
        self._new_user_gold_balance = new_user_gold_balance
        self._first_profile_photo_gold_award = first_profile_photo_gold_award
        self._version = document_version

    # ══════════════════════════════════════════════════════════════════════
    # Categories
    # ══════════════════════════════════════════════════════════════════════

    async def create_category(self, name: str) -> CategoryContract:
        existing = await self._store.first(
            CategoryDocument.DOCUMENT_TYPE, self._version, text_field("Name") == name
        )
        if existing is not None:
            raise DataLayerException(
                DataLayerError.DUPLICATE_KEY_INSERT, f"Category with name {name} already exists"
            )

        document = CategoryDocument(name=name, document_version=self._version)
        created = CategoryDocument.from_body(await self._store.create_document(document.to_body()))
        logger.info("Category '%s' created with id %s", name, created.id)
        return created.to_contract()

    async def get_categories(self) -> List[CategoryContract]:
        bodies = await self._store.query_all(
            CategoryDocument.DOCUMENT_TYPE, self._version, order_by=[(text_field("Name"), False)]
        )
        return [CategoryDocument.from_body(b).to_contract() for b in bodies]

    async def get_categories_preview(self, number_of_thumbnails: int) -> List[CategoryPreviewContract]:
        """
        Newest thumbnails per category, computed by the
        getRecentPhotosForCategories procedure and grouped here.

        Categories without photos are not represented.
        """
        bodies = await self._store.execute_procedure(
            GET_RECENT_PHOTOS_FOR_CATEGORIES_ID, number_of_thumbnails, self._version
        )

        previews: Dict[str, CategoryPreviewContract] = {}
        for photo in (PhotoDocument.from_body(b) for b in bodies or []):
            preview = previews.get(photo.category_id)
            if preview is None:
                preview = previews[photo.category_id] = CategoryPreviewContract(
                    id=photo.category_id, name=photo.category_name
                )
            preview.photo_thumbnails.append(
                PhotoThumbnailContract(created_at=photo.created_date_time, image_url=photo.thumbnail_url)
            )

        for preview in previews.values():
            preview.photo_thumbnails.sort(key=lambda t: t.created_at, reverse=True)
        return list(previews.values())

    async def _get_category_document(self, category_id: str) -> CategoryDocument:
        body = await self._store.first(
            CategoryDocument.DOCUMENT_TYPE, self._version, documents.c.id == category_id
        )
        if body is None:
            raise DataLayerException(DataLayerError.NOT_FOUND, f"No category with id {category_id} found")
        return CategoryDocument.from_body(body)

    # ══════════════════════════════════════════════════════════════════════
    # Photos
    # ══════════════════════════════════════════════════════════════════════

    async def get_photo(self, photo_id: str) -> PhotoContract:
        document = await self._get_photo_document(photo_id)
        users = await self._get_user_documents(document.user_ids())
        return document.to_contract(users)

    async def get_category_photo_stream(
        self, category_id: str, continuation_token: Optional[str] = None
    ) -> PagedResponse[PhotoContract]:
        return await self._photo_page(
            [
                text_field("CategoryId") == category_id,
                text_field("Status") == PhotoStatus.ACTIVE.value,
            ],
            continuation_token,
        )

    async def get_user_photo_stream(
        self,
        user_id: str,
        continuation_token: Optional[str] = None,
        include_non_active: bool = False,
    ) -> PagedResponse[PhotoContract]:
        filters = [text_field("UserId") == user_id]
        if not include_non_active:
            filters.append(text_field("Status") == PhotoStatus.ACTIVE.value)
        return await self._photo_page(filters, continuation_token)

    async def get_hero_photos(self, count: int, days_old: int) -> List[PhotoContract]:
        cutoff = format_timestamp(utc_now() - timedelta(days=days_old))
        bodies = await self._store.query_all(
            PhotoDocument.DOCUMENT_TYPE,
            self._version,
            text_field("Status") == PhotoStatus.ACTIVE.value,
            text_field("CreatedDateTime") >= cutoff,
            order_by=[(int_field("GoldCount"), True)],
            limit=count,
        )
        return await self._to_photo_contracts(PhotoDocument.from_body(b) for b in bodies)

    async def insert_photo(self, photo: PhotoContract, gold_increment: int) -> PhotoContract:
        if photo.user is None or not photo.user.user_id:
            raise DataLayerException(DataLayerError.NOT_FOUND, "A photo must reference its owner")

        if photo.id and await self._photo_exists(photo.id):
            raise DataLayerException(DataLayerError.DUPLICATE_KEY_INSERT, f"Photo with Id={photo.id} already exists")

        document = PhotoDocument.from_contract(photo)
        document.id = photo.id or str(uuid.uuid4())
        document.document_version = self._version
        document.status = PhotoStatus.ACTIVE
        # GoldCount is the sum of annotation gold, so an upload starts bare.
        document.annotations = []
        document.gold_count = 0
        document.created_date_time = utc_now()
        document.modified_date_time = document.created_date_time
        document.category_name = (await self._get_category_document(photo.category_id)).name

        try:
            await self._store.create_document(document.to_body())
        except DocumentConflictError as exc:
            raise DataLayerException(
                DataLayerError.DUPLICATE_KEY_INSERT, f"Photo with Id={document.id} already exists", exc
            ) from exc

        await self._transfer_gold(
            document.user_id,
            SYSTEM_USER_ID,
            gold_increment,
            GoldTransactionType.PHOTO_GOLD_TRANSACTION,
            document.id,
        )
        return await self.get_photo(document.id)

    async def update_photo(self, photo: PhotoContract) -> PhotoContract:
        document = await self._get_photo_document(photo.id)
        document.category_id = photo.category_id
        document.description = photo.description
        await self._replace_photo_document(document)
        return await self.get_photo(document.id)

    async def update_photo_status(self, photo: PhotoContract) -> PhotoContract:
        document = await self._get_photo_document(photo.id)
        document.status = photo.status
        await self._replace_photo_document(document)
        return await self.get_photo(document.id)

    async def delete_photo(self, photo_id: str, registration_reference: str) -> None:
        """
        Hard-delete a photo owned by the caller.

        Raises NOT_FOUND when the photo is missing, belongs to someone else,
        or is the owner's current profile photo.
        """
        document = await self._get_photo_document(photo_id)
        user = await self._get_user_document_by_registration_reference(registration_reference)

        if document.user_id != user.id:
            raise DataLayerException(
                DataLayerError.NOT_FOUND, f"Photo with id {photo_id} does not belong to the current user"
            )
        if user.profile_photo_id == photo_id:
            raise DataLayerException(
                DataLayerError.NOT_FOUND, f"Photo with id {photo_id} is the user's profile photo"
            )

        try:
            await self._store.delete_document(photo_id)
        except DocumentStoreError as exc:
            raise DataLayerException(DataLayerError.UNKNOWN, str(exc), exc) from exc
        logger.info("Photo %s deleted by its owner %s", photo_id, user.id)

    # ══════════════════════════════════════════════════════════════════════
    # Annotations & Reports
    # ══════════════════════════════════════════════════════════════════════

    async def insert_annotation(self, annotation: AnnotationContract) -> AnnotationContract:
        if annotation.from_user is None or not annotation.from_user.user_id:
            raise DataLayerException(DataLayerError.NOT_FOUND, "An annotation must reference its author")

        annotation = annotation.model_copy(
            update={"id": str(uuid.uuid4()), "created_at": utc_now()}
        )
        document = await self._get_photo_document(annotation.photo_id)

        if document.find_annotation(annotation.id) is not None:
            raise DataLayerException(
                DataLayerError.DUPLICATE_KEY_INSERT, f"Annotation with Id={annotation.id} already exists"
            )

        document.annotations.append(AnnotationDocument.from_contract(annotation))
        document.gold_count += annotation.gold_count

        await self._transfer_gold(
            document.user_id,
            annotation.from_user.user_id,
            annotation.gold_count,
            GoldTransactionType.PHOTO_GOLD_TRANSACTION,
            document.id,
        )

        try:
            await self._replace_photo_document(document)
        except DataLayerException:
            logger.warning(
                "Gold for annotation %s on photo %s was applied but the photo write is pending",
                annotation.id,
                document.id,
            )
            raise

        return annotation.model_copy(update={"photo_owner_id": document.user_id})

    async def delete_annotation(self, annotation_id: str, registration_reference: str) -> None:
        # The caller's identity is accepted but not compared with the author.
        document = await self._get_parent_photo_document(annotation_id)
        document.annotations = [a for a in document.annotations if a.id != annotation_id]
        await self._replace_photo_document(document)

    async def insert_report(self, report: ReportContract, registration_reference: str) -> ReportContract:
        reporter = await self._get_user_document_by_registration_reference(registration_reference)
        report = report.model_copy(
            update={"id": str(uuid.uuid4()), "reporter_user_id": reporter.id, "created_at": utc_now()}
        )
        report_document = ReportDocument.from_contract(report)

        if report.content_type == ContentType.PHOTO:
            document = await self._get_photo_document(report.content_id)
            document.report = report_document
        elif report.content_type == ContentType.ANNOTATION:
            document = await self._get_parent_photo_document(report.content_id)
            document.find_annotation(report.content_id).report = report_document
        else:
            raise DataLayerException(DataLayerError.UNKNOWN, "Unknown report content type")

        await self._replace_photo_document(document)
        logger.info("Report %s filed against %s %s", report.id, report.content_type.value, report.content_id)
        return report

    # ══════════════════════════════════════════════════════════════════════
    # Users & Gold
    # ══════════════════════════════════════════════════════════════════════

    async def create_user(self, registration_reference: str) -> UserContract:
        now = utc_now()
        document = UserDocument(
            registration_reference=registration_reference,
            gold_balance=0,
            gold_given=0,
            created_date_time=now,
            modified_date_time=now,
            document_version=self._version,
        )
        created = UserDocument.from_body(await self._store.create_document(document.to_body()))

        await self._transfer_gold(
            created.id,
            SYSTEM_USER_ID,
            self._new_user_gold_balance,
            GoldTransactionType.WELCOME_GOLD_TRANSACTION,
        )

        created.gold_balance = self._new_user_gold_balance
        logger.info("User %s created with %d welcome gold", created.id, self._new_user_gold_balance)
        return created.to_contract()

    async def get_user(
        self, user_id: Optional[str], registration_reference: Optional[str] = None
    ) -> UserContract:
        try:
            if user_id:
                return (await self._get_user_document(user_id)).to_contract()
            return (await self._get_user_document_by_registration_reference(registration_reference)).to_contract()
        except DataLayerException as exc:
            if exc.error == DataLayerError.NOT_FOUND:
                return UserContract()
            raise DataLayerException(DataLayerError.UNKNOWN, "Unknown error occurred", exc) from exc
        except SQLAlchemyError as exc:
            raise DataLayerException(DataLayerError.UNKNOWN, "Unknown error occurred", exc) from exc

    async def update_user(self, user: UserContract) -> UserContract:
        """
        Replace a user's profile fields.

        Balance and gold given are carried over from the stored document;
        only the transfer procedure changes them. The first time a profile
        photo is set, the configured award is credited after the write.
        """
        existing = await self._get_user_document_by_registration_reference(user.registration_reference)
        first_time_award = existing.profile_photo_id is None and user.profile_photo_id is not None

        document = UserDocument.from_contract(user)
        document.id = existing.id
        document.document_version = self._version
        document.gold_balance = existing.gold_balance
        document.gold_given = existing.gold_given
        document.created_date_time = existing.created_date_time
        document.modified_date_time = utc_now()

        await self._replace_document(document)

        if first_time_award:
            await self._transfer_gold(
                existing.id,
                SYSTEM_USER_ID,
                self._first_profile_photo_gold_award,
                GoldTransactionType.FIRST_PROFILE_PIC_UPDATE_TRANSACTION,
            )

        return await self.get_user(existing.id)

    async def insert_iap_purchase(self, purchase: IapPurchaseContract) -> UserContract:
        existing = await self._store.first(
            IapPurchaseDocument.DOCUMENT_TYPE, self._version, documents.c.id == purchase.iap_purchase_id
        )
        if existing is not None:
            raise DataLayerException(
                DataLayerError.DUPLICATE_KEY_INSERT,
                f"Iap Purchase with Id={purchase.iap_purchase_id} already exists",
            )

        if purchase.gold_increment > 0:
            await self._transfer_gold(
                purchase.user_id,
                SYSTEM_USER_ID,
                purchase.gold_increment,
                GoldTransactionType.IAP_GOLD_TRANSACTION,
            )

        document = IapPurchaseDocument.from_contract(purchase)
        document.document_version = self._version
        try:
            await self._store.create_document(document.to_body())
        except DocumentConflictError as exc:
            raise DataLayerException(
                DataLayerError.DUPLICATE_KEY_INSERT,
                f"Iap Purchase with Id={purchase.iap_purchase_id} already exists",
                exc,
            ) from exc

        return await self.get_user(purchase.user_id)

    async def get_leaderboard(
        self,
        most_gold_categories_count: int,
        most_gold_photos_count: int,
        most_gold_users_count: int,
        most_giving_users_count: int,
    ) -> LeaderboardContract:
        categories, photos, users, givers = await asyncio.gather(
            self._highest_net_worth_categories(most_gold_categories_count),
            self._highest_net_worth_photos(most_gold_photos_count),
            self._highest_users_by("GoldBalance", most_gold_users_count),
            self._highest_users_by("GoldGiven", most_giving_users_count),
        )
        return LeaderboardContract(
            most_gold_categories=categories,
            most_gold_photos=photos,
            most_gold_users=users,
            most_giving_users=givers,
        )

    async def _highest_net_worth_categories(self, count: int) -> List[LeaderboardEntryContract[CategoryContract]]:
        totals = await self._store.group_sum(
            PhotoDocument.DOCUMENT_TYPE, self._version, "CategoryId", "GoldCount", limit=count
        )
        found = await self._store.read_many(
            [category_id for category_id, _ in totals], CategoryDocument.DOCUMENT_TYPE, self._version
        )
        categories = {c.id: c for c in (CategoryDocument.from_body(b) for b in found)}

        entries = []
        for category_id, total in totals:
            category = categories.get(category_id)
            if category is None:
                continue
            entries.append(
                LeaderboardEntryContract[CategoryContract](
                    model=category.to_contract(), value=total, rank=len(entries) + 1
                )
            )
        return entries

    async def _highest_net_worth_photos(self, count: int) -> List[LeaderboardEntryContract[PhotoContract]]:
        bodies = await self._store.query_all(
            PhotoDocument.DOCUMENT_TYPE,
            self._version,
            text_field("Status") == PhotoStatus.ACTIVE.value,
            order_by=[(int_field("GoldCount"), True)],
            limit=count,
        )
        photos = await self._to_photo_contracts(PhotoDocument.from_body(b) for b in bodies)
        return [
            LeaderboardEntryContract[PhotoContract](model=photo, value=photo.number_of_gold_votes, rank=rank)
            for rank, photo in enumerate(photos, start=1)
        ]

    async def _highest_users_by(self, field: str, count: int) -> List[LeaderboardEntryContract[UserContract]]:
        bodies = await self._store.query_all(
            UserDocument.DOCUMENT_TYPE,
            self._version,
            documents.c.id != SYSTEM_USER_ID,
            order_by=[(int_field(field), True)],
            limit=count,
        )
        entries = []
        for rank, body in enumerate(bodies, start=1):
            user = UserDocument.from_body(body)
            value = user.gold_balance if field == "GoldBalance" else user.gold_given
            entries.append(LeaderboardEntryContract[UserContract](model=user.to_contract(), value=value, rank=rank))
        return entries

    async def _transfer_gold(
        self,
        to_user_id: str,
        from_user_id: str,
        gold_value: int,
        transaction_type: GoldTransactionType,
        photo_id: Optional[str] = None,
    ) -> GoldTransactionDocument:
        system_given = from_user_id == SYSTEM_USER_ID
        try:
            body = await self._store.execute_procedure(
                TRANSFER_GOLD_ID,
                to_user_id,
                from_user_id,
                gold_value,
                int(transaction_type),
                photo_id,
                system_given,
                self._version,
            )
        except Exception as exc:
            raise DataLayerException(
                DataLayerError.FAILED_GOLD_TRANSACTION,
                "The gold transaction could not be completed; any unfinished changes have been rolled back.",
                exc,
            ) from exc

        logger.info(
            "Transferred %d gold from %s to %s (%s)",
            gold_value,
            from_user_id,
            to_user_id,
            transaction_type.name,
        )
        return GoldTransactionDocument.from_body(body)

    # ══════════════════════════════════════════════════════════════════════
    # Provisioning
    # ══════════════════════════════════════════════════════════════════════

    async def initialize_database_if_not_existing(self, server_path: str) -> None:
        """
        Create database, collection and procedures when they are missing.

        Raises:
            DataLayerException(NOT_FOUND): a procedure file is missing
            DataLayerException(UNKNOWN): any other provisioning failure
        """
        await self._ensure_schema()
        if not await self._store.database_exists():
            await self._create_database()
        if not await self._store.collection_exists():
            await self._create_collection()

        for procedure_id in PROCEDURE_FILES:
            if not await self._store.procedure_exists(procedure_id):
                await self._upsert_procedure(procedure_id, server_path)

    async def reinitialize_database(self, server_path: str) -> None:
        """Drop the database if present and provision everything from scratch."""
        await self._ensure_schema()
        if await self._store.database_exists():
            await self._store.delete_database()
            logger.warning("Document database dropped for reinitialization")

        await self._create_database()
        await self._create_collection()
        for procedure_id in PROCEDURE_FILES:
            await self._upsert_procedure(procedure_id, server_path)

    async def _ensure_schema(self) -> None:
        try:
            await self._store.ensure_schema()
        except Exception as exc:
            raise DataLayerException(DataLayerError.UNKNOWN, "Failed to prepare the document store", exc) from exc

    async def _create_database(self) -> None:
        try:
            await self._store.create_database()
        except Exception as exc:
            raise DataLayerException(
                DataLayerError.UNKNOWN, f"Failed to create document database {self._store.database_id}", exc
            ) from exc

    async def _create_collection(self) -> None:
        try:
            await self._store.create_collection()
        except Exception as exc:
            raise DataLayerException(
                DataLayerError.UNKNOWN, f"Failed to create document collection {self._store.collection_id}", exc
            ) from exc

    async def _upsert_procedure(self, procedure_id: str, server_path: str) -> None:
        path = Path(server_path) / PROCEDURE_FILES[procedure_id]
        try:
            async with aiofiles.open(path, "r", encoding="utf-8") as f:
                source = await f.read()
        except OSError as exc:
            raise DataLayerException(
                DataLayerError.NOT_FOUND, "The file given for a stored procedure could not be located.", exc
            ) from exc

        try:
            await self._store.upsert_procedure(procedure_id, source)
        except Exception as exc:
            raise DataLayerException(
                DataLayerError.UNKNOWN, "An unknown error occurred while inserting a stored procedure.", exc
            ) from exc

    # ══════════════════════════════════════════════════════════════════════
    # Document Helpers
    # ══════════════════════════════════════════════════════════════════════

    async def _photo_page(self, filters: List[Any], continuation_token: Optional[str]) -> PagedResponse[PhotoContract]:
        try:
            page = await self._store.query(
                PhotoDocument.DOCUMENT_TYPE,
                self._version,
                *filters,
                order_by=_NEWEST_FIRST,
                page_size=PHOTO_STREAM_PAGE_SIZE,
                continuation_token=continuation_token,
            )
        except InvalidContinuationTokenError as exc:
            raise DataLayerException(DataLayerError.UNKNOWN, str(exc), exc) from exc

        items = await self._to_photo_contracts(PhotoDocument.from_body(b) for b in page.items)
        return PagedResponse[PhotoContract](items=items, continuation_token=page.continuation_token)

    async def _to_photo_contracts(self, documents: Iterable[PhotoDocument]) -> List[PhotoContract]:
        """Convert photos, resolving every owner and author in one batch lookup."""
        documents = list(documents)
        user_ids = [user_id for d in documents for user_id in d.user_ids()]
        users = await self._get_user_documents(user_ids)
        return [d.to_contract(users) for d in documents]

    async def _get_user_documents(self, user_ids: Iterable[str]) -> List[UserDocument]:
        bodies = await self._store.read_many(user_ids, UserDocument.DOCUMENT_TYPE, self._version)
        return [UserDocument.from_body(b) for b in bodies]

    async def _photo_exists(self, photo_id: str) -> bool:
        body = await self._store.first(PhotoDocument.DOCUMENT_TYPE, self._version, documents.c.id == photo_id)
        return body is not None

    async def _get_photo_document(self, photo_id: Optional[str]) -> PhotoDocument:
        body = await self._store.first(PhotoDocument.DOCUMENT_TYPE, self._version, documents.c.id == photo_id)
        if body is None:
            raise DataLayerException(DataLayerError.NOT_FOUND, f"No photo with id {photo_id} found")
        return PhotoDocument.from_body(body)

    async def _get_parent_photo_document(self, annotation_id: str) -> PhotoDocument:
        # Narrow the scan with a text match on the serialized body, then
        # confirm against the parsed annotations.
        candidates = await self._store.query_all(
            PhotoDocument.DOCUMENT_TYPE,
            self._version,
            body_contains(annotation_id),
        )
        for body in candidates:
            document = PhotoDocument.from_body(body)
            if document.find_annotation(annotation_id) is not None:
                return document
        raise DataLayerException(DataLayerError.NOT_FOUND, f"No annotation with id {annotation_id} found")

    async def _get_user_document(self, user_id: str) -> UserDocument:
        body = await self._store.first(UserDocument.DOCUMENT_TYPE, self._version, documents.c.id == user_id)
        if body is None:
            raise DataLayerException(DataLayerError.NOT_FOUND, f"No user with id {user_id} found")
        return UserDocument.from_body(body)

    async def _get_user_document_by_registration_reference(self, registration_reference: Optional[str]) -> UserDocument:
        body = await self._store.first(
            UserDocument.DOCUMENT_TYPE,
            self._version,
            text_field("RegistrationReference") == registration_reference,
        )
        if body is None:
            raise DataLayerException(
                DataLayerError.NOT_FOUND, f"No user with registrationReference {registration_reference} found"
            )
        return UserDocument.from_body(body)

    async def _replace_photo_document(self, document: PhotoDocument) -> PhotoDocument:
        """Replace a photo, refreshing its denormalized category name and modified time."""
        document.category_name = (await self._get_category_document(document.category_id)).name
        document.modified_date_time = utc_now()
        return await self._replace_document(document)

    async def _replace_document(self, document):
        try:
            await self._store.replace_document(document.to_body())
        except DocumentNotFoundError as exc:
            raise DataLayerException(DataLayerError.NOT_FOUND, str(exc), exc) from exc
        return document


