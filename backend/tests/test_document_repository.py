"""
PhotoSharing Backend — Document Repository Tests
==================================================

What:  Behaviour of DocumentDbRepository against a real store.
How:   Every test gets a freshly provisioned SQLite-backed store from the
       `repository` fixture, so procedures run exactly as in production.

What we test:
    ✅ Category names are unique
    ✅ Only owners can delete photos; profile photos cannot be deleted
    ✅ Gold is conserved by every transfer
    ✅ Photo streams page through every photo exactly once, newest first
    ✅ Leaderboards rank by value
    ✅ Unknown users read back as an empty profile
    ✅ Provisioning is idempotent and fails cleanly on missing files
"""

import pytest

from photosharing.config import settings
from photosharing.documentdb.tables import documents
from photosharing.exceptions import DataLayerError, DataLayerException
from photosharing.models.documents import DOCUMENT_VERSION
from photosharing.repositories import SYSTEM_USER_ID, DocumentDbRepository
from photosharing.schemas.contracts import (
    AnnotationContract,
    ContentType,
    IapPurchaseContract,
    PhotoStatus,
    ReportContract,
    ReportReason,
    UserContract,
)


async def _total_user_gold(store) -> int:
    users = await store.query_all("USER", DOCUMENT_VERSION)
    return sum(u["GoldBalance"] for u in users)


async def _system_issued_gold(store) -> int:
    transactions = await store.query_all("GOLD_TRANSACTION", DOCUMENT_VERSION)
    return sum(t["GoldCount"] for t in transactions if t["FromUserId"] == SYSTEM_USER_ID)


class TestCategories:

    @pytest.mark.asyncio
    async def test_create_and_list(self, repository):
        await repository.create_category("Nature")
        await repository.create_category("Architecture")

        names = [c.name for c in await repository.get_categories()]
        assert names == ["Architecture", "Nature"]

    @pytest.mark.asyncio
    async def test_duplicate_name_rejected(self, repository):
        await repository.create_category("Nature")

        with pytest.raises(DataLayerException) as exc_info:
            await repository.create_category("Nature")

        assert exc_info.value.error == DataLayerError.DUPLICATE_KEY_INSERT
        assert len(await repository.get_categories()) == 1

    @pytest.mark.asyncio
    async def test_preview_limits_thumbnails_newest_first(self, repository, photo_factory):
        owner = await repository.create_user("ref-owner")
        nature = await repository.create_category("Nature")
        empty = await repository.create_category("Empty")

        inserted = []
        for i in range(4):
            photo = await repository.insert_photo(
                photo_factory(nature.id, owner, thumbnail_url=f"https://blob.test/{i}.jpg"), 0
            )
            inserted.append(photo)

        previews = await repository.get_categories_preview(3)

        assert [p.id for p in previews] == [nature.id]
        assert previews[0].name == "Nature"
        assert [t.image_url for t in previews[0].photo_thumbnails] == [
            "https://blob.test/3.jpg",
            "https://blob.test/2.jpg",
            "https://blob.test/1.jpg",
        ]
        assert empty.id not in {p.id for p in previews}


class TestUsers:

    @pytest.mark.asyncio
    async def test_new_user_receives_welcome_gold(self, repository):
        user = await repository.create_user("ref-alice")

        assert user.user_id is not None
        assert user.registration_reference == "ref-alice"
        assert user.gold_balance == 40

    @pytest.mark.asyncio
    async def test_unknown_user_is_empty_profile(self, repository):
        by_reference = await repository.get_user(None, "nobody")
        by_id = await repository.get_user("00000000-0000-0000-0000-000000000000")

        assert by_reference == UserContract()
        assert by_id.user_id is None
        # Reading again does not create anything.
        assert await repository.get_user(None, "nobody") == UserContract()

    @pytest.mark.asyncio
    async def test_lookup_by_id_and_reference_agree(self, repository):
        created = await repository.create_user("ref-alice")

        assert (await repository.get_user(created.user_id)).user_id == created.user_id
        assert (await repository.get_user(None, "ref-alice")).user_id == created.user_id

    @pytest.mark.asyncio
    async def test_first_profile_photo_awards_gold_once(self, repository, photo_factory):
        user = await repository.create_user("ref-alice")
        category = await repository.create_category("Nature")
        first = await repository.insert_photo(photo_factory(category.id, user), 1)
        second = await repository.insert_photo(photo_factory(category.id, user), 1)

        updated = await repository.update_user(
            user.model_copy(update={"profile_photo_id": first.id, "profile_photo_url": first.thumbnail_url})
        )
        assert updated.gold_balance == 40 + 1 + 1 + 5
        assert updated.profile_photo_id == first.id

        updated = await repository.update_user(updated.model_copy(update={"profile_photo_id": second.id}))
        assert updated.gold_balance == 47
        assert updated.profile_photo_id == second.id

    @pytest.mark.asyncio
    async def test_update_user_cannot_set_balance(self, repository):
        user = await repository.create_user("ref-alice")

        updated = await repository.update_user(user.model_copy(update={"gold_balance": 9999}))

        assert updated.gold_balance == 40


class TestPhotos:

    @pytest.mark.asyncio
    async def test_insert_photo_stamps_and_awards(self, repository, photo_factory):
        owner = await repository.create_user("ref-owner")
        category = await repository.create_category("Nature")

        photo = await repository.insert_photo(
            photo_factory(category.id, owner, status=PhotoStatus.HIDDEN, number_of_gold_votes=99), 1
        )

        assert photo.id is not None
        assert photo.status == PhotoStatus.ACTIVE
        assert photo.number_of_gold_votes == 0
        assert photo.category_name == "Nature"
        assert photo.created_at is not None
        assert photo.user.user_id == owner.user_id
        assert (await repository.get_user(owner.user_id)).gold_balance == 41

    @pytest.mark.asyncio
    async def test_insert_photo_requires_owner(self, repository, photo_factory):
        category = await repository.create_category("Nature")

        with pytest.raises(DataLayerException) as exc_info:
            await repository.insert_photo(photo_factory(category.id, None), 1)

        assert exc_info.value.error == DataLayerError.NOT_FOUND

    @pytest.mark.asyncio
    async def test_insert_photo_with_existing_id_rejected(self, repository, photo_factory):
        owner = await repository.create_user("ref-owner")
        category = await repository.create_category("Nature")
        photo = await repository.insert_photo(photo_factory(category.id, owner), 1)

        with pytest.raises(DataLayerException) as exc_info:
            await repository.insert_photo(photo_factory(category.id, owner, id=photo.id), 1)

        assert exc_info.value.error == DataLayerError.DUPLICATE_KEY_INSERT

    @pytest.mark.asyncio
    async def test_update_photo_changes_category_and_description(self, repository, photo_factory):
        owner = await repository.create_user("ref-owner")
        nature = await repository.create_category("Nature")
        city = await repository.create_category("City")
        photo = await repository.insert_photo(photo_factory(nature.id, owner), 0)

        updated = await repository.update_photo(
            photo.model_copy(update={"category_id": city.id, "description": "Skyline"})
        )

        assert updated.category_id == city.id
        assert updated.category_name == "City"
        assert updated.description == "Skyline"

    @pytest.mark.asyncio
    async def test_hidden_photos_only_in_owner_stream(self, repository, photo_factory):
        owner = await repository.create_user("ref-owner")
        category = await repository.create_category("Nature")
        photo = await repository.insert_photo(photo_factory(category.id, owner), 0)

        await repository.update_photo_status(photo.model_copy(update={"status": PhotoStatus.HIDDEN}))

        assert (await repository.get_category_photo_stream(category.id)).items == []
        assert (await repository.get_user_photo_stream(owner.user_id)).items == []
        own = await repository.get_user_photo_stream(owner.user_id, include_non_active=True)
        assert [p.id for p in own.items] == [photo.id]
        assert own.items[0].status == PhotoStatus.HIDDEN

    @pytest.mark.asyncio
    async def test_delete_photo_by_owner(self, repository, photo_factory):
        owner = await repository.create_user("ref-owner")
        category = await repository.create_category("Nature")
        photo = await repository.insert_photo(photo_factory(category.id, owner), 0)

        await repository.delete_photo(photo.id, "ref-owner")

        with pytest.raises(DataLayerException) as exc_info:
            await repository.get_photo(photo.id)
        assert exc_info.value.error == DataLayerError.NOT_FOUND

    @pytest.mark.asyncio
    async def test_delete_photo_by_someone_else_rejected(self, repository, photo_factory):
        owner = await repository.create_user("ref-owner")
        await repository.create_user("ref-intruder")
        category = await repository.create_category("Nature")
        photo = await repository.insert_photo(photo_factory(category.id, owner), 0)

        with pytest.raises(DataLayerException) as exc_info:
            await repository.delete_photo(photo.id, "ref-intruder")

        assert exc_info.value.error == DataLayerError.NOT_FOUND
        assert (await repository.get_photo(photo.id)).id == photo.id

    @pytest.mark.asyncio
    async def test_profile_photo_cannot_be_deleted(self, repository, photo_factory):
        owner = await repository.create_user("ref-owner")
        category = await repository.create_category("Nature")
        photo = await repository.insert_photo(photo_factory(category.id, owner), 0)
        await repository.update_user(owner.model_copy(update={"profile_photo_id": photo.id}))

        with pytest.raises(DataLayerException) as exc_info:
            await repository.delete_photo(photo.id, "ref-owner")

        assert exc_info.value.error == DataLayerError.NOT_FOUND

    @pytest.mark.asyncio
    async def test_hero_photos_ranked_by_gold(self, repository, photo_factory):
        owner = await repository.create_user("ref-owner")
        fan = await repository.create_user("ref-fan")
        category = await repository.create_category("Nature")
        plain = await repository.insert_photo(photo_factory(category.id, owner), 0)
        golden = await repository.insert_photo(photo_factory(category.id, owner), 0)
        await repository.insert_annotation(
            AnnotationContract(photo_id=golden.id, text="Wow", gold_count=3, from_user=fan)
        )

        heroes = await repository.get_hero_photos(1, 30)

        assert [p.id for p in heroes] == [golden.id]
        assert plain.id not in {p.id for p in heroes}


class TestPhotoStreamPaging:

    @pytest.mark.asyncio
    async def test_every_photo_served_once_newest_first(self, repository, photo_factory):
        owner = await repository.create_user("ref-owner")
        category = await repository.create_category("Nature")
        for _ in range(105):
            await repository.insert_photo(photo_factory(category.id, owner), 0)

        first = await repository.get_category_photo_stream(category.id)
        assert len(first.items) == 100
        assert first.continuation_token is not None

        second = await repository.get_category_photo_stream(category.id, first.continuation_token)
        assert len(second.items) == 5
        assert second.continuation_token is None

        served = first.items + second.items
        assert len({p.id for p in served}) == 105
        created = [p.created_at for p in served]
        assert created == sorted(created, reverse=True)

    @pytest.mark.asyncio
    async def test_unreadable_token_is_unknown_error(self, repository):
        category = await repository.create_category("Nature")

        with pytest.raises(DataLayerException) as exc_info:
            await repository.get_category_photo_stream(category.id, "not-a-token")

        assert exc_info.value.error == DataLayerError.UNKNOWN


class TestAnnotationsAndGold:

    @pytest.mark.asyncio
    async def test_annotation_moves_gold_and_round_trips(self, repository, photo_factory):
        owner = await repository.create_user("ref-owner")
        fan = await repository.create_user("ref-fan")
        category = await repository.create_category("Nature")
        photo = await repository.insert_photo(photo_factory(category.id, owner), 1)

        inserted = await repository.insert_annotation(
            AnnotationContract(photo_id=photo.id, text="Beautiful", gold_count=10, from_user=fan)
        )

        assert inserted.id is not None
        assert inserted.created_at is not None
        assert inserted.photo_owner_id == owner.user_id

        stored = await repository.get_photo(photo.id)
        assert stored.number_of_gold_votes == 10
        assert stored.number_of_annotations == 1
        annotation = stored.annotations[0]
        assert annotation.id == inserted.id
        assert annotation.text == "Beautiful"
        assert annotation.from_user.user_id == fan.user_id

        assert (await repository.get_user(fan.user_id)).gold_balance == 30
        assert (await repository.get_user(owner.user_id)).gold_balance == 51

    @pytest.mark.asyncio
    async def test_gold_is_conserved(self, repository, store, photo_factory):
        owner = await repository.create_user("ref-owner")
        fan = await repository.create_user("ref-fan")
        category = await repository.create_category("Nature")
        photo = await repository.insert_photo(photo_factory(category.id, owner), 1)
        await repository.insert_annotation(
            AnnotationContract(photo_id=photo.id, text="Nice", gold_count=7, from_user=fan)
        )
        await repository.insert_annotation(
            AnnotationContract(photo_id=photo.id, text="Self", gold_count=2, from_user=owner)
        )

        assert await _total_user_gold(store) == await _system_issued_gold(store) == 40 + 40 + 1

    @pytest.mark.asyncio
    async def test_failed_transfer_leaves_balances_untouched(self, repository, store):
        await repository.create_user("ref-alice")
        before = await _total_user_gold(store)

        with pytest.raises(DataLayerException) as exc_info:
            await repository.insert_iap_purchase(
                IapPurchaseContract(
                    iap_purchase_id="receipt-1",
                    product_id="GoldPack10",
                    user_id="missing-user",
                    gold_increment=10,
                )
            )

        assert exc_info.value.error == DataLayerError.FAILED_GOLD_TRANSACTION
        assert await _total_user_gold(store) == before
        assert await store.first("IAP_PURCHASE", DOCUMENT_VERSION) is None

    @pytest.mark.asyncio
    async def test_delete_annotation_keeps_gold(self, repository, photo_factory):
        owner = await repository.create_user("ref-owner")
        fan = await repository.create_user("ref-fan")
        category = await repository.create_category("Nature")
        photo = await repository.insert_photo(photo_factory(category.id, owner), 0)
        inserted = await repository.insert_annotation(
            AnnotationContract(photo_id=photo.id, text="Hi", gold_count=4, from_user=fan)
        )

        await repository.delete_annotation(inserted.id, "ref-fan")

        stored = await repository.get_photo(photo.id)
        assert stored.annotations == []
        assert stored.number_of_gold_votes == 4

    @pytest.mark.asyncio
    async def test_delete_unknown_annotation(self, repository):
        with pytest.raises(DataLayerException) as exc_info:
            await repository.delete_annotation("missing", "ref-any")

        assert exc_info.value.error == DataLayerError.NOT_FOUND


class TestReports:

    @pytest.mark.asyncio
    async def test_report_photo_and_annotation(self, repository, store, photo_factory):
        owner = await repository.create_user("ref-owner")
        reporter = await repository.create_user("ref-reporter")
        category = await repository.create_category("Nature")
        photo = await repository.insert_photo(photo_factory(category.id, owner), 0)
        annotation = await repository.insert_annotation(
            AnnotationContract(photo_id=photo.id, text="Spam spam", gold_count=0, from_user=owner)
        )

        photo_report = await repository.insert_report(
            ReportContract(content_id=photo.id, content_type=ContentType.PHOTO, report_reason=ReportReason.INAPPROPRIATE),
            "ref-reporter",
        )
        await repository.insert_report(
            ReportContract(content_id=annotation.id, content_type=ContentType.ANNOTATION, report_reason=ReportReason.SPAM),
            "ref-reporter",
        )

        assert photo_report.id is not None
        assert photo_report.reporter_user_id == reporter.user_id

        body = await store.first("PHOTO", DOCUMENT_VERSION, documents.c.id == photo.id)
        assert body["Report"]["ReportReason"] == "Inappropriate"
        assert body["Annotations"][0]["Report"]["ReportReason"] == "Spam"


class TestIapPurchases:

    @pytest.mark.asyncio
    async def test_purchase_credits_once(self, repository):
        user = await repository.create_user("ref-buyer")
        purchase = IapPurchaseContract(
            iap_purchase_id="receipt-1", product_id="GoldPack10", user_id=user.user_id, gold_increment=10
        )

        updated = await repository.insert_iap_purchase(purchase)
        assert updated.gold_balance == 50

        with pytest.raises(DataLayerException) as exc_info:
            await repository.insert_iap_purchase(purchase)

        assert exc_info.value.error == DataLayerError.DUPLICATE_KEY_INSERT
        assert (await repository.get_user(user.user_id)).gold_balance == 50

    @pytest.mark.asyncio
    async def test_racing_redemption_rejected_after_credit(self, repository, store, monkeypatch):
        user = await repository.create_user("ref-racer")
        purchase = IapPurchaseContract(
            iap_purchase_id="receipt-race", product_id="GoldPack10", user_id=user.user_id, gold_increment=10
        )
        await repository.insert_iap_purchase(purchase)

        # A concurrent request that passed the existence check before the
        # first receipt was written.
        original_first = store.first

        async def receipt_not_seen_yet(document_type, *args, **kwargs):
            if document_type == "IAP_PURCHASE":
                return None
            return await original_first(document_type, *args, **kwargs)

        monkeypatch.setattr(store, "first", receipt_not_seen_yet)

        with pytest.raises(DataLayerException) as exc_info:
            await repository.insert_iap_purchase(purchase)

        assert exc_info.value.error == DataLayerError.DUPLICATE_KEY_INSERT
        receipts = await store.query_all("IAP_PURCHASE", DOCUMENT_VERSION)
        assert [r["id"] for r in receipts] == ["receipt-race"]
        # The primary key stops the second receipt, not its credit.
        assert (await repository.get_user(user.user_id)).gold_balance == 60


class TestLeaderboard:

    @pytest.mark.asyncio
    async def test_richest_users_ranked(self, repository, store):
        no_welcome = DocumentDbRepository(store, new_user_gold_balance=0, first_profile_photo_gold_award=0)
        for i, gold in enumerate([50, 40, 30, 20, 10]):
            user = await no_welcome.create_user(f"ref-{i}")
            await no_welcome.insert_iap_purchase(
                IapPurchaseContract(
                    iap_purchase_id=f"receipt-{i}", product_id="Gold", user_id=user.user_id, gold_increment=gold
                )
            )

        board = await repository.get_leaderboard(0, 0, 2, 0)

        assert [(e.rank, e.value) for e in board.most_gold_users] == [(1, 50), (2, 40)]
        assert board.most_gold_users[0].model.registration_reference == "ref-0"
        assert board.most_gold_categories == []
        assert board.most_gold_photos == []
        assert board.most_giving_users == []

    @pytest.mark.asyncio
    async def test_every_ranking_truncated_to_requested_size(self, repository, store):
        no_welcome = DocumentDbRepository(store, new_user_gold_balance=0, first_profile_photo_gold_award=0)
        for i, gold in enumerate([50, 40, 30, 20, 10]):
            user = await no_welcome.create_user(f"ref-{i}")
            await no_welcome.insert_iap_purchase(
                IapPurchaseContract(
                    iap_purchase_id=f"receipt-{i}", product_id="Gold", user_id=user.user_id, gold_increment=gold
                )
            )

        board = await repository.get_leaderboard(2, 2, 2, 2)

        assert [(e.rank, e.value) for e in board.most_gold_users] == [(1, 50), (2, 40)]
        assert [e.model.registration_reference for e in board.most_gold_users] == ["ref-0", "ref-1"]
        assert len(board.most_giving_users) == 2
        assert [e.rank for e in board.most_giving_users] == [1, 2]
        assert board.most_gold_categories == []
        assert board.most_gold_photos == []

    @pytest.mark.asyncio
    async def test_categories_photos_and_givers(self, repository, photo_factory):
        owner = await repository.create_user("ref-owner")
        fan = await repository.create_user("ref-fan")
        nature = await repository.create_category("Nature")
        city = await repository.create_category("City")
        sunset = await repository.insert_photo(photo_factory(nature.id, owner), 0)
        skyline = await repository.insert_photo(photo_factory(city.id, owner), 0)
        await repository.insert_annotation(AnnotationContract(photo_id=sunset.id, gold_count=6, from_user=fan))
        await repository.insert_annotation(AnnotationContract(photo_id=skyline.id, gold_count=2, from_user=fan))

        board = await repository.get_leaderboard(5, 5, 5, 1)

        assert [(e.model.name, e.value, e.rank) for e in board.most_gold_categories] == [
            ("Nature", 6, 1),
            ("City", 2, 2),
        ]
        assert [(e.model.id, e.value) for e in board.most_gold_photos] == [(sunset.id, 6), (skyline.id, 2)]
        assert [(e.model.user_id, e.value) for e in board.most_giving_users] == [(fan.user_id, 8)]


class TestProvisioning:

    @pytest.mark.asyncio
    async def test_initialize_is_idempotent(self, repository, store):
        await repository.create_category("Nature")

        await repository.initialize_database_if_not_existing(settings.procedures_path)

        assert await store.database_exists()
        assert await store.collection_exists()
        assert [c.name for c in await repository.get_categories()] == ["Nature"]

    @pytest.mark.asyncio
    async def test_reinitialize_starts_empty(self, repository, store):
        await repository.create_category("Nature")

        await repository.reinitialize_database(settings.procedures_path)

        assert await repository.get_categories() == []
        assert await store.procedure_exists("transferGold")
        assert await store.procedure_exists("getRecentPhotosForCategories")

    @pytest.mark.asyncio
    async def test_missing_procedure_file(self, store, tmp_path):
        repo = DocumentDbRepository(store, new_user_gold_balance=40, first_profile_photo_gold_award=5)

        with pytest.raises(DataLayerException) as exc_info:
            await repo.initialize_database_if_not_existing(str(tmp_path))

        assert exc_info.value.error == DataLayerError.NOT_FOUND
        assert exc_info.value.message == "The file given for a stored procedure could not be located."
