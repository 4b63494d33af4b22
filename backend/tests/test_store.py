"""
PhotoSharing Backend — Document Store Driver Tests
====================================================

What:  DocumentStore behaviour below the repository: writes, keyset
       paging, continuation tokens, aggregation and procedures.
"""

import pytest

from photosharing.database import build_engine
from photosharing.documentdb import (
    DocumentConflictError,
    DocumentNotFoundError,
    InvalidContinuationTokenError,
)
from photosharing.documentdb import store as store_module
from photosharing.documentdb.paging import decode_token, encode_token
from photosharing.documentdb.store import ProcedureError, ProcedureNotFoundError
from photosharing.documentdb.tables import documents, int_field, text_field
from photosharing.exceptions import DataLayerError, DataLayerException

VERSION = "1.0"

FAILING_PROCEDURE = '''
async def run(context, document_id):
    await context.create_document(
        {"DocumentType": "SCRATCH", "DocumentVersion": "1.0", "id": document_id}
    )
    raise RuntimeError("abort after write")
'''

COUNTING_PROCEDURE = '''
async def run(context, document_type):
    return len(await context.query(document_type, "1.0"))
'''


def _doc(doc_id, document_type="ITEM", version=VERSION, **fields):
    return {"DocumentType": document_type, "DocumentVersion": version, "id": doc_id, **fields}


class TestContinuationTokens:

    def test_token_carries_keys(self):
        token = encode_token(["2024-01-01T00:00:00.000000Z", "abc"])

        assert "=" not in token
        assert decode_token(token, 2) == ["2024-01-01T00:00:00.000000Z", "abc"]

    @pytest.mark.parametrize("token", ["not-a-token", "e30", "!!!!"])
    def test_garbage_rejected(self, token):
        with pytest.raises(InvalidContinuationTokenError):
            decode_token(token, 2)

    def test_key_count_must_match_ordering(self):
        with pytest.raises(InvalidContinuationTokenError):
            decode_token(encode_token(["a"]), 2)


class TestDocumentWrites:

    @pytest.mark.asyncio
    async def test_create_generates_id(self, store):
        created = await store.create_document(_doc(None, Name="first"))

        assert created["id"]
        found = await store.first("ITEM", VERSION, documents.c.id == created["id"])
        assert found["Name"] == "first"

    @pytest.mark.asyncio
    async def test_create_with_existing_id_conflicts(self, store):
        await store.create_document(_doc("item-1"))

        with pytest.raises(DocumentConflictError):
            await store.create_document(_doc("item-1"))

    @pytest.mark.asyncio
    async def test_replace_and_delete_missing(self, store):
        with pytest.raises(DocumentNotFoundError):
            await store.replace_document(_doc("ghost"))
        with pytest.raises(DocumentNotFoundError):
            await store.delete_document("ghost")

    @pytest.mark.asyncio
    async def test_other_versions_are_invisible(self, store):
        await store.create_document(_doc("old", version="0.9"))
        await store.create_document(_doc("new"))

        found = await store.query_all("ITEM", VERSION)

        assert [d["id"] for d in found] == ["new"]

    @pytest.mark.asyncio
    async def test_read_many_skips_missing_and_duplicates(self, store):
        await store.create_document(_doc("a"))
        await store.create_document(_doc("b"))

        found = await store.read_many(["a", "a", "missing", None, "b"], "ITEM", VERSION)

        assert sorted(d["id"] for d in found) == ["a", "b"]


class TestQueries:

    @pytest.mark.asyncio
    async def test_keyset_pages_cover_everything_once(self, store):
        for i, score in enumerate([5, 3, 3, 9, 1, 3, 7]):
            await store.create_document(_doc(f"item-{i}", Score=score))

        order = [(int_field("Score"), True)]
        seen, token = [], None
        while True:
            page = await store.query("ITEM", VERSION, order_by=order, page_size=2, continuation_token=token)
            seen.extend(page.items)
            token = page.continuation_token
            if token is None:
                break

        assert len(seen) == 7
        assert len({d["id"] for d in seen}) == 7
        assert [d["Score"] for d in seen] == [9, 7, 5, 3, 3, 3, 1]

    @pytest.mark.asyncio
    async def test_filters_on_body_fields(self, store):
        await store.create_document(_doc("a", Colour="red"))
        await store.create_document(_doc("b", Colour="blue"))

        page = await store.query("ITEM", VERSION, text_field("Colour") == "blue")

        assert [d["id"] for d in page.items] == ["b"]
        assert page.continuation_token is None

    @pytest.mark.asyncio
    async def test_group_sum_largest_first(self, store):
        for doc_id, group, amount in [("1", "x", 2), ("2", "y", 5), ("3", "x", 4), ("4", "z", 1)]:
            await store.create_document(_doc(doc_id, Group=group, Amount=amount))

        totals = await store.group_sum("ITEM", VERSION, "Group", "Amount", limit=2)

        assert totals == [("x", 6), ("y", 5)]


class TestProcedures:

    @pytest.mark.asyncio
    async def test_failed_procedure_rolls_back(self, store):
        await store.upsert_procedure("failing", FAILING_PROCEDURE)

        with pytest.raises(ProcedureError) as exc_info:
            await store.execute_procedure("failing", "scratch-1")

        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert await store.first("SCRATCH", VERSION) is None

    @pytest.mark.asyncio
    async def test_procedure_returns_result(self, store):
        await store.create_document(_doc("a"))
        await store.create_document(_doc("b"))
        await store.upsert_procedure("counting", COUNTING_PROCEDURE)

        assert await store.execute_procedure("counting", "ITEM") == 2

    @pytest.mark.asyncio
    async def test_upsert_replaces_source(self, store):
        await store.upsert_procedure("counting", FAILING_PROCEDURE)
        await store.upsert_procedure("counting", COUNTING_PROCEDURE)

        assert await store.execute_procedure("counting", "ITEM") == 0

    @pytest.mark.asyncio
    async def test_source_compiled_once_until_changed(self, store, monkeypatch):
        await store.upsert_procedure("counting", COUNTING_PROCEDURE)
        compiled = []
        original_load = store_module._load_procedure

        def counting_load(procedure_id, source):
            compiled.append(procedure_id)
            return original_load(procedure_id, source)

        monkeypatch.setattr(store_module, "_load_procedure", counting_load)

        await store.execute_procedure("counting", "ITEM")
        await store.execute_procedure("counting", "ITEM")
        assert compiled == ["counting"]

        await store.upsert_procedure("counting", COUNTING_PROCEDURE + "\n# revised\n")
        compiled.clear()
        await store.execute_procedure("counting", "ITEM")
        await store.execute_procedure("counting", "ITEM")
        assert compiled == ["counting"]

    @pytest.mark.asyncio
    async def test_source_without_run_rejected(self, store):
        with pytest.raises(ProcedureError):
            await store.upsert_procedure("broken", "def helper():\n    return 1\n")

        assert not await store.procedure_exists("broken")

    @pytest.mark.asyncio
    async def test_unknown_procedure(self, store):
        with pytest.raises(ProcedureNotFoundError):
            await store.execute_procedure("missing")


class TestProvisioning:

    @pytest.mark.asyncio
    async def test_delete_database_removes_its_documents(self, store):
        await store.create_database()
        await store.create_collection()
        await store.create_document(_doc("a"))

        await store.delete_database()

        assert not await store.database_exists()
        assert not await store.collection_exists()
        assert await store.query_all("ITEM", VERSION) == []

    @pytest.mark.asyncio
    async def test_create_database_twice_conflicts(self, store):
        await store.create_database()

        with pytest.raises(DocumentConflictError):
            await store.create_database()


class TestEngineConfiguration:

    def test_invalid_url_is_configuration_error(self):
        with pytest.raises(DataLayerException) as exc_info:
            build_engine("definitely not a database url")

        assert exc_info.value.error == DataLayerError.INVALID_CONFIGURATION
