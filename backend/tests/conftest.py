"""
PhotoSharing Backend — Test Configuration (conftest.py)
=========================================================

What:  Shared pytest fixtures for the whole suite.
How:   Tests run against a real DocumentStore on a temporary SQLite file
       (aiosqlite), provisioned exactly like production by
       initialize_database_if_not_existing.

Fixtures (all function-scoped):
    ├── store:            DocumentStore on a fresh SQLite file
    ├── repository:       Provisioned DocumentDbRepository over `store`
    ├── photo_factory:    Builds PhotoContract instances for uploads
    └── test_client:      HTTPX AsyncClient wired to the FastAPI app
"""

import os
import tempfile

# Settings are read at import time, so the environment must be in place
# before anything from photosharing is imported.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///" + os.path.join(
    tempfile.mkdtemp(prefix="photosharing_test_"), "app.db"
)
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["INITIALIZE_DATABASE_ON_STARTUP"] = "false"
os.environ["RETRY_MAX_ATTEMPTS"] = "1"
os.environ["RETRY_MIN_WAIT"] = "0"
os.environ["RETRY_MAX_WAIT"] = "0"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from photosharing.caching import MemoryCacheService
from photosharing.config import settings
from photosharing.database import build_engine, build_session_factory, dispose_engine
from photosharing.documentdb import DocumentStore
from photosharing.repositories import CachedRepository, DocumentDbRepository
from photosharing.schemas.contracts import PhotoContract

TEST_DATABASE_ID = "test-database"
TEST_COLLECTION_ID = "test-collection"


@pytest_asyncio.fixture
async def store(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'documents.db'}")
    document_store = DocumentStore(
        engine, build_session_factory(engine), TEST_DATABASE_ID, TEST_COLLECTION_ID
    )
    await document_store.ensure_schema()
    yield document_store
    await dispose_engine(engine)


@pytest_asyncio.fixture
async def repository(store):
    repo = DocumentDbRepository(store, new_user_gold_balance=40, first_profile_photo_gold_award=5)
    await repo.initialize_database_if_not_existing(settings.procedures_path)
    return repo


@pytest.fixture
def photo_factory():
    """
    Returns a builder for upload payloads.

    Usage:
        photo = photo_factory(category.id, owner, description="Sunset")
    """

    def make(category_id, user, **overrides) -> PhotoContract:
        fields = {
            "category_id": category_id,
            "user": user,
            "thumbnail_url": "https://blob.test/photos/thumb.jpg",
            "standard_url": "https://blob.test/photos/standard.jpg",
            "high_resolution_url": "https://blob.test/photos/high.jpg",
            "description": "A photo",
            "os_platform": "Windows",
        }
        fields.update(overrides)
        return PhotoContract(**fields)

    return make


@pytest_asyncio.fixture
async def test_client(store, repository):
    """
    HTTPX AsyncClient talking to the app through ASGITransport.

    ASGITransport does not run the lifespan, so the store and repository
    the lifespan would build are attached to app.state here.
    """
    from photosharing.main import app

    app.state.store = store
    app.state.repository = CachedRepository(repository, MemoryCacheService())

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
