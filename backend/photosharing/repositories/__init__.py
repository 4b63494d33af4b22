from photosharing.repositories.base import Repository
from photosharing.repositories.cached_repository import CachedRepository
from photosharing.repositories.document_repository import SYSTEM_USER_ID, DocumentDbRepository

__all__ = ["CachedRepository", "DocumentDbRepository", "Repository", "SYSTEM_USER_ID"]
