"""Document store driver: tables, continuation tokens and stored procedures."""

from photosharing.documentdb.paging import InvalidContinuationTokenError, QueryPage
from photosharing.documentdb.store import (
    DocumentConflictError,
    DocumentNotFoundError,
    DocumentStore,
    DocumentStoreError,
    ProcedureError,
    ProcedureNotFoundError,
)

__all__ = [
    "DocumentConflictError",
    "DocumentNotFoundError",
    "DocumentStore",
    "DocumentStoreError",
    "InvalidContinuationTokenError",
    "ProcedureError",
    "ProcedureNotFoundError",
    "QueryPage",
]
