"""
PhotoSharing Backend — Document Store Driver
==============================================

What:  A small document-database driver on top of async SQLAlchemy.
How:   Documents are JSON bodies scoped to a (database, collection) pair.
       Queries always filter on the DocumentType / DocumentVersion
       discriminators, support arbitrary extra predicates over body fields,
       and page with keyset continuation tokens. Server-side procedures are
       Python sources stored next to the documents and executed inside a
       single transaction, so a failing procedure leaves no partial writes.
       Each source is compiled once and reused until its text changes.
Who:   Used only by DocumentDbRepository. Routes never touch the store.

Trust boundary:
       A stored procedure is ordinary Python run inside the API process
       with the process's privileges. Only the provisioning path
       (upsert_procedure, fed from files shipped with the package) writes
       the stored_procedures table; write access to that table is
       equivalent to code execution and must be restricted to the
       service's own database role.

Operation → transaction mapping:
    query / first / read_many / group_sum      one read-only session
    create / replace / delete                  one transaction per call
    execute_procedure                          one transaction for the whole run
"""

import hashlib
import inspect
import logging
import uuid
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import and_, delete, func, insert, or_, select, text, update
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from photosharing.config import settings
from photosharing.documentdb.paging import QueryPage, decode_token, encode_token
from photosharing.documentdb.tables import (
    document_collections,
    document_databases,
    documents,
    int_field,
    metadata,
    stored_procedures,
    text_field,
)
from photosharing.documentdb.timestamps import format_timestamp, utc_now

logger = logging.getLogger(__name__)

# (expression, descending)
OrderBy = Tuple[Any, bool]


# ══════════════════════════════════════════════════════════════════════════
# Driver Errors
# ══════════════════════════════════════════════════════════════════════════

class DocumentStoreError(Exception):
    """Base class for failures reported by the document store."""


class DocumentNotFoundError(DocumentStoreError):
    pass


class DocumentConflictError(DocumentStoreError):
    """A document, database or collection with the same id already exists."""


class ProcedureNotFoundError(DocumentStoreError):
    pass


class ProcedureError(DocumentStoreError):
    """A stored procedure raised; every write it made was rolled back."""


# ══════════════════════════════════════════════════════════════════════════
# Shared Statement Builders
# ══════════════════════════════════════════════════════════════════════════

def _ordering(order_by: Sequence[OrderBy]) -> List[OrderBy]:
    # The id column breaks ties so that keyset pagination is total.
    descending = order_by[-1][1] if order_by else False
    return list(order_by) + [(documents.c.id, descending)]


def _keyset_condition(order: Sequence[OrderBy], keys: Sequence[Any]):
    clauses = []
    for i, (expr, descending) in enumerate(order):
        equal_prefix = [order[j][0] == keys[j] for j in range(i)]
        step = expr < keys[i] if descending else expr > keys[i]
        clauses.append(and_(*equal_prefix, step))
    return or_(*clauses)


def _order_clauses(order: Sequence[OrderBy]):
    return [expr.desc() if descending else expr.asc() for expr, descending in order]


class _Scoped:
    """Statement helpers bound to one database/collection pair."""

    def __init__(self, database_id: str, collection_id: str):
        self.database_id = database_id
        self.collection_id = collection_id

    def _scope(self, document_type: Optional[str] = None, document_version: Optional[str] = None):
        conditions = [
            documents.c.database_id == self.database_id,
            documents.c.collection_id == self.collection_id,
        ]
        if document_type is not None:
            conditions.append(documents.c.document_type == document_type)
        if document_version is not None:
            conditions.append(documents.c.document_version == document_version)
        return and_(*conditions)

    def _select(
        self,
        document_type: Optional[str],
        document_version: Optional[str],
        filters: Iterable[Any],
        order_by: Sequence[OrderBy],
        limit: Optional[int],
    ):
        stmt = select(documents.c.body).where(self._scope(document_type, document_version), *filters)
        if order_by:
            stmt = stmt.order_by(*_order_clauses(_ordering(order_by)))
        if limit is not None:
            stmt = stmt.limit(limit)
        return stmt

    def _insert_values(self, body: Dict[str, Any]) -> Dict[str, Any]:
        if not body.get("id"):
            body["id"] = str(uuid.uuid4())
        return {
            "database_id": self.database_id,
            "collection_id": self.collection_id,
            "id": body["id"],
            "document_type": body["DocumentType"],
            "document_version": body["DocumentVersion"],
            "body": body,
        }

    async def _create(self, session: AsyncSession, body: Dict[str, Any]) -> Dict[str, Any]:
        values = self._insert_values(dict(body))
        try:
            await session.execute(insert(documents).values(**values))
        except IntegrityError as exc:
            raise DocumentConflictError(f"Document '{values['id']}' already exists") from exc
        return values["body"]

    async def _replace(self, session: AsyncSession, body: Dict[str, Any]) -> Dict[str, Any]:
        result = await session.execute(
            update(documents)
            .where(self._scope(), documents.c.id == body["id"])
            .values(
                document_type=body["DocumentType"],
                document_version=body["DocumentVersion"],
                body=body,
            )
        )
        if result.rowcount == 0:
            raise DocumentNotFoundError(f"Document '{body['id']}' does not exist")
        return body


# ══════════════════════════════════════════════════════════════════════════
# Procedure Context
# ══════════════════════════════════════════════════════════════════════════

class ProcedureContext(_Scoped):
    """
    The API a stored procedure sees.

    Every call goes through the procedure's own session, so all reads and
    writes belong to the transaction opened by execute_procedure.
    """

    text_field = staticmethod(text_field)
    int_field = staticmethod(int_field)

    def __init__(self, session: AsyncSession, database_id: str, collection_id: str):
        super().__init__(database_id, collection_id)
        self._session = session

    async def query(
        self,
        document_type: Optional[str],
        document_version: str,
        *filters: Any,
        order_by: Sequence[OrderBy] = (),
        limit: Optional[int] = None,
        for_update: bool = False,
    ) -> List[Dict[str, Any]]:
        stmt = self._select(document_type, document_version, filters, order_by, limit)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self._session.execute(stmt)
        return [dict(body) for body in result.scalars().all()]

    async def create_document(self, body: Dict[str, Any]) -> Dict[str, Any]:
        return await self._create(self._session, body)

    async def replace_document(self, body: Dict[str, Any]) -> Dict[str, Any]:
        return await self._replace(self._session, body)

    @staticmethod
    def now() -> str:
        return format_timestamp(utc_now())


def _load_procedure(procedure_id: str, source: str) -> Callable[..., Any]:
    namespace: Dict[str, Any] = {"__name__": f"procedure_{procedure_id}"}
    try:
        exec(compile(source, f"<procedure:{procedure_id}>", "exec"), namespace)
    except SyntaxError as exc:
        raise ProcedureError(f"Procedure '{procedure_id}' does not compile: {exc}") from exc

    run = namespace.get("run")
    if run is None or not inspect.iscoroutinefunction(run):
        raise ProcedureError(f"Procedure '{procedure_id}' must define 'async def run(context, ...)'")
    return run


# ══════════════════════════════════════════════════════════════════════════
# Document Store
# ══════════════════════════════════════════════════════════════════════════

class DocumentStore(_Scoped):
    """
    Document database driver bound to one database and collection.

    Args:
        engine: Async engine the tables live in
        session_factory: Session factory built on that engine
        database_id / collection_id: Logical scope of every operation
    """

    def __init__(
        self,
        engine: AsyncEngine,
        session_factory: async_sessionmaker[AsyncSession],
        database_id: str,
        collection_id: str,
    ):
        super().__init__(database_id, collection_id)
        self._engine = engine
        self._session_factory = session_factory
        # procedure id → (source digest, compiled run coroutine function)
        self._compiled: Dict[str, Tuple[str, Callable[..., Any]]] = {}

    # ── Schema & Provisioning ─────────────────────────────────────────────

    @retry(
        retry=retry_if_exception_type((OperationalError, OSError)),
        stop=stop_after_attempt(settings.retry_max_attempts),
        wait=wait_exponential_jitter(initial=settings.retry_min_wait, max=settings.retry_max_wait, jitter=1),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def ensure_schema(self) -> None:
        """Create the backing tables; retried while the server is unreachable."""
        async with self._engine.begin() as conn:
            await conn.run_sync(metadata.create_all)

    async def ping(self) -> None:
        async with self._engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def database_exists(self) -> bool:
        async with self._session_factory() as session:
            found = await session.scalar(
                select(document_databases.c.id).where(document_databases.c.id == self.database_id)
            )
        return found is not None

    async def create_database(self) -> None:
        try:
            async with self._session_factory() as session, session.begin():
                await session.execute(insert(document_databases).values(id=self.database_id))
        except IntegrityError as exc:
            raise DocumentConflictError(f"Database '{self.database_id}' already exists") from exc
        logger.info("Created document database '%s'", self.database_id)

    async def delete_database(self) -> None:
        """Drop the database together with every collection, document and procedure in it."""
        async with self._session_factory() as session, session.begin():
            await session.execute(delete(documents).where(documents.c.database_id == self.database_id))
            await session.execute(
                delete(stored_procedures).where(stored_procedures.c.database_id == self.database_id)
            )
            await session.execute(
                delete(document_collections).where(document_collections.c.database_id == self.database_id)
            )
            result = await session.execute(
                delete(document_databases).where(document_databases.c.id == self.database_id)
            )
            if result.rowcount == 0:
                raise DocumentNotFoundError(f"Database '{self.database_id}' does not exist")
        logger.info("Deleted document database '%s'", self.database_id)

    async def collection_exists(self) -> bool:
        async with self._session_factory() as session:
            found = await session.scalar(
                select(document_collections.c.id).where(
                    document_collections.c.database_id == self.database_id,
                    document_collections.c.id == self.collection_id,
                )
            )
        return found is not None

    async def create_collection(self) -> None:
        try:
            async with self._session_factory() as session, session.begin():
                await session.execute(
                    insert(document_collections).values(database_id=self.database_id, id=self.collection_id)
                )
        except IntegrityError as exc:
            raise DocumentConflictError(f"Collection '{self.collection_id}' already exists") from exc
        logger.info("Created document collection '%s/%s'", self.database_id, self.collection_id)

    def _procedure_scope(self, procedure_id: str):
        return and_(
            stored_procedures.c.database_id == self.database_id,
            stored_procedures.c.collection_id == self.collection_id,
            stored_procedures.c.id == procedure_id,
        )

    async def procedure_exists(self, procedure_id: str) -> bool:
        async with self._session_factory() as session:
            found = await session.scalar(select(stored_procedures.c.id).where(self._procedure_scope(procedure_id)))
        return found is not None

    async def upsert_procedure(self, procedure_id: str, body: str) -> None:
        # Reject sources that would only fail at execution time.
        _load_procedure(procedure_id, body)
        async with self._session_factory() as session, session.begin():
            await session.execute(delete(stored_procedures).where(self._procedure_scope(procedure_id)))
            await session.execute(
                insert(stored_procedures).values(
                    database_id=self.database_id,
                    collection_id=self.collection_id,
                    id=procedure_id,
                    body=body,
                )
            )
        logger.info("Stored procedure '%s' upserted", procedure_id)

    # ── Queries ───────────────────────────────────────────────────────────

    async def query(
        self,
        document_type: Optional[str],
        document_version: str,
        *filters: Any,
        order_by: Sequence[OrderBy] = (),
        page_size: Optional[int] = None,
        continuation_token: Optional[str] = None,
    ) -> QueryPage:
        """
        Run a filtered, ordered query and return one page.

        Without page_size every match is returned and the token is None.
        With page_size the returned token resumes right after the last item;
        it is None once the final page has been served.

        Raises:
            InvalidContinuationTokenError: the token cannot be decoded for
                this ordering.
        """
        order = _ordering(order_by)
        keys = [expr.label(f"k{i}") for i, (expr, _) in enumerate(order)]
        stmt = select(documents.c.body, *keys).where(self._scope(document_type, document_version), *filters)
        if continuation_token:
            stmt = stmt.where(_keyset_condition(order, decode_token(continuation_token, len(order))))
        stmt = stmt.order_by(*_order_clauses(order))
        if page_size is not None:
            # One extra row tells us whether another page exists.
            stmt = stmt.limit(page_size + 1)

        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).all()

        next_token = None
        if page_size is not None and len(rows) > page_size:
            rows = rows[:page_size]
            next_token = encode_token(list(rows[-1][1:]))
        return QueryPage(items=[dict(row[0]) for row in rows], continuation_token=next_token)

    async def query_all(
        self,
        document_type: Optional[str],
        document_version: str,
        *filters: Any,
        order_by: Sequence[OrderBy] = (),
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        stmt = self._select(document_type, document_version, filters, order_by, limit)
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [dict(body) for body in result.scalars().all()]

    async def first(
        self,
        document_type: Optional[str],
        document_version: str,
        *filters: Any,
        order_by: Sequence[OrderBy] = (),
    ) -> Optional[Dict[str, Any]]:
        found = await self.query_all(document_type, document_version, *filters, order_by=order_by, limit=1)
        return found[0] if found else None

    async def read_many(
        self,
        ids: Iterable[str],
        document_type: Optional[str],
        document_version: str,
    ) -> List[Dict[str, Any]]:
        """Batch point lookup; missing ids are simply absent from the result."""
        unique_ids = list(dict.fromkeys(i for i in ids if i))
        if not unique_ids:
            return []
        return await self.query_all(document_type, document_version, documents.c.id.in_(unique_ids))

    async def group_sum(
        self,
        document_type: str,
        document_version: str,
        group_field: str,
        sum_field: str,
        limit: Optional[int] = None,
    ) -> List[Tuple[str, int]]:
        """Sum an integer body field per group, largest sums first."""
        group = text_field(group_field)
        total = func.coalesce(func.sum(int_field(sum_field)), 0).label("total")
        stmt = (
            select(group.label("group_key"), total)
            .where(self._scope(document_type, document_version), group.is_not(None))
            .group_by(group)
            .order_by(total.desc(), group.asc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).all()
        return [(row.group_key, int(row.total)) for row in rows]

    # ── Writes ────────────────────────────────────────────────────────────

    async def create_document(self, body: Dict[str, Any]) -> Dict[str, Any]:
        """
        Insert a new document; a missing id is generated.

        Raises:
            DocumentConflictError: a document with that id already exists.
        """
        async with self._session_factory() as session, session.begin():
            return await self._create(session, body)

    async def replace_document(self, body: Dict[str, Any]) -> Dict[str, Any]:
        async with self._session_factory() as session, session.begin():
            return await self._replace(session, body)

    async def delete_document(self, document_id: str) -> None:
        async with self._session_factory() as session, session.begin():
            result = await session.execute(
                delete(documents).where(self._scope(), documents.c.id == document_id)
            )
            if result.rowcount == 0:
                raise DocumentNotFoundError(f"Document '{document_id}' does not exist")

    # ── Procedures ────────────────────────────────────────────────────────

    def _compiled_procedure(self, procedure_id: str, source: str) -> Callable[..., Any]:
        digest = hashlib.sha256(source.encode("utf-8")).hexdigest()
        cached = self._compiled.get(procedure_id)
        if cached is not None and cached[0] == digest:
            return cached[1]

        run = _load_procedure(procedure_id, source)
        self._compiled[procedure_id] = (digest, run)
        logger.debug("Compiled stored procedure '%s'", procedure_id)
        return run

    async def execute_procedure(self, procedure_id: str, *args: Any) -> Any:
        """
        Run a stored procedure atomically.

        The procedure's `run(context, *args)` executes inside one
        transaction; if it raises, everything it wrote is rolled back.

        Raises:
            ProcedureNotFoundError: no procedure with that id is stored.
            ProcedureError: the procedure failed (cause chained).
        """
        async with self._session_factory() as session:
            source = await session.scalar(select(stored_procedures.c.body).where(self._procedure_scope(procedure_id)))
            if source is None:
                raise ProcedureNotFoundError(f"Stored procedure '{procedure_id}' does not exist")
            run = self._compiled_procedure(procedure_id, source)

            # Autobegin above opened a transaction; commit it explicitly
            # only when the procedure finishes cleanly.
            context = ProcedureContext(session, self.database_id, self.collection_id)
            try:
                result = await run(context, *args)
                await session.commit()
            except Exception as exc:
                await session.rollback()
                logger.warning("Stored procedure '%s' aborted and rolled back: %s", procedure_id, exc)
                raise ProcedureError(f"Stored procedure '{procedure_id}' failed: {exc}") from exc
        return result
