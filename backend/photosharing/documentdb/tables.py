"""
PhotoSharing Backend — Document Store Tables
==============================================

What:  SQLAlchemy table definitions backing the document store.
How:   Every document lives in `documents` as a JSON body, keyed by
       (database_id, collection_id, id) and tagged with its DocumentType
       and DocumentVersion. Stored procedures keep their source text in
       `stored_procedures`.

Table Design:
    - Composite primary key on documents: the store rejects a second insert
      of the same id even when two callers pass the existence check at once.
    - document_type / document_version are real columns (not JSON paths) so
      the type/version discriminator filter every query applies is indexed.
    - The JSON body holds the remaining fields exactly as the document
      models serialize them (PascalCase keys, ISO-8601 UTC timestamps).
"""

from sqlalchemy import JSON, Column, Index, PrimaryKeyConstraint, String, Table, Text, cast

from photosharing.database import Base

metadata = Base.metadata

document_databases = Table(
    "document_databases",
    metadata,
    Column("id", String(255), primary_key=True),
)

document_collections = Table(
    "document_collections",
    metadata,
    Column("database_id", String(255), nullable=False),
    Column("id", String(255), nullable=False),
    PrimaryKeyConstraint("database_id", "id"),
)

documents = Table(
    "documents",
    metadata,
    Column("database_id", String(255), nullable=False),
    Column("collection_id", String(255), nullable=False),
    Column("id", String(255), nullable=False),
    Column("document_type", String(64), nullable=False),
    Column("document_version", String(16), nullable=False),
    Column("body", JSON, nullable=False),
    PrimaryKeyConstraint("database_id", "collection_id", "id"),
    Index("ix_documents_type_version", "database_id", "collection_id", "document_type", "document_version"),
)

stored_procedures = Table(
    "stored_procedures",
    metadata,
    Column("database_id", String(255), nullable=False),
    Column("collection_id", String(255), nullable=False),
    Column("id", String(255), nullable=False),
    Column("body", Text, nullable=False),
    PrimaryKeyConstraint("database_id", "collection_id", "id"),
)


def text_field(name: str):
    """JSON body field compared as text, e.g. text_field("UserId") == user_id."""
    return documents.c.body[name].as_string()


def int_field(name: str):
    """JSON body field compared as an integer (GoldCount, GoldBalance, ...)."""
    return documents.c.body[name].as_integer()


def body_contains(value: str):
    """Text match of a quoted JSON string anywhere in the serialized body."""
    return cast(documents.c.body, String).contains(f'"{value}"', autoescape=True)
