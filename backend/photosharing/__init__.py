"""
PhotoSharing Backend — Application Package
============================================

What: The photo-sharing app service: a FastAPI surface over a document
      repository that stores categories, photos, users and gold
      transactions as versioned JSON documents.

Layers:
    ┌─────────────────────────────────────┐
    │     Routes (FastAPI routers)        │  ← identity, access checks
    ├─────────────────────────────────────┤
    │  CachedRepository → Repository      │  ← domain operations, gold
    ├─────────────────────────────────────┤
    │  DocumentStore + procedures         │  ← typed JSON documents
    ├─────────────────────────────────────┤
    │  Async SQLAlchemy engine            │  ← PostgreSQL / SQLite
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
