"""
Mosaic Backend — Application Package Initializer
==================================================

Collaborative image collections: users create collections, contribute
images (normalized to 400×400 PNG), and download a collection as a zip.

Architecture Note:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← normalize, store, record, export
    ├──────────────────┬──────────────────┤
    │  Models/Schemas  │  StorageBackend  │  ← SQLAlchemy + Pydantic │ local / S3
    ├──────────────────┴──────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
