"""
PlaceShare Backend — Application Package
==========================================

Layers:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns, auth dependency
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← PlaceService, Geocoder, blobs
    ├─────────────────────────────────────┤
    │        Store (Persistence)          │  ← PlaceStore: SQL or in-memory
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    └─────────────────────────────────────┘

Failures cross every layer as PlaceShareError and are turned into HTTP
responses in one place (placeshare.responses).
"""

__version__ = "1.0.0"
