"""
PlaceShare Backend — Resource Store Package
=============================================

Store Inventory:
    - PlaceStore / StoreTransaction (base.py): the contract
    - SqlAlchemyStore (sql.py): async SQLAlchemy implementation
    - MemoryStore (memory.py): in-process implementation
"""

from placeshare.config import settings
from placeshare.store.base import PlaceStore, StoreTransaction
from placeshare.store.memory import MemoryStore


def build_store() -> PlaceStore:
    """Instantiate the store selected by STORE_BACKEND."""
    if settings.store_backend == "memory":
        return MemoryStore()
    from placeshare.database import async_session_factory
    from placeshare.store.sql import SqlAlchemyStore
    return SqlAlchemyStore(async_session_factory)


__all__ = ["PlaceStore", "StoreTransaction", "MemoryStore", "build_store"]
