"""
PlaceShare Backend — In-Memory Resource Store
===============================================

What:  A PlaceStore that keeps users and places in process memory.
How:   Committed state lives in two dicts. with_transaction takes an
       asyncio.Lock, copies the committed state, runs `fn` against the copy
       and swaps the copy in only if `fn` returns. Readers never see staged
       state, and transactions are serialized.
Who:   Tests, and local runs with STORE_BACKEND=memory.
"""

import asyncio
import copy
import logging
import uuid
from typing import Awaitable, Callable, Dict, List, Optional, Tuple, TypeVar

from placeshare.exceptions import (
    NotFoundError,
    PlaceShareError,
    TransactionAbortedError,
)
from placeshare.schemas.place import NewPlace, PlaceRecord, UserRecord
from placeshare.store.base import PlaceStore, StoreTransaction

logger = logging.getLogger(__name__)

T = TypeVar("T")


class MemoryTransaction(StoreTransaction):
    """Stages writes on private copies of the store's dicts."""

    def __init__(self, places: Dict[str, PlaceRecord], users: Dict[str, UserRecord]):
        self.places = places
        self.users = users

    async def insert_place(self, place: NewPlace) -> PlaceRecord:
        record = PlaceRecord(id=str(uuid.uuid4()), **place.model_dump())
        self.places[record.id] = record
        return record.model_copy(deep=True)

    async def append_membership(self, user_id: str, place_id: str) -> None:
        user = self.users.get(user_id)
        if user is None:
            raise NotFoundError(resource="user", resource_id=user_id)
        if place_id in user.places:
            raise TransactionAbortedError(
                context={"reason": "duplicate_membership", "place_id": place_id},
            )
        user.places.append(place_id)

    async def delete_place(self, place_id: str) -> None:
        if self.places.pop(place_id, None) is None:
            raise NotFoundError(resource="place", resource_id=place_id)

    async def remove_membership(self, user_id: str, place_id: str) -> None:
        if place_id not in self.places:
            raise NotFoundError(resource="place", resource_id=place_id)
        user = self.users.get(user_id)
        if user is None or place_id not in user.places:
            raise TransactionAbortedError(
                context={"reason": "missing_membership", "place_id": place_id},
            )
        user.places.remove(place_id)


class MemoryStore(PlaceStore):
    """
    Process-local PlaceStore with the same transaction contract as the SQL store.

    Records handed out are copies; mutating them never changes stored state.
    """

    def __init__(self):
        self._places: Dict[str, PlaceRecord] = {}
        self._users: Dict[str, UserRecord] = {}
        self._lock = asyncio.Lock()

    async def get_place(self, place_id: str) -> Optional[PlaceRecord]:
        place = self._places.get(place_id)
        return place.model_copy(deep=True) if place else None

    async def get_place_with_owner(
        self, place_id: str
    ) -> Optional[Tuple[PlaceRecord, Optional[UserRecord]]]:
        place = await self.get_place(place_id)
        if place is None:
            return None
        return place, await self.get_user(place.creator)

    async def find_places_by_creator(self, user_id: str) -> List[PlaceRecord]:
        user = self._users.get(user_id)
        order = {pid: i for i, pid in enumerate(user.places)} if user else {}
        places = [p for p in self._places.values() if p.creator == user_id]
        places.sort(key=lambda p: order.get(p.id, len(order)))
        return [p.model_copy(deep=True) for p in places]

    async def get_user(self, user_id: str) -> Optional[UserRecord]:
        user = self._users.get(user_id)
        return user.model_copy(deep=True) if user else None

    async def add_user(self, name: str, email: str) -> UserRecord:
        async with self._lock:
            user = UserRecord(id=str(uuid.uuid4()), name=name, email=email)
            self._users[user.id] = user
            return user.model_copy(deep=True)

    async def save_place(self, place: PlaceRecord) -> PlaceRecord:
        async with self._lock:
            current = self._places.get(place.id)
            if current is None:
                raise NotFoundError(resource="place", resource_id=place.id)
            updated = current.model_copy(
                update={"title": place.title, "description": place.description}
            )
            self._places[place.id] = updated
            return updated.model_copy(deep=True)

    async def with_transaction(
        self, fn: Callable[[StoreTransaction], Awaitable[T]]
    ) -> T:
        async with self._lock:
            tx = MemoryTransaction(
                places=dict(self._places),
                users=copy.deepcopy(self._users),
            )
            try:
                result = await fn(tx)
            except PlaceShareError as e:
                logger.info("Memory transaction rolled back: %s", e.kind.value)
                raise
            except Exception as e:
                logger.error("Memory transaction failed: %s", str(e), exc_info=True)
                raise TransactionAbortedError(
                    context={"error_type": type(e).__name__},
                ) from e
            # Commit: both dicts are replaced together
            self._places = tx.places
            self._users = tx.users
            return result

    async def ping(self) -> bool:
        return True
