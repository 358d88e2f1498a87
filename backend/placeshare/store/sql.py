"""
PlaceShare Backend — SQLAlchemy Resource Store
================================================

What:  PlaceStore backed by async SQLAlchemy (PostgreSQL via asyncpg in
       production, SQLite via aiosqlite in tests).
How:   Each read or single-record write opens its own session. with_transaction
       opens a session, runs `fn` inside `session.begin()` and lets the context
       manager commit on success or roll back on any exception (including
       cancellation).

Error translation:
    SQLAlchemyError before anything was staged → StoreUnavailableError
    SQLAlchemyError after work was staged       → TransactionAbortedError
    PlaceShareError raised by `fn`              → re-raised unchanged
    Driver messages never reach the error message; they go to the log.

Query plans:
    get_place:               primary key lookup on places.id
    find_places_by_creator:  places JOIN user_places ON place_id, filtered by
                             places.creator (indexed), ordered by user_places.seq
"""

import logging
from typing import Awaitable, Callable, List, Optional, Tuple, TypeVar

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from placeshare.exceptions import (
    NotFoundError,
    PlaceShareError,
    StoreUnavailableError,
    TransactionAbortedError,
)
from placeshare.models.place import Place
from placeshare.models.user import User, UserPlace
from placeshare.schemas.place import Coordinates, NewPlace, PlaceRecord, UserRecord
from placeshare.store.base import PlaceStore, StoreTransaction

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _to_place_record(row: Place) -> PlaceRecord:
    return PlaceRecord(
        id=row.id,
        title=row.title,
        description=row.description,
        address=row.address,
        location=Coordinates(lat=row.lat, lng=row.lng),
        image=row.image,
        creator=row.creator,
    )


async def _load_user(session: AsyncSession, user_id: str) -> Optional[UserRecord]:
    user = await session.get(User, user_id)
    if user is None:
        return None
    result = await session.execute(
        select(UserPlace.place_id)
        .where(UserPlace.user_id == user_id)
        .order_by(UserPlace.seq)
    )
    return UserRecord(
        id=user.id,
        name=user.name,
        email=user.email,
        places=list(result.scalars().all()),
    )


class SqlTransaction(StoreTransaction):
    """
    Stages writes on one session inside an open `session.begin()` block.

    `staged` flips to True after the first write reaches the database; the
    store uses it to tell an unreachable backend from an aborted transaction.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.staged = False

    async def insert_place(self, place: NewPlace) -> PlaceRecord:
        row = Place(
            title=place.title,
            description=place.description,
            address=place.address,
            lat=place.location.lat,
            lng=place.location.lng,
            image=place.image,
            creator=place.creator,
        )
        self.session.add(row)
        await self.session.flush()  # assigns id inside the transaction
        self.staged = True
        return _to_place_record(row)

    async def append_membership(self, user_id: str, place_id: str) -> None:
        if await self.session.get(User, user_id) is None:
            raise NotFoundError(resource="user", resource_id=user_id)
        self.session.add(UserPlace(user_id=user_id, place_id=place_id))
        try:
            await self.session.flush()
        except IntegrityError as e:
            raise TransactionAbortedError(
                context={"reason": "duplicate_membership", "place_id": place_id},
            ) from e
        self.staged = True

    async def delete_place(self, place_id: str) -> None:
        result = await self.session.execute(delete(Place).where(Place.id == place_id))
        self.staged = True
        if result.rowcount == 0:
            raise NotFoundError(resource="place", resource_id=place_id)

    async def remove_membership(self, user_id: str, place_id: str) -> None:
        result = await self.session.execute(
            delete(UserPlace).where(
                UserPlace.user_id == user_id,
                UserPlace.place_id == place_id,
            )
        )
        self.staged = True
        if result.rowcount == 0:
            if await self.session.get(Place, place_id) is None:
                raise NotFoundError(resource="place", resource_id=place_id)
            raise TransactionAbortedError(
                context={"reason": "missing_membership", "place_id": place_id},
            )


class SqlAlchemyStore(PlaceStore):
    """PlaceStore over an async_sessionmaker."""

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def get_place(self, place_id: str) -> Optional[PlaceRecord]:
        try:
            async with self.session_factory() as session:
                row = await session.get(Place, place_id)
                return _to_place_record(row) if row else None
        except SQLAlchemyError as e:
            raise self._unavailable("get_place", e)

    async def get_place_with_owner(
        self, place_id: str
    ) -> Optional[Tuple[PlaceRecord, Optional[UserRecord]]]:
        try:
            async with self.session_factory() as session:
                row = await session.get(Place, place_id)
                if row is None:
                    return None
                return _to_place_record(row), await _load_user(session, row.creator)
        except SQLAlchemyError as e:
            raise self._unavailable("get_place_with_owner", e)

    async def find_places_by_creator(self, user_id: str) -> List[PlaceRecord]:
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(Place)
                    .join(UserPlace, UserPlace.place_id == Place.id)
                    .where(Place.creator == user_id)
                    .order_by(UserPlace.seq)
                )
                return [_to_place_record(row) for row in result.scalars().all()]
        except SQLAlchemyError as e:
            raise self._unavailable("find_places_by_creator", e)

    async def get_user(self, user_id: str) -> Optional[UserRecord]:
        try:
            async with self.session_factory() as session:
                return await _load_user(session, user_id)
        except SQLAlchemyError as e:
            raise self._unavailable("get_user", e)

    async def add_user(self, name: str, email: str) -> UserRecord:
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    user = User(name=name, email=email)
                    session.add(user)
                return UserRecord(id=user.id, name=user.name, email=user.email)
        except SQLAlchemyError as e:
            raise self._unavailable("add_user", e)

    async def save_place(self, place: PlaceRecord) -> PlaceRecord:
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    result = await session.execute(
                        update(Place)
                        .where(Place.id == place.id)
                        .values(title=place.title, description=place.description)
                    )
                    if result.rowcount == 0:
                        raise NotFoundError(resource="place", resource_id=place.id)
                    row = await session.get(Place, place.id, populate_existing=True)
                    return _to_place_record(row)
        except SQLAlchemyError as e:
            raise self._unavailable("save_place", e)

    async def with_transaction(
        self, fn: Callable[[StoreTransaction], Awaitable[T]]
    ) -> T:
        tx: Optional[SqlTransaction] = None
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    tx = SqlTransaction(session)
                    return await fn(tx)
        except PlaceShareError as e:
            logger.info("Transaction rolled back: %s", e.kind.value)
            raise
        except SQLAlchemyError as e:
            if tx is not None and tx.staged:
                logger.error("Transaction aborted after staging writes: %s", str(e))
                raise TransactionAbortedError(
                    context={"error_type": type(e).__name__},
                ) from e
            raise self._unavailable("with_transaction", e)

    async def ping(self) -> bool:
        try:
            async with self.session_factory() as session:
                await session.execute(select(1))
            return True
        except SQLAlchemyError as e:
            logger.warning("Store ping failed: %s", str(e))
            return False

    @staticmethod
    def _unavailable(operation: str, error: Exception) -> StoreUnavailableError:
        logger.error("Store error during %s: %s", operation, str(error))
        return StoreUnavailableError(
            context={"operation": operation, "error_type": type(error).__name__},
        )
