"""
PlaceShare Backend — Abstract Resource Store Interface
========================================================

What:  The contract every resource store implementation must honour.
How:   PlaceStore offers single-record reads and writes plus
       with_transaction(fn), which runs `fn` against a StoreTransaction and
       makes its writes visible only if `fn` returns and the commit succeeds.
Who:   PlaceService depends on this interface only. Implementations:
       SqlAlchemyStore (placeshare.store.sql) and MemoryStore
       (placeshare.store.memory).

Failure contract:
    - Reads and single-record writes raise StoreUnavailableError when the
      backend fails.
    - with_transaction re-raises PlaceShareError raised by `fn` unchanged and
      raises TransactionAbortedError (work staged) or StoreUnavailableError
      (nothing staged) for backend failures. In every case nothing from the
      transaction is visible afterwards.
"""

from abc import ABC, abstractmethod
from typing import Awaitable, Callable, List, Optional, Tuple, TypeVar

from placeshare.schemas.place import NewPlace, PlaceRecord, UserRecord

T = TypeVar("T")


class StoreTransaction(ABC):
    """
    Writes available inside with_transaction.

    Every method stages a change; none is visible to other readers until the
    enclosing transaction commits.
    """

    @abstractmethod
    async def insert_place(self, place: NewPlace) -> PlaceRecord:
        """Stage a new place and return it with its assigned id."""
        ...

    @abstractmethod
    async def append_membership(self, user_id: str, place_id: str) -> None:
        """
        Stage appending `place_id` to the user's places.

        Raises:
            NotFoundError: the user does not exist
            TransactionAbortedError: the place is already listed
        """
        ...

    @abstractmethod
    async def delete_place(self, place_id: str) -> None:
        """
        Stage removal of a place record.

        Raises:
            NotFoundError: the place no longer exists (e.g. deleted concurrently)
        """
        ...

    @abstractmethod
    async def remove_membership(self, user_id: str, place_id: str) -> None:
        """
        Stage removing `place_id` from the user's places.

        Raises:
            NotFoundError: the place no longer exists
            TransactionAbortedError: the place exists but is not listed under that user
        """
        ...


class PlaceStore(ABC):
    """Durable storage for places and users."""

    @abstractmethod
    async def get_place(self, place_id: str) -> Optional[PlaceRecord]:
        ...

    @abstractmethod
    async def get_place_with_owner(
        self, place_id: str
    ) -> Optional[Tuple[PlaceRecord, Optional[UserRecord]]]:
        """
        Fetch a place together with the user it references as creator.

        Returns None when the place does not exist. The owner half is None
        only if referential integrity has been broken outside this service.
        """
        ...

    @abstractmethod
    async def find_places_by_creator(self, user_id: str) -> List[PlaceRecord]:
        """All places created by `user_id`, in the user's membership order."""
        ...

    @abstractmethod
    async def get_user(self, user_id: str) -> Optional[UserRecord]:
        ...

    @abstractmethod
    async def add_user(self, name: str, email: str) -> UserRecord:
        """Create a user with no places."""
        ...

    @abstractmethod
    async def save_place(self, place: PlaceRecord) -> PlaceRecord:
        """
        Single-record write of a place's mutable fields (title, description).

        Raises:
            NotFoundError: the place no longer exists
        """
        ...

    @abstractmethod
    async def with_transaction(
        self, fn: Callable[[StoreTransaction], Awaitable[T]]
    ) -> T:
        """Run `fn` atomically and return its result."""
        ...

    @abstractmethod
    async def ping(self) -> bool:
        """Lightweight connectivity check for /health."""
        ...
