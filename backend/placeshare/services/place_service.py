"""
PlaceShare Backend — Place Service (Business Logic Orchestrator)
==================================================================

What:  Read, create, update and delete places with ownership checks and
       transactional dual-writes.
How:   Composes a PlaceStore, a Geocoder and a BlobStore handed in at
       construction. Holds no per-request state.
Who:   Called by the place route handlers.

Create Flow:
    ┌──────────┐    ┌──────────┐    ┌──────────┐    ┌───────────────────────┐
    │ Geocode  │───▶│  Build   │───▶│  Load    │───▶│ Transaction:          │
    │ address  │    │  Place   │    │  owner   │    │  insert place         │
    └──────────┘    └──────────┘    └──────────┘    │  append to user.places│
                                                    └───────────────────────┘
    Any failure → remove the uploaded image (best-effort) and re-raise.

Delete Flow:
    Load place + owner → ownership check → Transaction:
    remove membership, delete place → remove image (best-effort).

Invariants kept here:
    - A place and its membership entry are written or removed together
    - Nothing is written before geocoding succeeds
    - Only the creator may update or delete a place
    - creator, location and image are never changed after creation
"""

import logging
from typing import List

from placeshare.exceptions import ForbiddenError, NotFoundError, PlaceShareError
from placeshare.schemas.place import NewPlace, PlaceCreate, PlaceRecord, PlaceUpdate
from placeshare.services.file_service import BlobStore
from placeshare.services.geocoder_base import Geocoder
from placeshare.store.base import PlaceStore, StoreTransaction

logger = logging.getLogger(__name__)


class PlaceService:
    """
    Business logic layer for place operations.

    Error Handling Strategy:
        Every failure leaves this class as a PlaceShareError. The store and
        geocoder already raise tagged errors; this class adds NotFound and
        Forbidden. Image removal errors are logged and never raised.
    """

    def __init__(self, store: PlaceStore, geocoder: Geocoder, blob_store: BlobStore):
        self.store = store
        self.geocoder = geocoder
        self.blob_store = blob_store

    # ── Reads ─────────────────────────────────────────────────────────────

    async def get_place_by_id(self, place_id: str) -> PlaceRecord:
        """
        Raises:
            NotFoundError: no place with that id
            StoreUnavailableError: the store failed
        """
        place = await self.store.get_place(place_id)
        if place is None:
            raise NotFoundError(resource="place", resource_id=place_id)
        return place

    async def get_places_by_user_id(self, user_id: str) -> List[PlaceRecord]:
        """
        All places created by `user_id`, oldest first.

        An unknown user and a user with no places both raise NotFoundError.
        """
        places = await self.store.find_places_by_creator(user_id)
        if not places:
            raise NotFoundError(
                resource="places",
                resource_id=user_id,
                message=f"Could not find places for the provided user id '{user_id}'.",
            )
        return places

    # ── Create ────────────────────────────────────────────────────────────

    async def create_place(
        self,
        creator_id: str,
        data: PlaceCreate,
        image_path: str,
    ) -> PlaceRecord:
        """
        Create a place owned by `creator_id`.

        Args:
            creator_id: Authenticated caller
            data: Validated title, description, address
            image_path: Blob path of the already-stored upload

        Raises:
            GeocodeError: address could not be resolved (nothing written)
            NotFoundError: the caller's user record does not exist
            TransactionAbortedError / StoreUnavailableError: store failure

        On any failure the uploaded image is removed best-effort.
        """
        try:
            coordinates = await self.geocoder.geocode(data.address)

            new_place = NewPlace(
                title=data.title,
                description=data.description,
                address=data.address,
                location=coordinates,
                image=image_path,
                creator=creator_id,
            )

            user = await self.store.get_user(creator_id)
            if user is None:
                raise NotFoundError(
                    resource="user",
                    resource_id=creator_id,
                    message="Could not find user for provided id.",
                )

            async def insert_with_membership(tx: StoreTransaction) -> PlaceRecord:
                place = await tx.insert_place(new_place)
                await tx.append_membership(user.id, place.id)
                return place

            place = await self.store.with_transaction(insert_with_membership)

        except PlaceShareError as e:
            logger.warning(
                "Create place failed for user %s: %s (%s)",
                creator_id, e.kind.value, e.message,
            )
            await self._discard_image(image_path)
            raise

        logger.info("Place %s created by user %s", place.id, creator_id)
        return place

    # ── Update ────────────────────────────────────────────────────────────

    async def update_place(
        self,
        place_id: str,
        caller_id: str,
        data: PlaceUpdate,
    ) -> PlaceRecord:
        """
        Overwrite title and description of a place the caller owns.

        Raises:
            NotFoundError: no such place
            ForbiddenError: caller is not the creator
        """
        place = await self.get_place_by_id(place_id)

        if place.creator != caller_id:
            logger.warning("User %s denied update of place %s", caller_id, place_id)
            raise ForbiddenError(context={"place_id": place_id})

        place.title = data.title
        place.description = data.description
        updated = await self.store.save_place(place)
        logger.info("Place %s updated", place_id)
        return updated

    # ── Delete ────────────────────────────────────────────────────────────

    async def delete_place(self, place_id: str, caller_id: str) -> None:
        """
        Delete a place the caller owns, then its image.

        Raises:
            NotFoundError: the place or its owner record is gone, also when a
                concurrent delete removed the place first
            ForbiddenError: caller is not the owner; nothing is deleted
            TransactionAbortedError / StoreUnavailableError: store failure
        """
        found = await self.store.get_place_with_owner(place_id)
        if found is None:
            raise NotFoundError(resource="place", resource_id=place_id)
        place, owner = found
        if owner is None:
            logger.error("Place %s references missing user %s", place_id, place.creator)
            raise NotFoundError(
                resource="user",
                resource_id=place.creator,
                message="Could not find the owner of this place.",
            )

        if owner.id != caller_id:
            logger.warning("User %s denied delete of place %s", caller_id, place_id)
            raise ForbiddenError(
                message="You are not allowed to delete this place.",
                context={"place_id": place_id},
            )

        async def delete_with_membership(tx: StoreTransaction) -> None:
            await tx.remove_membership(owner.id, place.id)
            await tx.delete_place(place.id)

        await self.store.with_transaction(delete_with_membership)
        logger.info("Place %s deleted by user %s", place_id, caller_id)

        # Outside the consistency boundary: never fails the delete
        await self._discard_image(place.image)

    # ── Helpers ───────────────────────────────────────────────────────────

    async def _discard_image(self, image_path: str) -> None:
        try:
            await self.blob_store.remove(image_path)
        except Exception as e:
            logger.warning("Failed to remove image %s: %s", image_path, str(e))
