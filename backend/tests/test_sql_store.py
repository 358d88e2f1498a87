"""
PlaceShare Backend — SQLAlchemy Store Tests
=============================================

What:  Runs SqlAlchemyStore against a throwaway SQLite database.
How:   Each test gets its own aiosqlite file under tmp_path with the tables
       created from the ORM metadata.
"""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio
from sqlalchemy.exc import OperationalError

from placeshare.database import build_engine, build_session_factory, create_tables
from placeshare.exceptions import (
    NotFoundError,
    StoreUnavailableError,
    TransactionAbortedError,
)
from placeshare.schemas.place import Coordinates, NewPlace
from placeshare.store.sql import SqlAlchemyStore, SqlTransaction


@pytest_asyncio.fixture
async def sql_store(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'places.db'}")
    await create_tables(engine)
    yield SqlAlchemyStore(build_session_factory(engine))
    await engine.dispose()


@pytest_asyncio.fixture
async def sql_owner(sql_store):
    return await sql_store.add_user(name="Uma Owner", email="uma@example.com")


def _new_place(creator: str, title: str = "Googleplex") -> NewPlace:
    return NewPlace(
        title=title,
        description="Where the search engine lives.",
        address="1600 Amphitheatre Pkwy",
        location=Coordinates(lat=37.422, lng=-122.084),
        image="img.png",
        creator=creator,
    )


async def _create(store, user_id, title="Googleplex"):
    async def create(tx):
        place = await tx.insert_place(_new_place(user_id, title))
        await tx.append_membership(user_id, place.id)
        return place
    return await store.with_transaction(create)


def _db_error() -> OperationalError:
    return OperationalError("SELECT 1", {}, Exception("database is gone"))


class TestSqlTransactions:

    @pytest.mark.asyncio
    async def test_create_writes_place_and_membership(self, sql_store, sql_owner):
        place = await _create(sql_store, sql_owner.id)

        assert await sql_store.get_place(place.id) == place
        assert (await sql_store.get_user(sql_owner.id)).places == [place.id]

    @pytest.mark.asyncio
    async def test_membership_failure_rolls_back_insert(self, sql_store, sql_owner):
        with patch.object(
            SqlTransaction, "append_membership",
            new=AsyncMock(side_effect=TransactionAbortedError()),
        ):
            with pytest.raises(TransactionAbortedError):
                await _create(sql_store, sql_owner.id)

        assert await sql_store.find_places_by_creator(sql_owner.id) == []
        assert (await sql_store.get_user(sql_owner.id)).places == []

    @pytest.mark.asyncio
    async def test_duplicate_membership_aborts(self, sql_store, sql_owner):
        async def duplicate(tx):
            place = await tx.insert_place(_new_place(sql_owner.id))
            await tx.append_membership(sql_owner.id, place.id)
            await tx.append_membership(sql_owner.id, place.id)

        with pytest.raises(TransactionAbortedError):
            await sql_store.with_transaction(duplicate)

        assert (await sql_store.get_user(sql_owner.id)).places == []

    @pytest.mark.asyncio
    async def test_driver_error_before_staging_is_store_unavailable(self, sql_store):
        async def fail_immediately(tx):
            raise _db_error()

        with pytest.raises(StoreUnavailableError):
            await sql_store.with_transaction(fail_immediately)

    @pytest.mark.asyncio
    async def test_driver_error_after_staging_is_transaction_aborted(self, sql_store, sql_owner):
        async def fail_after_insert(tx):
            await tx.insert_place(_new_place(sql_owner.id))
            raise _db_error()

        with pytest.raises(TransactionAbortedError):
            await sql_store.with_transaction(fail_after_insert)

        assert await sql_store.find_places_by_creator(sql_owner.id) == []

    @pytest.mark.asyncio
    async def test_delete_removes_place_and_membership(self, sql_store, sql_owner):
        keep = await _create(sql_store, sql_owner.id, "Keep")
        drop = await _create(sql_store, sql_owner.id, "Drop")

        async def delete(tx):
            await tx.remove_membership(sql_owner.id, drop.id)
            await tx.delete_place(drop.id)

        await sql_store.with_transaction(delete)

        assert await sql_store.get_place(drop.id) is None
        assert (await sql_store.get_user(sql_owner.id)).places == [keep.id]

    @pytest.mark.asyncio
    async def test_failed_delete_keeps_membership(self, sql_store, sql_owner):
        place = await _create(sql_store, sql_owner.id)

        async def delete_missing(tx):
            await tx.remove_membership(sql_owner.id, place.id)
            await tx.delete_place("not-there")

        with pytest.raises(NotFoundError):
            await sql_store.with_transaction(delete_missing)

        assert (await sql_store.get_user(sql_owner.id)).places == [place.id]


    @pytest.mark.asyncio
    async def test_remove_membership_of_deleted_place_is_not_found(self, sql_store, sql_owner):
        place = await _create(sql_store, sql_owner.id)

        async def delete(tx):
            await tx.remove_membership(sql_owner.id, place.id)
            await tx.delete_place(place.id)

        await sql_store.with_transaction(delete)

        with pytest.raises(NotFoundError) as exc_info:
            await sql_store.with_transaction(delete)

        assert exc_info.value.context["resource"] == "place"

    @pytest.mark.asyncio
    async def test_remove_membership_of_someone_elses_place_aborts(self, sql_store, sql_owner):
        other = await sql_store.add_user(name="Sam Stranger", email="sam@example.com")
        place = await _create(sql_store, other.id)

        async def remove(tx):
            await tx.remove_membership(sql_owner.id, place.id)

        with pytest.raises(TransactionAbortedError):
            await sql_store.with_transaction(remove)

        assert (await sql_store.get_user(other.id)).places == [place.id]

    @pytest.mark.asyncio
    async def test_cancelled_transaction_commits_nothing(self, sql_store, sql_owner):
        started = asyncio.Event()

        async def slow(tx):
            place = await tx.insert_place(_new_place(sql_owner.id))
            await tx.append_membership(sql_owner.id, place.id)
            started.set()
            await asyncio.sleep(10)

        task = asyncio.create_task(sql_store.with_transaction(slow))
        await started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert await sql_store.find_places_by_creator(sql_owner.id) == []
        assert (await sql_store.get_user(sql_owner.id)).places == []



class TestSqlReads:

    @pytest.mark.asyncio
    async def test_places_listed_in_creation_order(self, sql_store, sql_owner):
        created = [await _create(sql_store, sql_owner.id, f"Place {i}") for i in range(3)]

        listed = await sql_store.find_places_by_creator(sql_owner.id)

        assert [p.id for p in listed] == [p.id for p in created]

    @pytest.mark.asyncio
    async def test_get_place_with_owner(self, sql_store, sql_owner):
        place = await _create(sql_store, sql_owner.id)

        found_place, found_owner = await sql_store.get_place_with_owner(place.id)

        assert found_place == place
        assert found_owner.id == sql_owner.id
        assert found_owner.places == [place.id]
        assert await sql_store.get_place_with_owner("missing") is None

    @pytest.mark.asyncio
    async def test_save_place_updates_text_fields(self, sql_store, sql_owner):
        place = await _create(sql_store, sql_owner.id)
        place.title = "Renamed"
        place.description = "A better description"

        saved = await sql_store.save_place(place)

        assert saved.title == "Renamed"
        assert (await sql_store.get_place(place.id)).description == "A better description"

    @pytest.mark.asyncio
    async def test_read_failure_is_store_unavailable(self, sql_store):
        with patch.object(sql_store, "session_factory", side_effect=_db_error()):
            with pytest.raises(StoreUnavailableError):
                await sql_store.get_place("any")

    @pytest.mark.asyncio
    async def test_ping(self, sql_store):
        assert await sql_store.ping() is True
