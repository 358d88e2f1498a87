"""
PlaceShare Backend — HTTP Route Tests
=======================================

What:  End-to-end tests through the FastAPI app: auth, validation, status
       codes, response envelopes and error format.
How:   test_client injects the in-memory store, a fake geocoder and a
       FileService rooted in a temp directory.
"""

from pathlib import Path

import pytest

from placeshare.exceptions import GeocodeError


def _form(**overrides):
    form = {
        "title": "Googleplex",
        "description": "Where the search engine lives.",
        "address": "1600 Amphitheatre Pkwy",
    }
    form.update(overrides)
    return form


async def _create(client, headers, image_bytes, filename="photo.png", **overrides):
    return await client.post(
        "/api/places",
        data=_form(**overrides),
        files={"image": (filename, image_bytes, "image/png")},
        headers=headers,
    )


class TestCreateRoute:

    @pytest.mark.asyncio
    async def test_create_returns_201_with_place(
        self, test_client, memory_store, file_storage, owner, token_for, sample_image_bytes
    ):
        response = await _create(test_client, token_for(owner.id), sample_image_bytes)

        assert response.status_code == 201
        place = response.json()["place"]
        assert place["creator"] == owner.id
        assert place["location"] == {"lat": 37.422, "lng": -122.084}
        assert file_storage.resolve(place["image"]).read_bytes() == sample_image_bytes
        assert (await memory_store.get_user(owner.id)).places == [place["id"]]

    @pytest.mark.asyncio
    async def test_create_without_token_is_401(self, test_client, sample_image_bytes):
        response = await _create(test_client, {}, sample_image_bytes)

        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"
        assert response.json()["error"] == "unauthorized"

    @pytest.mark.asyncio
    async def test_create_with_bad_token_is_401(self, test_client, sample_image_bytes):
        response = await _create(
            test_client, {"Authorization": "Bearer not.a.token"}, sample_image_bytes
        )

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_short_description_is_422(
        self, test_client, memory_store, owner, token_for, sample_image_bytes
    ):
        response = await _create(
            test_client, token_for(owner.id), sample_image_bytes, description="abc"
        )

        assert response.status_code == 422
        body = response.json()
        assert body["error"] == "validation_failed"
        assert body["retryable"] is False
        assert body["details"]["errors"][0]["field"] == "description"
        assert memory_store._places == {}

    @pytest.mark.asyncio
    async def test_unsupported_image_type_is_422(
        self, test_client, owner, token_for, sample_image_bytes
    ):
        response = await _create(
            test_client, token_for(owner.id), sample_image_bytes, filename="anim.gif"
        )

        assert response.status_code == 422
        assert "not supported" in response.json()["message"]

    @pytest.mark.asyncio
    async def test_missing_image_is_422(self, test_client, owner, token_for):
        response = await test_client.post(
            "/api/places", data=_form(), headers=token_for(owner.id)
        )

        assert response.status_code == 422
        assert response.json()["message"] == "An image is required."

    @pytest.mark.asyncio
    async def test_geocode_failure_is_502_and_upload_removed(
        self, test_client, memory_store, geocoder, owner, token_for, sample_image_bytes, temp_storage
    ):
        geocoder.error = GeocodeError(context={"reason": "zero_results"})

        response = await _create(test_client, token_for(owner.id), sample_image_bytes)

        assert response.status_code == 502
        body = response.json()
        assert body["error"] == "geocode_failed"
        assert body["message"] == "Could not find location for the specified address."
        assert body["retryable"] is True
        assert memory_store._places == {}
        assert list(Path(temp_storage).iterdir()) == []

    @pytest.mark.asyncio
    async def test_create_for_deleted_account_is_404(
        self, test_client, token_for, sample_image_bytes
    ):
        response = await _create(test_client, token_for("deleted-user"), sample_image_bytes)

        assert response.status_code == 404


class TestReadRoutes:

    @pytest.mark.asyncio
    async def test_get_unknown_place_is_404(self, test_client):
        response = await test_client.get("/api/places/does-not-exist")

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_get_place_and_user_places(
        self, test_client, owner, token_for, sample_image_bytes
    ):
        created = (await _create(test_client, token_for(owner.id), sample_image_bytes)).json()["place"]

        single = await test_client.get(f"/api/places/{created['id']}")
        listing = await test_client.get(f"/api/places/user/{owner.id}")

        assert single.status_code == 200
        assert single.json() == {"place": created}
        assert listing.status_code == 200
        assert listing.json() == {"places": [created]}

    @pytest.mark.asyncio
    async def test_user_without_places_is_404(self, test_client, owner):
        response = await test_client.get(f"/api/places/user/{owner.id}")

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_serves_uploaded_image(
        self, test_client, owner, token_for, sample_image_bytes
    ):
        created = (await _create(test_client, token_for(owner.id), sample_image_bytes)).json()["place"]

        response = await test_client.get(f"/uploads/images/{created['image']}")

        assert response.status_code == 200
        assert response.content == sample_image_bytes

    @pytest.mark.asyncio
    async def test_missing_image_file_is_404(self, test_client):
        response = await test_client.get("/uploads/images/missing.png")

        assert response.status_code == 404


class TestUpdateRoute:

    @pytest.mark.asyncio
    async def test_owner_can_update(self, test_client, owner, token_for, sample_image_bytes):
        created = (await _create(test_client, token_for(owner.id), sample_image_bytes)).json()["place"]

        response = await test_client.patch(
            f"/api/places/{created['id']}",
            json={"title": "Renamed", "description": "A fresh description"},
            headers=token_for(owner.id),
        )

        assert response.status_code == 200
        place = response.json()["place"]
        assert place["title"] == "Renamed"
        assert place["location"] == created["location"]

    @pytest.mark.asyncio
    async def test_non_owner_update_is_403_and_unchanged(
        self, test_client, owner, stranger, token_for, sample_image_bytes
    ):
        created = (await _create(test_client, token_for(owner.id), sample_image_bytes)).json()["place"]

        response = await test_client.patch(
            f"/api/places/{created['id']}",
            json={"title": "Hijacked", "description": "Not my place at all"},
            headers=token_for(stranger.id),
        )

        assert response.status_code == 403
        assert response.json()["error"] == "forbidden"
        after = await test_client.get(f"/api/places/{created['id']}")
        assert after.json()["place"] == created

    @pytest.mark.asyncio
    async def test_invalid_body_is_422(self, test_client, owner, token_for):
        response = await test_client.patch(
            "/api/places/anything",
            json={"title": ""},
            headers=token_for(owner.id),
        )

        assert response.status_code == 422
        fields = {err["field"] for err in response.json()["details"]["errors"]}
        assert {"title", "description"} <= fields


class TestDeleteRoute:

    @pytest.mark.asyncio
    async def test_owner_delete_removes_place_and_image(
        self, test_client, memory_store, file_storage, owner, token_for, sample_image_bytes
    ):
        created = (await _create(test_client, token_for(owner.id), sample_image_bytes)).json()["place"]

        response = await test_client.delete(
            f"/api/places/{created['id']}", headers=token_for(owner.id)
        )

        assert response.status_code == 200
        assert response.json() == {"message": "Deleted place."}
        assert (await test_client.get(f"/api/places/{created['id']}")).status_code == 404
        assert (await memory_store.get_user(owner.id)).places == []
        assert not file_storage.resolve(created["image"]).exists()

    @pytest.mark.asyncio
    async def test_non_owner_delete_is_403(
        self, test_client, memory_store, owner, stranger, token_for, sample_image_bytes
    ):
        created = (await _create(test_client, token_for(owner.id), sample_image_bytes)).json()["place"]

        response = await test_client.delete(
            f"/api/places/{created['id']}", headers=token_for(stranger.id)
        )

        assert response.status_code == 403
        assert await memory_store.get_place(created["id"]) is not None

    @pytest.mark.asyncio
    async def test_delete_without_token_is_401(self, test_client):
        response = await test_client.delete("/api/places/anything")

        assert response.status_code == 401


class TestAmbient:

    @pytest.mark.asyncio
    async def test_request_id_is_echoed_in_header_and_error_body(self, test_client):
        response = await test_client.get(
            "/api/places/missing", headers={"X-Request-ID": "trace-42"}
        )

        assert response.headers["x-request-id"] == "trace-42"
        assert response.json()["request_id"] == "trace-42"

    @pytest.mark.asyncio
    async def test_health(self, test_client):
        response = await test_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["store"] == "connected"
        assert body["geocoder"] == "configured"
