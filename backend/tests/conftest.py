"""
PlaceShare Backend — Test Configuration (conftest.py)
======================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Environment overrides are applied before any placeshare import so
       the settings singleton, the store selection and the file service
       all pick up test values.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── temp_storage: Temporary directory for image files
    ├── sample_image_bytes: Minimal PNG bytes for upload tests
    ├── memory_store: Empty MemoryStore
    ├── owner / stranger: Users seeded into memory_store
    ├── geocoder: FakeGeocoder returning fixed coordinates
    ├── blob_store: FakeBlobStore recording removals
    ├── place_service: PlaceService over the three fakes above
    ├── token_for: Builds bearer headers for a user id
    ├── file_storage: FileService rooted in temp_storage
    └── test_client: HTTPX AsyncClient against the app with fakes injected
"""

import os
import tempfile
from typing import Callable, Dict, List, Optional

# Before any placeshare import: settings are read once at import time
os.environ["STORE_BACKEND"] = "memory"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test.db"
os.environ["GOOGLE_MAPS_API_KEY"] = "test-key-not-real"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="placeshare_test_")
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from placeshare.schemas.place import Coordinates, PlaceCreate
from placeshare.security import TokenAuthorizer, authorizer
from placeshare.services.file_service import BlobStore, FileService
from placeshare.services.geocoder_base import Geocoder
from placeshare.services.place_service import PlaceService
from placeshare.store.memory import MemoryStore

GOOGLEPLEX = Coordinates(lat=37.422, lng=-122.084)


class FakeGeocoder(Geocoder):
    """Returns `coordinates` for every address, or raises `error` when set."""

    def __init__(self, coordinates: Coordinates = GOOGLEPLEX):
        self.coordinates = coordinates
        self.error: Optional[Exception] = None
        self.calls: List[str] = []

    def is_configured(self) -> bool:
        return True

    async def geocode(self, address: str) -> Coordinates:
        self.calls.append(address)
        if self.error is not None:
            raise self.error
        return self.coordinates


class FakeBlobStore(BlobStore):
    """Records removed paths; raises `error` from remove() when set."""

    def __init__(self):
        self.removed: List[str] = []
        self.error: Optional[Exception] = None

    async def remove(self, path: str) -> None:
        self.removed.append(path)
        if self.error is not None:
            raise self.error


@pytest.fixture
def temp_storage(tmp_path):
    storage_dir = tmp_path / "storage"
    storage_dir.mkdir()
    return str(storage_dir)


@pytest.fixture
def sample_image_bytes():
    """8-byte PNG signature plus an IEND chunk: enough to look like an image."""
    return (
        b"\x89PNG\r\n\x1a\n"
        b"\x00\x00\x00\x00IEND\xaeB`\x82"
    )


@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest_asyncio.fixture
async def owner(memory_store):
    return await memory_store.add_user(name="Uma Owner", email="uma@example.com")


@pytest_asyncio.fixture
async def stranger(memory_store):
    return await memory_store.add_user(name="Sam Stranger", email="sam@example.com")


@pytest.fixture
def geocoder():
    return FakeGeocoder()


@pytest.fixture
def blob_store():
    return FakeBlobStore()


@pytest.fixture
def place_service(memory_store, geocoder, blob_store):
    return PlaceService(store=memory_store, geocoder=geocoder, blob_store=blob_store)


@pytest.fixture
def place_data():
    return PlaceCreate(
        title="Googleplex",
        description="Where the search engine lives.",
        address="1600 Amphitheatre Pkwy",
    )


@pytest.fixture
def token_for() -> Callable[[str], Dict[str, str]]:
    """Build an Authorization header for `user_id` signed with the app's secret."""
    def _headers(user_id: str) -> Dict[str, str]:
        return {"Authorization": f"Bearer {authorizer.create_token(user_id)}"}
    return _headers


@pytest.fixture
def token_authorizer():
    return TokenAuthorizer(secret_key="unit-test-secret")


@pytest.fixture
def file_storage(temp_storage):
    return FileService(storage_root=temp_storage)


@pytest_asyncio.fixture
async def test_client(memory_store, geocoder, file_storage):
    """
    HTTPX AsyncClient routed straight into the FastAPI app.

    The store, geocoder and file service are replaced through
    dependency_overrides so requests never leave the process.
    """
    from placeshare.dependencies import get_file_service, get_geocoder, get_store
    from placeshare.main import app

    app.dependency_overrides[get_store] = lambda: memory_store
    app.dependency_overrides[get_geocoder] = lambda: geocoder
    app.dependency_overrides[get_file_service] = lambda: file_storage

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
