"""
PlaceShare Backend — Service Wiring
=====================================

What:  Process-wide collaborator instances and the FastAPI dependencies that
       hand them to route handlers.
How:   The store, geocoder and blob store are built once at import. Tests
       replace any of them through `app.dependency_overrides`.
"""

from fastapi import Depends

from placeshare.services.file_service import FileService, file_service
from placeshare.services.geocoder_base import Geocoder
from placeshare.services.google_geocoder import GoogleGeocoder
from placeshare.services.place_service import PlaceService
from placeshare.store import PlaceStore, build_store

store = build_store()
geocoder = GoogleGeocoder()


def get_store() -> PlaceStore:
    return store


def get_geocoder() -> Geocoder:
    return geocoder


def get_file_service() -> FileService:
    return file_service


def get_place_service(
    place_store: PlaceStore = Depends(get_store),
    place_geocoder: Geocoder = Depends(get_geocoder),
    blob_store: FileService = Depends(get_file_service),
) -> PlaceService:
    return PlaceService(store=place_store, geocoder=place_geocoder, blob_store=blob_store)
