"""
PlaceShare Backend — Pydantic Records & API Schemas
=====================================================

What:  Pydantic models for the records the store hands out and for the API
       contract (request bodies, response envelopes, error format).
How:   Store adapters build PlaceRecord/UserRecord from their own storage;
       the service returns records; routes wrap them in response envelopes.
"""

from typing import List, Optional

from pydantic import BaseModel, Field


# ══════════════════════════════════════════════════════════════════════════
# Records: what the store returns and the service works with
# ══════════════════════════════════════════════════════════════════════════


class Coordinates(BaseModel):
    """A resolved geographic point."""
    lat: float = Field(description="Latitude in decimal degrees")
    lng: float = Field(description="Longitude in decimal degrees")


class NewPlace(BaseModel):
    """A place that has not been persisted yet (no id)."""
    title: str
    description: str
    address: str
    location: Coordinates
    image: str
    creator: str


class PlaceRecord(NewPlace):
    """
    A persisted place.

    `id`, `location`, `image` and `creator` never change after creation;
    only `title` and `description` are updated.
    """
    id: str = Field(description="Store-assigned place identifier")


class UserRecord(BaseModel):
    """
    A user together with the ids of the places they own.

    `places` is in creation order. It is a back-reference maintained by the
    create/delete transactions; PlaceRecord.creator is the source of truth.
    """
    id: str
    name: str
    email: str
    places: List[str] = Field(default_factory=list)


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class PlaceCreate(BaseModel):
    """Form fields accepted by POST /api/places (the image arrives separately)."""
    title: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=5)
    address: str = Field(min_length=1)


class PlaceUpdate(BaseModel):
    """JSON body accepted by PATCH /api/places/{pid}."""
    title: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=5)


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class PlaceResponse(BaseModel):
    place: PlaceRecord


class PlaceListResponse(BaseModel):
    places: List[PlaceRecord]


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    """
    Error format shared by every endpoint.

    Example:
        {
            "error": "forbidden",
            "message": "You are not allowed to modify this place.",
            "retryable": false,
            "request_id": "1f0c2a9b"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    retryable: bool = Field(description="Whether retrying the same request may succeed")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Service health and dependency status returned by GET /health."""
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    store: str = Field(description="Store connectivity: connected, disconnected")
    geocoder: str = Field(description="Geocoder status: configured, unconfigured")
    uptime_seconds: float = Field(description="Seconds since service started")
