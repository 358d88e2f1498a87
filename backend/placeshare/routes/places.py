"""
PlaceShare Backend — Place Route Handlers
===========================================

What:  HTTP endpoints for reading, creating, updating and deleting places,
       plus serving uploaded images.
How:   Handlers extract request data, delegate to PlaceService and wrap the
       result in a response envelope. Failures propagate as PlaceShareError
       to the global handler registered in main.py.

Endpoints:
    GET    /api/places/{pid}          public
    GET    /api/places/user/{uid}     public
    POST   /api/places                bearer token, multipart form
    PATCH  /api/places/{pid}          bearer token, JSON body
    DELETE /api/places/{pid}          bearer token
    GET    /uploads/images/{path}     public
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import FileResponse
from pydantic import ValidationError as PydanticValidationError

from placeshare.dependencies import get_file_service, get_place_service
from placeshare.exceptions import NotFoundError, ValidationError
from placeshare.schemas.place import (
    ErrorResponse,
    MessageResponse,
    PlaceCreate,
    PlaceListResponse,
    PlaceResponse,
    PlaceUpdate,
)
from placeshare.security import get_current_user_id
from placeshare.services.file_service import FileService
from placeshare.services.place_service import PlaceService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Places"])

_AUTH_ERRORS = {
    401: {"description": "Missing or invalid token", "model": ErrorResponse},
    403: {"description": "Caller does not own the place", "model": ErrorResponse},
}


def field_errors(errors: List[dict]) -> List[dict]:
    """Reduce pydantic/FastAPI error dicts to JSON-safe {field, message} pairs."""
    return [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
            "message": err.get("msg", "Invalid value"),
        }
        for err in errors
    ]


@router.get(
    "/api/places/{place_id}",
    response_model=PlaceResponse,
    responses={404: {"description": "Place not found", "model": ErrorResponse}},
    summary="Get a place by id",
)
async def get_place_by_id(
    place_id: str,
    service: PlaceService = Depends(get_place_service),
) -> PlaceResponse:
    place = await service.get_place_by_id(place_id)
    return PlaceResponse(place=place)


@router.get(
    "/api/places/user/{user_id}",
    response_model=PlaceListResponse,
    responses={404: {"description": "No places for this user", "model": ErrorResponse}},
    summary="List the places a user created",
)
async def get_places_by_user_id(
    user_id: str,
    service: PlaceService = Depends(get_place_service),
) -> PlaceListResponse:
    places = await service.get_places_by_user_id(user_id)
    return PlaceListResponse(places=places)


@router.post(
    "/api/places",
    status_code=201,
    response_model=PlaceResponse,
    responses={
        **_AUTH_ERRORS,
        422: {"description": "Invalid input or image", "model": ErrorResponse},
        502: {"description": "Address could not be geocoded", "model": ErrorResponse},
    },
    summary="Create a place",
)
async def create_place(
    title: str = Form(default=""),
    description: str = Form(default=""),
    address: str = Form(default=""),
    image: Optional[UploadFile] = File(default=None),
    user_id: str = Depends(get_current_user_id),
    service: PlaceService = Depends(get_place_service),
    files: FileService = Depends(get_file_service),
) -> PlaceResponse:
    """
    Create a place owned by the caller.

    Processing Steps:
        1. Validate form fields and the uploaded image
        2. Store the image (FileService)
        3. PlaceService.create_place: geocode, then the transactional insert;
           it removes the stored image again if anything fails
    """
    try:
        data = PlaceCreate(title=title, description=description, address=address)
    except PydanticValidationError as e:
        raise ValidationError(context={"errors": field_errors(e.errors())})

    if image is None:
        raise ValidationError(message="An image is required.", field="image")

    try:
        content = await image.read()
        logger.info(
            "Received create request: filename=%s, size=%d bytes",
            image.filename or "unknown",
            len(content),
        )
        image_path = await files.validate_and_store(image.filename or "", content)
    finally:
        await image.close()

    place = await service.create_place(creator_id=user_id, data=data, image_path=image_path)
    return PlaceResponse(place=place)


@router.patch(
    "/api/places/{place_id}",
    response_model=PlaceResponse,
    responses={
        **_AUTH_ERRORS,
        404: {"description": "Place not found", "model": ErrorResponse},
        422: {"description": "Invalid input", "model": ErrorResponse},
    },
    summary="Update a place's title and description",
)
async def update_place(
    place_id: str,
    body: PlaceUpdate,
    user_id: str = Depends(get_current_user_id),
    service: PlaceService = Depends(get_place_service),
) -> PlaceResponse:
    place = await service.update_place(place_id=place_id, caller_id=user_id, data=body)
    return PlaceResponse(place=place)


@router.delete(
    "/api/places/{place_id}",
    response_model=MessageResponse,
    responses={
        **_AUTH_ERRORS,
        404: {"description": "Place not found", "model": ErrorResponse},
    },
    summary="Delete a place",
)
async def delete_place(
    place_id: str,
    user_id: str = Depends(get_current_user_id),
    service: PlaceService = Depends(get_place_service),
) -> MessageResponse:
    await service.delete_place(place_id=place_id, caller_id=user_id)
    return MessageResponse(message="Deleted place.")


@router.get(
    "/uploads/images/{file_path:path}",
    summary="Serve an uploaded place image",
    responses={404: {"description": "File not found"}},
)
async def serve_image(
    file_path: str,
    files: FileService = Depends(get_file_service),
) -> FileResponse:
    full_path = files.resolve(file_path)
    if not full_path.is_file():
        raise NotFoundError(resource="file", resource_id=file_path)
    return FileResponse(
        path=str(full_path),
        headers={"Cache-Control": "public, max-age=86400"},
    )
