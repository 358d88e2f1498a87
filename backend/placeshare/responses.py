"""
PlaceShare Backend — Response Mapper
======================================

What:  Turns a PlaceShareError into an HTTP status, headers and JSON body.
How:   One table keyed by ErrorKind. Every kind has its own status so a
       client can tell a transient failure (retry) from a terminal one.

Mapping:
    VALIDATION_FAILED    → 422
    UNAUTHORIZED         → 401  (WWW-Authenticate: Bearer)
    FORBIDDEN            → 403
    NOT_FOUND            → 404
    TRANSACTION_ABORTED  → 409  (retryable)
    GEOCODE_FAILED       → 502  (retryable)
    STORE_UNAVAILABLE    → 503  (retryable, Retry-After)

Only validation failures echo their context to the client; every other
kind returns its message alone and the context goes to the log.
"""

import logging
from typing import Dict, Optional

from fastapi.responses import JSONResponse

from placeshare.exceptions import ErrorKind, PlaceShareError

logger = logging.getLogger(__name__)

STATUS_BY_KIND: Dict[ErrorKind, int] = {
    ErrorKind.VALIDATION_FAILED: 422,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.TRANSACTION_ABORTED: 409,
    ErrorKind.GEOCODE_FAILED: 502,
    ErrorKind.STORE_UNAVAILABLE: 503,
}

_PUBLIC_CONTEXT_KINDS = frozenset({ErrorKind.VALIDATION_FAILED})


def status_for(kind: ErrorKind) -> int:
    return STATUS_BY_KIND[kind]


def error_payload(exc: PlaceShareError, request_id: Optional[str] = None) -> dict:
    """JSON body for `exc` in the shared ErrorResponse format."""
    payload = {
        "error": exc.kind.value,
        "message": exc.message,
        "retryable": exc.retryable,
        "request_id": request_id or None,
    }
    if exc.kind in _PUBLIC_CONTEXT_KINDS and exc.context:
        payload["details"] = exc.context
    return payload


def error_headers(exc: PlaceShareError) -> Dict[str, str]:
    headers: Dict[str, str] = {}
    if exc.kind is ErrorKind.UNAUTHORIZED:
        headers["WWW-Authenticate"] = "Bearer"
    if exc.kind is ErrorKind.STORE_UNAVAILABLE:
        headers["Retry-After"] = str(exc.context.get("retry_after", 5))
    return headers


def to_error_response(exc: PlaceShareError, request_id: Optional[str] = None) -> JSONResponse:
    """Build the HTTP response for `exc` and log it at a level matching its status."""
    status = status_for(exc.kind)
    if status >= 500:
        logger.error("[%s] %s: %s | Context: %s", request_id, exc.kind.value, exc.message, exc.context)
    else:
        logger.warning("[%s] %s: %s", request_id, exc.kind.value, exc.message)
    return JSONResponse(
        status_code=status,
        content=error_payload(exc, request_id),
        headers=error_headers(exc),
    )
