"""
PlaceShare Backend — Failure Taxonomy
======================================

What:  One tagged exception type for every failure the service can report.
How:   PlaceShareError carries an ErrorKind, a user-facing message and a
       context dict. Thin subclasses exist only to build the message and
       context for a given kind in one place.
Who:   Raised by the store adapters, the geocoder, the authorizer and the
       place service; translated to HTTP by placeshare.responses.

Taxonomy:
    PlaceShareError (kind-tagged base)
    ├── ValidationError          → VALIDATION_FAILED   (terminal)
    ├── UnauthorizedError        → UNAUTHORIZED        (terminal)
    ├── ForbiddenError           → FORBIDDEN           (terminal)
    ├── NotFoundError            → NOT_FOUND           (terminal)
    ├── GeocodeError             → GEOCODE_FAILED      (caller may retry)
    ├── StoreUnavailableError    → STORE_UNAVAILABLE   (caller may retry)
    └── TransactionAbortedError  → TRANSACTION_ABORTED (caller may retry)

The HTTP mapping lives in responses.py; nothing here knows about status codes.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    """Failure kinds visible at the service boundary."""

    VALIDATION_FAILED = "validation_failed"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    GEOCODE_FAILED = "geocode_failed"
    STORE_UNAVAILABLE = "store_unavailable"
    TRANSACTION_ABORTED = "transaction_aborted"

    @property
    def retryable(self) -> bool:
        return self in _RETRYABLE


_RETRYABLE = frozenset(
    {
        ErrorKind.GEOCODE_FAILED,
        ErrorKind.STORE_UNAVAILABLE,
        ErrorKind.TRANSACTION_ABORTED,
    }
)


class PlaceShareError(Exception):
    """
    Base exception for all PlaceShare failures.

    Attributes:
        kind:     ErrorKind tag; the only thing the response mapper dispatches on
        message:  User-facing description (safe to return in an API response)
        context:  Debug details (logged, returned only for validation failures)
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.kind = kind
        self.message = message
        self.context = context or {}
        super().__init__(self.message)

    @property
    def retryable(self) -> bool:
        return self.kind.retryable

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value!r}, message={self.message!r})"


class ValidationError(PlaceShareError):
    """
    Client input is malformed.

    When:    Empty title, short description, missing image, unsupported
             image type, oversized upload.
    """

    def __init__(
        self,
        message: str = "Invalid inputs passed, please check your data.",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(ErrorKind.VALIDATION_FAILED, message=message, context=ctx)
        self.field = field


class UnauthorizedError(PlaceShareError):
    """No credential, or a credential that does not verify."""

    def __init__(
        self,
        message: str = "Authentication failed.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(ErrorKind.UNAUTHORIZED, message=message, context=context)


class ForbiddenError(PlaceShareError):
    """
    Authenticated caller is not the owner of the resource.

    Raised by update and delete alike; a failed ownership check always
    aborts the operation before any write.
    """

    def __init__(
        self,
        message: str = "You are not allowed to modify this place.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(ErrorKind.FORBIDDEN, message=message, context=context)


class NotFoundError(PlaceShareError):
    """
    A referenced entity does not exist.

    The store returns None for missing records; the service converts that
    into this error so the HTTP layer never sees a bare None.
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        if message is None:
            message = f"Could not find {resource}"
            if resource_id:
                message = f"Could not find {resource} for the provided id '{resource_id}'."
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(ErrorKind.NOT_FOUND, message=message, context=ctx)


class GeocodeError(PlaceShareError):
    """
    The geocoder could not resolve an address.

    When:    Zero results, provider rejected the request, network failure
             or timeout after retries.
    """

    def __init__(
        self,
        message: str = "Could not find location for the specified address.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(ErrorKind.GEOCODE_FAILED, message=message, context=context)


class StoreUnavailableError(PlaceShareError):
    """
    The resource store could not be reached or failed before any work was staged.

    The message is always generic; driver details go to the log via context.
    """

    def __init__(
        self,
        message: str = "The data store is temporarily unavailable. Please try again later.",
        retry_after: int = 5,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(ErrorKind.STORE_UNAVAILABLE, message=message, context=ctx)
        self.retry_after = retry_after


class TransactionAbortedError(PlaceShareError):
    """
    A multi-record transaction failed after work was staged.

    Guarantees: nothing from the transaction is visible afterwards.
    """

    def __init__(
        self,
        message: str = "The operation could not be completed. Please try again.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(ErrorKind.TRANSACTION_ABORTED, message=message, context=context)
